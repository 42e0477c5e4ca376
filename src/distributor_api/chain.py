from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, MutableMapping, Type, TypeVar

from eth_utils import to_checksum_address
from pydantic import BaseModel

from .crypto import keccak256

E = TypeVar("E", bound=BaseModel)

_MISSING = object()


class Chain:
    """In-process ledger host: block clock, event log and atomic transactions.

    Every state-mutating call runs inside `transaction()`, which holds a
    process-wide lock. Writes made through `write` (or registered with
    `record`) are undone in reverse order, and the event log truncated,
    when the body raises. Only touched keys are journaled, so the cost of a
    transaction does not depend on the size of the ledgers it writes to.
    """

    def __init__(
        self,
        block_number: int = 0,
        genesis_timestamp: int = 1_600_000_000,
        block_time: int = 12,
        chain_id: int = 1,
    ):
        self.block_number = block_number
        self.genesis_timestamp = genesis_timestamp
        self.block_time = block_time
        self.chain_id = chain_id
        self.events: List[BaseModel] = []
        self._undo: List[Callable[[], None]] = []
        self._depth = 0
        self._lock = threading.RLock()
        self._address_nonce = 0

    @property
    def timestamp(self) -> int:
        return self.genesis_timestamp + self.block_number * self.block_time

    @property
    def pending_undo(self) -> int:
        """Number of journaled writes in the open transaction."""
        return len(self._undo)

    def mine(self, blocks: int = 1) -> int:
        if blocks < 0:
            raise ValueError("cannot mine a negative number of blocks")
        with self._lock:
            self.block_number += blocks
            return self.block_number

    def new_address(self, label: str) -> str:
        with self._lock:
            self._address_nonce += 1
            seed = f"{label}:{self._address_nonce}".encode()
        return to_checksum_address(keccak256(seed)[12:])

    def record(self, undo: Callable[[], None]) -> None:
        if not self._depth:
            raise RuntimeError("state writes must happen inside a transaction")
        self._undo.append(undo)

    def write(self, store: MutableMapping, key, value) -> None:
        """Set `store[key] = value`, journaling the previous entry."""
        previous = store.get(key, _MISSING)

        def undo() -> None:
            if previous is _MISSING:
                store.pop(key, None)
            else:
                store[key] = previous

        self.record(undo)
        store[key] = value

    def emit(self, event: BaseModel) -> None:
        self.events.append(event)

    def events_of(self, kind: Type[E]) -> List[E]:
        return [e for e in self.events if isinstance(e, kind)]

    @contextmanager
    def transaction(self) -> Iterator["Chain"]:
        with self._lock:
            mark = len(self._undo)
            n_events = len(self.events)
            self._depth += 1
            try:
                yield self
            except BaseException:
                while len(self._undo) > mark:
                    self._undo.pop()()
                del self.events[n_events:]
                raise
            finally:
                self._depth -= 1
                if not self._depth:
                    self._undo.clear()
