from __future__ import annotations
import logging
from typing import Any, Dict, Protocol, Union

from .chain import Chain
from .crypto import delegation_domain, normalize_address, recover_delegation_signer
from .errors import InsufficientPoolBalance, InvalidNonce, InvalidSignature, SignatureExpired
from .models import DelegateChanged, Transfer

log = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class TokenCollaborator(Protocol):
    """What the distributor needs from the token it pays out.

    `sender` stands in for the caller identity a ledger would supply implicitly.
    """

    address: str

    def balance_of(self, account: str) -> int: ...

    def transfer(self, to: str, amount: int, *, sender: str) -> bool: ...

    def delegate_by_sig(
        self,
        delegatee: str,
        nonce: int,
        expiry: int,
        v: int,
        r: Union[int, bytes, str],
        s: Union[int, bytes, str],
    ) -> None: ...


class InMemoryToken:
    """Reference token: balances, transfers and signature-based delegation.

    Only the surface the distributor touches is modelled; vote weights are
    not tracked.
    """

    def __init__(self, chain: Chain, name: str = "Token", symbol: str = "TKN", version: str = "1"):
        self.chain = chain
        self.name = name
        self.symbol = symbol
        self.version = version
        self.address = chain.new_address(f"token:{symbol}")
        self._balances: Dict[str, int] = {}
        self._delegates: Dict[str, str] = {}
        self._nonces: Dict[str, int] = {}

    @property
    def domain(self) -> Dict[str, Any]:
        return delegation_domain(self.name, self.chain.chain_id, self.address, self.version)

    def balance_of(self, account: str) -> int:
        return self._balances.get(normalize_address(account), 0)

    def total_supply(self) -> int:
        return sum(self._balances.values())

    def set_balance(self, account: str, amount: int) -> None:
        """Test hook: overwrite a balance directly."""
        if amount < 0:
            raise ValueError("negative balance")
        with self.chain.transaction():
            self.chain.write(self._balances, normalize_address(account), amount)

    def transfer(self, to: str, amount: int, *, sender: str) -> bool:
        sender = normalize_address(sender)
        to = normalize_address(to)
        if amount < 0:
            raise ValueError("negative amount")
        with self.chain.transaction():
            have = self._balances.get(sender, 0)
            if have < amount:
                raise InsufficientPoolBalance()
            self.chain.write(self._balances, sender, have - amount)
            self.chain.write(self._balances, to, self._balances.get(to, 0) + amount)
            self.chain.emit(Transfer(sender=sender, to=to, amount=amount))
        return True

    def delegates(self, account: str) -> str:
        return self._delegates.get(normalize_address(account), ZERO_ADDRESS)

    def nonces(self, account: str) -> int:
        return self._nonces.get(normalize_address(account), 0)

    def delegate(self, delegatee: str, *, sender: str) -> None:
        with self.chain.transaction():
            self._delegate(normalize_address(sender), normalize_address(delegatee))

    def delegate_by_sig(self, delegatee, nonce, expiry, v, r, s) -> None:
        delegatee = normalize_address(delegatee)
        with self.chain.transaction():
            if self.chain.timestamp > expiry:
                raise SignatureExpired()
            try:
                signer = recover_delegation_signer(self.domain, delegatee, nonce, expiry, v, r, s)
            except Exception as e:  # noqa: BLE001 - any recovery failure is a bad signature
                raise InvalidSignature() from e
            signer = normalize_address(signer)
            current = self._nonces.get(signer, 0)
            if nonce != current:
                raise InvalidNonce()
            self.chain.write(self._nonces, signer, current + 1)
            self._delegate(signer, delegatee)

    def _delegate(self, delegator: str, delegatee: str) -> None:
        previous = self.delegates(delegator)
        self.chain.write(self._delegates, delegator, delegatee)
        self.chain.emit(
            DelegateChanged(delegator=delegator, from_delegate=previous, to_delegate=delegatee)
        )
        log.debug("delegate changed delegator=%s to=%s", delegator, delegatee)
