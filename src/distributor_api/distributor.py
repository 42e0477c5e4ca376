from __future__ import annotations
import logging
from dataclasses import dataclass
from functools import partial
from typing import Sequence, Union

from .bitmap import ClaimedBitMap
from .chain import Chain
from .crypto import HEX, HEXD, UINT256_MAX, normalize_address
from .errors import AlreadyClaimed, DistributionEnded, DropNotEnded, InvalidProof, TransferFailed
from .merkle import verify_proof
from .models import Claimed, Swept
from .token import TokenCollaborator

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistributorConfig:
    token: str
    merkle_root: bytes
    starting_block: int
    max_blocks: int
    owner: str

    @property
    def deadline(self) -> int:
        return self.starting_block + self.max_blocks


def _as_digest(p: Union[bytes, str]) -> bytes:
    return HEXD(p) if isinstance(p, str) else bytes(p)


class MerkleDistributor:
    """Pays out committed (index, account, amount) entries against a Merkle root.

    Claims are accepted while the chain height is below `deadline`; from the
    deadline on, only `sweep` succeeds and returns the remaining pool to
    `owner`. Each mutation runs as one chain transaction.
    """

    def __init__(
        self,
        chain: Chain,
        token: TokenCollaborator,
        merkle_root: Union[bytes, str],
        max_blocks: int,
        owner: str,
    ):
        root = _as_digest(merkle_root)
        if len(root) != 32:
            raise ValueError("merkle root must be 32 bytes")
        if max_blocks < 0:
            raise ValueError("max_blocks must be non-negative")
        self.chain = chain
        self._token = token
        self.address = chain.new_address("distributor")
        self.config = DistributorConfig(
            token=token.address,
            merkle_root=root,
            starting_block=chain.block_number,
            max_blocks=max_blocks,
            owner=normalize_address(owner),
        )
        self._claimed = ClaimedBitMap()

    @property
    def token(self) -> str:
        return self.config.token

    @property
    def merkle_root(self) -> bytes:
        return self.config.merkle_root

    @property
    def starting_block(self) -> int:
        return self.config.starting_block

    @property
    def max_blocks(self) -> int:
        return self.config.max_blocks

    @property
    def owner(self) -> str:
        return self.config.owner

    @property
    def deadline(self) -> int:
        return self.config.deadline

    def has_ended(self) -> bool:
        return self.chain.block_number >= self.config.deadline

    def balance(self) -> int:
        return self._token.balance_of(self.address)

    def is_claimed(self, index: int) -> bool:
        return self._claimed.is_set(index)

    def claim(
        self,
        index: int,
        account: str,
        amount: int,
        proof: Sequence[Union[bytes, str]],
    ) -> Claimed:
        account = normalize_address(account)
        with self.chain.transaction():
            if self.has_ended():
                raise DistributionEnded()
            # no committed leaf can carry an index outside uint256
            if not 0 <= index <= UINT256_MAX:
                raise InvalidProof()
            if self._claimed.is_set(index):
                raise AlreadyClaimed()
            try:
                digests = [_as_digest(p) for p in proof]
                valid = verify_proof(index, account, amount, digests, self.config.merkle_root)
            except ValueError as e:
                raise InvalidProof() from e
            if not valid:
                raise InvalidProof()

            self._set_claimed(index)
            if not self._token.transfer(account, amount, sender=self.address):
                raise TransferFailed()
            event = Claimed(index=index, account=account, amount=amount)
            self.chain.emit(event)
        log.info("claimed index=%d account=%s amount=%d", index, account, amount)
        return event

    def _set_claimed(self, index: int) -> None:
        word, _ = ClaimedBitMap.locate(index)
        self.chain.record(partial(self._claimed.put_word, word, self._claimed.word(word)))
        self._claimed.set(index)

    def delegate_and_claim(
        self,
        delegatee: str,
        nonce: int,
        expiry: int,
        v: int,
        r: Union[int, bytes, str],
        s: Union[int, bytes, str],
        index: int,
        account: str,
        amount: int,
        proof: Sequence[Union[bytes, str]],
    ) -> Claimed:
        with self.chain.transaction():
            self._token.delegate_by_sig(delegatee, nonce, expiry, v, r, s)
            return self.claim(index, account, amount, proof)

    def sweep(self) -> int:
        """Move the whole remaining balance to the owner once the drop has ended.

        Sweeping an empty pool succeeds and moves nothing.
        """
        with self.chain.transaction():
            if not self.has_ended():
                raise DropNotEnded()
            amount = self.balance()
            if amount and not self._token.transfer(self.owner, amount, sender=self.address):
                raise TransferFailed()
            self.chain.emit(Swept(owner=self.owner, amount=amount))
        log.info("swept amount=%d owner=%s", amount, self.owner)
        return amount

    def describe(self) -> dict:
        return {
            "token": self.token,
            "merkle_root": HEX(self.merkle_root),
            "starting_block": self.starting_block,
            "max_blocks": self.max_blocks,
            "owner": self.owner,
            "block_number": self.chain.block_number,
            "balance": self.balance(),
        }
