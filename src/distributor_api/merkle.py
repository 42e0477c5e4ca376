from __future__ import annotations
from bisect import bisect_left
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .crypto import HEX, keccak256, leaf_hash
from .errors import DuplicateIndex, UnknownIndex


def combined_hash(first: Optional[bytes], second: Optional[bytes]) -> bytes:
    """Parent of two nodes: keccak256 of the byte-sorted concatenation.

    A missing sibling promotes the other node unchanged.
    """
    if first is None:
        return second  # type: ignore[return-value]
    if second is None:
        return first
    if second < first:
        first, second = second, first
    return keccak256(first + second)


@dataclass
class MerkleTree:
    elements: List[bytes]  # sorted, deduplicated leaves
    levels: List[List[bytes]]  # level 0 = elements

    @classmethod
    def from_leaves(cls, leaves: Iterable[bytes]) -> "MerkleTree":
        elements = sorted(set(leaves))
        if not elements:
            raise ValueError("empty tree")
        lvl = elements
        levels = [lvl]
        while len(lvl) > 1:
            nxt = []
            for i in range(0, len(lvl), 2):
                b = lvl[i + 1] if i + 1 < len(lvl) else None  # lone node carried up
                nxt.append(combined_hash(lvl[i], b))
            levels.append(nxt)
            lvl = nxt
        return cls(elements, levels)

    @property
    def root(self) -> bytes:
        return self.levels[-1][0]

    def position(self, leaf: bytes) -> int:
        idx = bisect_left(self.elements, leaf)
        if idx == len(self.elements) or self.elements[idx] != leaf:
            raise UnknownIndex()
        return idx

    def inclusion_proof(self, leaf: bytes) -> List[bytes]:
        """Sibling digests from leaf to root; levels without a sibling are skipped."""
        idx = self.position(leaf)
        proof = []
        for level in self.levels[:-1]:
            pair = idx + 1 if idx % 2 == 0 else idx - 1
            if pair < len(level):
                proof.append(level[pair])
            idx //= 2
        return proof


def verify_inclusion(leaf: bytes, proof: Sequence[bytes], root: bytes) -> bool:
    h = leaf
    for sibling in proof:
        h = combined_hash(h, sibling)
    return h == root


@dataclass(frozen=True)
class Entry:
    index: int
    account: str
    amount: int

    @property
    def leaf(self) -> bytes:
        return leaf_hash(self.index, self.account, self.amount)


class BalanceTree:
    """Merkle tree over (index, account, amount) distribution entries.

    Leaves are ordered by digest, not by index, so the root does not depend
    on the order entries are supplied in.
    """

    def __init__(self, entries: Iterable[Entry]):
        self._entries: Dict[int, Entry] = {}
        self._leaves: Dict[int, bytes] = {}
        for e in entries:
            if e.index in self._entries:
                raise DuplicateIndex(f"duplicate index: {e.index}")
            self._entries[e.index] = e
            self._leaves[e.index] = e.leaf
        self.tree = MerkleTree.from_leaves(self._leaves.values())

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def from_balances(cls, balances: Iterable[tuple]) -> "BalanceTree":
        """Build from (account, amount) pairs, indexed by position."""
        return cls(Entry(i, a, amt) for i, (a, amt) in enumerate(balances))

    @property
    def root(self) -> bytes:
        return self.tree.root

    @property
    def hex_root(self) -> str:
        return HEX(self.root)

    def entry(self, index: int) -> Entry:
        try:
            return self._entries[index]
        except KeyError:
            raise UnknownIndex(f"unknown index: {index}") from None

    def proof_for(self, index: int) -> List[bytes]:
        self.entry(index)
        return self.tree.inclusion_proof(self._leaves[index])

    def get_proof(self, index: int, account: str, amount: int) -> List[str]:
        """Hex proof for an exact (index, account, amount) leaf."""
        return [HEX(p) for p in self.tree.inclusion_proof(leaf_hash(index, account, amount))]

    @staticmethod
    def verify_proof(
        index: int, account: str, amount: int, proof: Sequence[bytes], root: bytes
    ) -> bool:
        return verify_proof(index, account, amount, proof, root)


def build_root(entries: Iterable[Entry]) -> bytes:
    return BalanceTree(entries).root


def verify_proof(
    index: int, account: str, amount: int, proof: Sequence[bytes], root: bytes
) -> bool:
    """Fold `proof` onto the entry's leaf digest and compare against `root`."""
    return verify_inclusion(leaf_hash(index, account, amount), proof, root)
