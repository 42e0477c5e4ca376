"""Inclusion proof fuzzing with mutated proofs and leaves."""
from __future__ import annotations
import atheris
import sys
import random

with atheris.instrument_imports():
    from distributor_api.crypto import keccak256
    from distributor_api.merkle import MerkleTree, verify_inclusion


def TestOneInput(data: bytes):  # noqa: N802
    if len(data) < 8:
        return
    seed = int.from_bytes(data[:4], 'little')
    random.seed(seed)
    chunk_len = 1 + (data[4] % 32)
    body = data[5:]
    raw = [body[i:i+chunk_len] for i in range(0, min(len(body), chunk_len * 16), chunk_len)]
    leaves = [keccak256(x) for x in raw if x]
    if len(leaves) < 3:
        return
    tree = MerkleTree.from_leaves(leaves)
    leaf = leaves[seed % len(leaves)]
    proof = tree.inclusion_proof(leaf)
    roll = random.random()
    if roll < 0.2 and proof:
        pos = seed % len(proof)
        sib = proof[pos]
        proof[pos] = bytes([sib[0] ^ 0x01]) + sib[1:]
        if verify_inclusion(leaf, proof, tree.root):
            raise RuntimeError("tampered proof unexpectedly verified")
    elif roll < 0.3:
        forged = bytes([leaf[0] ^ 0x80]) + leaf[1:]
        if forged not in tree.elements and verify_inclusion(forged, proof, tree.root):
            raise RuntimeError("proof verified for a foreign leaf")
    else:
        if not verify_inclusion(leaf, proof, tree.root):
            raise RuntimeError("valid proof failed")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
