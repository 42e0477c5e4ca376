"""Fuzz harness for balance-tree construction & proof verification."""
from __future__ import annotations
import atheris
import sys

with atheris.instrument_imports():
    from distributor_api.merkle import BalanceTree, Entry, verify_proof


def TestOneInput(data: bytes):  # noqa: N802
    if len(data) < 2:
        return
    # Fixed-size records: 20-byte account + up to 8-byte amount; bounded count
    size = 20 + 1 + (data[0] % 8)
    body = data[1:]
    entries = []
    for i, off in enumerate(range(0, min(len(body), size * 64), size)):
        rec = body[off : off + size]
        if len(rec) < size:
            break
        account = "0x" + rec[:20].hex()
        amount = int.from_bytes(rec[20:], "big")
        entries.append(Entry(i, account, amount))
    if not entries:
        return
    tree = BalanceTree(entries)
    e = entries[data[-1] % len(entries)]
    if not verify_proof(e.index, e.account, e.amount, tree.proof_for(e.index), tree.root):
        raise RuntimeError("valid proof failed")
    if verify_proof(e.index, e.account, e.amount + 1, tree.proof_for(e.index), tree.root):
        raise RuntimeError("proof verified for a different amount")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
