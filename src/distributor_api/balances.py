from __future__ import annotations
from typing import Any, Dict, List, Mapping, Union

from eth_utils import is_address, to_checksum_address

from .crypto import to_hex_quantity, parse_quantity
from .errors import InvalidBalanceMap
from .merkle import BalanceTree, Entry
from .models import ClaimInfo, MerkleDistributorInfo

"""Balance map -> distribution artifact.

Accepted input shapes:
- old: {"0xabc...": 200, ...} (int, decimal string or hex string amounts)
- new: [{"address": "0xabc...", "earnings": "0xc8", "reasons": "socks,lp"}, ...]
"""

BalanceMap = Union[Mapping[str, Any], List[Mapping[str, Any]]]


def _to_new_format(balances: BalanceMap) -> List[Dict[str, Any]]:
    if isinstance(balances, Mapping):
        return [
            {"address": account, "earnings": amount, "reasons": ""}
            for account, amount in balances.items()
        ]
    if isinstance(balances, list):
        out = []
        for row in balances:
            if not isinstance(row, Mapping) or "address" not in row or "earnings" not in row:
                raise InvalidBalanceMap("each entry needs 'address' and 'earnings'")
            out.append(
                {
                    "address": row["address"],
                    "earnings": row["earnings"],
                    "reasons": row.get("reasons") or "",
                }
            )
        return out
    raise InvalidBalanceMap("balance map must be an object or a list")


def _flags(reasons: str) -> Dict[str, bool]:
    return {
        "isSOCKS": "socks" in reasons,
        "isLP": "lp" in reasons,
        "isUser": "user" in reasons,
    }


def parse_balance_map(balances: BalanceMap) -> MerkleDistributorInfo:
    """Validate balances, assign indices by sorted checksum address, build proofs."""
    data: Dict[str, Dict[str, Any]] = {}
    for row in _to_new_format(balances):
        account = row["address"]
        if not isinstance(account, str) or not is_address(account):
            raise InvalidBalanceMap(f"Found invalid address: {account}")
        parsed = to_checksum_address(account)
        if parsed in data:
            raise InvalidBalanceMap(f"Duplicate address: {parsed}")
        try:
            amount = parse_quantity(row["earnings"])
        except ValueError:
            raise InvalidBalanceMap(f"Invalid amount for account: {account}") from None
        if amount <= 0:
            raise InvalidBalanceMap(f"Invalid amount for account: {account}")
        reasons = str(row["reasons"])
        data[parsed] = {"amount": amount, "flags": _flags(reasons) if reasons else None}

    if not data:
        raise InvalidBalanceMap("balance map is empty")

    addresses = sorted(data)
    tree = BalanceTree(Entry(i, a, data[a]["amount"]) for i, a in enumerate(addresses))

    claims = {}
    for index, address in enumerate(addresses):
        amount = data[address]["amount"]
        claims[address] = ClaimInfo(
            index=index,
            amount=to_hex_quantity(amount),
            proof=tree.get_proof(index, address, amount),
            flags=data[address]["flags"],
        )

    return MerkleDistributorInfo(
        merkle_root=tree.hex_root,
        token_total=to_hex_quantity(sum(d["amount"] for d in data.values())),
        claims=claims,
    )
