from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from distributor_api.crypto import HEX, HEXD, leaf_hash, parse_quantity
from distributor_api.merkle import MerkleTree, verify_proof
from distributor_api.models import MerkleDistributorInfo

Info = Union[MerkleDistributorInfo, Dict[str, Any]]


@dataclass
class VerificationReport:
    valid: int = 0
    invalid: List[str] = field(default_factory=list)
    computed_root: str = ""
    expected_root: str = ""

    @property
    def root_matches(self) -> bool:
        return self.computed_root.lower() == self.expected_root.lower()

    @property
    def ok(self) -> bool:
        return not self.invalid and self.root_matches


def _as_info(info: Info) -> MerkleDistributorInfo:
    if isinstance(info, MerkleDistributorInfo):
        return info
    return MerkleDistributorInfo.model_validate(info)


def verify_claim(info: Info, account: str) -> bool:
    """Return True if `account`'s published claim folds to the artifact root.

    Unknown accounts and malformed entries verify as False.
    """
    info = _as_info(info)
    claim = info.claims.get(account)
    if claim is None:
        return False
    try:
        return verify_proof(
            claim.index,
            account,
            parse_quantity(claim.amount),
            [HEXD(p) for p in claim.proof],
            HEXD(info.merkle_root),
        )
    except (TypeError, ValueError):
        return False


def verify_distribution(info: Info) -> VerificationReport:
    """Check every claim's proof and rebuild the root from all published leaves."""
    info = _as_info(info)
    report = VerificationReport(expected_root=info.merkle_root)
    leaves = []
    for account, claim in info.claims.items():
        if verify_claim(info, account):
            report.valid += 1
        else:
            report.invalid.append(account)
        try:
            leaves.append(leaf_hash(claim.index, account, parse_quantity(claim.amount)))
        except (TypeError, ValueError):
            continue
    if leaves:
        report.computed_root = HEX(MerkleTree.from_leaves(leaves).root)
    return report
