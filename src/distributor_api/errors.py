from __future__ import annotations
from typing import Optional


class DistributorError(Exception):
    """Base class for every failure surfaced by the distributor.

    `code` is stable and machine-readable; the message keeps the wording
    clients of the on-chain contract already match against.
    """

    code = "distributor_error"
    default_message = "distributor error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0])


class InvalidProof(DistributorError):
    code = "invalid_proof"
    default_message = "MerkleDistributor: Invalid proof."


class AlreadyClaimed(DistributorError):
    code = "already_claimed"
    default_message = "MerkleDistributor: Drop already claimed."


class DistributionEnded(DistributorError):
    code = "distribution_ended"
    default_message = "MerkleDistributor: Drop has ended."


class DropNotEnded(DistributorError):
    code = "drop_not_ended"
    default_message = "Drop has not ended yet"


class TransferFailed(DistributorError):
    code = "transfer_failed"
    default_message = "MerkleDistributor: Transfer failed."


class InsufficientPoolBalance(TransferFailed):
    code = "insufficient_pool_balance"
    default_message = "ERC20: transfer amount exceeds balance"


class InvalidSignature(DistributorError):
    code = "invalid_signature"
    default_message = "ERC20Votes: invalid signature"


class SignatureExpired(InvalidSignature):
    code = "signature_expired"
    default_message = "ERC20Votes: signature expired"


class InvalidNonce(InvalidSignature):
    code = "invalid_nonce"
    default_message = "ERC20Votes: invalid nonce"


class DuplicateIndex(DistributorError, ValueError):
    code = "duplicate_index"
    default_message = "duplicate index"


class UnknownIndex(DistributorError, KeyError):
    code = "unknown_index"
    default_message = "Element does not exist in Merkle tree"

    def __str__(self) -> str:
        return self.message


class InvalidBalanceMap(DistributorError, ValueError):
    code = "invalid_balance_map"
    default_message = "invalid balance map"
