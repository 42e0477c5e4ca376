from __future__ import annotations
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .crypto import HEXD, normalize_address, parse_quantity, UINT256_MAX


def _uint256(v) -> int:
    n = parse_quantity(v)
    if n < 0 or n > UINT256_MAX:
        raise ValueError("value out of uint256 range")
    return n


def _address(v) -> str:
    return normalize_address(v)


def _digest(v) -> str:
    if len(HEXD(v)) != 32:
        raise ValueError("proof elements must be 32-byte hex digests")
    return v


# --- events -----------------------------------------------------------------


class Claimed(BaseModel):
    index: int
    account: str
    amount: int


class Swept(BaseModel):
    owner: str
    amount: int


class Transfer(BaseModel):
    sender: str
    to: str
    amount: int


class DelegateChanged(BaseModel):
    delegator: str
    from_delegate: str
    to_delegate: str


# --- off-line artifact ------------------------------------------------------


class ClaimInfo(BaseModel):
    index: int
    amount: str  # hex quantity
    proof: List[str]
    flags: Optional[Dict[str, bool]] = None


class MerkleDistributorInfo(BaseModel):
    """Output of the tree builder, handed to claimants out of band."""

    model_config = ConfigDict(populate_by_name=True)

    merkle_root: str = Field(alias="merkleRoot")
    token_total: str = Field(alias="tokenTotal")
    claims: Dict[str, ClaimInfo] = Field(default_factory=dict)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- API payloads -----------------------------------------------------------


class ClaimRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    index: int = Field(ge=0, le=UINT256_MAX)
    account: str
    amount: Union[int, str]
    proof: List[str] = Field(default_factory=list)

    @field_validator("account")
    @classmethod
    def _check_account(cls, v):
        return _address(v)

    @field_validator("amount")
    @classmethod
    def _check_amount(cls, v):
        return _uint256(v)

    @field_validator("proof")
    @classmethod
    def _check_proof(cls, v):
        return [_digest(p) for p in v]

    def proof_bytes(self) -> List[bytes]:
        return [HEXD(p) for p in self.proof]


class DelegateClaimRequest(ClaimRequest):
    delegatee: str
    nonce: Union[int, str]
    expiry: Union[int, str]
    v: int
    r: Union[int, str]
    s: Union[int, str]

    @field_validator("delegatee")
    @classmethod
    def _check_delegatee(cls, v):
        return _address(v)

    @field_validator("nonce", "expiry", "r", "s")
    @classmethod
    def _check_words(cls, v):
        return _uint256(v)


class DistributorView(BaseModel):
    token: str
    merkle_root: str = Field(serialization_alias="merkleRoot")
    starting_block: int = Field(serialization_alias="startingBlock")
    max_blocks: int = Field(serialization_alias="maxBlocks")
    owner: str
    block_number: int = Field(serialization_alias="blockNumber")
    balance: int
