from __future__ import annotations
from typing import Any, Dict, Union

from eth_abi.packed import encode_packed
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import is_address, keccak, to_checksum_address

UINT256_MAX = 2**256 - 1

DELEGATION_TYPES = {
    "Delegation": [
        {"name": "delegatee", "type": "address"},
        {"name": "nonce", "type": "uint256"},
        {"name": "expiry", "type": "uint256"},
    ]
}


def HEX(b: bytes) -> str:
    """Hex-encode bytes with a 0x prefix."""
    return "0x" + b.hex()


def HEXD(s: str) -> bytes:
    """Decode a 0x-prefixed (or bare) hex string to bytes with strict validation."""
    if not isinstance(s, str):
        raise ValueError("invalid hex")
    body = s[2:] if s[:2].lower() == "0x" else s
    try:
        return bytes.fromhex(body)
    except ValueError as e:
        raise ValueError("invalid hex") from e


def keccak256(data: bytes) -> bytes:
    return keccak(primitive=data)


def to_hex_quantity(n: int) -> str:
    """Even-length lowercase hex, e.g. 200 -> '0xc8', 300 -> '0x012c'."""
    if n < 0:
        raise ValueError("negative quantity")
    h = format(n, "x")
    if len(h) % 2:
        h = "0" + h
    return "0x" + h


def parse_quantity(value: Union[int, str]) -> int:
    """Parse an integer given as int, decimal string or 0x-hex string."""
    if isinstance(value, bool):
        raise ValueError(f"invalid quantity: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip()
        try:
            if s[:2].lower() == "0x":
                return int(s[2:], 16)
            return int(s, 10)
        except ValueError as e:
            raise ValueError(f"invalid quantity: {value!r}") from e
    raise ValueError(f"invalid quantity: {value!r}")


def normalize_address(account: str) -> str:
    """Return the EIP-55 checksum form; rejects malformed or bad-checksum input."""
    if not isinstance(account, str) or not is_address(account):
        raise ValueError(f"invalid address: {account!r}")
    return to_checksum_address(account)


def _check_uint256(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer")
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"{name} out of uint256 range")


def encode_leaf(index: int, account: str, amount: int) -> bytes:
    """Tightly packed (uint256 index, address account, uint256 amount), 84 bytes."""
    _check_uint256("index", index)
    _check_uint256("amount", amount)
    return encode_packed(
        ["uint256", "address", "uint256"], [index, normalize_address(account), amount]
    )


def leaf_hash(index: int, account: str, amount: int) -> bytes:
    return keccak256(encode_leaf(index, account, amount))


def delegation_domain(
    name: str, chain_id: int, verifying_contract: str, version: str = "1"
) -> Dict[str, Any]:
    return {
        "name": name,
        "version": version,
        "chainId": chain_id,
        "verifyingContract": verifying_contract,
    }


def recover_delegation_signer(
    domain: Dict[str, Any],
    delegatee: str,
    nonce: int,
    expiry: int,
    v: int,
    r: Union[int, bytes, str],
    s: Union[int, bytes, str],
) -> str:
    """Recover the address that signed an EIP-712 Delegation struct."""
    signable = encode_typed_data(
        domain_data=domain,
        message_types=DELEGATION_TYPES,
        message_data={"delegatee": delegatee, "nonce": nonce, "expiry": expiry},
    )
    return Account.recover_message(signable, vrs=(v, r, s))
