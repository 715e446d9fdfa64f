"""
Leaf and Node Encoding

Hashing primitives for the airdrop Merkle tree. The encoding matches the
OpenZeppelin StandardMerkleTree scheme checked by the airdrop contract:

    leaf = keccak256(bytes.concat(keccak256(abi.encode(account, amount))))
    node = keccak256(min(a, b) || max(a, b))
"""

from typing import Any, List, Sequence

from eth_abi import encode
from eth_utils import keccak, to_checksum_address


def hex_to_bytes(hex_str: str) -> bytes:
    """
    Convert a hex string to bytes.

    Args:
        hex_str: Hex string (with or without '0x' prefix)

    Returns:
        Bytes representation of the hex string

    Examples:
        >>> hex_to_bytes("0x1234")
        b'\\x12\\x34'
    """
    if hex_str.startswith("0x"):
        hex_str = hex_str[2:]

    # Pad to even length
    if len(hex_str) % 2 == 1:
        hex_str = "0" + hex_str

    return bytes.fromhex(hex_str)


def bytes_to_hex(data: bytes, prefix: bool = True) -> str:
    """
    Convert bytes to a hex string.

    Args:
        data: Bytes to convert
        prefix: Whether to include '0x' prefix

    Returns:
        Hex string representation
    """
    hex_str = data.hex()
    return f"0x{hex_str}" if prefix else hex_str


def _coerce_value(abi_type: str, value: Any) -> Any:
    """Convert a JSON-friendly leaf value into what eth_abi expects for its type."""
    if abi_type == "address":
        return to_checksum_address(value)
    if abi_type.startswith("uint") or abi_type.startswith("int"):
        if isinstance(value, str) and value.startswith("0x"):
            return int(value, 16)
        return int(value)
    if abi_type.startswith("bytes") and isinstance(value, str):
        return hex_to_bytes(value)
    if abi_type == "bool" and isinstance(value, str):
        return value.lower() == "true"
    return value


def leaf_hash(value: Sequence[Any], leaf_encoding: List[str]) -> bytes:
    """
    Hash a leaf value the way the on-chain verifier does.

    Args:
        value: Leaf value, e.g. ("0xabc...", "1000")
        leaf_encoding: ABI types of the value fields, e.g. ["address", "uint256"]

    Returns:
        32-byte leaf hash

    Raises:
        ValueError: If the value does not match the leaf encoding
    """
    if len(value) != len(leaf_encoding):
        raise ValueError(
            f"Leaf value has {len(value)} fields, encoding expects {len(leaf_encoding)}"
        )
    coerced = [_coerce_value(t, v) for t, v in zip(leaf_encoding, value)]
    return keccak(keccak(encode(leaf_encoding, coerced)))


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Hash two sibling nodes in sorted order."""
    return keccak(a + b) if a <= b else keccak(b + a)
