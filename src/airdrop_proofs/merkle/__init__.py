"""
Airdrop Merkle Tree

OpenZeppelin-compatible Merkle commitment over (address, amount) leaves:

- encoding: leaf/node hashing and hex helpers
- tree: StandardMerkleTree building, proofs, verification, dump/load
"""

from .encoding import (
    bytes_to_hex,
    hash_pair,
    hex_to_bytes,
    leaf_hash,
)
from .tree import (
    IndexOutOfRange,
    InvalidTreeError,
    StandardMerkleTree,
    get_proof,
    make_merkle_tree,
    process_proof,
    verify_proof,
)

__all__ = [
    "bytes_to_hex",
    "hash_pair",
    "hex_to_bytes",
    "leaf_hash",
    "IndexOutOfRange",
    "InvalidTreeError",
    "StandardMerkleTree",
    "get_proof",
    "make_merkle_tree",
    "process_proof",
    "verify_proof",
]
