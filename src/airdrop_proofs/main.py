"""
Airdrop Proofs - Main tree and proof module

This module contains the core functions for building airdrop Merkle trees from
allocation lists, generating and verifying recipient proofs from tree files, and
storing trees with their lockup metadata. Used by both the CLI and the API.
"""

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .api.chain_client import ChainClient
from .api.store_client import TreeStoreClient
from .constants import DEFAULT_LOCKUP_DURATION, LEAF_ENCODING
from .merkle import (
    InvalidTreeError,
    StandardMerkleTree,
    bytes_to_hex,
    hex_to_bytes,
    leaf_hash,
    verify_proof,
)
from .timing import CommitmentMetadata

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Container for tree build results."""
    tree: StandardMerkleTree
    total_amount: int
    recipient_count: int


@dataclass
class ProofResult:
    """Container for proof generation results."""
    proof: List[bytes]
    root: bytes
    metadata: Dict[str, Any]


def load_allocations(path: str) -> List[Tuple[str, int]]:
    """
    Load (address, amount) allocations from a CSV or JSON file.

    CSV files need ``address``/``account`` and ``amount`` columns. JSON files
    hold a list of ``{"account"|"address": ..., "amount": ...}`` objects or
    ``[address, amount]`` pairs.

    Raises:
        ValueError: If the file holds no usable rows
    """
    file_path = Path(path)
    rows: List[Tuple[str, int]] = []

    if file_path.suffix.lower() == ".csv":
        with open(file_path, newline="") as f:
            for row in csv.DictReader(f):
                address = row.get("address") or row.get("account")
                if not address or row.get("amount") is None:
                    raise ValueError(f"Row missing address or amount: {row}")
                rows.append((address.strip(), int(row["amount"].strip())))
    else:
        with open(file_path, "r") as f:
            data = json.load(f)
        for item in data:
            if isinstance(item, dict):
                address = item.get("account") or item.get("address")
                rows.append((address, int(item["amount"])))
            else:
                address, amount = item
                rows.append((address, int(amount)))

    if not rows:
        raise ValueError(f"No allocations found in {path}")
    return rows


def build_airdrop_tree(
    allocations: Sequence[Tuple[str, int]],
    treasury: Optional[str] = None,
    treasury_amount: int = 0,
) -> BuildResult:
    """
    Build the airdrop tree, appending the treasury allocation last.

    Args:
        allocations: (address, amount) pairs in distribution order
        treasury: Treasury address; added as the final leaf when given
        treasury_amount: Treasury allocation

    Returns:
        BuildResult with the tree and total committed amount
    """
    values = [[address, str(int(amount))] for address, amount in allocations]
    if treasury:
        values.append([treasury, str(int(treasury_amount))])

    for address, amount in values:
        if int(amount) < 0:
            raise ValueError(f"Negative allocation for {address}")

    tree = StandardMerkleTree.of(values, LEAF_ENCODING)
    total = sum(int(amount) for _, amount in values)
    logger.info(f"Built airdrop tree with {len(values)} recipients, root {tree.root_hex}")
    return BuildResult(tree=tree, total_amount=total, recipient_count=len(values))


def load_tree_file(tree_file: str) -> Tuple[StandardMerkleTree, Optional[CommitmentMetadata]]:
    """
    Load a tree from a dump file.

    Accepts either a bare ``standard-v1`` dump or a stored payload of the form
    ``{"format", "tree", "metadata"}``.

    Raises:
        InvalidTreeError: If the file does not hold a tree dump object
        ValueError: If the file is not valid JSON
    """
    with open(tree_file, "r") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise InvalidTreeError(f"{tree_file} does not contain a tree dump object")
    if isinstance(data.get("tree"), dict):
        return StandardMerkleTree.load(data["tree"]), CommitmentMetadata.from_dict(data.get("metadata"))
    return StandardMerkleTree.load(data), None


def generate_recipient_proof(tree_file: str, index: int) -> ProofResult:
    """Generate the Merkle proof for the recipient at ``index``."""
    tree, metadata = load_tree_file(tree_file)
    proof = tree.get_proof(index)
    address, amount = tree.value(index)

    result_metadata = {
        "index": index,
        "address": address,
        "amount": str(amount),
        "leaf": bytes_to_hex(tree.leaf_hash([address, amount])),
        "proof_length": len(proof),
        "recipient_count": len(tree),
    }
    if metadata is not None:
        result_metadata["lockup_end_time"] = metadata.lockup_end_time
        result_metadata["lockup_duration"] = metadata.lockup_duration

    return ProofResult(proof=proof, root=tree.root, metadata=result_metadata)


def verify_recipient_proof(root: str, address: str, amount: int, proof: Sequence[str]) -> bool:
    """Check a hex proof for (address, amount) against a hex root."""
    leaf = leaf_hash([address, int(amount)], LEAF_ENCODING)
    return verify_proof(hex_to_bytes(root), leaf, [hex_to_bytes(step) for step in proof])


def derive_store_metadata(
    chain_client: ChainClient,
    token_address: str,
    airdrop_address: Optional[str] = None,
) -> CommitmentMetadata:
    """
    Lockup metadata for a freshly deployed airdrop.

    Reads the contract's lockup end time when the airdrop contract is known,
    otherwise assumes a one-day lockup starting at the latest block.
    """
    if airdrop_address:
        lockup_end_time = chain_client.read_lockup_end_time(airdrop_address, token_address) * 1000
    else:
        logger.warning("No airdrop address given, storing merkle tree with default metadata")
        lockup_end_time = (chain_client.get_block_timestamp() + DEFAULT_LOCKUP_DURATION) * 1000
    return CommitmentMetadata(lockup_end_time=lockup_end_time, lockup_duration=DEFAULT_LOCKUP_DURATION)


def store_airdrop_tree(
    tree: StandardMerkleTree,
    token_address: str,
    chain_id: int,
    store_client: TreeStoreClient,
    metadata: Optional[CommitmentMetadata] = None,
    chain_client: Optional[ChainClient] = None,
    airdrop_address: Optional[str] = None,
) -> str:
    """
    Upload a tree with its lockup metadata, deriving the metadata if needed.

    Returns:
        CID of the stored tree

    Raises:
        ValueError: If metadata is missing and no chain client is available
        TreeStoreError: If the upload fails
    """
    if metadata is None:
        if chain_client is None:
            raise ValueError("Lockup metadata or a chain client is required to store a tree")
        metadata = derive_store_metadata(chain_client, token_address, airdrop_address)

    cid = store_client.store(token_address, chain_id, tree, metadata)
    logger.info(f"Retrieve using: tokenAddress={token_address}, chainId={chain_id}")
    return cid
