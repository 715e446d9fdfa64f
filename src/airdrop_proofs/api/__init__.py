"""
Airdrop Data Sources Package

This package provides the remote integrations used to resolve airdrop status.
It includes:

- TreeStoreClient: content-addressable store holding the Merkle tree
- ChainClient: block time, batched availability and lockup reads
- ClaimIndexClient: claim events from the indexer
- AirdropStatusService: combines the above into per-recipient status

Usage:
    from airdrop_proofs.api import AirdropStatusService

    service = AirdropStatusService()
    status = service.get_airdrop_status(token, treasury, chain_id=8453)
"""

from .chain_client import ChainClient, ChainClientError
from .claim_index import ClaimIndexClient, ClaimIndexError
from .status_service import AirdropStatus, AirdropStatusService, StatusReason
from .store_client import StoredTree, TreeStoreClient, TreeStoreError, tree_key

__all__ = [
    'AirdropStatus',
    'AirdropStatusService',
    'ChainClient',
    'ChainClientError',
    'ClaimIndexClient',
    'ClaimIndexError',
    'StatusReason',
    'StoredTree',
    'TreeStoreClient',
    'TreeStoreError',
    'tree_key',
]
