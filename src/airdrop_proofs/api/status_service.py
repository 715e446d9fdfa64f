"""
Airdrop Status Service

This module provides the service layer that assembles the claim status of every
airdrop recipient: it fetches the committed tree, reads chain time, lockup
timing and batched availability, queries the claim index, and hands everything
to the reconciliation engine.
"""

import os
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..balance import format_balance_with_usd
from ..merkle import bytes_to_hex
from ..reconcile import RecipientStatus, reconcile
from ..results import AdapterResult, ResultKind
from ..timing import LockupTiming, TimingSourceKind, resolve_timing
from .chain_client import ChainClient, ChainClientError
from .claim_index import ClaimIndexClient
from .store_client import StoredTree, TreeStoreClient

logger = logging.getLogger(__name__)


class StatusReason(str, Enum):
    OK = "ok"
    NOT_CONFIGURED = "not_configured"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class AirdropStatus:
    """
    Status of every recipient of one airdrop.

    ``recipients`` is only populated when ``reason`` is OK. ``degraded`` names
    optional sources that fell back to safe defaults.
    """
    reason: StatusReason
    recipients: List[RecipientStatus] = field(default_factory=list)
    deployment_timestamp: Optional[int] = None
    lockup_duration_hours: Optional[float] = None
    lockup_end_time: Optional[int] = None
    timing_source: Optional[TimingSourceKind] = None
    root: Optional[str] = None
    cid: Optional[str] = None
    degraded: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self, token_decimals: int = 18, token_usd_price: Optional[float] = None) -> Dict[str, Any]:
        """JSON-ready view with amounts formatted for the token."""
        return {
            "reason": self.reason.value,
            "recipients": [
                {
                    "index": r.index,
                    "address": r.address,
                    "allocated_amount": format_balance_with_usd(
                        r.allocated_amount, token_decimals, token_usd_price
                    ).to_dict(),
                    "available_amount": format_balance_with_usd(
                        r.available_amount, token_decimals, token_usd_price
                    ).to_dict(),
                    "is_available": r.is_available,
                    "proof": r.proof,
                    "is_treasury": r.is_treasury,
                    "status": r.status.value,
                    "error": r.error,
                    "assumed_claimed": r.assumed_claimed,
                }
                for r in self.recipients
            ],
            "deployment_timestamp": self.deployment_timestamp,
            "lockup_duration_hours": self.lockup_duration_hours,
            "lockup_end_time": self.lockup_end_time,
            "timing_source": self.timing_source.value if self.timing_source else None,
            "root": self.root,
            "cid": self.cid,
            "degraded": list(self.degraded),
            "error": self.error,
        }


def _unresolved(result: AdapterResult) -> AirdropStatus:
    if result.kind is ResultKind.TRANSIENT_ERROR:
        return AirdropStatus(reason=StatusReason.UNAVAILABLE, error=result.error)
    return AirdropStatus(reason=StatusReason.NOT_CONFIGURED, error=result.error)


class AirdropStatusService:
    """Service for resolving airdrop recipient status."""

    def __init__(
        self,
        store_client: Optional[TreeStoreClient] = None,
        chain_client: Optional[ChainClient] = None,
        claim_index: Optional[ClaimIndexClient] = None,
        max_workers: int = 4,
    ):
        """
        Initialize the status service.

        Args:
            store_client: Tree store client. Created from env vars if None.
            chain_client: Chain client. Created from env vars on first use if None.
            claim_index: Claim index client. Created from env vars if None.
            max_workers: Threads used for independent remote reads.
        """
        self.store_client = store_client or TreeStoreClient()
        self.chain_client = chain_client
        self.claim_index = claim_index or ClaimIndexClient()
        self.max_workers = max_workers

    def get_chain_client(self) -> ChainClient:
        if not self.chain_client:
            self.chain_client = ChainClient()
        return self.chain_client

    def get_airdrop_status(
        self,
        token_address: str,
        treasury: str,
        chain_id: int,
        airdrop_address: Optional[str] = None,
    ) -> AirdropStatus:
        """
        Resolve the status of every recipient of a token's airdrop.

        Args:
            token_address: Airdropped token
            treasury: Treasury address, flagged among the recipients
            chain_id: Chain the token lives on
            airdrop_address: Airdrop contract. If None, uses
                AIRDROP_CONTRACT_ADDRESS.

        Returns:
            AirdropStatus; reason NOT_CONFIGURED when no airdrop data exists
            for this deployment, UNAVAILABLE when it exists but could not be
            read now
        """
        airdrop_address = airdrop_address or os.getenv("AIRDROP_CONTRACT_ADDRESS")
        if not airdrop_address:
            return AirdropStatus(
                reason=StatusReason.NOT_CONFIGURED,
                error=f"No airdrop contract configured for chain {chain_id}",
            )
        if not self.store_client.is_configured:
            return AirdropStatus(
                reason=StatusReason.NOT_CONFIGURED,
                error="Tree store URLs are not configured",
            )

        try:
            chain = self.get_chain_client()
        except ValueError as e:
            return AirdropStatus(reason=StatusReason.NOT_CONFIGURED, error=str(e))

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            tree_future = pool.submit(self.store_client.retrieve, token_address, chain_id)
            block_future = pool.submit(chain.get_block_timestamp)

            retrieved = tree_future.result()
            if not retrieved.is_ok:
                logger.info(f"No airdrop tree for {token_address} on chain {chain_id}: {retrieved.error}")
                return _unresolved(retrieved)
            stored: StoredTree = retrieved.data

            # The fallback lockup read, availability and claims are independent
            timing_future = pool.submit(
                resolve_timing,
                stored.metadata,
                lambda: chain.read_lockup_end_time(airdrop_address, token_address),
            )
            entries = [(address, int(amount)) for _, (address, amount) in stored.tree.entries()]
            availability_future = pool.submit(
                chain.batch_availability, airdrop_address, token_address, entries
            )
            claimed_future = pool.submit(self.claim_index.claimed_addresses, chain_id, token_address)

            try:
                now = block_future.result() * 1000
                timing = timing_future.result()
            except ChainClientError as e:
                logger.error(f"Failed to read chain time for airdrop status: {e}")
                return AirdropStatus(
                    reason=StatusReason.UNAVAILABLE,
                    root=stored.tree.root_hex,
                    cid=stored.cid,
                    error=str(e),
                )

            availability = availability_future.result()
            claimed = claimed_future.result()

        degraded = []
        if not availability.is_ok:
            degraded.append("availability")
        if not claimed.is_ok:
            degraded.append("claim_index")

        return self.build_status(stored, timing, availability.data, claimed.data, now, treasury, degraded)

    @staticmethod
    def build_status(
        stored: StoredTree,
        timing: LockupTiming,
        availabilities: List[int],
        claimed: set,
        now: int,
        treasury: str,
        degraded: Optional[List[str]] = None,
    ) -> AirdropStatus:
        """Assemble an OK AirdropStatus from already-fetched inputs."""
        recipients = reconcile(
            stored.tree,
            availabilities,
            claimed,
            timing.lockup_end_time,
            now,
            treasury,
        )
        return AirdropStatus(
            reason=StatusReason.OK,
            recipients=recipients,
            deployment_timestamp=timing.deployment_timestamp,
            lockup_duration_hours=timing.lockup_duration_hours,
            lockup_end_time=timing.lockup_end_time,
            timing_source=timing.source,
            root=stored.tree.root_hex,
            cid=stored.cid,
            degraded=list(degraded or []),
        )

    def get_recipient_proof(self, token_address: str, chain_id: int, index: int) -> AdapterResult[Dict[str, Any]]:
        """
        Proof for one recipient of a stored tree.

        Returns:
            OK with root, value and proof; NOT_FOUND or TRANSIENT_ERROR if the
            tree cannot be retrieved

        Raises:
            IndexOutOfRange: If the tree has no value at ``index``
        """
        retrieved = self.store_client.retrieve(token_address, chain_id)
        if not retrieved.is_ok:
            return AdapterResult(retrieved.kind, None, retrieved.error)

        tree = retrieved.data.tree
        return AdapterResult.ok({
            "index": index,
            "value": [str(v) for v in tree.value(index)],
            "proof": tree.get_hex_proof(index),
            "root": bytes_to_hex(tree.root),
            "cid": retrieved.data.cid,
        })
