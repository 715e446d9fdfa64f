"""
Recipient Status Reconciliation

Merges the committed tree, batched on-chain availability, the claimed-address
set from the claim index and the lockup end time into one status per
recipient. Pure: no I/O, no clock reads, results in leaf order.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, List, Optional, Sequence

from .constants import ALREADY_CLAIMED_MESSAGE, LOCKED_MESSAGE
from .merkle import StandardMerkleTree, bytes_to_hex

logger = logging.getLogger(__name__)


class ClaimStatus(str, Enum):
    CLAIMABLE = "claimable"
    LOCKED = "locked"
    ALREADY_CLAIMED = "already_claimed"


@dataclass(frozen=True)
class RecipientStatus:
    """
    Claim status of one leaf.

    Attributes:
        index: Value index in the tree (proof identity)
        address: Recipient address as committed
        allocated_amount: Amount committed in the tree
        available_amount: Amount claimable right now according to the contract
        is_available: True when something can be claimed
        proof: Hex sibling hashes proving the leaf
        is_treasury: Address equals the treasury (case-insensitive)
        status: Derived claim status
        error: User-facing reason when nothing is claimable
        assumed_claimed: ALREADY_CLAIMED was inferred from an unlocked zero
            balance rather than found in the claim index
    """
    index: int
    address: str
    allocated_amount: int
    available_amount: int
    is_available: bool
    proof: List[str]
    is_treasury: bool
    status: ClaimStatus
    error: Optional[str] = None
    assumed_claimed: bool = False


def classify(
    available_amount: int,
    has_claimed: bool,
    now: int,
    lockup_end_time: int,
) -> tuple:
    """
    Decide the status of a single recipient.

    Returns:
        (status, error, assumed_claimed)
    """
    if available_amount > 0:
        return ClaimStatus.CLAIMABLE, None, False
    if has_claimed:
        return ClaimStatus.ALREADY_CLAIMED, ALREADY_CLAIMED_MESSAGE, False
    if now < lockup_end_time:
        return ClaimStatus.LOCKED, LOCKED_MESSAGE, False
    # Heuristic: unlocked with nothing left, but no claim event found. The claim
    # index has a bounded lookback, so this is treated as an older claim.
    return ClaimStatus.ALREADY_CLAIMED, ALREADY_CLAIMED_MESSAGE, True


def reconcile(
    tree: StandardMerkleTree,
    availabilities: Sequence[int],
    claimed: AbstractSet[str],
    lockup_end_time: int,
    now: int,
    treasury: str,
) -> List[RecipientStatus]:
    """
    Build the status of every recipient in the tree.

    Args:
        tree: Loaded airdrop commitment
        availabilities: On-chain available amount per leaf, in leaf order
            (0 where the read failed)
        claimed: Lowercased addresses the claim index has seen claiming
        lockup_end_time: Lockup end in milliseconds
        now: Current chain time in milliseconds
        treasury: Treasury address supplied by the caller

    Returns:
        One RecipientStatus per leaf, in leaf order

    Raises:
        ValueError: If availabilities do not line up with the tree's leaves
    """
    if len(availabilities) != len(tree):
        raise ValueError(
            f"Got {len(availabilities)} availability results for {len(tree)} recipients"
        )

    treasury_lower = treasury.lower()
    recipients = []

    for index, (address, amount) in tree.entries():
        available_amount = int(availabilities[index] or 0)
        status, error, assumed_claimed = classify(
            available_amount,
            address.lower() in claimed,
            now,
            lockup_end_time,
        )
        proof = [bytes_to_hex(step) for step in tree.get_proof(index)]

        if len(tree) == 1:
            logger.debug(
                "Single recipient %s: index=%d proof_length=%d allocated=%s available=%d",
                address, index, len(proof), amount, available_amount,
            )

        recipients.append(
            RecipientStatus(
                index=index,
                address=address,
                allocated_amount=int(amount),
                available_amount=available_amount,
                is_available=status is ClaimStatus.CLAIMABLE,
                proof=proof,
                is_treasury=address.lower() == treasury_lower,
                status=status,
                error=error,
                assumed_claimed=assumed_claimed,
            )
        )

    return recipients
