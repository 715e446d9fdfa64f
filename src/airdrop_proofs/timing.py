"""
Lockup Timing

Resolves when an airdrop's lockup ends. Stored tree metadata is used as-is
when present; otherwise the airdrop contract is read once and the standard
one-day lockup is assumed.

Units: lockup end times are milliseconds, durations are seconds. The
contract reports its lockup end time in seconds.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from .constants import DEFAULT_LOCKUP_DURATION


class TimingSourceKind(str, Enum):
    METADATA = "metadata"
    ON_CHAIN_FALLBACK = "on_chain_fallback"


@dataclass(frozen=True)
class CommitmentMetadata:
    """Lockup metadata stored alongside a tree dump."""
    lockup_end_time: int  # ms
    lockup_duration: int  # s

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["CommitmentMetadata"]:
        if not data or not data.get("lockupEndTime"):
            return None
        return cls(
            lockup_end_time=int(data["lockupEndTime"]),
            lockup_duration=int(data.get("lockupDuration", DEFAULT_LOCKUP_DURATION)),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "lockupEndTime": self.lockup_end_time,
            "lockupDuration": self.lockup_duration,
        }


@dataclass(frozen=True)
class MetadataTiming:
    metadata: CommitmentMetadata


@dataclass(frozen=True)
class OnChainFallbackTiming:
    read_lockup_end_time: Callable[[], int]  # returns seconds


TimingSource = Union[MetadataTiming, OnChainFallbackTiming]


@dataclass(frozen=True)
class LockupTiming:
    lockup_end_time: int  # ms
    lockup_duration: int  # s
    source: TimingSourceKind

    @property
    def deployment_timestamp(self) -> int:
        """Deployment time in milliseconds."""
        return self.lockup_end_time - self.lockup_duration * 1000

    @property
    def lockup_duration_hours(self) -> float:
        return self.lockup_duration / 3600


def select_timing_source(
    metadata: Optional[CommitmentMetadata],
    fallback_read: Callable[[], int],
) -> TimingSource:
    """Pick the metadata fast path when available, the contract read otherwise."""
    if metadata is not None and metadata.lockup_end_time:
        return MetadataTiming(metadata)
    return OnChainFallbackTiming(fallback_read)


def timing_from_source(source: TimingSource) -> LockupTiming:
    if isinstance(source, MetadataTiming):
        return LockupTiming(
            lockup_end_time=source.metadata.lockup_end_time,
            lockup_duration=source.metadata.lockup_duration,
            source=TimingSourceKind.METADATA,
        )
    if isinstance(source, OnChainFallbackTiming):
        lockup_end_seconds = int(source.read_lockup_end_time())
        return LockupTiming(
            lockup_end_time=lockup_end_seconds * 1000,
            lockup_duration=DEFAULT_LOCKUP_DURATION,
            source=TimingSourceKind.ON_CHAIN_FALLBACK,
        )
    raise TypeError(f"Unknown timing source: {source!r}")


def resolve_timing(
    metadata: Optional[CommitmentMetadata],
    fallback_read: Callable[[], int],
) -> LockupTiming:
    """
    Resolve lockup end time and duration.

    Args:
        metadata: Metadata stored with the tree, if any
        fallback_read: Reads the contract's lockup end time in seconds; only
            called when metadata is absent

    Returns:
        LockupTiming with the end time in milliseconds
    """
    return timing_from_source(select_timing_source(metadata, fallback_read))
