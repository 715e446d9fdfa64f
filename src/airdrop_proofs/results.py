"""
Adapter Results

Tagged results returned by the store, chain and claim index adapters.
Callers branch on ``kind`` instead of testing returned values for truthiness.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ResultKind(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    TRANSIENT_ERROR = "transient_error"


@dataclass(frozen=True)
class AdapterResult(Generic[T]):
    """
    Outcome of a single adapter call.

    Attributes:
        kind: Which branch the call ended in
        data: Payload for OK results, or the safe default for degraded ones
        error: Human readable reason for non-OK results
    """
    kind: ResultKind
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: T) -> "AdapterResult[T]":
        return cls(ResultKind.OK, data)

    @classmethod
    def not_found(cls, error: str, default: Optional[T] = None) -> "AdapterResult[T]":
        return cls(ResultKind.NOT_FOUND, default, error)

    @classmethod
    def transient(cls, error: str, default: Optional[T] = None) -> "AdapterResult[T]":
        return cls(ResultKind.TRANSIENT_ERROR, default, error)

    @property
    def is_ok(self) -> bool:
        return self.kind is ResultKind.OK
