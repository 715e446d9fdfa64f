"""
API Models Package

This package contains request and response models for the airdrop status API.
It includes Pydantic models for validation and serialization of:

- Status requests (token, treasury, chain, contract)
- Status responses (recipient records, timing, reason codes)
- Proof, error and health responses

Usage:
    from airdrop_proofs.models import AirdropStatusRequest

    request = AirdropStatusRequest(token_address="0x...", treasury="0x...", chain_id=8453)
"""

from .api_models import (
    AirdropStatusRequest,
    AirdropStatusResponse,
    BalanceModel,
    ErrorResponse,
    HealthResponse,
    ProofResponse,
    RecipientModel,
)

__all__ = [
    'AirdropStatusRequest',
    'AirdropStatusResponse',
    'BalanceModel',
    'ErrorResponse',
    'HealthResponse',
    'ProofResponse',
    'RecipientModel',
]
