"""
API Models

This module defines Pydantic models for API request and response validation.
These models ensure proper data structure and type validation for the airdrop
status API.
"""

import re
from typing import List, Optional
from pydantic import BaseModel, Field, validator
from datetime import datetime, timezone

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def _check_address(v: Optional[str], name: str) -> Optional[str]:
    if v is not None and not ADDRESS_RE.match(v):
        raise ValueError(f"{name} must be a 20-byte hex address starting with '0x'")
    return v


class ErrorResponse(BaseModel):
    """
    Response model for API errors.

    Attributes:
        error: Error message
        code: Error code (string identifier)
        details: Additional error details
    """
    error: str = Field(..., description="Error message")
    code: str = Field(..., description="Error code")
    details: Optional[dict] = Field(default=None, description="Additional error details")


class HealthResponse(BaseModel):
    """
    Response model for health check endpoint.

    Attributes:
        status: Service status
        tree_store: Tree store reachability
        chain_rpc: RPC reachability
        claim_index: Claim indexer reachability
        version: Service version
        timestamp: Response timestamp
    """
    status: str = Field(..., description="Service status")
    tree_store: bool = Field(..., description="Tree store connectivity")
    chain_rpc: bool = Field(..., description="Chain RPC connectivity")
    claim_index: bool = Field(..., description="Claim index connectivity")
    version: str = Field(default="0.1.0", description="Service version")
    timestamp: Optional[str] = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="Response timestamp",
    )


class AirdropStatusRequest(BaseModel):
    """
    Request model for airdrop status.

    Attributes:
        token_address: Airdropped token
        treasury: Treasury address to flag among recipients
        chain_id: Chain the token lives on
        airdrop_address: Airdrop contract (defaults to AIRDROP_CONTRACT_ADDRESS)
        token_decimals: Decimals used to format amounts
        token_usd_price: Optional USD price for amount valuation
    """
    token_address: str = Field(..., description="Token address (0x-prefixed)")
    treasury: str = Field(..., description="Treasury address (0x-prefixed)")
    chain_id: int = Field(..., gt=0, description="Chain ID")
    airdrop_address: Optional[str] = Field(default=None, description="Airdrop contract address")
    token_decimals: int = Field(default=18, ge=0, le=77, description="Token decimals")
    token_usd_price: Optional[float] = Field(default=None, ge=0, description="USD price of one token")

    @validator('token_address')
    def validate_token_address(cls, v):
        """Validate token address format."""
        return _check_address(v, "token_address")

    @validator('treasury')
    def validate_treasury(cls, v):
        """Validate treasury address format."""
        return _check_address(v, "treasury")

    @validator('airdrop_address')
    def validate_airdrop_address(cls, v):
        """Validate airdrop contract address format if provided."""
        return _check_address(v, "airdrop_address")


class BalanceModel(BaseModel):
    raw: str = Field(..., description="Amount in the token's smallest unit")
    formatted: str = Field(..., description="Amount with decimals applied")
    usd: Optional[str] = Field(default=None, description="USD value, if a price was supplied")


class RecipientModel(BaseModel):
    """
    One airdrop recipient.

    Attributes:
        index: Leaf index in the tree (proof identity)
        address: Recipient address
        allocated_amount: Committed allocation
        available_amount: Currently claimable amount
        is_available: True when something can be claimed
        proof: Merkle proof as hex strings
        is_treasury: Recipient is the treasury
        status: claimable, locked or already_claimed
        error: Reason nothing is claimable
        assumed_claimed: Claim inferred from an unlocked zero balance
    """
    index: int
    address: str
    allocated_amount: BalanceModel
    available_amount: BalanceModel
    is_available: bool
    proof: List[str]
    is_treasury: bool
    status: str
    error: Optional[str] = None
    assumed_claimed: bool = False

    @validator('proof')
    def validate_proof_format(cls, v):
        """Validate proof steps are proper hex strings."""
        for step in v:
            if not isinstance(step, str) or not step.startswith('0x'):
                raise ValueError("All proof steps must be hex strings starting with '0x'")
        return v


class AirdropStatusResponse(BaseModel):
    """
    Response model for airdrop status.

    Attributes:
        reason: ok, not_configured or unavailable
        recipients: Recipient records in leaf order (empty unless reason is ok)
        deployment_timestamp: Airdrop deployment time in ms
        lockup_duration_hours: Lockup length in hours
        lockup_end_time: Lockup end in ms
        timing_source: metadata or on_chain_fallback
        root: Merkle root
        cid: Content identifier of the stored tree
        degraded: Optional sources that fell back to defaults
        error: Reason for a non-ok result
    """
    reason: str = Field(..., description="Result reason code")
    recipients: List[RecipientModel] = Field(default_factory=list)
    deployment_timestamp: Optional[int] = None
    lockup_duration_hours: Optional[float] = None
    lockup_end_time: Optional[int] = None
    timing_source: Optional[str] = None
    root: Optional[str] = None
    cid: Optional[str] = None
    degraded: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "reason": "ok",
                "recipients": [
                    {
                        "index": 0,
                        "address": "0x00000000000000000000000000000000000000a1",
                        "allocated_amount": {"raw": "100000000000000000000", "formatted": "100", "usd": None},
                        "available_amount": {"raw": "0", "formatted": "0", "usd": None},
                        "is_available": False,
                        "proof": ["0x5e1f...", "0x8a3c..."],
                        "is_treasury": False,
                        "status": "locked",
                        "error": "Airdrop is still locked (lockup period not passed)",
                        "assumed_claimed": False
                    }
                ],
                "deployment_timestamp": 1748686666000,
                "lockup_duration_hours": 24.0,
                "lockup_end_time": 1748773066000,
                "timing_source": "metadata",
                "root": "0x7aac2bab3ed70e35ba9123b739f6375caed3b51c8c947703087b911d54b0cc9f",
                "cid": "bafkreif2xtaifw7byqxoydsmbrgrpryyvpz65fwdxghgbrurj6uzhhkktm",
                "degraded": [],
                "error": None
            }
        }


class ProofResponse(BaseModel):
    """
    Response model for a single recipient proof.

    Attributes:
        index: Leaf index
        value: Committed (address, amount)
        proof: Merkle proof as hex strings
        root: Merkle root
        cid: Content identifier of the stored tree
    """
    index: int
    value: List[str]
    proof: List[str]
    root: str
    cid: Optional[str] = None

    @validator('root')
    def validate_hex_format(cls, v):
        """Validate hex string format."""
        if not v.startswith('0x'):
            raise ValueError("Must be a hex string starting with '0x'")
        return v
