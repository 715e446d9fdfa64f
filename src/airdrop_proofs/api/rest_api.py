"""
REST API for Airdrop Proofs

This module provides a FastAPI-based REST API for airdrop recipient status and
Merkle proofs with full OpenAPI documentation.
"""

import logging
import traceback
from typing import Optional
from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from .. import __version__
from ..merkle import IndexOutOfRange
from ..models.api_models import (
    AirdropStatusRequest,
    AirdropStatusResponse,
    ErrorResponse,
    HealthResponse,
    ProofResponse,
)
from ..results import ResultKind
from .status_service import AirdropStatusService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Airdrop Proofs API",
    description="""
    Resolve the claim status of every recipient of a token airdrop.

    The API reconciles the airdrop's Merkle tree (kept in a content-addressable
    store) with the airdrop contract's on-chain availability and the claim
    indexer's history.

    ## Features
    - **Per-recipient status**: claimable, locked or already claimed
    - **Proofs**: Merkle proof for every recipient, ready for the claim call
    - **Treasury flag**: the treasury allocation is marked in the results
    - **Reason codes**: "not_configured" and "unavailable" are reported
      explicitly instead of an empty result

    ## Usage
    Call `/airdrop/status` with the token, treasury and chain ID.
    """,
    version=__version__,
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT"
    }
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global status service instance
status_service = None


def get_status_service() -> AirdropStatusService:
    """Dependency to get the status service instance."""
    global status_service
    if status_service is None:
        status_service = AirdropStatusService()
    return status_service


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    """Handle validation errors."""
    logger.error(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=str(exc),
            code="VALIDATION_ERROR",
            details={"error_type": "ValueError"}
        ).model_dump()
    )


@app.exception_handler(IndexOutOfRange)
async def index_out_of_range_handler(request, exc: IndexOutOfRange):
    """Handle proof requests for indices the tree does not hold."""
    logger.error(f"Proof index error: {exc}")
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(
            error=str(exc),
            code="PROOF_INDEX_OUT_OF_RANGE",
            details={"error_type": "IndexOutOfRange"}
        ).model_dump()
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(f"Unexpected error: {exc}\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            code="INTERNAL_ERROR",
            details={"error_type": type(exc).__name__}
        ).model_dump()
    )


@app.get("/", response_model=dict)
async def root():
    """API root endpoint with basic information."""
    return {
        "name": "Airdrop Proofs API",
        "version": __version__,
        "description": "Airdrop recipient status and Merkle proofs",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=HealthResponse)
def health_check(service: AirdropStatusService = Depends(get_status_service)):
    """
    Health check endpoint.

    Checks the tree store, chain RPC and claim index connectivity.
    """
    tree_store = service.store_client.health_check()
    claim_index = service.claim_index.health_check()
    try:
        chain_rpc = service.get_chain_client().health_check()
    except ValueError as e:
        logger.warning(f"Chain client not configured: {e}")
        chain_rpc = False

    return HealthResponse(
        status="healthy" if tree_store and chain_rpc else "degraded",
        tree_store=tree_store,
        chain_rpc=chain_rpc,
        claim_index=claim_index,
        version=__version__
    )


@app.post("/airdrop/status", response_model=AirdropStatusResponse)
def airdrop_status(
    request: AirdropStatusRequest,
    service: AirdropStatusService = Depends(get_status_service)
):
    """
    Resolve the status of every recipient of a token's airdrop.

    **Response Structure:**
    - `reason`: "ok", "not_configured" (no airdrop tree for this token) or
      "unavailable" (tree exists but could not be read now, retry later)
    - `recipients`: one record per tree leaf, in tree order, each with its
      proof, allocation, available amount and status
    - `degraded`: optional sources that fell back to defaults
    """
    status = service.get_airdrop_status(
        token_address=request.token_address,
        treasury=request.treasury,
        chain_id=request.chain_id,
        airdrop_address=request.airdrop_address,
    )
    return AirdropStatusResponse(
        **status.to_dict(request.token_decimals, request.token_usd_price)
    )


@app.get("/airdrop/{chain_id}/{token_address}/status", response_model=AirdropStatusResponse)
def airdrop_status_get(
    chain_id: int,
    token_address: str,
    treasury: str = Query(..., description="Treasury address"),
    airdrop_address: Optional[str] = Query(None, description="Airdrop contract address"),
    token_decimals: int = Query(18, description="Token decimals"),
    token_usd_price: Optional[float] = Query(None, description="USD price of one token"),
    service: AirdropStatusService = Depends(get_status_service)
):
    """
    Airdrop status via GET request (convenience endpoint).

    Same functionality as the POST endpoint.
    """
    request = AirdropStatusRequest(
        token_address=token_address,
        treasury=treasury,
        chain_id=chain_id,
        airdrop_address=airdrop_address,
        token_decimals=token_decimals,
        token_usd_price=token_usd_price,
    )
    return airdrop_status(request, service)


@app.get("/airdrop/{chain_id}/{token_address}/proof/{index}", response_model=ProofResponse)
def recipient_proof(
    chain_id: int,
    token_address: str,
    index: int,
    service: AirdropStatusService = Depends(get_status_service)
):
    """Merkle proof for the recipient at ``index`` of a token's stored tree."""
    result = service.get_recipient_proof(token_address, chain_id, index)
    if result.kind is ResultKind.TRANSIENT_ERROR:
        raise HTTPException(status_code=503, detail=result.error)
    if not result.is_ok:
        raise HTTPException(status_code=404, detail=result.error)
    return ProofResponse(**result.data)


def run_server(host: str = "127.0.0.1", port: int = 8000, dev: bool = False):
    """
    Run the API server.

    Args:
        host: Host to bind to
        port: Port to bind to
        dev: Enable development mode with auto-reload
    """
    logger.info(f"Starting Airdrop Proofs API server on {host}:{port}")
    uvicorn.run(
        "airdrop_proofs.api.rest_api:app",
        host=host,
        port=port,
        reload=dev,
        log_level="info"
    )


if __name__ == "__main__":
    run_server(dev=True)
