"""
Claim Index Client

Queries the GraphQL indexer for airdrop claim events. Claim history only
disambiguates zero-availability recipients, so every failure degrades to an
empty set instead of raising.
"""

import os
import logging
from typing import Optional, Set

import requests
from dotenv import load_dotenv

from ..constants import DEFAULT_HTTP_TIMEOUT
from ..results import AdapterResult

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

CLAIMS_QUERY = """
query AirdropClaims($chainId: Int!, $token: String!) {
  LevrAirdropClaim(
    where: { chainId: { _eq: $chainId }, token: { address: { _eq: $token } } }
  ) {
    user
  }
}
"""


class ClaimIndexError(Exception):
    """Exception raised for malformed claim index responses."""
    pass


class ClaimIndexClient:
    """Client for the claim event indexer."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the claim index client.

        Args:
            url: GraphQL endpoint. If None, uses CLAIM_INDEX_URL.
            timeout: HTTP timeout in seconds. If None, uses AIRDROP_HTTP_TIMEOUT.
            session: Optional requests session to reuse.
        """
        self.url = url or os.getenv("CLAIM_INDEX_URL")
        self.timeout = timeout or float(os.getenv("AIRDROP_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

        logger.info(f"Initialized ClaimIndexClient with url: {self.url}")

    def _query_claims(self, chain_id: int, token_address: str) -> Set[str]:
        response = self.session.post(
            self.url,
            json={
                "query": CLAIMS_QUERY,
                "variables": {"chainId": chain_id, "token": token_address.lower()},
            },
            timeout=self.timeout,
        )
        response.raise_for_status()

        body = response.json()
        if not isinstance(body, dict):
            raise ClaimIndexError("Response is not a JSON object")
        if body.get("errors"):
            raise ClaimIndexError(f"GraphQL errors: {body['errors']}")

        claims = (body.get("data") or {}).get("LevrAirdropClaim") or []
        return {claim["user"].lower() for claim in claims if claim.get("user")}

    def claimed_addresses(self, chain_id: int, token_address: str) -> AdapterResult[Set[str]]:
        """
        Addresses that have claimed the token's airdrop, lowercased.

        Args:
            chain_id: Chain the token lives on
            token_address: Airdropped token

        Returns:
            OK with the claimed set; NOT_FOUND or TRANSIENT_ERROR carry an
            empty set
        """
        if not self.url:
            return AdapterResult.not_found("Claim index URL is not configured", set())

        try:
            claimed = self._query_claims(chain_id, token_address)
        except requests.RequestException as e:
            logger.warning(f"Failed to query indexer for claims: {e}")
            return AdapterResult.transient(f"Claim index query failed: {e}", set())
        except (ClaimIndexError, ValueError, AttributeError, KeyError, TypeError) as e:
            logger.warning(f"Malformed claim index response: {e}")
            return AdapterResult.transient(f"Malformed claim index response: {e}", set())

        logger.info(f"Claim index reports {len(claimed)} claimed addresses for {token_address.lower()}")
        return AdapterResult.ok(claimed)

    def health_check(self) -> bool:
        """
        Check if the indexer answers a trivial query.

        Returns:
            True if the endpoint responds successfully
        """
        if not self.url:
            return False
        try:
            response = self.session.post(self.url, json={"query": "{ __typename }"}, timeout=10)
            return response.status_code == 200
        except requests.RequestException:
            return False
