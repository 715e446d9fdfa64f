"""
Tree Store Client

This module provides a client for the content-addressable store (IPFS behind
an HTTP proxy) that holds airdrop Merkle trees. Trees are uploaded with
indexable key/value tags and found again by (tokenAddress, chainId), since
callers never know the content hash up front.

Reads never raise: a missing or malformed tree is NOT_FOUND, an unreachable
store is TRANSIENT_ERROR.
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from dotenv import load_dotenv

from ..constants import DEFAULT_HTTP_TIMEOUT, STORE_RECORD_TYPE, TREE_FORMAT
from ..merkle import InvalidTreeError, StandardMerkleTree
from ..results import AdapterResult
from ..timing import CommitmentMetadata

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class TreeStoreError(Exception):
    """Exception raised when a tree cannot be uploaded to the store."""
    pass


@dataclass(frozen=True)
class StoredTree:
    """A tree fetched from the store together with its optional metadata."""
    cid: str
    tree: StandardMerkleTree
    metadata: Optional[CommitmentMetadata] = None


def tree_key(token_address: str, chain_id: int) -> str:
    """Storage key for a token's tree, ``chainId-tokenaddress``."""
    return f"{chain_id}-{token_address.lower()}"


class TreeStoreClient:
    """
    Client for the airdrop tree store proxy.

    Provides search, fetch and upload against the proxy's HTTP endpoints.
    """

    def __init__(
        self,
        search_url: Optional[str] = None,
        json_url: Optional[str] = None,
        upload_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the store client.

        Args:
            search_url: Search endpoint. If None, uses IPFS_SEARCH_URL.
            json_url: JSON fetch endpoint. If None, uses IPFS_JSON_URL.
            upload_url: Upload endpoint. If None, uses IPFS_JSON_UPLOAD_URL,
                then the JSON fetch endpoint.
            timeout: HTTP timeout in seconds. If None, uses AIRDROP_HTTP_TIMEOUT.
            session: Optional requests session to reuse.
        """
        self.search_url = search_url or os.getenv("IPFS_SEARCH_URL")
        self.json_url = json_url or os.getenv("IPFS_JSON_URL")
        self.upload_url = upload_url or os.getenv("IPFS_JSON_UPLOAD_URL") or self.json_url
        self.timeout = timeout or float(os.getenv("AIRDROP_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))

        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

        logger.info(f"Initialized TreeStoreClient with search_url: {self.search_url}, json_url: {self.json_url}")

    @property
    def is_configured(self) -> bool:
        """True when both read endpoints are known."""
        return bool(self.search_url and self.json_url)

    def search(self, token_address: str, chain_id: int) -> AdapterResult[str]:
        """
        Look up the CID of the tree stored for a token.

        Args:
            token_address: Token address (any case)
            chain_id: Chain the token lives on

        Returns:
            OK with the CID, NOT_FOUND, or TRANSIENT_ERROR
        """
        if not self.search_url:
            return AdapterResult.not_found("Store search URL is not configured")

        params = {"tokenAddress": token_address.lower(), "chainId": str(chain_id)}
        try:
            response = self.session.get(self.search_url, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            logger.warning(f"Timeout searching tree store for {tree_key(token_address, chain_id)}: {e}")
            return AdapterResult.transient(f"Timeout searching tree store: {e}")
        except requests.RequestException as e:
            logger.warning(f"Failed to search tree store at {self.search_url}: {e}")
            return AdapterResult.transient(f"Tree store search failed: {e}")

        if response.status_code >= 500:
            logger.warning(f"Tree store search returned {response.status_code}: {response.text}")
            return AdapterResult.transient(f"Tree store search returned {response.status_code}")
        if not response.ok:
            logger.warning(f"Failed to search for merkle tree: {response.text}")
            return AdapterResult.not_found(f"Tree store search returned {response.status_code}")

        try:
            cid = response.json().get("cid")
        except (ValueError, AttributeError) as e:
            logger.warning(f"Malformed tree store search response: {e}")
            return AdapterResult.not_found("Malformed search response")

        if not cid:
            logger.warning(
                f"No CID found for {tree_key(token_address, chain_id)}. "
                f"Was the token deployed with a tree upload URL?"
            )
            return AdapterResult.not_found("No tree stored for this token")

        return AdapterResult.ok(cid)

    def fetch(self, cid: str) -> AdapterResult[StoredTree]:
        """
        Fetch and load a stored tree by CID.

        Args:
            cid: Content identifier returned by ``search`` or ``store``

        Returns:
            OK with a StoredTree, NOT_FOUND (including malformed payloads),
            or TRANSIENT_ERROR
        """
        if not self.json_url:
            return AdapterResult.not_found("Store JSON URL is not configured")

        try:
            logger.info(f"Fetching merkle tree {cid}")
            response = self.session.get(self.json_url, params={"cid": cid}, timeout=self.timeout)
        except requests.Timeout as e:
            logger.warning(f"Timeout fetching merkle tree {cid}: {e}")
            return AdapterResult.transient(f"Timeout fetching tree: {e}")
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch merkle tree {cid}: {e}")
            return AdapterResult.transient(f"Tree fetch failed: {e}")

        if response.status_code >= 500:
            logger.warning(f"Tree store fetch returned {response.status_code}: {response.text}")
            return AdapterResult.transient(f"Tree store fetch returned {response.status_code}")
        if not response.ok:
            logger.warning(f"Failed to fetch merkle tree from store: {response.text}")
            return AdapterResult.not_found(f"Tree store fetch returned {response.status_code}")

        try:
            stored = self.parse_stored_tree(cid, response.json())
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Stored tree {cid} is malformed: {e}")
            return AdapterResult.not_found(f"Malformed tree payload: {e}")

        logger.info(f"Successfully fetched merkle tree {cid} with {len(stored.tree)} recipients")
        return AdapterResult.ok(stored)

    def retrieve(self, token_address: str, chain_id: int) -> AdapterResult[StoredTree]:
        """Search for a token's tree and fetch it."""
        found = self.search(token_address, chain_id)
        if not found.is_ok:
            return AdapterResult(found.kind, None, found.error)
        return self.fetch(found.data)

    def get_cid_for_token(self, token_address: str, chain_id: int) -> Optional[str]:
        """Return the CID stored for a token, or None."""
        found = self.search(token_address, chain_id)
        return found.data if found.is_ok else None

    def store(
        self,
        token_address: str,
        chain_id: int,
        tree: StandardMerkleTree,
        metadata: CommitmentMetadata,
    ) -> str:
        """
        Upload a tree with its lockup metadata.

        Args:
            token_address: Token the airdrop belongs to
            chain_id: Chain the token lives on
            tree: Built tree
            metadata: Lockup metadata stored next to the dump

        Returns:
            CID of the stored payload

        Raises:
            TreeStoreError: If no upload URL is configured or the upload fails
        """
        if not self.upload_url:
            raise TreeStoreError("Tree store upload URL is not configured (set IPFS_JSON_UPLOAD_URL)")

        key = tree_key(token_address, chain_id)
        body = {
            "data": {
                "format": TREE_FORMAT,
                "tree": tree.dump(),
                "metadata": metadata.to_dict(),
            },
            "metadata": {
                "name": f"merkle-tree-{key}",
                "keyValues": {
                    "tokenAddress": token_address.lower(),
                    "chainId": str(chain_id),
                    "type": STORE_RECORD_TYPE,
                },
            },
        }

        try:
            logger.info(f"Uploading merkle tree {key} ({len(tree)} recipients)")
            response = self.session.post(self.upload_url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise TreeStoreError(f"Failed to store merkle tree at {self.upload_url}: {e}")

        if not response.ok:
            raise TreeStoreError(f"Failed to store merkle tree: {response.text}")

        try:
            cid = response.json()["cid"]
        except (ValueError, KeyError, TypeError) as e:
            raise TreeStoreError(f"Upload response did not include a CID: {e}")

        logger.info(f"Merkle tree stored with CID: {cid}")
        return cid

    def health_check(self) -> bool:
        """
        Check if the store proxy is reachable.

        Returns:
            True if the search endpoint answers without a server error
        """
        if not self.search_url:
            return False
        try:
            response = self.session.get(self.search_url, timeout=10)
            return response.status_code < 500
        except requests.RequestException:
            return False

    @staticmethod
    def parse_stored_tree(cid: str, payload: Dict[str, Any]) -> StoredTree:
        """
        Turn a fetched payload into a StoredTree.

        Raises:
            InvalidTreeError: If the payload does not hold a valid tree
        """
        if not isinstance(payload, dict) or not isinstance(payload.get("tree"), dict):
            raise InvalidTreeError("Payload has no tree")
        tree = StandardMerkleTree.load(payload["tree"])
        metadata = CommitmentMetadata.from_dict(payload.get("metadata"))
        return StoredTree(cid=cid, tree=tree, metadata=metadata)
