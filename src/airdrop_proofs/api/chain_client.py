"""
Chain Client

This module reads airdrop state from the chain over JSON-RPC:

- the current block timestamp
- ``amountAvailableToClaim`` for every recipient, batched into a single
  Multicall3 ``aggregate3`` call with per-call failure allowed
- ``airdrops(token)`` for the lockup end time when tree metadata is missing
"""

import os
import logging
from typing import List, Optional, Sequence, Tuple

from dotenv import load_dotenv
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_checksum_address
from web3 import Web3

from ..constants import (
    AIRDROP_ABI,
    AIRDROP_LOCKUP_END_TIME_INDEX,
    DEFAULT_HTTP_TIMEOUT,
    MULTICALL3_ABI,
    MULTICALL3_ADDRESS,
)
from ..results import AdapterResult

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

AMOUNT_AVAILABLE_SELECTOR = function_signature_to_4byte_selector(
    "amountAvailableToClaim(address,address,uint256)"
)


class ChainClientError(Exception):
    """Exception raised for failed chain reads that have no safe default."""
    pass


def encode_amount_available_call(token: str, recipient: str, allocated_amount: int) -> bytes:
    """Calldata for ``amountAvailableToClaim(token, recipient, allocatedAmount)``."""
    return AMOUNT_AVAILABLE_SELECTOR + encode(
        ["address", "address", "uint256"],
        [to_checksum_address(token), to_checksum_address(recipient), int(allocated_amount)],
    )


def decode_amount_result(success: bool, return_data: bytes) -> int:
    """Decode one aggregate3 slot; failed or empty slots count as zero."""
    if not success or not return_data:
        return 0
    try:
        (amount,) = decode(["uint256"], bytes(return_data))
    except (DecodingError, ValueError) as e:
        logger.debug(f"Undecodable availability result: {e}")
        return 0
    return amount


class ChainClient:
    """
    Read-only client for the airdrop contract.

    Provides the block time, batched availability and the lockup fallback read.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        web3: Optional[Web3] = None,
        multicall_address: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the chain client.

        Args:
            rpc_url: JSON-RPC endpoint. If None, uses AIRDROP_RPC_URL.
            web3: Preconfigured Web3 instance; takes precedence over rpc_url.
            multicall_address: Multicall3 address. If None, uses
                MULTICALL3_ADDRESS env var or the canonical deployment.
            timeout: Request timeout in seconds.
        """
        if web3 is not None:
            self.w3 = web3
            self.rpc_url = rpc_url
        else:
            self.rpc_url = rpc_url or os.getenv("AIRDROP_RPC_URL")
            if not self.rpc_url:
                raise ValueError("AIRDROP_RPC_URL environment variable is not set")
            timeout = timeout or float(os.getenv("AIRDROP_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))
            self.w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": timeout}))

        self.multicall_address = to_checksum_address(
            multicall_address or os.getenv("MULTICALL3_ADDRESS") or MULTICALL3_ADDRESS
        )
        self.multicall = self.w3.eth.contract(address=self.multicall_address, abi=MULTICALL3_ABI)

        logger.info(f"Initialized ChainClient with rpc_url: {self.rpc_url}")

    def _airdrop_contract(self, airdrop_address: str):
        return self.w3.eth.contract(address=to_checksum_address(airdrop_address), abi=AIRDROP_ABI)

    def get_block_timestamp(self) -> int:
        """
        Timestamp of the latest block, in seconds.

        Raises:
            ChainClientError: If the block cannot be read
        """
        try:
            block = self.w3.eth.get_block("latest")
            return int(block["timestamp"])
        except Exception as e:
            raise ChainClientError(f"Failed to read latest block: {e}")

    def batch_availability(
        self,
        airdrop_address: str,
        token: str,
        recipients: Sequence[Tuple[str, int]],
    ) -> AdapterResult[List[int]]:
        """
        Read the claimable amount for every recipient in one round trip.

        Args:
            airdrop_address: Airdrop contract address
            token: Airdropped token address
            recipients: (address, allocated amount) pairs in leaf order

        Returns:
            OK with one amount per recipient (0 for reverted slots), or
            TRANSIENT_ERROR with all zeros if the batched call itself failed
        """
        if not recipients:
            return AdapterResult.ok([])

        target = to_checksum_address(airdrop_address)
        calls = [
            (target, True, encode_amount_available_call(token, address, amount))
            for address, amount in recipients
        ]

        try:
            logger.info(f"Querying availability for {len(calls)} recipients via multicall")
            results = self.multicall.functions.aggregate3(calls).call()
        except Exception as e:
            logger.warning(f"Batched availability query failed, defaulting to zero: {e}")
            return AdapterResult.transient(f"Availability query failed: {e}", [0] * len(recipients))

        if len(results) != len(recipients):
            logger.warning(f"Multicall returned {len(results)} results for {len(recipients)} calls")
            return AdapterResult.transient("Availability result count mismatch", [0] * len(recipients))

        amounts = [decode_amount_result(success, data) for success, data in results]
        failed = sum(1 for success, _ in results if not success)
        if failed:
            logger.warning(f"{failed} of {len(results)} availability reads reverted")
        return AdapterResult.ok(amounts)

    def read_lockup_end_time(self, airdrop_address: str, token: str) -> int:
        """
        Read ``airdrops(token)`` and return its lockup end time in seconds.

        Raises:
            ChainClientError: If the read fails
        """
        try:
            info = self._airdrop_contract(airdrop_address).functions.airdrops(
                to_checksum_address(token)
            ).call()
        except Exception as e:
            raise ChainClientError(f"Failed to read airdrop info for {token}: {e}")
        return int(info[AIRDROP_LOCKUP_END_TIME_INDEX])

    def health_check(self) -> bool:
        """
        Check if the RPC endpoint is reachable.

        Returns:
            True if the node answers
        """
        try:
            return bool(self.w3.is_connected())
        except Exception:
            return False
