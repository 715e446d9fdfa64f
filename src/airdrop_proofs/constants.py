"""
Airdrop Constants

This module contains the constants shared by the Merkle tree, the store and
chain clients and the reconciliation engine: the tree dump format, lockup
defaults, contract addresses and the ABIs of the contracts that are read.

References:
- OpenZeppelin merkle-tree: https://github.com/OpenZeppelin/merkle-tree
- Multicall3: https://github.com/mds1/multicall
"""

# ====================
# Tree Format
# ====================

# Dump format of the OpenZeppelin StandardMerkleTree
TREE_FORMAT = "standard-v1"
LEAF_ENCODING = ["address", "uint256"]

# Content store tags
STORE_RECORD_TYPE = "airdrop-merkle-tree"

# ====================
# Lockup Timing
# ====================

# Lockup used when the stored metadata is absent (seconds)
DEFAULT_LOCKUP_DURATION = 86400

# Index of lockupEndTime in the airdrops(token) return tuple
AIRDROP_LOCKUP_END_TIME_INDEX = 4

# ====================
# Chain Access
# ====================

# Canonical Multicall3 deployment, same address on every supported chain
MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"

# Seconds before store, indexer and RPC requests give up
DEFAULT_HTTP_TIMEOUT = 30

# ====================
# Status Messages
# ====================

ALREADY_CLAIMED_MESSAGE = "Airdrop already claimed"
LOCKED_MESSAGE = "Airdrop is still locked (lockup period not passed)"

# ====================
# Contract ABIs
# ====================

# Airdrop contract: per-recipient availability and per-token airdrop info
AIRDROP_ABI = [
    {
        "type": "function",
        "name": "amountAvailableToClaim",
        "stateMutability": "view",
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "recipient", "type": "address"},
            {"name": "allocatedAmount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "airdrops",
        "stateMutability": "view",
        "inputs": [{"name": "token", "type": "address"}],
        "outputs": [
            {"name": "admin", "type": "address"},
            {"name": "merkleRoot", "type": "bytes32"},
            {"name": "totalSupply", "type": "uint256"},
            {"name": "totalClaimed", "type": "uint256"},
            {"name": "lockupEndTime", "type": "uint256"},
            {"name": "vestingEndTime", "type": "uint256"},
        ],
    },
]

# Only aggregate3 is used; each call may fail without reverting the batch
MULTICALL3_ABI = [
    {
        "type": "function",
        "name": "aggregate3",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "calls",
                "type": "tuple[]",
                "components": [
                    {"name": "target", "type": "address"},
                    {"name": "allowFailure", "type": "bool"},
                    {"name": "callData", "type": "bytes"},
                ],
            }
        ],
        "outputs": [
            {
                "name": "returnData",
                "type": "tuple[]",
                "components": [
                    {"name": "success", "type": "bool"},
                    {"name": "returnData", "type": "bytes"},
                ],
            }
        ],
    },
]
