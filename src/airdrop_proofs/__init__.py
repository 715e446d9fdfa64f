"""
Airdrop Proofs

Merkle commitments, proofs and claim status for token airdrops.
"""

__version__ = "0.1.0"
