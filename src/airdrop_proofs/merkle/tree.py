"""
Standard Merkle Tree

Airdrop commitment tree compatible with OpenZeppelin's StandardMerkleTree
(``standard-v1`` dumps). The tree is stored as a flat array of ``2n - 1``
nodes with the root at position 0 and the hash-sorted leaves at the end.
Values keep their insertion order: value index ``i`` is what callers persist
and request proofs for, and each value records the ``treeIndex`` of its leaf.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from eth_abi.exceptions import EncodingError

from ..constants import TREE_FORMAT
from .encoding import bytes_to_hex, hash_pair, hex_to_bytes, leaf_hash

logger = logging.getLogger(__name__)


class InvalidTreeError(ValueError):
    """Raised for empty trees and malformed or inconsistent tree dumps."""
    pass


class IndexOutOfRange(IndexError):
    """Raised when a proof is requested for an index the tree does not hold."""
    pass


def _left_child(i: int) -> int:
    return 2 * i + 1


def _right_child(i: int) -> int:
    return 2 * i + 2


def _parent(i: int) -> int:
    return (i - 1) // 2


def _sibling(i: int) -> int:
    return i + 1 if i % 2 == 1 else i - 1


def make_merkle_tree(leaves: List[bytes]) -> List[bytes]:
    """
    Lay out a complete binary tree over already-sorted leaf hashes.

    Args:
        leaves: 32-byte leaf hashes, in the order they should occupy the tree

    Returns:
        Flat node array, root first

    Raises:
        InvalidTreeError: If no leaves are given
    """
    if not leaves:
        raise InvalidTreeError("Expected non-zero number of leaves")

    tree: List[bytes] = [b""] * (2 * len(leaves) - 1)
    for i, leaf in enumerate(leaves):
        tree[len(tree) - 1 - i] = leaf
    for i in range(len(tree) - 1 - len(leaves), -1, -1):
        tree[i] = hash_pair(tree[_left_child(i)], tree[_right_child(i)])
    return tree


def get_proof(tree: List[bytes], tree_index: int) -> List[bytes]:
    """Collect sibling hashes from a leaf position up to the root."""
    proof = []
    index = tree_index
    while index > 0:
        proof.append(tree[_sibling(index)])
        index = _parent(index)
    return proof


def process_proof(leaf: bytes, proof: Sequence[bytes]) -> bytes:
    """Fold a proof over a leaf hash, returning the implied root."""
    current = leaf
    for sibling in proof:
        current = hash_pair(current, sibling)
    return current


def verify_proof(root: bytes, leaf: bytes, proof: Sequence[bytes]) -> bool:
    """
    Check that ``leaf`` is committed under ``root``.

    Args:
        root: 32-byte Merkle root
        leaf: 32-byte leaf hash (see ``leaf_hash``)
        proof: Sibling hashes as returned by ``StandardMerkleTree.get_proof``

    Returns:
        True if the proof reconstructs the root
    """
    return process_proof(leaf, proof) == root


def is_valid_merkle_tree(tree: List[bytes]) -> bool:
    """Check node sizes and that every inner node hashes its children."""
    for i, node in enumerate(tree):
        if len(node) != 32:
            return False
        left, right = _left_child(i), _right_child(i)
        if right >= len(tree):
            if left < len(tree):
                return False
        elif node != hash_pair(tree[left], tree[right]):
            return False
    return len(tree) > 0


class StandardMerkleTree:
    """
    Immutable airdrop commitment.

    Usage:
        tree = StandardMerkleTree.of([("0xabc...", "100")], ["address", "uint256"])
        proof = tree.get_proof(0)
        assert tree.verify(0, proof)
    """

    def __init__(
        self,
        tree: List[bytes],
        values: List[Dict[str, Any]],
        leaf_encoding: List[str],
    ):
        self._tree = tree
        self._values = values
        self._leaf_encoding = list(leaf_encoding)

    @classmethod
    def of(cls, values: Sequence[Sequence[Any]], leaf_encoding: List[str]) -> "StandardMerkleTree":
        """
        Build a tree from leaf values.

        Args:
            values: Leaf values in insertion order, e.g. [(address, amount), ...]
            leaf_encoding: ABI types of each value

        Returns:
            The built tree

        Raises:
            InvalidTreeError: If ``values`` is empty
        """
        if not values:
            raise InvalidTreeError("Expected non-zero number of leaves")

        hashed = sorted(
            ((leaf_hash(value, leaf_encoding), value_index) for value_index, value in enumerate(values)),
            key=lambda item: item[0],
        )
        tree = make_merkle_tree([h for h, _ in hashed])

        indexed_values = [{"value": list(value), "tree_index": 0} for value in values]
        for leaf_index, (_, value_index) in enumerate(hashed):
            indexed_values[value_index]["tree_index"] = len(tree) - leaf_index - 1

        return cls(tree, indexed_values, leaf_encoding)

    @classmethod
    def load(cls, data: Dict[str, Any]) -> "StandardMerkleTree":
        """
        Restore a tree from a ``standard-v1`` dump and validate it.

        Raises:
            InvalidTreeError: If the dump is malformed or inconsistent
        """
        if not isinstance(data, dict):
            raise InvalidTreeError("Tree dump must be a JSON object")
        if data.get("format") != TREE_FORMAT:
            raise InvalidTreeError(f"Unknown format '{data.get('format')}'")
        leaf_encoding = data.get("leafEncoding")
        if not leaf_encoding:
            raise InvalidTreeError("Expected leaf encoding")

        try:
            tree = [hex_to_bytes(node) for node in data["tree"]]
            values = [
                {"value": list(entry["value"]), "tree_index": int(entry["treeIndex"])}
                for entry in data["values"]
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidTreeError(f"Malformed tree dump: {e}")

        loaded = cls(tree, values, leaf_encoding)
        loaded.validate()
        return loaded

    def dump(self) -> Dict[str, Any]:
        """Serialize to the ``standard-v1`` JSON shape."""
        return {
            "format": TREE_FORMAT,
            "leafEncoding": list(self._leaf_encoding),
            "tree": [bytes_to_hex(node) for node in self._tree],
            "values": [
                {"value": list(v["value"]), "treeIndex": v["tree_index"]}
                for v in self._values
            ],
        }

    @property
    def root(self) -> bytes:
        return self._tree[0]

    @property
    def root_hex(self) -> str:
        return bytes_to_hex(self.root)

    @property
    def leaf_encoding(self) -> List[str]:
        return list(self._leaf_encoding)

    def __len__(self) -> int:
        return len(self._values)

    def entries(self) -> Iterator[Tuple[int, List[Any]]]:
        """Yield ``(index, value)`` pairs in insertion order."""
        for i, v in enumerate(self._values):
            yield i, list(v["value"])

    def value(self, index: int) -> List[Any]:
        self._check_index(index)
        return list(self._values[index]["value"])

    def leaf_hash(self, value: Sequence[Any]) -> bytes:
        return leaf_hash(value, self._leaf_encoding)

    def leaf_lookup(self, value: Sequence[Any]) -> Optional[int]:
        """Return the index of a value, or None if it is not in the tree."""
        target = self.leaf_hash(value)
        for i, v in enumerate(self._values):
            if self._tree[v["tree_index"]] == target:
                return i
        return None

    def get_proof(self, index: int) -> List[bytes]:
        """
        Build the membership proof for the value at ``index``.

        Raises:
            IndexOutOfRange: If ``index`` is not a value index of this tree
        """
        self._check_index(index)
        tree_index = self._values[index]["tree_index"]
        proof = get_proof(self._tree, tree_index)
        leaf = self._tree[tree_index]
        if not verify_proof(self.root, leaf, proof):
            raise InvalidTreeError(f"Unable to prove value at index {index}")
        return proof

    def get_hex_proof(self, index: int) -> List[str]:
        return [bytes_to_hex(step) for step in self.get_proof(index)]

    def verify(self, index: int, proof: Sequence[bytes]) -> bool:
        return verify_proof(self.root, self.leaf_hash(self.value(index)), proof)

    def validate(self) -> None:
        """
        Check the node array and that every value hashes to its leaf.

        Raises:
            InvalidTreeError: On any inconsistency
        """
        if not is_valid_merkle_tree(self._tree):
            raise InvalidTreeError("Merkle tree is invalid")
        if not self._values:
            raise InvalidTreeError("Expected non-zero number of leaves")
        first_leaf = len(self._tree) // 2
        for i, v in enumerate(self._values):
            tree_index = v["tree_index"]
            if not first_leaf <= tree_index < len(self._tree):
                raise InvalidTreeError(f"Value {i} points outside the leaf range")
            try:
                expected = self.leaf_hash(v["value"])
            except (ValueError, TypeError, EncodingError) as e:
                raise InvalidTreeError(f"Value {i} does not match leaf encoding: {e}")
            if self._tree[tree_index] != expected:
                raise InvalidTreeError(f"Value {i} does not match its leaf hash")

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or index < 0 or index >= len(self._values):
            raise IndexOutOfRange(
                f"Index {index} out of range (0-{len(self._values) - 1})"
            )
