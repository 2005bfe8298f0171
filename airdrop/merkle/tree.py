"""Merkle tree compatible with OpenZeppelin's ``StandardMerkleTree``.

The tree is stored as an array: ``n`` leaf hashes, sorted ascending, fill
the last ``n`` slots in reverse order, and node ``i`` is the hash of its
children ``2i + 1`` and ``2i + 2``. Pairs are hashed in sorted order, so
proofs carry no left/right flags and verify with OpenZeppelin's
``MerkleProof.verify``.

Leaves are double hashed, ``keccak256(keccak256(abi.encode(values)))``,
which keeps a 64-byte leaf preimage from being mistaken for an inner node.

Dumps use the ``standard-v1`` format and can be loaded by the JavaScript
library as well as by ``StandardMerkleTree.load``.
"""

from collections.abc import Iterator, Sequence
from functools import cached_property
from typing import Any

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_utils import is_hex, keccak

from airdrop.helpers.errors import InvalidLeaf, InvalidTreeFormat
from airdrop.helpers.parsers import parse_amount


FORMAT = "standard-v1"

LEAF_ENCODING = ("address", "uint256")
"""Leaf schema. Changing it changes every root and requires a new format."""


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Hash two nodes in ascending byte order."""
    return keccak(b"".join(sorted((a, b))))


def standard_leaf_hash(leaf_encoding: Sequence[str], value: Sequence[Any]) -> bytes:
    """Double keccak of the ABI-encoded leaf value.

    Raises:
        InvalidLeaf: If the value does not match the leaf encoding
    """
    if len(value) != len(leaf_encoding):
        msg = f"Leaf {list(value)!r} does not match encoding {list(leaf_encoding)!r}"
        raise InvalidLeaf(msg)
    try:
        encoded = encode(list(leaf_encoding), list(value))
    except (EncodingError, TypeError, ValueError) as e:
        msg = f"Cannot encode leaf {list(value)!r}: {e}"
        raise InvalidLeaf(msg) from e
    return keccak(keccak(encoded))


def _left_child(i: int) -> int:
    return 2 * i + 1


def _right_child(i: int) -> int:
    return 2 * i + 2


def _parent(i: int) -> int:
    return (i - 1) // 2


def _sibling(i: int) -> int:
    return i + 1 if i % 2 == 1 else i - 1


def _is_leaf_index(tree: Sequence[bytes], i: int) -> bool:
    return len(tree) // 2 <= i < len(tree)


def make_merkle_tree(leaves: Sequence[bytes]) -> list[bytes]:
    """Build the array form of a tree whose leaves are given in order."""
    if not leaves:
        msg = "Expected non-zero number of leaves"
        raise ValueError(msg)

    tree: list[bytes] = [b""] * (2 * len(leaves) - 1)
    for i, leaf in enumerate(leaves):
        tree[len(tree) - 1 - i] = leaf
    for i in range(len(tree) - 1 - len(leaves), -1, -1):
        tree[i] = hash_pair(tree[_left_child(i)], tree[_right_child(i)])
    return tree


def get_proof(tree: Sequence[bytes], index: int) -> list[bytes]:
    """Sibling hashes from leaf ``index`` up to, not including, the root."""
    if not _is_leaf_index(tree, index):
        msg = f"Index {index} is not a leaf"
        raise ValueError(msg)
    proof = []
    while index > 0:
        proof.append(tree[_sibling(index)])
        index = _parent(index)
    return proof


def process_proof(leaf: bytes, proof: Sequence[bytes]) -> bytes:
    """Recompute the root from a leaf hash and its proof."""
    node = leaf
    for sibling in proof:
        node = hash_pair(node, sibling)
    return node


def to_hex(node: bytes) -> str:
    return "0x" + node.hex()


def _from_hex(node: Any) -> bytes:
    if not isinstance(node, str) or not is_hex(node) or len(node) != 66:
        msg = f"Not a 32-byte hex node: {node!r}"
        raise InvalidTreeFormat(msg)
    return bytes.fromhex(node[2:])


def _coerce_value(leaf_encoding: Sequence[str], value: Sequence[Any]) -> tuple[Any, ...]:
    """Convert dumped JSON scalars back to the types the encoder expects."""
    coerced = []
    for abi_type, item in zip(leaf_encoding, value, strict=True):
        if abi_type.startswith(("uint", "int")):
            item = parse_amount(item)
        coerced.append(item)
    return tuple(coerced)


def _dump_value(value: Sequence[Any]) -> list[Any]:
    # Integers as decimal strings so 256-bit amounts survive JSON in any language
    return [str(item) if isinstance(item, int) else item for item in value]


class StandardMerkleTree:
    """Merkle tree over ABI-typed values with OpenZeppelin-compatible hashing."""

    def __init__(
        self,
        tree: list[bytes],
        values: list[tuple[tuple[Any, ...], int]],
        leaf_encoding: Sequence[str],
    ) -> None:
        self._tree = tree
        self._values = values
        self.leaf_encoding = tuple(leaf_encoding)

    @cached_property
    def _hash_lookup(self) -> dict[str, int]:
        return {
            to_hex(self._tree[tree_index]): value_index
            for value_index, (_, tree_index) in enumerate(self._values)
        }

    @classmethod
    def of(
        cls,
        values: Sequence[Sequence[Any]],
        leaf_encoding: Sequence[str] = LEAF_ENCODING,
    ) -> "StandardMerkleTree":
        """Build a tree. Leaves are sorted by hash, so the root does not
        depend on the order of ``values``.

        Raises:
            InvalidLeaf: If ``values`` is empty or a value cannot be encoded
        """
        if not values:
            msg = "Cannot build a merkle tree without leaves"
            raise InvalidLeaf(msg)

        hashed = sorted(
            (
                (standard_leaf_hash(leaf_encoding, value), value_index)
                for value_index, value in enumerate(values)
            ),
        )
        tree = make_merkle_tree([leaf for leaf, _ in hashed])

        tree_indices = [0] * len(values)
        for leaf_index, (_, value_index) in enumerate(hashed):
            tree_indices[value_index] = len(tree) - 1 - leaf_index

        indexed = [
            (tuple(value), tree_indices[value_index])
            for value_index, value in enumerate(values)
        ]
        return cls(tree, indexed, leaf_encoding)

    @classmethod
    def load(cls, data: Any) -> "StandardMerkleTree":
        """Load and validate a ``standard-v1`` dump.

        Raises:
            InvalidTreeFormat: If the format is unknown or the tree is
                inconsistent with its values
        """
        if not isinstance(data, dict):
            msg = "Merkle tree dump must be a JSON object"
            raise InvalidTreeFormat(msg)
        if data.get("format") != FORMAT:
            msg = f"Unknown format '{data.get('format')}'"
            raise InvalidTreeFormat(msg)

        leaf_encoding = data.get("leafEncoding")
        raw_tree = data.get("tree")
        raw_values = data.get("values")
        if (
            not isinstance(leaf_encoding, list)
            or not all(isinstance(t, str) for t in leaf_encoding)
            or not isinstance(raw_tree, list)
            or not isinstance(raw_values, list)
        ):
            msg = "Merkle tree dump is missing leafEncoding, tree or values"
            raise InvalidTreeFormat(msg)

        tree = [_from_hex(node) for node in raw_tree]
        values: list[tuple[tuple[Any, ...], int]] = []
        for entry in raw_values:
            try:
                value = _coerce_value(leaf_encoding, entry["value"])
                tree_index = int(entry["treeIndex"])
            except (KeyError, TypeError, ValueError) as e:
                msg = f"Malformed value entry {entry!r}"
                raise InvalidTreeFormat(msg) from e
            values.append((value, tree_index))

        loaded = cls(tree, values, leaf_encoding)
        loaded.validate()
        return loaded

    def validate(self) -> None:
        """Check node consistency and that every value hashes to its leaf.

        Raises:
            InvalidTreeFormat: On any mismatch
        """
        tree = self._tree
        if len(tree) % 2 == 0 or len(self._values) != (len(tree) + 1) // 2:
            msg = f"Tree of {len(tree)} nodes cannot hold {len(self._values)} leaves"
            raise InvalidTreeFormat(msg)

        for i in range(len(tree) // 2):
            if tree[i] != hash_pair(tree[_left_child(i)], tree[_right_child(i)]):
                msg = f"Inner node {i} does not match its children"
                raise InvalidTreeFormat(msg)

        seen: set[int] = set()
        for value, tree_index in self._values:
            if not _is_leaf_index(tree, tree_index) or tree_index in seen:
                msg = f"Invalid treeIndex {tree_index}"
                raise InvalidTreeFormat(msg)
            seen.add(tree_index)
            try:
                leaf = standard_leaf_hash(self.leaf_encoding, value)
            except InvalidLeaf as e:
                raise InvalidTreeFormat(str(e)) from e
            if leaf != tree[tree_index]:
                msg = f"Stored hash is incorrect for leaf {list(value)!r}"
                raise InvalidTreeFormat(msg)

    @property
    def root(self) -> str:
        return to_hex(self._tree[0])

    def __len__(self) -> int:
        return len(self._values)

    def entries(self) -> Iterator[tuple[int, tuple[Any, ...]]]:
        """Yield ``(value_index, value)`` in original input order."""
        for value_index, (value, _) in enumerate(self._values):
            yield value_index, value

    def leaf_hash(self, value: Sequence[Any]) -> str:
        return to_hex(standard_leaf_hash(self.leaf_encoding, value))

    def leaf_lookup(self, value: Sequence[Any]) -> int:
        """Index of ``value`` among the tree's values.

        Raises:
            ValueError: If the value is not in the tree
        """
        value_index = self._hash_lookup.get(self.leaf_hash(value))
        if value_index is None:
            msg = f"Leaf is not in tree: {list(value)!r}"
            raise ValueError(msg)
        return value_index

    def get_proof(self, leaf: int | Sequence[Any]) -> list[str]:
        """Proof for a value, given either its index or the value itself."""
        value_index = leaf if isinstance(leaf, int) else self.leaf_lookup(leaf)
        value, tree_index = self._values[value_index]
        proof = get_proof(self._tree, tree_index)
        # Sanity check: the proof must lead back to the root
        if process_proof(standard_leaf_hash(self.leaf_encoding, value), proof) != self._tree[0]:
            msg = "Unable to prove value"
            raise RuntimeError(msg)
        return [to_hex(node) for node in proof]

    def verify(self, leaf: int | Sequence[Any], proof: Sequence[str]) -> bool:
        value = self._values[leaf][0] if isinstance(leaf, int) else leaf
        return verify_proof(self.root, self.leaf_encoding, value, proof)

    def dump(self) -> dict[str, Any]:
        return {
            "format": FORMAT,
            "leafEncoding": list(self.leaf_encoding),
            "tree": [to_hex(node) for node in self._tree],
            "values": [
                {"value": _dump_value(value), "treeIndex": tree_index}
                for value, tree_index in self._values
            ],
        }


def verify_proof(
    root: str,
    leaf_encoding: Sequence[str],
    value: Sequence[Any],
    proof: Sequence[str],
) -> bool:
    """Check ``value`` against ``root`` the way ``MerkleProof.verify`` does.

    Values that cannot be encoded simply fail verification.
    """
    try:
        leaf = standard_leaf_hash(leaf_encoding, value)
        nodes = [_from_hex(node) for node in proof]
        expected = _from_hex(root)
    except (InvalidLeaf, InvalidTreeFormat):
        return False
    return process_proof(leaf, nodes) == expected


__all__ = [
    "FORMAT",
    "LEAF_ENCODING",
    "StandardMerkleTree",
    "get_proof",
    "hash_pair",
    "make_merkle_tree",
    "process_proof",
    "standard_leaf_hash",
    "verify_proof",
]
