"""Build distribution merkle trees from balance snapshots."""

import json
from collections.abc import Mapping
from pathlib import Path

from typing import Any

from pydantic import BaseModel, ConfigDict
from rich.console import Console

from airdrop.helpers.errors import InvalidLeaf, NotFound
from airdrop.helpers.logging import get_logger
from airdrop.helpers.parsers import is_valid_address
from airdrop.helpers.pipeline import PipelineStep
from airdrop.merkle.tree import LEAF_ENCODING, StandardMerkleTree, verify_proof
from airdrop.snapshot.storage import load_snapshot


MAX_UINT256 = 2**256 - 1


class BuildResult(BaseModel):
    """A built tree with its root and the distribution total."""

    root: str
    tree: StandardMerkleTree
    total: int

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    def dump(self) -> dict[str, Any]:
        return self.tree.dump()


def validate_snapshot(snapshot: Mapping[str, int]) -> list[tuple[str, int]]:
    """Check every entry can be committed as a leaf.

    Raises:
        InvalidLeaf: On an empty snapshot, a malformed or badly checksummed
            address, a duplicate address, or an amount outside uint256
    """
    if not snapshot:
        msg = "Snapshot is empty"
        raise InvalidLeaf(msg)

    leaves: list[tuple[str, int]] = []
    seen: set[str] = set()
    for address, amount in snapshot.items():
        if not is_valid_address(address):
            msg = f"Invalid address in snapshot: {address!r}"
            raise InvalidLeaf(msg)
        if isinstance(amount, bool) or not isinstance(amount, int):
            msg = f"Amount for {address} is not an integer: {amount!r}"
            raise InvalidLeaf(msg)
        if amount < 0:
            msg = f"Negative amount for {address}: {amount}"
            raise InvalidLeaf(msg)
        if amount > MAX_UINT256:
            msg = f"Amount for {address} exceeds uint256"
            raise InvalidLeaf(msg)
        key = address.lower()
        if key in seen:
            msg = f"Duplicate address in snapshot: {address}"
            raise InvalidLeaf(msg)
        seen.add(key)
        leaves.append((address, amount))
    return leaves


def build_tree(snapshot: Mapping[str, int]) -> BuildResult:
    """Commit a snapshot as an ``(address, uint256)`` merkle tree.

    The root depends only on the set of entries, not their order.

    Raises:
        InvalidLeaf: If any entry cannot be committed
    """
    leaves = validate_snapshot(snapshot)
    tree = StandardMerkleTree.of(leaves, LEAF_ENCODING)
    return BuildResult(
        root=tree.root,
        tree=tree,
        total=sum(amount for _, amount in leaves),
    )


def find_leaf(tree: StandardMerkleTree, address: str) -> tuple[int, tuple[Any, ...]]:
    """Locate the leaf for ``address`` (case-insensitive).

    Raises:
        NotFound: If the address has no leaf
    """
    key = address.lower() if isinstance(address, str) else address
    for value_index, value in tree.entries():
        if isinstance(value[0], str) and value[0].lower() == key:
            return value_index, value
    msg = f"Address {address} is not in the tree"
    raise NotFound(msg)


def proof_for(tree: StandardMerkleTree, address: str) -> list[str]:
    """Sibling hashes, leaf to root, proving ``address``'s allocation.

    Raises:
        NotFound: If the address has no leaf
    """
    value_index, _ = find_leaf(tree, address)
    return tree.get_proof(value_index)


def amount_for(tree: StandardMerkleTree, address: str) -> int:
    _, value = find_leaf(tree, address)
    return int(value[1])


def verify_claim(root: str, address: str, amount: int, proof: list[str]) -> bool:
    """Verify a claim as the distribution contract would."""
    return verify_proof(root, LEAF_ENCODING, (address, amount), proof)


def claims(tree: StandardMerkleTree) -> dict[str, Any]:
    """Per-address amounts and proofs for claim front-ends."""
    entries: dict[str, Any] = {}
    total = 0
    for value_index, (address, amount) in tree.entries():
        total += amount
        entries[address] = {
            "amount": str(amount),
            "proof": tree.get_proof(value_index),
        }
    return {"merkleRoot": tree.root, "tokenTotal": str(total), "claims": entries}


def load_tree(path: Path | str) -> StandardMerkleTree:
    """Load a dumped tree written by ``MerkleBuilder``."""
    with Path(path).open(encoding="utf-8") as fp:
        return StandardMerkleTree.load(json.load(fp))


def tree_filename(snapshot_path: Path | str) -> str:
    """``merkle-<snapshot file name>``."""
    return f"merkle-{Path(snapshot_path).name}"


def claims_filename(snapshot_path: Path | str) -> str:
    return f"claims-{Path(snapshot_path).name}"


class MerkleBuilder(PipelineStep):
    """Turn a snapshot file into a dumped merkle tree."""

    def __init__(
        self,
        output_dir: Path | str | None = None,
        console: Console | None = None,
        *,
        write_claims: bool = False,
    ) -> None:
        """Initialize builder.

        Args:
            output_dir: Where to write; defaults to the snapshot's directory
            console: Rich console for summary output
            write_claims: Also write a ``claims-`` file with every proof
        """
        super().__init__(output_dir or ".", console)
        self._output_dir_set = output_dir is not None
        self.write_claims = write_claims
        self.logger = get_logger("merkle")

    def run(self, snapshot_path: Path | str) -> Path:
        """Build and write ``merkle-<snapshot>``.

        Returns:
            Path of the written tree dump

        Raises:
            InvalidLeaf: If the snapshot holds an entry that cannot be a leaf
        """
        snapshot_path = Path(snapshot_path)
        if not self._output_dir_set:
            self.output_dir = snapshot_path.parent

        result = build_tree(load_snapshot(snapshot_path))
        self.logger.info("Total distribution: %d", result.total)
        self.logger.info("Merkle root: %s", result.root)

        path = self.write_artifact(tree_filename(snapshot_path), result.dump())
        if self.write_claims:
            self.write_artifact(claims_filename(snapshot_path), claims(result.tree))

        self.console.print(f"Total distribution: {result.total}")
        self.console.print(f"Merkle root: [bold]{result.root}[/bold]")
        self.console.print(f"[bold green]✓ Merkle tree saved to[/bold green] {path}")
        return path


__all__ = [
    "BuildResult",
    "MerkleBuilder",
    "amount_for",
    "build_tree",
    "claims",
    "claims_filename",
    "find_leaf",
    "load_tree",
    "proof_for",
    "tree_filename",
    "validate_snapshot",
    "verify_claim",
]
