"""Snapshot file naming, serialization and loading."""

import json
from pathlib import Path

from airdrop.helpers.errors import InvalidLeaf
from airdrop.helpers.parsers import parse_amount, to_hex_amount
from airdrop.helpers.pipeline import write_json_atomic
from airdrop.snapshot.models import Snapshot


def snapshot_filename(network: str, contract: str, start_block: int, end_block: int) -> str:
    """Deterministic snapshot file name for a run.

    Example:
        >>> snapshot_filename("metis", "0xAB", 10, 20)
        'metis-0xab-10-20.json'
    """
    return f"{network}-{contract.lower()}-{start_block}-{end_block}.json"


def serialize_snapshot(snapshot: Snapshot) -> dict[str, str]:
    """Encode amounts as hex strings, preserving entry order."""
    return {address: to_hex_amount(amount) for address, amount in snapshot.items()}


def write_snapshot(path: Path, snapshot: Snapshot) -> Path:
    """Write a snapshot file, replacing any previous run's artifact."""
    return write_json_atomic(path, serialize_snapshot(snapshot))


def load_snapshot(path: Path | str) -> dict[str, int]:
    """Read a snapshot file.

    Amounts may be hex (as written by the harvester) or decimal strings.
    Addresses are returned as stored; validation is left to the merkle
    builder.

    Raises:
        InvalidLeaf: If the file is not an address to amount mapping
    """
    with Path(path).open(encoding="utf-8") as fp:
        raw = json.load(fp)

    if not isinstance(raw, dict):
        msg = f"Snapshot {path} must be a JSON object"
        raise InvalidLeaf(msg)

    snapshot: dict[str, int] = {}
    for address, amount in raw.items():
        try:
            snapshot[address] = parse_amount(amount)
        except ValueError as e:
            msg = f"Snapshot entry {address}: {e}"
            raise InvalidLeaf(msg) from e
    return snapshot


__all__ = [
    "load_snapshot",
    "serialize_snapshot",
    "snapshot_filename",
    "write_snapshot",
]
