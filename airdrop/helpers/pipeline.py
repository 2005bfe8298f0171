"""Base classes and utilities for pipeline steps that persist JSON artifacts."""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from typing import Any

from rich.console import Console

from airdrop.helpers.constants import JSON_INDENT


def write_json_atomic(path: Path, payload: Any, indent: int = JSON_INDENT) -> Path:
    """Write JSON to ``path`` so readers never observe a partial file.

    The payload is written to a temporary file in the same directory and
    renamed over the destination, replacing any previous artifact.

    Args:
        path: Destination file
        payload: JSON-serializable object
        indent: JSON indentation

    Returns:
        The destination path
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            json.dump(payload, fp, indent=indent)
            fp.write("\n")
        Path(tmp_name).replace(path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


class PipelineStep(ABC):
    """Abstract base class for snapshot and merkle steps.

    Provides common functionality for all steps including:
    - Console initialization for progress display
    - Output directory handling
    - Atomic JSON artifact writes

    Subclasses must implement:
    - run(): Main step orchestration logic
    """

    def __init__(self, output_dir: Path | str, console: Console | None = None) -> None:
        """Initialize step with common configuration.

        Args:
            output_dir: Directory that receives the step's artifacts
            console: Rich console (defaults to a new one)
        """
        self.output_dir = Path(output_dir)
        self.console = console or Console()

    def write_artifact(self, filename: str, payload: Any) -> Path:
        """Write a JSON artifact into the output directory."""
        return write_json_atomic(self.output_dir / filename, payload)

    @abstractmethod
    def run(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        """Run the step and return the path of the written artifact.

        Steps that perform network I/O implement this as a coroutine.
        """
        ...


__all__ = ["PipelineStep", "write_json_atomic"]
