"""Shared progress bar utilities for Rich console displays."""

from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


def create_counter_progress(
    console: Console | None = None, *, expand: bool = False
) -> Progress:
    """Create a progress display for processes without a known total.

    Log pagination never knows how many pages remain, so instead of a bar
    this shows a running count of processed items.

    Args:
        console: Rich console instance (optional)
        expand: Whether to expand the progress display to full width

    Returns:
        Configured Progress instance with:
        - Spinner
        - Task description
        - Running item count
        - Time elapsed

    Example:
        ```python
        from rich.console import Console
        from airdrop.helpers.progress import create_counter_progress

        progress = create_counter_progress(Console())

        with progress:
            task_id = progress.add_task("Fetching logs", total=None)
            progress.update(task_id, advance=len(page.logs))
        ```
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TextColumn("{task.completed:,} logs"),
        TextColumn("•"),
        TimeElapsedColumn(),
        console=console,
        expand=expand,
    )


@contextmanager
def track_logs(
    description: str,
    console: Console | None = None,
) -> Iterator[tuple[Progress, TaskID]]:
    """Context manager for counting fetched logs with automatic cleanup.

    Args:
        description: Task description to display
        console: Rich console instance (optional)

    Yields:
        Tuple of (Progress instance, TaskID) for updating progress

    Example:
        ```python
        from airdrop.helpers.progress import track_logs

        with track_logs("Transfer logs") as (progress, task):
            for page in pages:
                progress.update(task, advance=len(page.logs))
        ```
    """
    progress = create_counter_progress(console)
    with progress:
        task_id = progress.add_task(description, total=None)
        yield progress, task_id


__all__ = [
    "TaskID",
    "create_counter_progress",
    "track_logs",
]
