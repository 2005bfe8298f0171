"""Harvest transfer and staking logs into a balance snapshot."""

from collections.abc import Iterable, Sequence
from pathlib import Path

import httpx
from rich.console import Console

from airdrop.helpers.config import HarvestConfig
from airdrop.helpers.errors import DecodeError, TransientFetchError
from airdrop.helpers.http import create_http_client, retry_with_policy
from airdrop.helpers.logging import get_logger
from airdrop.helpers.parsers import format_units, int_to_topic, normalize_address
from airdrop.helpers.pipeline import PipelineStep
from airdrop.helpers.progress import track_logs
from airdrop.helpers.rpc import RPCClient
from airdrop.snapshot.client import AnkrLogsClient
from airdrop.snapshot.constants import DEFAULT_POOL_ID, EventKind
from airdrop.snapshot.decode import decode_log
from airdrop.snapshot.ledger import BalanceLedger
from airdrop.snapshot.models import HarvestResult, LogsRequest
from airdrop.snapshot.storage import snapshot_filename, write_snapshot


class Harvester(PipelineStep):
    """Replay logs over a block range and write the resulting snapshot.

    Pages are fetched strictly in order. A failed page request is retried
    with the same page token according to ``config.retry``, so the cursor
    only advances after a page has been applied to the ledger. The snapshot
    file is written once, after the last page, and only if the run
    completed.
    """

    def __init__(
        self,
        config: HarvestConfig,
        client: AnkrLogsClient | None = None,
        console: Console | None = None,
    ) -> None:
        """Initialize harvester.

        Args:
            config: Explicit harvest configuration
            client: Log API client (defaults to one built from config.api_url)
            console: Rich console for progress output
        """
        super().__init__(config.snapshot_dir, console)
        self.config = config
        self.client = client or AnkrLogsClient(
            RPCClient(config.api_url, timeout=config.timeout)
        )
        self.logger = get_logger("harvester")
        self._fetch_page = retry_with_policy(
            config.retry, retry_on=(TransientFetchError,)
        )(self.client.get_logs)

    def _topics(self, kind: EventKind, pool_id: int) -> list[str | list[str]]:
        if kind.is_stake:
            # Any subject, one pool
            return [kind.topic, [], int_to_topic(pool_id)]
        return [[kind.topic]]

    async def _harvest_kind(
        self,
        http: httpx.AsyncClient,
        kind: EventKind,
        contract: str,
        start_block: int,
        end_block: int,
        ledger: BalanceLedger,
        pool_id: int,
        stats: dict[str, int],
    ) -> None:
        page_token: str | None = None

        with track_logs(f"{kind.value} logs", self.console) as (progress, task_id):
            while True:
                request = LogsRequest(
                    blockchain=self.config.network,
                    from_block=start_block,
                    to_block=end_block,
                    address=contract,
                    topics=self._topics(kind, pool_id),
                    page_size=self.config.page_size,
                    page_token=page_token,
                )
                self.logger.debug("Requesting %s page %s", kind.value, page_token)
                page = await self._fetch_page(http, request)
                stats["pages"] += 1

                if not page.logs:
                    break

                for raw in page.logs:
                    try:
                        event = decode_log(raw, kind, pool_id if kind.is_stake else None)
                    except DecodeError as e:
                        stats["skipped"] += 1
                        self.logger.debug("Skipping %s log: %s", kind.value, e)
                        continue
                    ledger.apply(event)

                stats["fetched"] += len(page.logs)
                progress.update(task_id, advance=len(page.logs))

                if not page.next_page_token:
                    break
                page_token = page.next_page_token

    async def harvest(
        self,
        kinds: EventKind | Sequence[EventKind],
        contract: str,
        start_block: int,
        end_block: int,
        *,
        exclusions: Iterable[str] | None = None,
        pool_id: int = DEFAULT_POOL_ID,
        http: httpx.AsyncClient | None = None,
    ) -> HarvestResult:
        """Replay logs for each event kind, in order, into one ledger.

        Args:
            kinds: Event kind, or kinds applied one after another
            contract: Token or staking contract address
            start_block: First block, inclusive
            end_block: Last block, inclusive
            exclusions: Addresses overriding ``config.exclusions``
            pool_id: Staking pool for stake events
            http: HTTP client (a new one is created if omitted)

        Returns:
            The snapshot and run statistics

        Raises:
            ValueError: If the block range or contract address is invalid
            TransientFetchError: If a page still fails after all retries
            LogApiError: If the API rejected a request
        """
        if start_block < 0 or end_block < 0:
            msg = f"Block numbers must be non-negative, got {start_block}-{end_block}"
            raise ValueError(msg)
        if start_block > end_block:
            msg = f"start_block {start_block} is after end_block {end_block}"
            raise ValueError(msg)
        contract = normalize_address(contract)
        kinds = [kinds] if isinstance(kinds, EventKind) else list(kinds)

        ledger = BalanceLedger(
            self.config.exclusions if exclusions is None else exclusions
        )
        stats = {"pages": 0, "fetched": 0, "skipped": 0}

        self.logger.info(
            "Harvesting %s for %s on %s, blocks %d-%d",
            ", ".join(kind.value for kind in kinds),
            contract,
            self.config.network,
            start_block,
            end_block,
        )

        if http is None:
            async with create_http_client(timeout=self.config.timeout) as client:
                for kind in kinds:
                    await self._harvest_kind(
                        client, kind, contract, start_block, end_block, ledger, pool_id, stats
                    )
        else:
            for kind in kinds:
                await self._harvest_kind(
                    http, kind, contract, start_block, end_block, ledger, pool_id, stats
                )

        if stats["skipped"]:
            self.logger.warning("Skipped %d undecodable logs", stats["skipped"])

        return HarvestResult(
            snapshot=ledger.to_snapshot(),
            logs_fetched=stats["fetched"],
            logs_skipped=stats["skipped"],
            pages_fetched=stats["pages"],
        )

    async def run(
        self,
        kinds: EventKind | Sequence[EventKind],
        contract: str,
        start_block: int,
        end_block: int,
        *,
        pool_id: int = DEFAULT_POOL_ID,
    ) -> Path:
        """Harvest and write ``<network>-<contract>-<start>-<end>.json``.

        Returns:
            Path of the written snapshot
        """
        result = await self.harvest(
            kinds, contract, start_block, end_block, pool_id=pool_id
        )
        filename = snapshot_filename(self.config.network, contract, start_block, end_block)
        path = write_snapshot(self.output_dir / filename, result.snapshot)

        self.logger.info(
            "%d logs fetched, %d holders, total %s",
            result.logs_fetched,
            len(result.snapshot),
            result.total,
        )
        self.console.print(
            f"[bold green]✓ Snapshot written[/bold green] {path} - "
            f"{len(result.snapshot):,} holders, total {format_units(result.total)}"
        )
        return path


__all__ = ["Harvester"]
