"""Command line entry point: snapshot, snapshot-stake, merkle and proof."""

import argparse
import json
import sys
from asyncio import run
from collections.abc import Sequence

from rich.console import Console

from airdrop.helpers.config import load_harvest_config
from airdrop.helpers.errors import AirdropError
from airdrop.helpers.logging import get_logger
from airdrop.merkle.build import MerkleBuilder, amount_for, load_tree, proof_for
from airdrop.snapshot.constants import DEFAULT_POOL_ID, STAKE_KINDS, EventKind
from airdrop.snapshot.harvest import Harvester


logger = get_logger("airdrop")


def _block(value: str) -> int:
    block = int(value, 0)
    if block < 0:
        msg = f"block number must be non-negative: {value}"
        raise argparse.ArgumentTypeError(msg)
    return block


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="airdrop",
        description="Snapshot token holders and stakers, and build merkle distributions.",
    )
    parser.add_argument("--network", help="Ankr blockchain id (default: NETWORK env)")
    parser.add_argument("--api-url", help="Ankr API URI (default: ANKR_API_URI env)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    snapshot = subparsers.add_parser("snapshot", help="Generates snapshot of token holders")
    snapshot.add_argument("--token", required=True, help="Token address")
    snapshot.add_argument("--start-block", required=True, type=_block)
    snapshot.add_argument("--end-block", required=True, type=_block)

    stake = subparsers.add_parser("snapshot-stake", help="Generates snapshot of token stakers")
    stake.add_argument("--contract", required=True, help="Staking contract address")
    stake.add_argument("--start-block", required=True, type=_block)
    stake.add_argument("--end-block", required=True, type=_block)
    stake.add_argument("--pool-id", type=int, default=DEFAULT_POOL_ID)

    merkle = subparsers.add_parser("merkle", help="Builds a merkle tree from a snapshot")
    merkle.add_argument("--snapshot", required=True, help="Path to snapshot json file")
    merkle.add_argument("--output-dir", help="Defaults to the snapshot's directory")
    merkle.add_argument(
        "--claims", action="store_true", help="Also write every proof to claims-<snapshot>"
    )

    proof = subparsers.add_parser("proof", help="Prints the proof for an address")
    proof.add_argument("--tree", required=True, help="Path to merkle tree json file")
    proof.add_argument("--address", required=True)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()

    try:
        if args.command in ("snapshot", "snapshot-stake"):
            config = load_harvest_config(api_url=args.api_url, network=args.network)
            harvester = Harvester(config, console=console)
            if args.command == "snapshot":
                coro = harvester.run(
                    EventKind.TRANSFER, args.token, args.start_block, args.end_block
                )
            else:
                coro = harvester.run(
                    STAKE_KINDS,
                    args.contract,
                    args.start_block,
                    args.end_block,
                    pool_id=args.pool_id,
                )
            run(coro)
        elif args.command == "merkle":
            MerkleBuilder(args.output_dir, console, write_claims=args.claims).run(args.snapshot)
        elif args.command == "proof":
            tree = load_tree(args.tree)
            print(
                json.dumps(
                    {
                        "root": tree.root,
                        "address": args.address,
                        "amount": str(amount_for(tree, args.address)),
                        "proof": proof_for(tree, args.address),
                    },
                    indent=4,
                )
            )
    except (AirdropError, ValueError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
