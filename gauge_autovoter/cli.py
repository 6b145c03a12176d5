#!/usr/bin/env python3
"""
Unified CLI for the gauge auto-voter.

Examples:
  - Vote for every eligible holder at the next epoch
    gauge-autovoter run
    gauge-autovoter run --concurrency 4 --json

  - Build and simulate everything, send nothing
    gauge-autovoter run --dry-run

  - Inspect inputs
    gauge-autovoter voters
    gauge-autovoter status --owner EXdZ... --locker 8erad...

Configuration comes from the environment (and .env): RPC_URL, BOT_PK,
GAUGEMEISTER_ADDRESS, REWARDER_ADDRESS are required.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from gauge_autovoter.data.eligibility import EligibilityFeed, Voter
from gauge_autovoter.shared.config import BotConfig, parse_pubkey
from gauge_autovoter.shared.exceptions import ConfigurationException
from gauge_autovoter.shared.logging import set_level
from gauge_autovoter.shared.services.http_client import aclose_async_client
from gauge_autovoter.shared.services.solana_service import SolanaService
from gauge_autovoter.utils.formatters import (
    console,
    create_run_table,
    format_address,
    format_power,
    format_timestamp,
    generate_timestamped_filename,
    save_json_output,
)
from gauge_autovoter.votes.manager import AutoVoter, read_current_epoch
from gauge_autovoter.votes.resolver import VoteStateResolver


def _load_config(args: argparse.Namespace) -> BotConfig:
    config = BotConfig.from_env()
    concurrency = getattr(args, "concurrency", None)
    if concurrency is not None:
        if concurrency < 1:
            raise ValueError("--concurrency must be at least 1")
        config = config.with_overrides(concurrency=concurrency)
    return config


def cmd_run(args: argparse.Namespace) -> int:
    async def run() -> int:
        config = _load_config(args)
        voter = AutoVoter.from_config(config, dry_run=args.dry_run)
        try:
            summary = await voter.run()
        finally:
            await voter.solana.close()
            await aclose_async_client()

        if args.json:
            filename = args.output or generate_timestamped_filename("vote_run")
            save_json_output(summary.to_dict(), filename)

        if not summary.ran:
            console.print(f"[yellow]Nothing to do:[/yellow] {summary.reason}")
            return 0

        console.print(
            f"[bold]Epoch {summary.target_epoch}[/bold] | "
            f"{summary.voters_total} voters | {summary.gauges_total} gauges"
        )
        console.print(create_run_table(summary))
        console.print(
            f"Submitted {summary.submitted}, skipped {summary.skipped}, "
            f"failed {summary.failed}"
        )
        return 1 if summary.has_errors() else 0

    return asyncio.run(run())


def cmd_voters(args: argparse.Namespace) -> int:
    async def run() -> List[Voter]:
        config = _load_config(args)
        feed = EligibilityFeed(
            config.eligibility_feed_url,
            min_voting_power=config.min_voting_power,
            always_eligible=config.always_eligible_owners,
        )
        try:
            return await feed.fetch_eligible()
        finally:
            await aclose_async_client()

    voters = asyncio.run(run())

    if args.json:
        filename = args.output or generate_timestamped_filename("voters")
        save_json_output(
            {
                "voters": [
                    {
                        "owner": v.owner,
                        "escrow": str(v.escrow),
                        "voting_power": v.voting_power,
                        "escrow_ends_at": v.escrow_ends_at,
                    }
                    for v in voters
                ]
            },
            filename,
        )
        return 0

    console.print(f"Eligible voters: {len(voters)}")
    for v in sorted(voters, key=lambda v: v.voting_power, reverse=True):
        console.print(
            f"  {format_address(v.owner)} | power {format_power(v.voting_power)} "
            f"| unlocks {format_timestamp(v.escrow_ends_at)}"
        )
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    async def run() -> int:
        config = _load_config(args)
        owner = parse_pubkey(args.owner, "owner")
        locker = parse_pubkey(args.locker, "locker")
        voter = Voter(
            owner=str(owner),
            locker=str(locker),
            amount=0,
            escrow_started_at=0,
            escrow_ends_at=0,
            vote_delegate=str(owner),
            voting_power=0.0,
        )

        solana = SolanaService.from_urls(config.rpc_url)
        try:
            current = await read_current_epoch(solana, config.gaugemeister)
            if current is None:
                console.print("[red]Gaugemeister account not found[/red]")
                return 1
            resolver = VoteStateResolver(
                solana, config.gaugemeister, config.payer.pubkey()
            )
            resolution = await resolver.resolve(voter, current + 1)
        finally:
            await solana.close()

        console.print(f"[bold]Voter {format_address(voter.owner)}[/bold]")
        console.print(f"Escrow: {resolution.escrow}")
        console.print(f"Gauge voter: {resolution.gauge_voter}")
        console.print(
            f"Epoch {resolution.target_epoch} record: {resolution.epoch_gauge_voter}"
        )
        console.print(f"State: [cyan]{resolution.state.value}[/cyan]")
        return 0

    return asyncio.run(run())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gauge-autovoter",
        description="Commit stored gauge votes for escrow holders",
    )
    parser.add_argument(
        "--log-level", type=str, help="Override GAV_LOG_LEVEL (DEBUG, INFO...)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # run
    p_run = sub.add_parser("run", help="Vote for the next epoch")
    p_run.add_argument(
        "--concurrency", type=int, help="Voters processed in parallel"
    )
    p_run.add_argument(
        "--dry-run",
        action="store_true",
        help="Build and simulate transactions without sending them",
    )
    p_run.add_argument("--json", action="store_true", help="Output JSON")
    p_run.add_argument("--output", type=str, help="Output filename")
    p_run.set_defaults(func=cmd_run)

    # voters
    p_voters = sub.add_parser("voters", help="List eligible voters")
    p_voters.add_argument("--json", action="store_true", help="Output JSON")
    p_voters.add_argument("--output", type=str, help="Output filename")
    p_voters.set_defaults(func=cmd_voters)

    # status
    p_status = sub.add_parser(
        "status", help="Show a voter's state for the next epoch"
    )
    p_status.add_argument("--owner", type=str, required=True)
    p_status.add_argument("--locker", type=str, required=True)
    p_status.set_defaults(func=cmd_status)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level:
        set_level(args.log_level)
    try:
        code = args.func(args)
    except ConfigurationException as e:
        console.print(f"[red]Configuration error:[/red] {e.message}")
        sys.exit(2)
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise
    sys.exit(code)


if __name__ == "__main__":
    main()
