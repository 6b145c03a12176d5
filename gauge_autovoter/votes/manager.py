"""
Run orchestration: one pass of the bot for the next voting epoch.

    gaugemeister -> current epoch -> checkpoint check
    eligible voters + gauge set
    per voter (bounded concurrency): resolve -> assemble -> estimate -> build -> submit
    checkpoint write

A voter's failure is recorded and the run moves on; only an unreadable
gaugemeister or an already-processed epoch stops the run early, and both
are reported as no-ops rather than errors.
"""

import asyncio
from typing import List, Optional, Sequence

from solders.pubkey import Pubkey

from gauge_autovoter.chain.layouts import Gaugemeister
from gauge_autovoter.data.checkpoint import (
    CheckpointStore,
    checkpoint_store_from_config,
)
from gauge_autovoter.data.eligibility import EligibilityFeed, Voter
from gauge_autovoter.data.gauges import GaugeRegistry
from gauge_autovoter.shared.config import BotConfig
from gauge_autovoter.shared.exceptions import AccountDecodeException
from gauge_autovoter.shared.logging import get_logger
from gauge_autovoter.shared.results import (
    RunSummary,
    VoteOutcome,
    VoterReport,
)
from gauge_autovoter.shared.retry import RPC_RETRY_CONFIG
from gauge_autovoter.shared.services.solana_service import SolanaService
from gauge_autovoter.transactions.budget import ComputeBudgetEstimator
from gauge_autovoter.transactions.builder import TransactionBuilder
from gauge_autovoter.transactions.submitter import TransactionSubmitter
from gauge_autovoter.votes.assembler import InstructionAssembler
from gauge_autovoter.votes.resolver import VoteStateResolver

_logger = get_logger(__name__)


async def read_current_epoch(
    solana: SolanaService, gaugemeister: Pubkey
) -> Optional[int]:
    """Current rewards epoch, or None if the gaugemeister is unreadable."""
    data = await RPC_RETRY_CONFIG.run(
        solana.get_account, gaugemeister, operation_name="gaugemeister"
    )
    if data is None:
        return None
    try:
        return Gaugemeister.decode(data).current_rewards_epoch
    except AccountDecodeException as e:
        _logger.error(f"Gaugemeister {gaugemeister} could not be decoded: {e}")
        return None


class AutoVoter:
    """Commits stored gauge votes for every eligible voter, once per epoch."""

    def __init__(
        self,
        config: BotConfig,
        solana: SolanaService,
        eligibility: EligibilityFeed,
        gauges: GaugeRegistry,
        checkpoint: CheckpointStore,
        estimator: Optional[ComputeBudgetEstimator] = None,
        dry_run: bool = False,
    ):
        self.config = config
        self.solana = solana
        self.eligibility = eligibility
        self.gauges = gauges
        self.checkpoint = checkpoint
        self.dry_run = dry_run

        payer = config.payer.pubkey()
        self.payer = payer
        self.resolver = VoteStateResolver(solana, config.gaugemeister, payer)
        self.assembler = InstructionAssembler(solana, config.gaugemeister, payer)
        self.estimator = estimator or ComputeBudgetEstimator(solana)
        self.builder = TransactionBuilder(
            solana,
            compute_unit_limit=config.compute_unit_limit,
            priority_fee_sol=config.priority_fee_sol,
        )
        self.submitter = TransactionSubmitter(
            solana, self.builder, [config.payer], timeout=config.confirm_timeout
        )

    @classmethod
    def from_config(cls, config: BotConfig, dry_run: bool = False) -> "AutoVoter":
        """Wire the default collaborators for a configuration."""
        return cls(
            config=config,
            solana=SolanaService.from_urls(config.rpc_url, config.send_rpc_url),
            eligibility=EligibilityFeed(
                config.eligibility_feed_url,
                min_voting_power=config.min_voting_power,
                always_eligible=config.always_eligible_owners,
            ),
            gauges=GaugeRegistry(
                config.gauge_list_url, config.gaugemeister, config.rewarder
            ),
            checkpoint=checkpoint_store_from_config(config),
            dry_run=dry_run,
        )

    async def current_epoch(self) -> Optional[int]:
        return await read_current_epoch(self.solana, self.config.gaugemeister)

    async def process_voter(
        self, voter: Voter, gauges: Sequence[Pubkey], target_epoch: int
    ) -> VoterReport:
        """Full path for one voter. Never raises; failures become reports."""
        try:
            resolution = await self.resolver.resolve(voter, target_epoch)
            assembled = await self.assembler.assemble(resolution, gauges)
            if assembled is None:
                return VoterReport(
                    owner=voter.owner,
                    outcome=VoteOutcome.SKIPPED,
                    reason=resolution.state.value,
                )

            instructions = assembled.instructions
            units = await self.estimator.estimate(instructions, self.payer)
            compiled = await self.builder.build(instructions, self.payer, units)

            if self.dry_run:
                return VoterReport(
                    owner=voter.owner,
                    outcome=VoteOutcome.DRY_RUN,
                    reason=resolution.state.value,
                    instruction_count=len(instructions),
                    compute_units=units,
                )

            result = await self.submitter.submit(compiled)
            if result.success:
                return VoterReport(
                    owner=voter.owner,
                    outcome=VoteOutcome.SUBMITTED,
                    reason=resolution.state.value,
                    signature=result.data,
                    instruction_count=len(instructions),
                    compute_units=units,
                )
            return VoterReport(
                owner=voter.owner,
                outcome=VoteOutcome.FAILED,
                reason="; ".join(result.get_error_messages()),
                instruction_count=len(instructions),
                compute_units=units,
            )
        except Exception as e:
            _logger.error(f"{voter.owner}: {e}")
            return VoterReport(
                owner=voter.owner,
                outcome=VoteOutcome.FAILED,
                reason=str(e) or type(e).__name__,
            )

    async def process_voters(
        self, voters: List[Voter], gauges: Sequence[Pubkey], target_epoch: int
    ) -> List[VoterReport]:
        """Process voters with at most `config.concurrency` in flight."""
        semaphore = asyncio.Semaphore(self.config.concurrency)
        total = len(voters)

        async def run_one(index: int, voter: Voter) -> VoterReport:
            async with semaphore:
                _logger.info(f"Processing voter {voter.owner}")
                report = await self.process_voter(voter, gauges, target_epoch)
                _logger.info(
                    f"Processed {index + 1} of {total} voters: "
                    f"{report.outcome.value} {report.signature or report.reason}"
                )
                return report

        return list(
            await asyncio.gather(*(run_one(i, v) for i, v in enumerate(voters)))
        )

    async def run(self) -> RunSummary:
        summary = RunSummary()

        current = await self.current_epoch()
        if current is None:
            _logger.info("Gaugemeister account not found, nothing to do")
            summary.reason = "gaugemeister unreadable"
            return summary

        last = await self.checkpoint.read_last_epoch()
        summary.epoch = current
        summary.target_epoch = current + 1
        _logger.info(f"Current epoch: {current}, last parsed epoch: {last}")
        if current <= last:
            _logger.info("Epoch already processed")
            summary.reason = "epoch already processed"
            return summary

        voters = await self.eligibility.fetch_eligible()
        gauges = await self.gauges.fetch_gauge_keys()
        summary.ran = True
        summary.voters_total = len(voters)
        summary.gauges_total = len(gauges)

        for report in await self.process_voters(voters, gauges, current + 1):
            summary.add_report(report)

        if self.dry_run:
            _logger.info("Dry run, checkpoint left untouched")
        else:
            await self.checkpoint.write_last_epoch(current)
            summary.checkpoint_written = True

        _logger.info(
            f"Epoch {current + 1}: {summary.submitted} submitted, "
            f"{summary.skipped} skipped, {summary.failed} failed"
        )
        return summary
