"""
Instruction assembler.

Turns a resolved voter into the ordered instruction list for one
transaction:

    [prepare | reset]
    for each gauge with a nonzero stored weight, in gauge-set order:
        [create_epoch_gauge]   only if the epoch gauge does not exist yet
        gauge_commit_vote_v2

Each step yields a tuple and the final list is their concatenation, so the
order is a pure function of the resolution and the accounts read.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from gauge_autovoter.chain.addresses import (
    find_epoch_gauge_address,
    find_epoch_gauge_vote_address,
    find_gauge_vote_address,
)
from gauge_autovoter.chain.instructions import (
    create_epoch_gauge,
    describe,
    gauge_commit_vote,
)
from gauge_autovoter.chain.layouts import GaugeVote
from gauge_autovoter.shared.exceptions import AccountDecodeException
from gauge_autovoter.shared.logging import get_logger
from gauge_autovoter.shared.services.solana_service import SolanaService
from gauge_autovoter.votes.resolver import VoteStateResolution

_logger = get_logger(__name__)


@dataclass(frozen=True)
class GaugeCommit:
    """Addresses involved in committing one gauge."""

    gauge: Pubkey
    gauge_vote: Pubkey
    epoch_gauge: Pubkey
    epoch_gauge_bump: int
    epoch_gauge_vote: Pubkey
    weight: int


@dataclass(frozen=True)
class AssembledVote:
    """Ordered instructions for one voter plus what they touch."""

    instructions: Tuple[Instruction, ...]
    commits: Tuple[GaugeCommit, ...] = field(default_factory=tuple)
    created_epoch_gauges: Tuple[Pubkey, ...] = field(default_factory=tuple)

    @property
    def committed_gauges(self) -> Tuple[Pubkey, ...]:
        return tuple(c.gauge for c in self.commits)


class InstructionAssembler:
    """Builds the commit-vote instruction list for a resolved voter."""

    def __init__(
        self, solana: SolanaService, gaugemeister: Pubkey, payer: Pubkey
    ):
        self.solana = solana
        self.gaugemeister = gaugemeister
        self.payer = payer

    async def _weighted_gauges(
        self, gauge_voter: Pubkey, gauges: Sequence[Pubkey]
    ) -> List[Tuple[Pubkey, Pubkey, int]]:
        """(gauge, gauge_vote, weight) for gauges with a nonzero stored weight."""
        gauge_votes = [find_gauge_vote_address(gauge_voter, g)[0] for g in gauges]
        accounts = await self.solana.get_multiple_accounts(gauge_votes)

        weighted = []
        for gauge, gauge_vote, data in zip(gauges, gauge_votes, accounts):
            if data is None:
                continue
            try:
                vote = GaugeVote.decode(data)
            except AccountDecodeException as e:
                _logger.warning(f"Ignoring gauge vote {gauge_vote}: {e}")
                continue
            if vote.gauge != gauge or vote.weight == 0:
                continue
            weighted.append((gauge, gauge_vote, vote.weight))
        return weighted

    def _commit_instructions(
        self,
        resolution: VoteStateResolution,
        commit: GaugeCommit,
        epoch_gauge_exists: bool,
    ) -> Tuple[Instruction, ...]:
        create: Tuple[Instruction, ...] = ()
        if not epoch_gauge_exists:
            create = (
                create_epoch_gauge(
                    epoch_gauge=commit.epoch_gauge,
                    bump=commit.epoch_gauge_bump,
                    voting_epoch=resolution.target_epoch,
                    gauge=commit.gauge,
                    payer=self.payer,
                ),
            )
        return create + (
            gauge_commit_vote(
                gaugemeister=self.gaugemeister,
                gauge=commit.gauge,
                gauge_voter=resolution.gauge_voter,
                gauge_vote=commit.gauge_vote,
                epoch_gauge=commit.epoch_gauge,
                epoch_gauge_voter=resolution.epoch_gauge_voter,
                epoch_gauge_vote=commit.epoch_gauge_vote,
                payer=self.payer,
            ),
        )

    async def assemble(
        self, resolution: VoteStateResolution, gauges: Sequence[Pubkey]
    ) -> Optional[AssembledVote]:
        """
        Instructions realizing the voter's stored weights for the target epoch.

        Returns None when the resolver decided to skip; no gauge account is
        read in that case.
        """
        if not resolution.should_vote:
            return None

        epoch = resolution.target_epoch
        weighted = await self._weighted_gauges(resolution.gauge_voter, gauges)

        commits = []
        for gauge, gauge_vote, weight in weighted:
            epoch_gauge, bump = find_epoch_gauge_address(gauge, epoch)
            epoch_gauge_vote, _ = find_epoch_gauge_vote_address(gauge_vote, epoch)
            commits.append(
                GaugeCommit(
                    gauge=gauge,
                    gauge_vote=gauge_vote,
                    epoch_gauge=epoch_gauge,
                    epoch_gauge_bump=bump,
                    epoch_gauge_vote=epoch_gauge_vote,
                    weight=weight,
                )
            )

        existing = await self.solana.get_multiple_accounts(
            [c.epoch_gauge for c in commits]
        )

        instructions: Tuple[Instruction, ...] = tuple(resolution.instructions)
        created: Tuple[Pubkey, ...] = ()
        for commit, data in zip(commits, existing):
            exists = data is not None
            instructions = instructions + self._commit_instructions(
                resolution, commit, exists
            )
            if not exists:
                created = created + (commit.epoch_gauge,)

        _logger.debug(
            f"Assembled {len(instructions)} instructions: "
            f"{len(commits)} commits, {len(created)} epoch gauges to create "
            f"({', '.join(describe(ix) for ix in instructions)})"
        )
        return AssembledVote(
            instructions=instructions,
            commits=tuple(commits),
            created_epoch_gauges=created,
        )
