"""
Vote-state resolver.

Decides, per voter and target epoch, what must happen to the voter's
epoch gauge voter record before votes can be committed:

    epoch record absent, gauge voter absent  -> NOT_PARTICIPATING (skip)
    epoch record absent, gauge voter present -> NEEDS_PREPARATION (prepare)
    epoch record present, allocated == 0     -> NEEDS_RESET (reset)
    epoch record present, allocated != 0     -> ALREADY_VOTED (skip)

The check runs against the chain every time; it is what keeps a re-run
after a partial failure from voting twice in the same epoch.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from gauge_autovoter.chain.addresses import (
    find_epoch_gauge_voter_address,
    find_gauge_voter_address,
)
from gauge_autovoter.chain.instructions import (
    prepare_epoch_gauge_voter,
    reset_epoch_gauge_voter,
)
from gauge_autovoter.chain.layouts import EpochGaugeVoter
from gauge_autovoter.data.eligibility import Voter
from gauge_autovoter.shared.logging import get_logger
from gauge_autovoter.shared.services.solana_service import SolanaService

_logger = get_logger(__name__)


class VoteState(Enum):
    NOT_PARTICIPATING = "not_participating"
    NEEDS_PREPARATION = "needs_preparation"
    NEEDS_RESET = "needs_reset"
    ALREADY_VOTED = "already_voted"


@dataclass(frozen=True)
class VoteStateResolution:
    """Outcome of resolving one voter for one epoch."""

    state: VoteState
    escrow: Pubkey
    gauge_voter: Pubkey
    epoch_gauge_voter: Pubkey
    target_epoch: int
    instructions: Tuple[Instruction, ...] = field(default_factory=tuple)

    @property
    def should_vote(self) -> bool:
        return self.state in (VoteState.NEEDS_PREPARATION, VoteState.NEEDS_RESET)


class VoteStateResolver:
    """Reads a voter's epoch record and picks prepare, reset or skip."""

    def __init__(
        self, solana: SolanaService, gaugemeister: Pubkey, payer: Pubkey
    ):
        self.solana = solana
        self.gaugemeister = gaugemeister
        self.payer = payer

    async def resolve(
        self, voter: Voter, target_epoch: int
    ) -> VoteStateResolution:
        escrow = voter.escrow
        gauge_voter, _ = find_gauge_voter_address(self.gaugemeister, escrow)
        epoch_gauge_voter, _ = find_epoch_gauge_voter_address(
            gauge_voter, target_epoch
        )

        def resolution(
            state: VoteState, instructions: Tuple[Instruction, ...] = ()
        ) -> VoteStateResolution:
            return VoteStateResolution(
                state=state,
                escrow=escrow,
                gauge_voter=gauge_voter,
                epoch_gauge_voter=epoch_gauge_voter,
                target_epoch=target_epoch,
                instructions=instructions,
            )

        epoch_record = await self.solana.get_account(epoch_gauge_voter)

        if epoch_record is None:
            if await self.solana.get_account(gauge_voter) is None:
                _logger.info(f"{voter.owner}: no gauge voter, skipping")
                return resolution(VoteState.NOT_PARTICIPATING)

            return resolution(
                VoteState.NEEDS_PREPARATION,
                (
                    prepare_epoch_gauge_voter(
                        gaugemeister=self.gaugemeister,
                        locker=voter.locker_key,
                        escrow=escrow,
                        gauge_voter=gauge_voter,
                        epoch_gauge_voter=epoch_gauge_voter,
                        payer=self.payer,
                    ),
                ),
            )

        parsed = EpochGaugeVoter.decode(epoch_record)
        if parsed.allocated_power != 0:
            _logger.info(
                f"{voter.owner}: already voted for epoch {target_epoch} "
                f"({parsed.allocated_power} allocated)"
            )
            return resolution(VoteState.ALREADY_VOTED)

        return resolution(
            VoteState.NEEDS_RESET,
            (
                reset_epoch_gauge_voter(
                    gaugemeister=self.gaugemeister,
                    locker=voter.locker_key,
                    escrow=escrow,
                    gauge_voter=gauge_voter,
                    epoch_gauge_voter=epoch_gauge_voter,
                ),
            ),
        )
