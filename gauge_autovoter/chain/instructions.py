"""
Instruction encoders for the gauge program.

Anchor instructions are an 8-byte discriminator (sha256("global:<name>")[:8])
followed by Borsh-encoded arguments; account metas follow the order of the
instruction's accounts struct.
"""

import hashlib
import struct

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from gauge_autovoter.shared.constants import ProgramIds


def instruction_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


def _ro(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey, is_signer=False, is_writable=False)


def _rw(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey, is_signer=False, is_writable=True)


def _payer(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey, is_signer=True, is_writable=True)


def prepare_epoch_gauge_voter(
    gaugemeister: Pubkey,
    locker: Pubkey,
    escrow: Pubkey,
    gauge_voter: Pubkey,
    epoch_gauge_voter: Pubkey,
    payer: Pubkey,
) -> Instruction:
    """Create the epoch gauge voter record from current escrow state."""
    return Instruction(
        ProgramIds.GAUGE,
        instruction_discriminator("prepare_epoch_gauge_voter_v2"),
        [
            _ro(gaugemeister),
            _ro(locker),
            _ro(escrow),
            _ro(gauge_voter),
            _rw(epoch_gauge_voter),
            _payer(payer),
            _ro(SYSTEM_PROGRAM_ID),
        ],
    )


def reset_epoch_gauge_voter(
    gaugemeister: Pubkey,
    locker: Pubkey,
    escrow: Pubkey,
    gauge_voter: Pubkey,
    epoch_gauge_voter: Pubkey,
) -> Instruction:
    """Recompute an unallocated epoch gauge voter's power from its escrow."""
    return Instruction(
        ProgramIds.GAUGE,
        instruction_discriminator("reset_epoch_gauge_voter"),
        [
            _ro(gaugemeister),
            _ro(locker),
            _ro(escrow),
            _ro(gauge_voter),
            _rw(epoch_gauge_voter),
        ],
    )


def create_epoch_gauge(
    epoch_gauge: Pubkey,
    bump: int,
    voting_epoch: int,
    gauge: Pubkey,
    payer: Pubkey,
) -> Instruction:
    """Create the per-(gauge, epoch) aggregation record."""
    data = instruction_discriminator("create_epoch_gauge") + struct.pack(
        "<BI", bump, voting_epoch
    )
    return Instruction(
        ProgramIds.GAUGE,
        data,
        [
            _rw(epoch_gauge),
            _ro(gauge),
            _payer(payer),
            _ro(SYSTEM_PROGRAM_ID),
        ],
    )


def gauge_commit_vote(
    gaugemeister: Pubkey,
    gauge: Pubkey,
    gauge_voter: Pubkey,
    gauge_vote: Pubkey,
    epoch_gauge: Pubkey,
    epoch_gauge_voter: Pubkey,
    epoch_gauge_vote: Pubkey,
    payer: Pubkey,
) -> Instruction:
    """Commit a voter's stored weight for one gauge into the epoch totals."""
    return Instruction(
        ProgramIds.GAUGE,
        instruction_discriminator("gauge_commit_vote_v2"),
        [
            _ro(gaugemeister),
            _ro(gauge),
            _ro(gauge_voter),
            _ro(gauge_vote),
            _rw(epoch_gauge),
            _rw(epoch_gauge_voter),
            _rw(epoch_gauge_vote),
            _payer(payer),
            _ro(SYSTEM_PROGRAM_ID),
        ],
    )


INSTRUCTION_NAMES = {
    instruction_discriminator(name): name
    for name in (
        "prepare_epoch_gauge_voter_v2",
        "reset_epoch_gauge_voter",
        "create_epoch_gauge",
        "gauge_commit_vote_v2",
    )
}


def describe(instruction: Instruction) -> str:
    """Human-readable name of a gauge program instruction."""
    if instruction.program_id != ProgramIds.GAUGE:
        return str(instruction.program_id)
    return INSTRUCTION_NAMES.get(bytes(instruction.data[:8]), "unknown")
