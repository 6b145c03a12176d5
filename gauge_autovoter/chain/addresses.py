"""
Program-derived address helpers for the gauge, quarry and locked-voter programs.

All functions are pure: seeds in, (address, bump) out. No network access.
Voting epochs are encoded as little-endian u32 in seeds.
"""

import struct
from typing import Tuple

from solders.pubkey import Pubkey

from gauge_autovoter.shared.constants import ProgramIds, Seeds

Pda = Tuple[Pubkey, int]


def encode_epoch(voting_epoch: int) -> bytes:
    """Little-endian u32 seed for a voting epoch."""
    if not 0 <= voting_epoch < 2**32:
        raise ValueError(f"Voting epoch out of u32 range: {voting_epoch}")
    return struct.pack("<I", voting_epoch)


def find_escrow_address(locker: Pubkey, owner: Pubkey) -> Pda:
    return Pubkey.find_program_address(
        [Seeds.ESCROW, bytes(locker), bytes(owner)], ProgramIds.LOCKED_VOTER
    )


def find_quarry_address(rewarder: Pubkey, token_mint: Pubkey) -> Pda:
    return Pubkey.find_program_address(
        [Seeds.QUARRY, bytes(rewarder), bytes(token_mint)],
        ProgramIds.QUARRY_MINE,
    )


def find_gauge_address(gaugemeister: Pubkey, quarry: Pubkey) -> Pda:
    return Pubkey.find_program_address(
        [Seeds.GAUGE, bytes(gaugemeister), bytes(quarry)], ProgramIds.GAUGE
    )


def find_gauge_voter_address(gaugemeister: Pubkey, escrow: Pubkey) -> Pda:
    return Pubkey.find_program_address(
        [Seeds.GAUGE_VOTER, bytes(gaugemeister), bytes(escrow)],
        ProgramIds.GAUGE,
    )


def find_gauge_vote_address(gauge_voter: Pubkey, gauge: Pubkey) -> Pda:
    return Pubkey.find_program_address(
        [Seeds.GAUGE_VOTE, bytes(gauge_voter), bytes(gauge)], ProgramIds.GAUGE
    )


def find_epoch_gauge_address(gauge: Pubkey, voting_epoch: int) -> Pda:
    return Pubkey.find_program_address(
        [Seeds.EPOCH_GAUGE, bytes(gauge), encode_epoch(voting_epoch)],
        ProgramIds.GAUGE,
    )


def find_epoch_gauge_voter_address(
    gauge_voter: Pubkey, voting_epoch: int
) -> Pda:
    return Pubkey.find_program_address(
        [Seeds.EPOCH_GAUGE_VOTER, bytes(gauge_voter), encode_epoch(voting_epoch)],
        ProgramIds.GAUGE,
    )


def find_epoch_gauge_vote_address(gauge_vote: Pubkey, voting_epoch: int) -> Pda:
    return Pubkey.find_program_address(
        [Seeds.EPOCH_GAUGE_VOTE, bytes(gauge_vote), encode_epoch(voting_epoch)],
        ProgramIds.GAUGE,
    )
