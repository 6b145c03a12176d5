"""
Decoders for the gauge program accounts the bot reads.

Accounts are Anchor-serialized: an 8-byte discriminator
(sha256("account:<Name>")[:8]) followed by the Borsh fields in
declaration order. Only the fields the pipeline needs are exposed, but
each layout checks the full fixed size.
"""

import hashlib
import struct
from dataclasses import dataclass
from typing import ClassVar

from solders.pubkey import Pubkey

from gauge_autovoter.shared.exceptions import AccountDecodeException

DISCRIMINATOR_SIZE = 8


def account_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode()).digest()[:DISCRIMINATOR_SIZE]


def _pubkey(data: bytes, offset: int) -> Pubkey:
    return Pubkey.from_bytes(data[offset : offset + 32])


def _check(data: bytes, name: str, size: int) -> None:
    if len(data) < DISCRIMINATOR_SIZE + size:
        raise AccountDecodeException(
            f"{name} account too small: {len(data)} bytes, "
            f"expected at least {DISCRIMINATOR_SIZE + size}"
        )
    if data[:DISCRIMINATOR_SIZE] != account_discriminator(name):
        raise AccountDecodeException(f"Account is not a {name}")


@dataclass(frozen=True)
class Gaugemeister:
    """Gauge program configuration; tracks the current rewards epoch."""

    NAME: ClassVar[str] = "Gaugemeister"
    # base, bump, rewarder, operator, locker, foreman, epoch_duration_seconds,
    # current_rewards_epoch, next_epoch_starts_at, locker_token_mint, locker_governor
    _FORMAT: ClassVar[str] = "<32sB32s32s32s32sIIQ32s32s"

    base: Pubkey
    rewarder: Pubkey
    locker: Pubkey
    epoch_duration_seconds: int
    current_rewards_epoch: int
    next_epoch_starts_at: int

    @classmethod
    def decode(cls, data: bytes) -> "Gaugemeister":
        _check(data, cls.NAME, struct.calcsize(cls._FORMAT))
        (
            base,
            _bump,
            rewarder,
            _operator,
            locker,
            _foreman,
            epoch_duration_seconds,
            current_rewards_epoch,
            next_epoch_starts_at,
            _mint,
            _governor,
        ) = struct.unpack_from(cls._FORMAT, data, DISCRIMINATOR_SIZE)
        return cls(
            base=Pubkey.from_bytes(base),
            rewarder=Pubkey.from_bytes(rewarder),
            locker=Pubkey.from_bytes(locker),
            epoch_duration_seconds=epoch_duration_seconds,
            current_rewards_epoch=current_rewards_epoch,
            next_epoch_starts_at=next_epoch_starts_at,
        )


@dataclass(frozen=True)
class GaugeVote:
    """Weight a gauge voter assigns to one gauge; persists across epochs."""

    NAME: ClassVar[str] = "GaugeVote"
    _SIZE: ClassVar[int] = 32 + 32 + 4

    gauge_voter: Pubkey
    gauge: Pubkey
    weight: int

    @classmethod
    def decode(cls, data: bytes) -> "GaugeVote":
        _check(data, cls.NAME, cls._SIZE)
        offset = DISCRIMINATOR_SIZE
        (weight,) = struct.unpack_from("<I", data, offset + 64)
        return cls(
            gauge_voter=_pubkey(data, offset),
            gauge=_pubkey(data, offset + 32),
            weight=weight,
        )


@dataclass(frozen=True)
class EpochGaugeVoter:
    """Power a gauge voter has for one epoch, and how much is allocated."""

    NAME: ClassVar[str] = "EpochGaugeVoter"
    _SIZE: ClassVar[int] = 32 + 4 + 8 + 8 + 8

    gauge_voter: Pubkey
    voting_epoch: int
    voting_power: int
    weight_change_seqno: int
    allocated_power: int

    @classmethod
    def decode(cls, data: bytes) -> "EpochGaugeVoter":
        _check(data, cls.NAME, cls._SIZE)
        offset = DISCRIMINATOR_SIZE
        voting_epoch, voting_power, seqno, allocated = struct.unpack_from(
            "<IQQQ", data, offset + 32
        )
        return cls(
            gauge_voter=_pubkey(data, offset),
            voting_epoch=voting_epoch,
            voting_power=voting_power,
            weight_change_seqno=seqno,
            allocated_power=allocated,
        )

