"""
Pytest configuration and shared fixtures.

FakeSolana stands in for SolanaService: a dict ledger of raw account data
plus scripted simulation, broadcast and confirmation answers. The byte
builders below produce account data in the gauge program's layout.
"""

import asyncio
import struct
from typing import Callable, Dict, List, Optional

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from gauge_autovoter.chain.addresses import find_gauge_voter_address
from gauge_autovoter.chain.layouts import account_discriminator
from gauge_autovoter.data.eligibility import Voter
from gauge_autovoter.shared.config import BotConfig
from gauge_autovoter.shared.services.solana_service import SimulationOutcome


# ----------------------------------------------------------------------
# Account data builders
# ----------------------------------------------------------------------


def gaugemeister_data(current_epoch: int, locker: Optional[Pubkey] = None) -> bytes:
    locker = locker or Pubkey.new_unique()
    body = struct.pack(
        "<32sB32s32s32s32sIIQ32s32s",
        bytes(Pubkey.new_unique()),
        255,
        bytes(Pubkey.new_unique()),
        bytes(Pubkey.new_unique()),
        bytes(locker),
        bytes(Pubkey.new_unique()),
        604800,
        current_epoch,
        1_700_000_000,
        bytes(Pubkey.new_unique()),
        bytes(Pubkey.new_unique()),
    )
    return account_discriminator("Gaugemeister") + body


def gauge_vote_data(gauge_voter: Pubkey, gauge: Pubkey, weight: int) -> bytes:
    return (
        account_discriminator("GaugeVote")
        + bytes(gauge_voter)
        + bytes(gauge)
        + struct.pack("<I", weight)
    )


def epoch_gauge_voter_data(
    gauge_voter: Pubkey,
    voting_epoch: int,
    voting_power: int = 1_000,
    allocated_power: int = 0,
    seqno: int = 0,
) -> bytes:
    return (
        account_discriminator("EpochGaugeVoter")
        + bytes(gauge_voter)
        + struct.pack("<IQQQ", voting_epoch, voting_power, seqno, allocated_power)
    )


def epoch_gauge_data(gauge: Pubkey, voting_epoch: int, total_power: int = 0) -> bytes:
    return (
        account_discriminator("EpochGauge")
        + bytes(gauge)
        + struct.pack("<IQ", voting_epoch, total_power)
    )


# Any non-empty data marks an account as existing for the resolver
GAUGE_VOTER_PLACEHOLDER = account_discriminator("GaugeVoter") + bytes(80)


# ----------------------------------------------------------------------
# Fake ledger connection
# ----------------------------------------------------------------------


class FakeSolana:
    """In-memory SolanaService double."""

    def __init__(self, accounts: Optional[Dict[Pubkey, bytes]] = None):
        self.accounts: Dict[Pubkey, bytes] = dict(accounts or {})
        self.reads: List[Pubkey] = []
        self.failing: Dict[Pubkey, Exception] = {}

        self.blockhashes: List[Hash] = []
        self.last_valid_block_height = 1_000
        self.block_height = 900

        self.simulation_results: List[SimulationOutcome] = [
            SimulationOutcome(units_consumed=50_000)
        ]
        self.simulations = 0

        # Each entry is an exception to raise or None to succeed
        self.send_script: List[Optional[Exception]] = []
        self.sent: List[bytes] = []
        self.on_send: Optional[Callable[[bytes], None]] = None

        # Each entry is a coroutine function, an exception, or an error value
        self.confirm_script: List[object] = []

    def _read(self, address: Pubkey) -> Optional[bytes]:
        self.reads.append(address)
        if address in self.failing:
            raise self.failing[address]
        return self.accounts.get(address)

    async def get_account(self, address: Pubkey) -> Optional[bytes]:
        return self._read(address)

    async def get_multiple_accounts(self, addresses) -> List[Optional[bytes]]:
        return [self._read(a) for a in addresses]

    async def get_latest_blockhash(self, commitment=None):
        blockhash = Hash.new_unique()
        self.blockhashes.append(blockhash)
        return blockhash, self.last_valid_block_height

    async def get_block_height(self, commitment=None) -> int:
        return self.block_height

    async def simulate(self, transaction) -> SimulationOutcome:
        index = min(self.simulations, len(self.simulation_results) - 1)
        self.simulations += 1
        return self.simulation_results[index]

    async def send_raw(self, payload: bytes) -> Signature:
        step = self.send_script.pop(0) if self.send_script else None
        self.sent.append(payload)
        if step is not None:
            raise step
        if self.on_send is not None:
            self.on_send(payload)
        return Signature.new_unique()

    async def confirm(self, signature, last_valid_block_height, commitment=None):
        step = self.confirm_script.pop(0) if self.confirm_script else None
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return await step()
        return step

    async def close(self) -> None:
        pass


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------


@pytest.fixture
def fake_solana() -> FakeSolana:
    return FakeSolana()


@pytest.fixture
def payer() -> Keypair:
    return Keypair()


@pytest.fixture
def gaugemeister() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def rewarder() -> Pubkey:
    return Pubkey.new_unique()


def make_voter(
    voting_power: float = 100_000e6,
    delegate: Optional[str] = None,
    owner: Optional[str] = None,
) -> Voter:
    owner = owner or str(Pubkey.new_unique())
    return Voter(
        owner=owner,
        locker=str(Pubkey.new_unique()),
        amount=int(voting_power / 10),
        escrow_started_at=1_600_000_000,
        escrow_ends_at=1_900_000_000,
        vote_delegate=delegate or owner,
        voting_power=voting_power,
    )


@pytest.fixture
def voter() -> Voter:
    return make_voter()


def gauge_voter_of(gaugemeister: Pubkey, voter: Voter) -> Pubkey:
    return find_gauge_voter_address(gaugemeister, voter.escrow)[0]


@pytest.fixture
def bot_config(payer, gaugemeister, rewarder, tmp_path) -> BotConfig:
    return BotConfig(
        rpc_url="http://localhost:8899",
        payer=payer,
        gaugemeister=gaugemeister,
        rewarder=rewarder,
        confirm_timeout=5.0,
        checkpoint_path=str(tmp_path / "last_parsed_epoch"),
    )


@pytest.fixture
def no_sleep(monkeypatch):
    """Make asyncio.sleep return immediately; records requested delays."""
    delays: List[float] = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow-running")
