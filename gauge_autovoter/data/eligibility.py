"""
Eligibility feed: which escrow holders the bot votes for.

The feed is a JSON list of escrow holders published on GitHub. Each holder's
voting power decays linearly with the time left on the lock:

    power = max(0, amount * (ends_at - now) / MAX_LOCK_SECONDS * MAX_MULTIPLIER)

A holder is eligible when it is self-delegated (owner == vote delegate) and
either holds more than the minimum power or is on the always-eligible list.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx
from solders.pubkey import Pubkey

from gauge_autovoter.chain.addresses import find_escrow_address
from gauge_autovoter.shared.constants import VotingPowerConstants
from gauge_autovoter.shared.exceptions import FeedException
from gauge_autovoter.shared.logging import get_logger
from gauge_autovoter.shared.retry import HTTP_RETRY_CONFIG
from gauge_autovoter.shared.services.http_client import get_async_client

_logger = get_logger(__name__)


def compute_voting_power(
    amount: float, escrow_ends_at: int, now: Optional[float] = None
) -> float:
    """
    Voting power of an escrow at time `now`.

    Example:
        >>> compute_voting_power(100000, 1_000 + 5 * 365 * 86400, now=1_000)
        1000000.0
    """
    if now is None:
        now = time.time()
    remaining = escrow_ends_at - round(now)
    power = (
        amount
        * remaining
        / VotingPowerConstants.MAX_LOCK_SECONDS
        * VotingPowerConstants.MAX_MULTIPLIER
    )
    return max(0.0, power)


@dataclass(frozen=True)
class Voter:
    """An escrow holder as of the feed snapshot."""

    owner: str
    locker: str
    amount: int
    escrow_started_at: int
    escrow_ends_at: int
    vote_delegate: str
    voting_power: float

    @property
    def owner_key(self) -> Pubkey:
        return Pubkey.from_string(self.owner)

    @property
    def locker_key(self) -> Pubkey:
        return Pubkey.from_string(self.locker)

    @property
    def escrow(self) -> Pubkey:
        """Escrow address, derived from (locker, owner)."""
        address, _ = find_escrow_address(self.locker_key, self.owner_key)
        return address

    @property
    def is_self_delegated(self) -> bool:
        return self.owner == self.vote_delegate

    @classmethod
    def from_feed(
        cls, record: Dict[str, Any], now: Optional[float] = None
    ) -> "Voter":
        """Build a voter from one feed entry (`{"data": {...}}`)."""
        data = record["data"]
        amount = int(data["amount"])
        ends_at = int(data["escrowEndsAt"])
        return cls(
            owner=data["owner"],
            locker=data["locker"],
            amount=amount,
            escrow_started_at=int(data.get("escrowStartedAt", 0)),
            escrow_ends_at=ends_at,
            vote_delegate=data["voteDelegate"],
            voting_power=compute_voting_power(amount, ends_at, now),
        )


def filter_eligible(
    voters: Iterable[Voter],
    min_voting_power: float = VotingPowerConstants.MIN_VOTING_POWER,
    always_eligible: Sequence[str] = (),
) -> List[Voter]:
    """Keep self-delegated voters above the threshold or explicitly listed."""
    allow = set(always_eligible)
    return [
        v
        for v in voters
        if (v.voting_power > min_voting_power or v.owner in allow)
        and v.is_self_delegated
    ]


class EligibilityFeed:
    """Point-in-time snapshot of escrow holders from the JSON feed."""

    def __init__(
        self,
        url: str,
        min_voting_power: float = VotingPowerConstants.MIN_VOTING_POWER,
        always_eligible: Sequence[str] = (),
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.min_voting_power = min_voting_power
        self.always_eligible = tuple(always_eligible)
        self._client = client or get_async_client()

    async def _fetch_raw(self) -> List[Dict[str, Any]]:
        try:
            response = await self._client.get(self.url)
        except httpx.RequestError as e:
            raise FeedException(f"Failed to reach eligibility feed: {e}")

        if response.status_code != 200:
            raise FeedException(
                f"Eligibility feed returned {response.status_code}: "
                f"{response.text[:200]}"
            )
        payload = response.json()
        if not isinstance(payload, list):
            raise FeedException("Eligibility feed is not a JSON list")
        return payload

    async def fetch_voters(self, now: Optional[float] = None) -> List[Voter]:
        """All holders in the feed with their computed voting power."""
        payload = await HTTP_RETRY_CONFIG.run(
            self._fetch_raw, operation_name="eligibility_feed"
        )
        if now is None:
            now = time.time()

        voters: List[Voter] = []
        for record in payload:
            try:
                voters.append(Voter.from_feed(record, now))
            except (KeyError, TypeError, ValueError) as e:
                _logger.warning(f"Skipping malformed holder entry: {e}")
        return voters

    async def fetch_eligible(self, now: Optional[float] = None) -> List[Voter]:
        """Eligible voters, in feed order."""
        voters = await self.fetch_voters(now)
        eligible = filter_eligible(
            voters, self.min_voting_power, self.always_eligible
        )
        _logger.info(
            f"Eligible voters: {len(eligible)} of {len(voters)} holders"
        )
        return eligible
