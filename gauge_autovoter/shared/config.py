"""
Runtime configuration for the gauge auto-voter.

BotConfig is built once at process start (CLI) and passed to every
component that needs an endpoint, an address or a signer. Nothing below
the CLI reads the environment for keys.
"""

import json
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from gauge_autovoter.shared.constants import (
    FeedConstants,
    TransactionConstants,
    VotingPowerConstants,
)
from gauge_autovoter.shared.exceptions import ConfigurationException


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigurationException(
            f"Missing required environment variable: {name}"
        )
    return value


def parse_pubkey(value: str, name: str) -> Pubkey:
    """Parse a base58 address, naming the setting on failure."""
    try:
        return Pubkey.from_string(value.strip())
    except ValueError as e:
        raise ConfigurationException(f"Invalid {name}: {value} ({e})")


def parse_keypair(secret: str, name: str = "BOT_PK") -> Keypair:
    """Parse a keypair stored as a JSON array of 64 bytes."""
    try:
        raw = json.loads(secret)
        return Keypair.from_bytes(bytes(raw))
    except (ValueError, TypeError) as e:
        raise ConfigurationException(f"Invalid {name}: {e}")


@dataclass(frozen=True)
class BotConfig:
    """Everything a voting run needs, resolved up front."""

    rpc_url: str
    payer: Keypair
    gaugemeister: Pubkey
    rewarder: Pubkey
    send_rpc_url: Optional[str] = None

    eligibility_feed_url: str = FeedConstants.ELIGIBILITY_FEED_URL
    gauge_list_url: str = FeedConstants.GAUGE_LIST_URL
    min_voting_power: float = VotingPowerConstants.MIN_VOTING_POWER
    always_eligible_owners: Tuple[str, ...] = FeedConstants.ALWAYS_ELIGIBLE_OWNERS

    concurrency: int = 1
    confirm_timeout: float = TransactionConstants.CONFIRM_TIMEOUT_SECONDS
    compute_unit_limit: int = TransactionConstants.COMPUTE_UNIT_LIMIT
    priority_fee_sol: float = TransactionConstants.PRIORITY_FEE_SOL

    checkpoint_path: str = FeedConstants.CHECKPOINT_PATH
    github_token: Optional[str] = None
    github_repository: Optional[str] = None
    github_branch: str = "main"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BotConfig":
        """
        Build the configuration from environment variables.

        A .env file in the working directory is loaded first when reading
        from the process environment.

        Raises:
            ConfigurationException: if a required variable is missing or
                any value cannot be parsed
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        owners = environ.get("ALWAYS_ELIGIBLE_OWNERS")
        always_eligible = (
            tuple(o.strip() for o in owners.split(",") if o.strip())
            if owners is not None
            else FeedConstants.ALWAYS_ELIGIBLE_OWNERS
        )

        try:
            concurrency = int(environ.get("GAV_CONCURRENCY", "1"))
            confirm_timeout = float(
                environ.get(
                    "GAV_CONFIRM_TIMEOUT",
                    str(TransactionConstants.CONFIRM_TIMEOUT_SECONDS),
                )
            )
            min_voting_power = float(
                environ.get(
                    "MIN_VOTING_POWER",
                    str(VotingPowerConstants.MIN_VOTING_POWER),
                )
            )
        except ValueError as e:
            raise ConfigurationException(f"Invalid numeric setting: {e}")

        if concurrency < 1:
            raise ConfigurationException(
                f"GAV_CONCURRENCY must be >= 1, got {concurrency}"
            )

        return cls(
            rpc_url=_require(environ, "RPC_URL"),
            send_rpc_url=environ.get("STAKED_RPC_URL") or None,
            payer=parse_keypair(_require(environ, "BOT_PK")),
            gaugemeister=parse_pubkey(
                _require(environ, "GAUGEMEISTER_ADDRESS"), "GAUGEMEISTER_ADDRESS"
            ),
            rewarder=parse_pubkey(
                _require(environ, "REWARDER_ADDRESS"), "REWARDER_ADDRESS"
            ),
            eligibility_feed_url=environ.get(
                "ELIGIBILITY_FEED_URL", FeedConstants.ELIGIBILITY_FEED_URL
            ),
            gauge_list_url=environ.get(
                "GAUGE_LIST_URL", FeedConstants.GAUGE_LIST_URL
            ),
            min_voting_power=min_voting_power,
            always_eligible_owners=always_eligible,
            concurrency=concurrency,
            confirm_timeout=confirm_timeout,
            checkpoint_path=environ.get(
                "CHECKPOINT_PATH", FeedConstants.CHECKPOINT_PATH
            ),
            github_token=environ.get("GITHUB_TOKEN") or None,
            github_repository=environ.get("GITHUB_REPOSITORY") or None,
            github_branch=environ.get("GITHUB_BRANCH", "main"),
        )

    def with_overrides(self, **changes) -> "BotConfig":
        """Copy with some fields replaced (CLI flags)."""
        return replace(self, **changes)
