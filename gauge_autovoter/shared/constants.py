"""All constants for the project"""

from solders.pubkey import Pubkey


class ProgramIds:
    """On-chain programs the bot talks to"""

    GAUGE = Pubkey.from_string("GaugesLJrnVjNNWLReiw3Q7xQhycSBRgeHGTMDUaX231")
    QUARRY_MINE = Pubkey.from_string(
        "QMNeHCGYnLVDn1icRAfQZpjPLBNkfGbSKRB83G5d8KB"
    )
    LOCKED_VOTER = Pubkey.from_string(
        "LocktDzaV1W2Bm9DeZeiyz4J9zs4fRqNiYqQyracRXw"
    )


class Seeds:
    """PDA seed prefixes"""

    GAUGE = b"Gauge"
    GAUGE_VOTER = b"GaugeVoter"
    GAUGE_VOTE = b"GaugeVote"
    EPOCH_GAUGE = b"EpochGauge"
    EPOCH_GAUGE_VOTER = b"EpochGaugeVoter"
    EPOCH_GAUGE_VOTE = b"EpochGaugeVote"
    QUARRY = b"Quarry"
    ESCROW = b"Escrow"


class TransactionConstants:
    """Fee, compute and submission settings"""

    LAMPORTS_PER_SOL = 1_000_000_000
    MICRO_LAMPORTS_PER_LAMPORT = 1_000_000

    # Fixed ceiling, above what a commit batch consumes
    COMPUTE_UNIT_LIMIT = 400_000
    # Total priority fee paid per transaction, in SOL
    PRIORITY_FEE_SOL = 0.0001

    # Simulator returning 0 units is retried this many times
    SIMULATION_MAX_ATTEMPTS = 900
    SIMULATION_BACKOFF_SECONDS = 5.0
    FALLBACK_COMPUTE_UNITS = 1_400_000

    CONFIRM_TIMEOUT_SECONDS = 120.0

    # getMultipleAccounts ceiling
    MAX_ACCOUNTS_PER_REQUEST = 100


class VotingPowerConstants:
    """Escrow voting power parameters"""

    MAX_LOCK_SECONDS = 5 * 365 * 86400
    MAX_MULTIPLIER = 10
    TOKEN_DECIMALS = 6
    MIN_VOTING_POWER = 50_000 * 10**TOKEN_DECIMALS


class FeedConstants:
    """Default external feeds"""

    ELIGIBILITY_FEED_URL = (
        "https://raw.githubusercontent.com/saberdao/birdeye-data/refs/heads/main/"
        "veTokenHolders/VAULTVXqi93aaq9FsyPKgdgp6Ge1H1HoSvNC4ZbqFDs.json"
    )
    GAUGE_LIST_URL = (
        "https://raw.githubusercontent.com/SolanaVault/"
        "gauge-validator-sync-list-build/refs/heads/main/list.json"
    )
    ALWAYS_ELIGIBLE_OWNERS = ("EXdZNfWheWzNZrg53atXSaWqLNtMssdUzB6kNzHxn9Mf",)

    CHECKPOINT_PATH = "last_parsed_epoch"
    GITHUB_API_BASE = "https://api.github.com"
