"""Data module - eligibility feed, gauge registry and epoch checkpoint."""

from .checkpoint import CheckpointStore, FileCheckpointStore, GitHubCheckpointStore
from .eligibility import EligibilityFeed, Voter
from .gauges import GaugeRegistry

__all__ = [
    "CheckpointStore",
    "EligibilityFeed",
    "FileCheckpointStore",
    "GaugeRegistry",
    "GitHubCheckpointStore",
    "Voter",
]
