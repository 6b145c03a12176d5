from gauge_autovoter.votes.assembler import AssembledVote, InstructionAssembler
from gauge_autovoter.votes.manager import AutoVoter
from gauge_autovoter.votes.resolver import (
    VoteState,
    VoteStateResolution,
    VoteStateResolver,
)

__all__ = [
    "AutoVoter",
    "AssembledVote",
    "InstructionAssembler",
    "VoteState",
    "VoteStateResolution",
    "VoteStateResolver",
]
