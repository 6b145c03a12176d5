"""Transaction pipeline: estimate, build, sign and submit."""

from .budget import ComputeBudgetEstimator
from .builder import CompiledTransaction, TransactionBuilder
from .submitter import TransactionSubmitter

__all__ = [
    "ComputeBudgetEstimator",
    "CompiledTransaction",
    "TransactionBuilder",
    "TransactionSubmitter",
]
