"""
Compute budget estimator.

Simulates a throw-away transaction to learn how many compute units the
instructions really consume. The simulator sometimes answers 0 for a
transaction that plainly does work; such answers are stale and are retried
after a fixed backoff, up to a bound, after which the worst case is assumed.
"""

import asyncio
from typing import Sequence

from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from gauge_autovoter.shared.constants import TransactionConstants
from gauge_autovoter.shared.logging import get_logger
from gauge_autovoter.shared.services.solana_service import SolanaService

_logger = get_logger(__name__)


def unsigned_transaction(message: MessageV0) -> VersionedTransaction:
    """Transaction with placeholder signatures, good for simulation only."""
    return VersionedTransaction.populate(
        message,
        [Signature.default()] * message.header.num_required_signatures,
    )


class ComputeBudgetEstimator:
    def __init__(
        self,
        solana: SolanaService,
        max_attempts: int = TransactionConstants.SIMULATION_MAX_ATTEMPTS,
        backoff: float = TransactionConstants.SIMULATION_BACKOFF_SECONDS,
        fallback_units: int = TransactionConstants.FALLBACK_COMPUTE_UNITS,
    ):
        self.solana = solana
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.fallback_units = fallback_units

    async def estimate(
        self, instructions: Sequence[Instruction], payer: Pubkey
    ) -> int:
        """
        Compute units the instructions consume, as reported by simulation.

        A nonzero result is accepted even when the simulation reports an
        execution error. If every attempt reports zero, the fallback
        estimate is returned.
        """
        blockhash, _ = await self.solana.get_latest_blockhash()
        message = MessageV0.try_compile(payer, list(instructions), [], blockhash)
        transaction = unsigned_transaction(message)

        for attempt in range(self.max_attempts):
            outcome = await self.solana.simulate(transaction)

            if outcome.units_consumed is None:
                _logger.warning(
                    "Simulation returned no unit count, assuming "
                    f"{self.fallback_units}"
                )
                return self.fallback_units

            if outcome.units_consumed > 0:
                if outcome.err is not None:
                    _logger.warning(
                        f"Simulation reported an error ({outcome.err}), "
                        f"using its {outcome.units_consumed} units anyway"
                    )
                return outcome.units_consumed

            _logger.info(
                f"Simulation returned 0 units, retrying "
                f"({attempt + 1}/{self.max_attempts})"
            )
            _logger.debug(f"Simulation logs: {outcome.logs}")
            if attempt < self.max_attempts - 1:
                await asyncio.sleep(self.backoff)

        _logger.warning(
            f"Simulation kept returning 0 units, assuming {self.fallback_units}"
        )
        return self.fallback_units
