"""
Transaction builder.

Wraps assembled instructions with the two compute budget directives and
compiles a v0 message against a fresh finalized blockhash:

    set_compute_unit_price, set_compute_unit_limit, *instructions

The unit limit is a fixed ceiling and the price spreads a fixed total
priority fee across it, so the extra fee is bounded whatever the
transaction ends up consuming.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey

from gauge_autovoter.shared.constants import TransactionConstants
from gauge_autovoter.shared.logging import get_logger
from gauge_autovoter.shared.services.solana_service import SolanaService

_logger = get_logger(__name__)


def compute_unit_price(priority_fee_sol: float, unit_limit: int) -> int:
    """Micro-lamports per unit so that `unit_limit` units cost the fee."""
    fee_lamports = round(priority_fee_sol * TransactionConstants.LAMPORTS_PER_SOL)
    fee_micro_lamports = fee_lamports * TransactionConstants.MICRO_LAMPORTS_PER_LAMPORT
    return -(-fee_micro_lamports // unit_limit)


@dataclass(frozen=True)
class CompiledTransaction:
    """A compiled, unsigned transaction and how it was built."""

    message: MessageV0
    instructions: Tuple[Instruction, ...]
    payer: Pubkey
    blockhash: Hash
    last_valid_block_height: int
    compute_unit_limit: int
    compute_unit_price: int
    estimated_units: int

    @property
    def required_signers(self) -> Tuple[Pubkey, ...]:
        """Static account keys that must sign, from the message header."""
        count = self.message.header.num_required_signatures
        return tuple(self.message.account_keys[:count])


class TransactionBuilder:
    def __init__(
        self,
        solana: SolanaService,
        compute_unit_limit: int = TransactionConstants.COMPUTE_UNIT_LIMIT,
        priority_fee_sol: float = TransactionConstants.PRIORITY_FEE_SOL,
    ):
        self.solana = solana
        self.compute_unit_limit = compute_unit_limit
        self.priority_fee_sol = priority_fee_sol
        self.compute_unit_price = compute_unit_price(
            priority_fee_sol, compute_unit_limit
        )

    def budget_instructions(self) -> Tuple[Instruction, ...]:
        return (
            set_compute_unit_price(self.compute_unit_price),
            set_compute_unit_limit(self.compute_unit_limit),
        )

    async def build(
        self,
        instructions: Sequence[Instruction],
        payer: Pubkey,
        estimated_units: int,
    ) -> CompiledTransaction:
        if estimated_units > self.compute_unit_limit:
            _logger.warning(
                f"Estimated {estimated_units} units exceeds the "
                f"{self.compute_unit_limit} unit limit"
            )

        blockhash, last_valid = await self.solana.get_latest_blockhash()
        body = tuple(instructions)
        message = MessageV0.try_compile(
            payer, list(self.budget_instructions() + body), [], blockhash
        )
        return CompiledTransaction(
            message=message,
            instructions=body,
            payer=payer,
            blockhash=blockhash,
            last_valid_block_height=last_valid,
            compute_unit_limit=self.compute_unit_limit,
            compute_unit_price=self.compute_unit_price,
            estimated_units=estimated_units,
        )

    async def rebuild(self, compiled: CompiledTransaction) -> CompiledTransaction:
        """Same instructions and payer, fresh blockhash."""
        return await self.build(
            compiled.instructions, compiled.payer, compiled.estimated_units
        )
