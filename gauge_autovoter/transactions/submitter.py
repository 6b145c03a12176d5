"""
Submission pipeline.

Signs a compiled transaction, broadcasts it and races the confirmation wait
against a wall-clock timeout. Failures whose reason is on the transient
allow-list (see shared.retry.is_transient_failure) are retried without
limit; anything else ends the attempt with a failed Result.

Retry policy per transient failure:
- timeout with the blockhash still valid: resend the same signed bytes
- blockhash expired or unknown: rebuild with a fresh blockhash and re-sign

A resend after a timeout can race the first broadcast. If the first copy
already landed, preflight rejects the resend as "already been processed"
and the voter is reported failed even though the vote is on chain; the
resolver reports it as already voted if the epoch is run again.
"""

import asyncio
import base64
from typing import Any, Awaitable, Dict, Sequence, Set, TypeVar

from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from gauge_autovoter.shared.constants import TransactionConstants
from gauge_autovoter.shared.exceptions import (
    MissingSignerException,
    SubmissionTimeout,
    TransactionFailedException,
)
from gauge_autovoter.shared.logging import get_logger
from gauge_autovoter.shared.results import ErrorSeverity, Result
from gauge_autovoter.shared.retry import is_expired_blockhash, is_transient_failure
from gauge_autovoter.shared.services.solana_service import SolanaService
from gauge_autovoter.transactions.builder import (
    CompiledTransaction,
    TransactionBuilder,
)

_logger = get_logger(__name__)

T = TypeVar("T")

# Tasks that lost a race; held so they are not garbage collected mid-flight
_abandoned: Set[asyncio.Task] = set()


async def first_settled(*awaitables: Awaitable[T]) -> T:
    """
    Result (or exception) of whichever awaitable settles first.

    Every awaitable runs as its own task and reports into one future. The
    losers keep running and are never cancelled: whatever side effects they
    have (a broadcast already made, a confirmation still being polled) are
    not undone.
    """
    loop = asyncio.get_running_loop()
    outcome: asyncio.Future = loop.create_future()

    def settle(task: asyncio.Task) -> None:
        _abandoned.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if outcome.done():
            return
        if exc is not None:
            outcome.set_exception(exc)
        else:
            outcome.set_result(task.result())

    for awaitable in awaitables:
        task = asyncio.ensure_future(awaitable)
        _abandoned.add(task)
        task.add_done_callback(settle)

    return await outcome


def select_signers(
    compiled: CompiledTransaction, available: Sequence[Keypair]
) -> list:
    """
    Keypairs to sign with: the required signers, in header order.

    Keys that are available but not required are left out.
    """
    by_pubkey = {kp.pubkey(): kp for kp in available}
    required = compiled.required_signers
    missing = [str(k) for k in required if k not in by_pubkey]
    if missing:
        raise MissingSignerException(
            f"No keypair for required signer(s): {', '.join(missing)}"
        )
    return [by_pubkey[k] for k in required]


def sign(
    compiled: CompiledTransaction, available: Sequence[Keypair]
) -> VersionedTransaction:
    return VersionedTransaction(compiled.message, select_signers(compiled, available))


class TransactionSubmitter:
    def __init__(
        self,
        solana: SolanaService,
        builder: TransactionBuilder,
        signers: Sequence[Keypair],
        timeout: float = TransactionConstants.CONFIRM_TIMEOUT_SECONDS,
    ):
        self.solana = solana
        self.builder = builder
        self.signers = tuple(signers)
        self.timeout = timeout

    async def _timeout(self) -> None:
        await asyncio.sleep(self.timeout)
        raise SubmissionTimeout()

    async def _send_and_confirm(
        self, transaction: VersionedTransaction, compiled: CompiledTransaction
    ) -> Signature:
        payload = bytes(transaction)
        _logger.debug(f"Sending {base64.b64encode(payload).decode()}")

        signature = await self.solana.send_raw(payload)
        _logger.info(f"Broadcast {signature}, waiting for confirmation")

        err = await self.solana.confirm(
            signature, compiled.last_valid_block_height
        )
        if err is not None:
            raise TransactionFailedException(
                f"Transaction {signature} failed on-chain: {err}"
            )
        return signature

    async def _blockhash_still_valid(self, compiled: CompiledTransaction) -> bool:
        height = await self.solana.get_block_height()
        return height <= compiled.last_valid_block_height

    async def submit(self, compiled: CompiledTransaction) -> Result[str]:
        """
        Sign, send and confirm; retry transient failures forever.

        Returns:
            Result[str]: the transaction signature on success, or a failure
                carrying the terminal reason. A failure does not mean the
                transaction had no effect.
        """
        context: Dict[str, Any] = {"payer": str(compiled.payer)}

        try:
            transaction = sign(compiled, self.signers)
        except (MissingSignerException, ValueError) as e:
            return Result.fail_with_message(
                "submitter", str(e), context=context, exception=e
            )

        attempt = 0
        while True:
            attempt += 1
            try:
                signature = await first_settled(
                    self._send_and_confirm(transaction, compiled),
                    self._timeout(),
                )
                _logger.info(f"Confirmed {signature} after {attempt} attempt(s)")
                return Result.ok(str(signature))
            except Exception as e:
                reason = str(e) or type(e).__name__

                if not is_transient_failure(reason):
                    _logger.error(f"Submission failed: {reason}")
                    return Result.fail_with_message(
                        "submitter",
                        reason,
                        severity=ErrorSeverity.ERROR,
                        context={**context, "attempts": attempt},
                        exception=e,
                    )

            _logger.warning(f"Attempt {attempt} not confirmed ({reason}), retrying")
            try:
                if is_expired_blockhash(reason) or not await self._blockhash_still_valid(
                    compiled
                ):
                    compiled = await self.builder.rebuild(compiled)
                    transaction = sign(compiled, self.signers)
                    _logger.info(
                        f"Rebuilt with blockhash {compiled.blockhash}"
                    )
            except MissingSignerException as e:
                return Result.fail_with_message(
                    "submitter", str(e), context=context, exception=e
                )
            except Exception as e:
                _logger.warning(
                    f"Could not refresh blockhash ({e}), resending as is"
                )
