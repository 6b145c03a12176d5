"""
Solana service module for talking to the ledger network.

SolanaService wraps one read connection (accounts, blockhash, simulation,
confirmation) and one broadcast connection, which may point at a staked
RPC endpoint. Both are shared by every voter task of a run; the service
holds no mutable state besides the two clients.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Finalized, Processed
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from gauge_autovoter.shared.constants import TransactionConstants
from gauge_autovoter.shared.logging import get_logger

_logger = get_logger(__name__)


def chunked(items: Sequence, size: int) -> List[Sequence]:
    """Split a sequence into consecutive chunks of at most `size` items."""
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [items[i : i + size] for i in range(0, len(items), size)]


@dataclass
class SimulationOutcome:
    """Compute units and error reported by a dry run."""

    units_consumed: Optional[int]
    err: Optional[object] = None
    logs: List[str] = field(default_factory=list)


class SolanaService:
    """
    A service class for the RPC calls the voting pipeline makes.

    Network errors are never caught here; retry policy belongs to callers.
    """

    def __init__(
        self,
        client: AsyncClient,
        send_client: Optional[AsyncClient] = None,
        chunk_size: int = TransactionConstants.MAX_ACCOUNTS_PER_REQUEST,
    ):
        """
        Initialize the SolanaService.

        Args:
            client: Connection used for reads, simulation and confirmation
            send_client: Connection used for broadcasting (defaults to client)
            chunk_size: Max addresses per getMultipleAccounts call
        """
        self.client = client
        self.send_client = send_client or client
        self.chunk_size = min(
            chunk_size, TransactionConstants.MAX_ACCOUNTS_PER_REQUEST
        )

    @classmethod
    def from_urls(
        cls, rpc_url: str, send_rpc_url: Optional[str] = None
    ) -> "SolanaService":
        """Open connections for a read endpoint and an optional broadcast one."""
        client = AsyncClient(rpc_url)
        send_client = (
            AsyncClient(send_rpc_url)
            if send_rpc_url and send_rpc_url != rpc_url
            else None
        )
        return cls(client, send_client)

    async def close(self) -> None:
        await self.client.close()
        if self.send_client is not self.client:
            await self.send_client.close()

    # ------------------------------------------------------------------
    # Account reads
    # ------------------------------------------------------------------

    async def get_account(self, address: Pubkey) -> Optional[bytes]:
        """Raw account data, or None if the account does not exist."""
        resp = await self.client.get_account_info(address)
        if resp.value is None:
            return None
        return bytes(resp.value.data)

    async def get_multiple_accounts(
        self, addresses: Sequence[Pubkey]
    ) -> List[Optional[bytes]]:
        """
        Raw data for each address, None for missing accounts.

        Requests are split into chunks of at most `chunk_size` addresses,
        sent concurrently, and merged back in input order.
        """
        if not addresses:
            return []

        async def read_chunk(chunk: Sequence[Pubkey]) -> List[Optional[bytes]]:
            resp = await self.client.get_multiple_accounts(list(chunk))
            return [
                bytes(account.data) if account is not None else None
                for account in resp.value
            ]

        chunks = chunked(list(addresses), self.chunk_size)
        results = await asyncio.gather(*(read_chunk(c) for c in chunks))
        return [data for chunk_result in results for data in chunk_result]

    # ------------------------------------------------------------------
    # Blockhash
    # ------------------------------------------------------------------

    async def get_latest_blockhash(
        self, commitment: Commitment = Finalized
    ) -> Tuple[Hash, int]:
        """Latest blockhash and the last block height it is valid for."""
        resp = await self.client.get_latest_blockhash(commitment)
        return resp.value.blockhash, resp.value.last_valid_block_height

    async def get_block_height(self, commitment: Commitment = Processed) -> int:
        resp = await self.client.get_block_height(commitment)
        return resp.value

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def simulate(self, transaction: VersionedTransaction) -> SimulationOutcome:
        """Dry-run a transaction without signature verification."""
        resp = await self.client.simulate_transaction(
            transaction, sig_verify=False
        )
        value = resp.value
        return SimulationOutcome(
            units_consumed=value.units_consumed,
            err=value.err,
            logs=list(value.logs or []),
        )

    async def send_raw(self, payload: bytes) -> Signature:
        """Broadcast a signed transaction through the broadcast connection."""
        resp = await self.send_client.send_raw_transaction(
            payload,
            opts=TxOpts(skip_preflight=False, preflight_commitment=Processed),
        )
        return resp.value

    async def confirm(
        self,
        signature: Signature,
        last_valid_block_height: int,
        commitment: Commitment = Processed,
    ) -> Optional[object]:
        """
        Wait until the signature reaches `commitment`.

        Returns the on-chain execution error, or None if it executed
        cleanly. Raises once the blockhash validity window has passed.
        """
        resp = await self.client.confirm_transaction(
            signature,
            commitment,
            last_valid_block_height=last_valid_block_height,
        )
        statuses = resp.value
        if statuses and statuses[0] is not None:
            return statuses[0].err
        return None
