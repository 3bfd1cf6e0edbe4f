"""
Solana client abstraction for the harness.
"""

import json
from typing import Any

import aiohttp
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed, Finalized
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from access_harness.utils.logger import get_logger

logger = get_logger(__name__)


def _as_signature(signature: str | Signature) -> Signature:
    return Signature.from_string(signature) if isinstance(signature, str) else signature


class LedgerClient:
    """Abstraction for Solana RPC client operations.

    One instance is shared by every operation of a test scenario. It holds no
    per-call state, so overlapping coroutines may use it freely.
    """

    def __init__(self, rpc_endpoint: str, client: AsyncClient | None = None):
        """Initialize ledger client with RPC endpoint.

        Args:
            rpc_endpoint: URL of the Solana RPC endpoint
            client: Pre-built AsyncClient, created lazily when omitted
        """
        self.rpc_endpoint = rpc_endpoint
        self._client = client

    async def __aenter__(self) -> "LedgerClient":
        await self.get_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def get_client(self) -> AsyncClient:
        """Get or create the AsyncClient instance."""
        if self._client is None:
            self._client = AsyncClient(self.rpc_endpoint, commitment=Confirmed)
        return self._client

    async def close(self):
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None

    async def get_latest_blockhash(self) -> Hash:
        client = await self.get_client()
        response = await client.get_latest_blockhash(commitment=Confirmed)
        return response.value.blockhash

    async def send_transaction(self, transaction: Transaction, skip_preflight: bool = False) -> str:
        """Send a signed transaction without waiting for it to land.

        Returns:
            Transaction signature as a base58 string
        """
        client = await self.get_client()
        opts = TxOpts(skip_preflight=skip_preflight, preflight_commitment=Confirmed)
        response = await client.send_transaction(transaction, opts=opts)
        return str(response.value)

    async def confirm_transaction(
        self,
        signature: str | Signature,
        commitment: Commitment = Finalized,
        sleep_seconds: float = 0.5,
    ) -> None:
        """Wait until the signature reaches ``commitment``.

        Raises whatever solana-py raises when the wait fails (unconfirmed,
        expired blockhash, RPC error).
        """
        client = await self.get_client()
        await client.confirm_transaction(
            _as_signature(signature), commitment=commitment, sleep_seconds=sleep_seconds
        )

    async def get_signature_status(
        self, signature: str | Signature
    ) -> TransactionConfirmationStatus | None:
        """Current confirmation level of a signature, None if the node has not seen it."""
        client = await self.get_client()
        response = await client.get_signature_statuses([_as_signature(signature)])
        status = response.value[0] if response.value else None
        if status is None:
            return None
        return status.confirmation_status

    async def request_airdrop(self, pubkey: Pubkey, lamports: int) -> str:
        client = await self.get_client()
        response = await client.request_airdrop(pubkey, lamports)
        return str(response.value)

    async def account_exists(self, pubkey: Pubkey) -> bool:
        client = await self.get_client()
        response = await client.get_account_info(pubkey, commitment=Confirmed)
        return response.value is not None

    async def get_token_account_balance(self, token_account: Pubkey) -> int:
        """Get token balance for an account.

        Args:
            token_account: Token account address

        Returns:
            Token balance in base units
        """
        client = await self.get_client()
        response = await client.get_token_account_balance(token_account, commitment=Confirmed)
        return int(response.value.amount) if response.value else 0

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        client = await self.get_client()
        response = await client.get_minimum_balance_for_rent_exemption(size)
        return response.value

    async def get_health(self) -> str | None:
        """Node health as reported by ``getHealth`` ("ok" when ready)."""
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getHealth",
        }
        result = await self.post_rpc(body)
        if result and "result" in result:
            return result["result"]
        return None

    async def post_rpc(self, body: dict[str, Any]) -> dict[str, Any] | None:
        """
        Send a raw RPC request to the Solana node.

        Args:
            body: JSON-RPC request body.

        Returns:
            Parsed JSON response, or None if the request fails.
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.rpc_endpoint,
                    json=body,
                    timeout=aiohttp.ClientTimeout(10),
                ) as response:
                    response.raise_for_status()
                    return await response.json()
        except aiohttp.ClientError:
            logger.exception("RPC request failed")
            return None
        except json.JSONDecodeError:
            logger.exception("Failed to decode RPC response")
            return None
