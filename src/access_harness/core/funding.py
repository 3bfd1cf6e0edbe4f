"""
Airdrop funding for test keypairs.

Unlike the transaction submitter, airdrop funding keeps retrying until the
validator answers: on a freshly started local validator the first requests
routinely fail. ``max_attempts`` bounds the loop when a caller needs that.
"""

import asyncio
import time
from typing import Optional

from solana.constants import LAMPORTS_PER_SOL
from solana.exceptions import SolanaRpcException
from solana.rpc.commitment import Finalized
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from access_harness.core.client import LedgerClient
from access_harness.errors import FundingError
from access_harness.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_AIRDROP_LAMPORTS = 10 * LAMPORTS_PER_SOL
RETRY_DELAY = 1.0

_AIRDROP_ERRORS = (
    RPCException,
    SolanaRpcException,
    UnconfirmedTxError,
    TransactionExpiredBlockheightExceededError,
)


async def wait_for_validator(ledger: LedgerClient, timeout: float = 60.0, sleep_time: float = 0.5) -> None:
    """Block until the node reports healthy.

    Raises:
        FundingError: If the node is not healthy within ``timeout`` seconds
    """
    deadline = time.monotonic() + timeout
    while True:
        health = await ledger.get_health()
        if health == "ok":
            logger.info(f"[AIRDROP] Validator ready at {ledger.rpc_endpoint}")
            return
        if time.monotonic() >= deadline:
            raise FundingError(f"Validator at {ledger.rpc_endpoint} not healthy after {timeout}s")
        await asyncio.sleep(sleep_time)


async def airdrop_payer(
    ledger: LedgerClient,
    key: Pubkey,
    lamports: int = DEFAULT_AIRDROP_LAMPORTS,
    max_attempts: Optional[int] = None,
    retry_delay: float = RETRY_DELAY,
) -> str:
    """Fund ``key`` and wait for the airdrop to finalize.

    Args:
        ledger: Ledger connection
        key: Account to fund
        lamports: Amount to request
        max_attempts: Give up after this many failures, None retries forever
        retry_delay: Seconds between attempts

    Returns:
        Airdrop signature

    Raises:
        FundingError: If ``max_attempts`` is reached
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            signature = await ledger.request_airdrop(key, lamports)
            logger.info(f"[AIRDROP] Airdrop signature {signature}")
            await ledger.confirm_transaction(signature, commitment=Finalized)
            return signature
        except _AIRDROP_ERRORS as e:
            logger.warning(f"[AIRDROP] Error airdropping to {key} (attempt {attempt}): {e}")
            if max_attempts is not None and attempt >= max_attempts:
                raise FundingError(f"Airdrop to {key} failed after {attempt} attempts") from e
            await asyncio.sleep(retry_delay)


async def new_funded_payer(
    ledger: LedgerClient,
    lamports: int = DEFAULT_AIRDROP_LAMPORTS,
    max_attempts: Optional[int] = None,
) -> Keypair:
    """Generate a fresh keypair and fund it."""
    payer = Keypair()
    await airdrop_payer(ledger, payer.pubkey(), lamports, max_attempts=max_attempts)
    logger.info(f"[AIRDROP] Funded payer {payer.pubkey()} with {lamports / LAMPORTS_PER_SOL} SOL")
    return payer
