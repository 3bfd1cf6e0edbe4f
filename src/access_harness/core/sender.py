"""
Transaction submission with best-effort finalization.

Submission failures propagate. Confirmation failures never do: when the
initial finalized wait raises (the node can acknowledge a signature before
its status is queryable), the status is polled a bounded number of times and
the outcome is reported through ``SubmitResult.confirmation``.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from solana.exceptions import SolanaRpcException
from solana.rpc.commitment import Finalized
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from access_harness.config import SubmitOptions
from access_harness.core.client import LedgerClient
from access_harness.errors import SubmissionError
from access_harness.utils.logger import get_logger

logger = get_logger(__name__)

_CONFIRM_ERRORS = (
    asyncio.TimeoutError,
    UnconfirmedTxError,
    TransactionExpiredBlockheightExceededError,
    RPCException,
    SolanaRpcException,
)


class ConfirmationStatus(Enum):
    FINALIZED = "finalized"
    UNKNOWN_PENDING = "unknown_pending"


@dataclass
class SubmitResult:
    """Outcome of a submitted transaction."""
    signature: str
    confirmation: ConfirmationStatus
    poll_attempts: int = 0

    @property
    def is_finalized(self) -> bool:
        return self.confirmation == ConfirmationStatus.FINALIZED


def _collect_signers(signers: Optional[Sequence[Keypair]], fee_payer: Keypair) -> list[Keypair]:
    """Fee payer first, then the extra signers, each public key once."""
    keypairs = [fee_payer]
    seen = {fee_payer.pubkey()}
    for kp in signers or ():
        if kp.pubkey() not in seen:
            seen.add(kp.pubkey())
            keypairs.append(kp)
    return keypairs


def _check_signers(message: Message, keypairs: Sequence[Keypair], fee_payer_key: str) -> None:
    """Raise SubmissionError unless ``keypairs`` match the message's signer slots exactly."""
    required = set(message.account_keys[: message.header.num_required_signatures])
    provided = {kp.pubkey() for kp in keypairs}
    missing = sorted(str(k) for k in required - provided)
    unknown = sorted(str(k) for k in provided - required)
    if missing or unknown:
        logger.error(f"[TX] Signer mismatch (fee payer {fee_payer_key}): missing={missing} unknown={unknown}")
        raise SubmissionError(
            f"Signer mismatch: missing {missing or 'none'}, not required {unknown or 'none'}",
            fee_payer=fee_payer_key,
        )


async def sign_and_send_transaction_instructions(
    ledger: LedgerClient,
    signers: Optional[Sequence[Keypair]],
    fee_payer: Keypair,
    instructions: Sequence[Instruction],
    options: Optional[SubmitOptions] = None,
) -> SubmitResult:
    """
    Build, sign and send a transaction, then try to see it finalized.

    Args:
        ledger: Ledger connection
        signers: Extra signers besides the fee payer (may be None or empty)
        fee_payer: Keypair paying the fee, always signs
        instructions: Ordered, non-empty instruction list
        options: Preflight and confirmation polling settings

    Returns:
        SubmitResult whose signature is set whenever submission succeeded

    Raises:
        ValueError: If no instructions are given
        SubmissionError: If the signers do not match the instructions, or the node
            rejects the transaction
    """
    if not instructions:
        raise ValueError("At least one instruction is required")
    options = options or SubmitOptions()

    fee_payer_key = str(fee_payer.pubkey())
    logger.info(f"[TX] Fee payer: {fee_payer_key}")

    message = Message(list(instructions), fee_payer.pubkey())
    keypairs = _collect_signers(signers, fee_payer)
    _check_signers(message, keypairs, fee_payer_key)

    try:
        recent_blockhash = await ledger.get_latest_blockhash()
        transaction = Transaction(keypairs, message, recent_blockhash)
        signature = await ledger.send_transaction(transaction, skip_preflight=options.skip_preflight)
    except (RPCException, SolanaRpcException) as e:
        logger.error(f"[TX] Submission failed (fee payer {fee_payer_key}): {e}")
        raise SubmissionError(f"Transaction rejected: {e}", fee_payer=fee_payer_key) from e

    logger.info(f"[TX] Sent: {signature}")
    return await _await_finalization(ledger, signature, options)


async def _await_finalization(ledger: LedgerClient, signature: str, options: SubmitOptions) -> SubmitResult:
    try:
        await asyncio.wait_for(
            ledger.confirm_transaction(signature, commitment=Finalized),
            timeout=options.confirm_timeout,
        )
        return SubmitResult(signature, ConfirmationStatus.FINALIZED)
    except _CONFIRM_ERRORS as e:
        logger.warning(f"[TX] Finalized wait failed for {signature}: {e!r}, polling status")

    attempt = 0
    while attempt < options.max_confirm_attempts:
        attempt += 1
        try:
            status = await ledger.get_signature_status(signature)
        except (RPCException, SolanaRpcException) as e:
            logger.warning(f"[TX] Status read failed ({attempt}/{options.max_confirm_attempts}): {e}")
            status = None

        if status == TransactionConfirmationStatus.Finalized:
            logger.info(f"[TX] Finalized after {attempt} poll(s): {signature}")
            return SubmitResult(signature, ConfirmationStatus.FINALIZED, attempt)

        logger.info(
            f"[TX] Waiting for confirmation... ({attempt}/{options.max_confirm_attempts}) status={status}"
        )
        if attempt < options.max_confirm_attempts:
            await asyncio.sleep(options.poll_interval)

    logger.warning(f"[TX] Not finalized after {attempt} polls, returning pending: {signature}")
    return SubmitResult(signature, ConfirmationStatus.UNKNOWN_PENDING, attempt)
