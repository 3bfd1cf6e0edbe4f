"""Core blockchain functionality."""

from access_harness.core.client import LedgerClient
from access_harness.core.deploy import deploy_program, read_keypair, read_program_id
from access_harness.core.funding import airdrop_payer, new_funded_payer, wait_for_validator
from access_harness.core.nonce_cache import NonceCache
from access_harness.core.sender import (
    ConfirmationStatus,
    SubmitResult,
    sign_and_send_transaction_instructions,
)
from access_harness.core.token_mint import MintState, TokenMint

__all__ = [
    # Ledger
    "LedgerClient",
    # Submission
    "ConfirmationStatus",
    "SubmitResult",
    "sign_and_send_transaction_instructions",
    # Mint
    "MintState",
    "TokenMint",
    # Funding / deployment
    "airdrop_payer",
    "new_funded_payer",
    "wait_for_validator",
    "deploy_program",
    "read_keypair",
    "read_program_id",
    # Nonce cache
    "NonceCache",
]
