"""
SPL token mint lifecycle for test scenarios.

A mint moves through ACTIVE (authority A) to AUTHORITY_TRANSFERRED
(authority B) and never back. Every on-ledger step goes through
``sign_and_send_transaction_instructions``.
"""

from enum import Enum
from typing import Optional, Union

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account
from spl.token.constants import MINT_LEN, TOKEN_PROGRAM_ID
from spl.token.instructions import (
    AuthorityType,
    InitializeMintParams,
    MintToParams,
    SetAuthorityParams,
    create_idempotent_associated_token_account,
    get_associated_token_address,
    initialize_mint,
    mint_to,
    set_authority,
)

from access_harness.config import MINT_DECIMALS, SubmitOptions
from access_harness.core.client import LedgerClient
from access_harness.core.sender import SubmitResult, sign_and_send_transaction_instructions
from access_harness.utils.logger import get_logger

logger = get_logger(__name__)


class MintState(Enum):
    ACTIVE = "active"
    AUTHORITY_TRANSFERRED = "authority_transferred"


class TokenMint:
    """Stateful handle on one token mint.

    Always obtain instances through ``TokenMint.init``. Constructing one
    directly skips the on-ledger registration and leaves a handle to a mint
    that does not exist.
    """

    def __init__(
        self,
        token: Keypair,
        ledger: LedgerClient,
        fee_payer: Keypair,
        mint_authority: Pubkey,
        authority_keypair: Keypair,
        decimals: int = MINT_DECIMALS,
        submit_options: Optional[SubmitOptions] = None,
    ):
        self.token = token
        self.ledger = ledger
        self.fee_payer = fee_payer
        self.mint_authority = mint_authority
        self.authority_keypair = authority_keypair
        self.central_state_authority: Optional[Keypair] = None
        self.decimals = decimals
        self.submit_options = submit_options or SubmitOptions()
        self._initial_authority = mint_authority

    @property
    def pubkey(self) -> Pubkey:
        return self.token.pubkey()

    @property
    def state(self) -> MintState:
        if self.mint_authority != self._initial_authority:
            return MintState.AUTHORITY_TRANSFERRED
        return MintState.ACTIVE

    @classmethod
    async def init(
        cls,
        ledger: LedgerClient,
        fee_payer: Keypair,
        mint_authority: Optional[Keypair] = None,
        decimals: int = MINT_DECIMALS,
        submit_options: Optional[SubmitOptions] = None,
    ) -> "TokenMint":
        """Create and register a new mint.

        The mint has no freeze authority. Its mint authority is
        ``mint_authority`` when given, otherwise the mint's own key.
        """
        token_keypair = Keypair()
        authority_keypair = mint_authority or token_keypair
        authority = authority_keypair.pubkey()

        lamports = await ledger.get_minimum_balance_for_rent_exemption(MINT_LEN)
        instructions = [
            create_account(
                CreateAccountParams(
                    from_pubkey=fee_payer.pubkey(),
                    to_pubkey=token_keypair.pubkey(),
                    lamports=lamports,
                    space=MINT_LEN,
                    owner=TOKEN_PROGRAM_ID,
                )
            ),
            initialize_mint(
                InitializeMintParams(
                    decimals=decimals,
                    program_id=TOKEN_PROGRAM_ID,
                    mint=token_keypair.pubkey(),
                    mint_authority=authority,
                    freeze_authority=None,
                )
            ),
        ]
        result = await sign_and_send_transaction_instructions(
            ledger, [token_keypair], fee_payer, instructions, submit_options
        )
        logger.info(f"[MINT] Created {token_keypair.pubkey()} authority={authority} tx={result.signature}")

        return cls(
            token_keypair,
            ledger,
            fee_payer,
            authority,
            authority_keypair,
            decimals=decimals,
            submit_options=submit_options,
        )

    async def get_associated_token_account(self, wallet: Pubkey) -> Pubkey:
        """Return the associated token account of ``wallet``, creating it on first use."""
        address = get_associated_token_address(wallet, self.pubkey)
        if await self.ledger.account_exists(address):
            return address

        ix = create_idempotent_associated_token_account(
            payer=self.fee_payer.pubkey(),
            owner=wallet,
            mint=self.pubkey,
        )
        result = await sign_and_send_transaction_instructions(
            self.ledger, [], self.fee_payer, [ix], self.submit_options
        )
        logger.info(f"[MINT] Created token account {address} for {wallet} tx={result.signature}")
        return address

    async def mint_into(
        self,
        token_account: Pubkey,
        amount: int,
        authority: Optional[Keypair] = None,
    ) -> SubmitResult:
        """Mint ``amount`` base units into ``token_account``.

        Signed by ``authority`` or the stored authority keypair. Authority
        freshness is not checked here: a stale key is rejected by the ledger
        during preflight and raised as SubmissionError.
        """
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ValueError(f"amount must be a positive integer, got {amount!r}")

        signer = authority or self.authority_keypair
        ix = mint_to(
            MintToParams(
                program_id=TOKEN_PROGRAM_ID,
                mint=self.pubkey,
                dest=token_account,
                mint_authority=signer.pubkey(),
                amount=amount,
            )
        )
        options = SubmitOptions(
            skip_preflight=False,
            max_confirm_attempts=self.submit_options.max_confirm_attempts,
            poll_interval=self.submit_options.poll_interval,
            confirm_timeout=self.submit_options.confirm_timeout,
        )
        result = await sign_and_send_transaction_instructions(
            self.ledger, [signer], self.fee_payer, [ix], options
        )
        logger.info(f"[MINT] Minted {amount} into {token_account} tx={result.signature}")
        return result

    async def update_authority_to_central_state(
        self,
        ledger: LedgerClient,
        mint_authority_keypair: Keypair,
        fee_payer: Keypair,
        central_key: Union[Pubkey, Keypair],
    ) -> SubmitResult:
        """Hand minting rights to ``central_key``. There is no way back.

        On success ``mint_authority`` tracks the new key. The stored
        ``authority_keypair`` is kept as is, so a later ``mint_into`` without
        an explicit authority is rejected by the ledger.
        """
        if isinstance(central_key, Keypair):
            central_keypair: Optional[Keypair] = central_key
            new_authority = central_key.pubkey()
        else:
            central_keypair = None
            new_authority = central_key

        ix = set_authority(
            SetAuthorityParams(
                program_id=TOKEN_PROGRAM_ID,
                account=self.pubkey,
                authority=AuthorityType.MINT_TOKENS,
                current_authority=self.mint_authority,
                new_authority=new_authority,
            )
        )
        result = await sign_and_send_transaction_instructions(
            ledger, [mint_authority_keypair], fee_payer, [ix], self.submit_options
        )
        logger.info(f"[MINT] Move mint authority to central key {new_authority} tx={result.signature}")

        self.mint_authority = new_authority
        if central_keypair is not None:
            self.central_state_authority = central_keypair
        return result

    async def get_balance(self, token_account: Pubkey) -> int:
        """Balance of ``token_account`` in base units."""
        return await self.ledger.get_token_account_balance(token_account)

    def to_ui_amount(self, base_units: int) -> float:
        return base_units / 10 ** self.decimals
