"""
Test harness bootstrap.

Wires the pieces in the order a scenario needs them: logging, ledger
connection, funded payer, optional program deployment, then mints.
"""

import asyncio
from pathlib import Path
from typing import Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from access_harness.config import HarnessConfig
from access_harness.core.client import LedgerClient
from access_harness.core.deploy import deploy_program, read_keypair
from access_harness.core.funding import airdrop_payer, new_funded_payer, wait_for_validator
from access_harness.core.token_mint import TokenMint
from access_harness.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


class TestHarness:
    """Everything a test scenario shares: connection, payer, program id."""

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        config: HarnessConfig,
        ledger: LedgerClient,
        payer: Keypair,
        program_id: Optional[Pubkey] = None,
    ):
        self.config = config
        self.ledger = ledger
        self.payer = payer
        self.program_id = program_id

    @classmethod
    async def create(
        cls,
        config: HarnessConfig,
        payer_key_file: str | Path | None = None,
        validator_timeout: float = 60.0,
    ) -> "TestHarness":
        """Connect, fund a payer and deploy the program if configured.

        Args:
            config: Harness configuration
            payer_key_file: Keypair file of the payer. Required to deploy,
                since the solana CLI signs with a key file. A fresh payer is
                generated when omitted.
            validator_timeout: Seconds to wait for the node to become healthy
        """
        setup_logging(config.log_level, config.log_file)
        ledger = LedgerClient(config.rpc_url)
        try:
            await wait_for_validator(ledger, timeout=validator_timeout)

            if payer_key_file is not None:
                payer = read_keypair(payer_key_file)
                await airdrop_payer(ledger, payer.pubkey(), config.airdrop_lamports)
            else:
                payer = await new_funded_payer(ledger, config.airdrop_lamports)

            program_id = None
            if config.deploy is not None:
                if payer_key_file is None:
                    logger.warning("[HARNESS] deploy configured but no payer key file given, skipping deploy")
                else:
                    program_id = await asyncio.to_thread(deploy_program, payer_key_file, config.deploy)
        except BaseException:
            await ledger.close()
            raise

        logger.info(f"[HARNESS] Ready: payer={payer.pubkey()} program={program_id}")
        return cls(config, ledger, payer, program_id)

    async def __aenter__(self) -> "TestHarness":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.ledger.close()

    async def create_mint(self, mint_authority: Optional[Keypair] = None) -> TokenMint:
        return await TokenMint.init(
            self.ledger,
            self.payer,
            mint_authority,
            decimals=self.config.mint_decimals,
            submit_options=self.config.submit,
        )
