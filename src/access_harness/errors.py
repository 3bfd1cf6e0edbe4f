"""Exception types raised by the harness."""


class HarnessError(Exception):
    """Base class for harness errors."""


class SubmissionError(HarnessError):
    """The ledger rejected a transaction or the RPC call to submit it failed.

    Covers invalid instructions, insufficient funds, bad signatures and
    signing with a mint authority that is no longer live.
    """

    def __init__(self, message: str, fee_payer: str | None = None):
        super().__init__(message)
        self.fee_payer = fee_payer


class DeploymentError(HarnessError):
    """Program deployment through the solana CLI failed."""

    def __init__(self, message: str, output: str | None = None):
        super().__init__(message)
        self.output = output


class FundingError(HarnessError):
    """Airdrop funding gave up after its attempt limit."""


class NonceCacheError(HarnessError):
    """Nonce cache used without a live Redis connection."""


class ConfigError(HarnessError):
    """Invalid harness configuration."""
