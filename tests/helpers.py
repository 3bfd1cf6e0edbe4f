"""Shared test helpers"""
from types import SimpleNamespace
from unittest.mock import AsyncMock

from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID


def status_response(status):
    """getSignatureStatuses response carrying one status (None = unknown signature)."""
    if status is None:
        return SimpleNamespace(value=[None])
    return SimpleNamespace(value=[SimpleNamespace(confirmation_status=status, err=None)])


def rpc_transport_error(message, method=None):
    """SolanaRpcException as solana-py raises it when an HTTP request fails.

    solana-py builds the exception from the caught error, the failing
    function and that function's arguments (self, request body).
    """
    return SolanaRpcException(ConnectionError(message), None, None, method)


def sent_transactions(mock_rpc_client):
    """Transactions passed to send_transaction, in order."""
    return [c.args[0] for c in mock_rpc_client.send_transaction.call_args_list]


def required_signers(transaction):
    message = transaction.message
    return list(message.account_keys[: message.header.num_required_signatures])


class FakeTokenLedger:
    """Just enough SPL token program to check mint scenarios against mocks.

    Plug it into a mocked AsyncClient: it reads the compiled token
    instructions of every sent transaction, tracks mint authorities, created
    accounts and balances, and rejects a mint_to or set_authority signed by
    anyone but the live authority, as preflight would.
    """

    INITIALIZE_MINT = 0
    SET_AUTHORITY = 6
    MINT_TO = 7

    def __init__(self):
        self.authorities = {}
        self.accounts = set()
        self.balances = {}

    def install(self, mock_rpc_client):
        mock_rpc_client.send_transaction = AsyncMock(side_effect=self.send_transaction)
        mock_rpc_client.get_account_info = AsyncMock(side_effect=self.get_account_info)
        mock_rpc_client.get_token_account_balance = AsyncMock(side_effect=self.get_token_account_balance)

    async def send_transaction(self, transaction, opts=None):
        message = transaction.message
        keys = message.account_keys
        signers = set(required_signers(transaction))
        for ix in message.instructions:
            program = keys[ix.program_id_index]
            accounts = [keys[i] for i in bytes(ix.accounts)]
            data = bytes(ix.data)
            if program == ASSOCIATED_TOKEN_PROGRAM_ID:
                self.accounts.add(accounts[1])
            elif program == TOKEN_PROGRAM_ID:
                self._token_instruction(accounts, data, signers)
        return SimpleNamespace(value=Signature.new_unique())

    def _token_instruction(self, accounts, data, signers):
        tag = data[0]
        if tag == self.INITIALIZE_MINT:
            self.authorities[accounts[0]] = Pubkey.from_bytes(data[2:34])
        elif tag == self.SET_AUTHORITY:
            mint = accounts[0]
            self._check_authority(mint, accounts[1], signers)
            self.authorities[mint] = Pubkey.from_bytes(data[3:35])
        elif tag == self.MINT_TO:
            mint, dest, authority = accounts[0], accounts[1], accounts[2]
            self._check_authority(mint, authority, signers)
            amount = int.from_bytes(data[1:9], "little")
            self.balances[dest] = self.balances.get(dest, 0) + amount

    def _check_authority(self, mint, authority, signers):
        if self.authorities.get(mint) != authority or authority not in signers:
            raise RPCException("Transaction simulation failed: custom program error: 0x4 (OwnerMismatch)")

    async def get_account_info(self, pubkey, *args, **kwargs):
        return SimpleNamespace(value=object() if pubkey in self.accounts else None)

    async def get_token_account_balance(self, pubkey, *args, **kwargs):
        return SimpleNamespace(value=SimpleNamespace(amount=str(self.balances.get(pubkey, 0))))
