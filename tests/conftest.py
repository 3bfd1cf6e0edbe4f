"""
Pytest fixtures for access-harness tests
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from access_harness.config import SubmitOptions
from access_harness.core.client import LedgerClient
from tests.helpers import status_response


@pytest.fixture
def mock_rpc_client():
    """Mock solana AsyncClient"""
    client = MagicMock()
    client.get_latest_blockhash = AsyncMock(
        return_value=SimpleNamespace(value=SimpleNamespace(blockhash=Hash.new_unique(), last_valid_block_height=100000))
    )
    client.send_transaction = AsyncMock(side_effect=lambda *a, **kw: SimpleNamespace(value=Signature.new_unique()))
    client.confirm_transaction = AsyncMock(return_value=None)
    client.get_signature_statuses = AsyncMock(
        return_value=status_response(TransactionConfirmationStatus.Finalized)
    )
    client.get_minimum_balance_for_rent_exemption = AsyncMock(return_value=SimpleNamespace(value=1_461_600))
    client.get_account_info = AsyncMock(return_value=SimpleNamespace(value=None))
    client.get_token_account_balance = AsyncMock(return_value=SimpleNamespace(value=SimpleNamespace(amount="0")))
    client.request_airdrop = AsyncMock(side_effect=lambda *a, **kw: SimpleNamespace(value=Signature.new_unique()))
    client.close = AsyncMock()
    return client


@pytest.fixture
def ledger(mock_rpc_client):
    return LedgerClient("http://localhost:8899", client=mock_rpc_client)


@pytest.fixture
def fee_payer():
    return Keypair()


@pytest.fixture
def fast_options():
    """Default submit options without the 1s poll delay"""
    return SubmitOptions(poll_interval=0, confirm_timeout=1.0)


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis with a controllable clock"""

    def __init__(self):
        self.now = 0.0
        self.store = {}
        self.closed = False

    async def ping(self):
        return True

    async def set(self, key, value, ex=None):
        expires_at = self.now + ex if ex is not None else None
        self.store[key] = (value, expires_at)
        return True

    async def get(self, key):
        item = self.store.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self.now >= expires_at:
            del self.store[key]
            return None
        return value

    async def aclose(self):
        self.closed = True

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def mock_redis():
    """Mock Redis client"""
    redis = MagicMock()
    redis.ping = AsyncMock(return_value=True)
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.aclose = AsyncMock()
    return redis
