"""Pytest fixtures for Onchain Radar tests."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from shared.models.base import Base
from agents.radar.models.schemas import ChainTransaction, DeliveryReceipt
from agents.radar.services.composer import NotificationComposer
from agents.radar.services.dispatcher import NotificationDispatcher
from agents.radar.services.poller import RadarPoller
from agents.radar.services.store import RadarStore

# In-memory SQLite shared through one connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TARGET = "0x" + "ab" * 20
OTHER_TARGET = "0x" + "cd" * 20
FOLLOWER_ADDRESS = "0x" + "11" * 20
BASE_TIME = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_tx(
    tx_hash: str,
    value_usd: float = 1000.0,
    minutes_ago: int = 0,
    logs: tuple[str, ...] = (),
    block_height: int | None = None,
) -> ChainTransaction:
    """Helper to create a provider transaction; smaller minutes_ago is newer."""
    return ChainTransaction(
        tx_hash=tx_hash,
        block_height=block_height if block_height is not None else 1_000_000 - minutes_ago,
        block_signed_at=BASE_TIME - timedelta(minutes=minutes_ago),
        from_address=TARGET,
        to_address=OTHER_TARGET,
        value_usd=value_usd,
        decoded_logs=list(logs),
    )


class FakeProvider:
    """Chain provider returning canned newest-first pages per address."""

    configured = True

    def __init__(self, pages: dict | None = None, errors: dict | None = None, delay: float = 0):
        self.pages = pages or {}
        self.errors = errors or {}
        self.delay = delay
        self.calls: list[tuple[str, int, int]] = []

    async def fetch_recent_transactions(self, address, chain_id, page_size):
        self.calls.append((address, chain_id, page_size))
        if self.delay:
            await asyncio.sleep(self.delay)
        if address in self.errors:
            raise self.errors[address]
        return list(self.pages.get(address, []))[:page_size]


class FakeChannel:
    """Messaging channel recording every delivery."""

    def __init__(self, success: bool = True, receipt_id: str = "0xcast"):
        self.success = success
        self.receipt_id = receipt_id
        self.deliveries: list[tuple[str, str, str | None]] = []

    async def deliver(self, recipient_identity, message, link=None):
        self.deliveries.append((recipient_identity, message, link))
        return DeliveryReceipt(
            receipt_id=self.receipt_id if self.success else None,
            success=self.success,
        )


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def store(engine) -> RadarStore:
    return RadarStore(engine)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def dispatcher(store, channel) -> NotificationDispatcher:
    return NotificationDispatcher(store, NotificationComposer(None), channel)


@pytest.fixture
def make_poller(store, dispatcher):
    """Factory for a poller over the test store with deterministic defaults."""

    def _make(provider, **overrides) -> RadarPoller:
        options = {
            "chain_id": 8453,
            "chain_name": "base",
            "page_size": 10,
            "cold_start_page_size": 10,
            "max_concurrency": 1,
            "subscription_timeout": 5.0,
            "sweep_deadline": 60.0,
        }
        options.update(overrides)
        target_store = options.pop("store", store)
        target_dispatcher = options.pop("dispatcher", dispatcher)
        return RadarPoller(target_store, provider, target_dispatcher, **options)

    return _make


@pytest.fixture
def subscribe(store):
    """Factory creating an active subscription."""

    async def _subscribe(
        target_address: str = TARGET,
        follower_fid: str = "1001",
        threshold_usd: float = 500,
        **fields,
    ):
        return await store.add_subscription(
            follower_fid=follower_fid,
            follower_address=FOLLOWER_ADDRESS,
            target_address=target_address,
            threshold_usd=threshold_usd,
            threshold_tx_count=fields.pop("threshold_tx_count", 1),
            **fields,
        )

    return _subscribe
