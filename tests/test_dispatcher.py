"""Tests for NotificationDispatcher."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from agents.radar.models.schemas import NotificationStatus
from agents.radar.services.composer import NotificationComposer
from agents.radar.services.dispatcher import NotificationDispatcher
from conftest import TARGET, FakeChannel, make_tx


@pytest.fixture
async def pair(store, subscribe):
    """An active subscription and one stored activity on its target."""
    sub = await subscribe(target_name="whale.eth")
    tx = make_tx("0xdeadbeef", value_usd=2500)
    activity = await store.insert_activity_if_absent(
        wallet_address=TARGET,
        tx_hash=tx.tx_hash,
        block_number=tx.block_height,
        timestamp=tx.block_signed_at,
        tx_type="mint",
        amount_usd=tx.value_usd,
        chain="base",
    )
    return sub, activity


class TestDispatch:
    @pytest.mark.asyncio
    async def test_sent_records_receipt(self, store, channel, dispatcher, pair):
        sub, activity = pair

        receipt = await dispatcher.dispatch(sub, activity)

        assert receipt.success is True
        assert receipt.receipt_id == "0xcast"
        [(recipient, message, link)] = channel.deliveries
        assert recipient == sub.follower_fid
        assert message.startswith("🎨 whale.eth just minted $2,500 on BASE!")
        assert link is None

        record = await store.get_notification(sub.id, activity.id)
        assert record.status == NotificationStatus.SENT.value
        assert record.cast_hash == "0xcast"

    @pytest.mark.asyncio
    async def test_channel_failure_records_failed(self, store, pair):
        sub, activity = pair
        dispatcher = NotificationDispatcher(store, NotificationComposer(None), FakeChannel(success=False))

        receipt = await dispatcher.dispatch(sub, activity)

        assert receipt.success is False
        record = await store.get_notification(sub.id, activity.id)
        assert record.status == "failed"
        assert record.cast_hash is None

    @pytest.mark.asyncio
    async def test_channel_exception_records_failed(self, store, pair):
        sub, activity = pair
        channel = MagicMock()
        channel.deliver = AsyncMock(side_effect=RuntimeError("socket closed"))
        dispatcher = NotificationDispatcher(store, NotificationComposer(None), channel)

        receipt = await dispatcher.dispatch(sub, activity)

        assert receipt.success is False
        assert (await store.get_notification(sub.id, activity.id)).status == "failed"

    @pytest.mark.asyncio
    async def test_channel_timeout_records_failed(self, store, pair):
        sub, activity = pair

        async def hang(*args, **kwargs):
            await asyncio.sleep(5)

        channel = MagicMock()
        channel.deliver = hang
        dispatcher = NotificationDispatcher(store, NotificationComposer(None), channel, timeout=0.05)

        receipt = await dispatcher.dispatch(sub, activity)

        assert receipt.success is False
        assert (await store.get_notification(sub.id, activity.id)).status == "failed"

    @pytest.mark.asyncio
    async def test_second_dispatch_is_noop(self, channel, dispatcher, pair):
        sub, activity = pair

        await dispatcher.dispatch(sub, activity)
        again = await dispatcher.dispatch(sub, activity)

        assert again is None
        assert len(channel.deliveries) == 1

    @pytest.mark.asyncio
    async def test_composer_outage_still_delivers(self, store, channel, pair):
        sub, activity = pair
        claude = MagicMock()
        claude.configured = True
        claude.ask = AsyncMock(side_effect=RuntimeError("model overloaded"))
        dispatcher = NotificationDispatcher(store, NotificationComposer(claude), channel)

        receipt = await dispatcher.dispatch(sub, activity)

        assert receipt.success is True
        [(_, message, _)] = channel.deliveries
        assert message.startswith("🎨 whale.eth just minted $2,500 on BASE!")
        assert (await store.get_notification(sub.id, activity.id)).status == "sent"


class TestRetry:
    @pytest.mark.asyncio
    async def test_retry_failed_delivers_again(self, store, pair):
        sub, activity = pair
        failing = NotificationDispatcher(store, NotificationComposer(None), FakeChannel(success=False))
        await failing.dispatch(sub, activity)

        channel = FakeChannel(receipt_id="0xretry")
        dispatcher = NotificationDispatcher(store, NotificationComposer(None), channel)

        assert await dispatcher.dispatch(sub, activity) is None
        receipt = await dispatcher.dispatch(sub, activity, retry_failed=True)

        assert receipt.success is True
        record = await store.get_notification(sub.id, activity.id)
        assert record.status == "sent"
        assert record.cast_hash == "0xretry"

    @pytest.mark.asyncio
    async def test_sent_pair_is_never_retried(self, channel, dispatcher, pair):
        sub, activity = pair
        await dispatcher.dispatch(sub, activity)

        assert await dispatcher.dispatch(sub, activity, retry_failed=True) is None
        assert len(channel.deliveries) == 1


class TestFrameLink:
    @pytest.mark.asyncio
    async def test_link_from_app_url(self, store, channel, pair):
        sub, activity = pair
        dispatcher = NotificationDispatcher(
            store, NotificationComposer(None), channel, app_url="https://radar.example/"
        )

        await dispatcher.dispatch(sub, activity)

        [(_, _, link)] = channel.deliveries
        assert link == f"https://radar.example/api/frame?address={TARGET}&tx=0xdeadbeef"

    @pytest.mark.asyncio
    async def test_explicit_link_wins(self, store, channel, pair):
        sub, activity = pair
        dispatcher = NotificationDispatcher(
            store, NotificationComposer(None), channel, app_url="https://radar.example"
        )

        await dispatcher.dispatch(sub, activity, link="https://basescan.org/tx/0xdeadbeef")

        assert channel.deliveries[0][2] == "https://basescan.org/tx/0xdeadbeef"



class TestIncompleteAttempts:
    @pytest.mark.asyncio
    async def test_completion_error_leaves_record_retryable(self, store, channel, dispatcher, pair, monkeypatch):
        sub, activity = pair
        complete = store.complete_notification
        calls = []

        async def flaky_complete(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise ConnectionError("connection reset")
            return await complete(*args, **kwargs)

        monkeypatch.setattr(store, "complete_notification", flaky_complete)

        with pytest.raises(ConnectionError):
            await dispatcher.dispatch(sub, activity)
        assert (await store.get_notification(sub.id, activity.id)).status == "failed"

        receipt = await dispatcher.dispatch(sub, activity, retry_failed=True)

        assert receipt.success is True
        assert (await store.get_notification(sub.id, activity.id)).status == "sent"
        assert len(channel.deliveries) == 2

    @pytest.mark.asyncio
    async def test_compose_error_marks_failed(self, store, channel, pair):
        sub, activity = pair
        composer = MagicMock()
        composer.compose_message = AsyncMock(side_effect=ValueError("bad context"))
        dispatcher = NotificationDispatcher(store, composer, channel)

        with pytest.raises(ValueError):
            await dispatcher.dispatch(sub, activity)

        assert channel.deliveries == []
        assert (await store.get_notification(sub.id, activity.id)).status == "failed"

    @pytest.mark.asyncio
    async def test_abandoned_pending_is_retried_once_stale(self, store, channel, pair):
        sub, activity = pair
        await store.claim_notification(sub.id, activity.id)

        recent = NotificationDispatcher(store, NotificationComposer(None), channel, stale_after=60)
        assert await recent.dispatch(sub, activity, retry_failed=True) is None

        stale = NotificationDispatcher(store, NotificationComposer(None), channel, stale_after=0)
        receipt = await stale.dispatch(sub, activity, retry_failed=True)

        assert receipt.success is True
        assert (await store.get_notification(sub.id, activity.id)).status == "sent"
        assert len(channel.deliveries) == 1
