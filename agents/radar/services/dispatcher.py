"""
Notification Dispatcher — One delivery attempt per (subscription, activity).

A pending Notification Record is claimed before anything is sent, so
overlapping sweeps cannot deliver the same pair twice. The record ends in
``sent`` or ``failed`` based only on the channel outcome, and an attempt that
errors after the claim is marked ``failed``. Failed pairs are not retried here.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode
from agents.radar.models.db import WalletSubscription, WalletActivity
from agents.radar.models.schemas import (
    ActivityType, DeliveryReceipt, NotificationContext, NotificationStatus
)
from agents.radar.services.composer import NotificationComposer
import structlog

logger = structlog.get_logger()


class NotificationDispatcher:
    def __init__(
        self,
        store,
        composer: NotificationComposer,
        channel,
        app_url: str = "",
        timeout: float = 10.0,
        stale_after: float = 60.0,
    ):
        self._store = store
        self._composer = composer
        self._channel = channel
        self._app_url = app_url.rstrip("/")
        self._timeout = timeout
        self._stale_after = stale_after

    def frame_link(self, activity: WalletActivity) -> str | None:
        if not self._app_url:
            return None
        query = urlencode({"address": activity.wallet_address, "tx": activity.tx_hash})
        return f"{self._app_url}/api/frame?{query}"

    async def dispatch(
        self,
        subscription: WalletSubscription,
        activity: WalletActivity,
        link: str | None = None,
        retry_failed: bool = False,
    ) -> DeliveryReceipt | None:
        """
        Returns the delivery receipt, or None when the pair was already handled.

        ``retry_failed`` also reclaims a pending record older than
        ``stale_after`` seconds, left behind by an attempt that was cut off.
        """
        stale_before = (
            datetime.now(timezone.utc) - timedelta(seconds=self._stale_after)
            if retry_failed else None
        )
        notification_id = await self._store.claim_notification(
            subscription.id, activity.id, retry_failed=retry_failed, stale_before=stale_before
        )
        if notification_id is None:
            logger.debug("notification_already_recorded", subscription_id=subscription.id, activity_id=activity.id)
            return None

        try:
            receipt = await self._deliver(subscription, activity, link)
            status = NotificationStatus.SENT if receipt.success else NotificationStatus.FAILED
            await self._store.complete_notification(notification_id, status, receipt.receipt_id)
        except Exception as e:
            logger.error(
                "notification_incomplete",
                subscription_id=subscription.id,
                activity_id=activity.id,
                error=str(e) or type(e).__name__,
            )
            await self._mark_failed(notification_id)
            raise

        logger.info(
            "notification_recorded",
            subscription_id=subscription.id,
            activity_id=activity.id,
            status=status.value,
            cast_hash=receipt.receipt_id,
        )
        return receipt

    async def _deliver(
        self,
        subscription: WalletSubscription,
        activity: WalletActivity,
        link: str | None,
    ) -> DeliveryReceipt:
        ctx = NotificationContext(
            target_address=activity.wallet_address,
            target_name=subscription.target_name,
            tx_type=ActivityType(activity.tx_type),
            amount_usd=float(activity.amount_usd),
            chain=activity.chain,
        )
        message = await self._composer.compose_message(ctx)

        try:
            return await asyncio.wait_for(
                self._channel.deliver(
                    subscription.follower_fid, message, link or self.frame_link(activity)
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("notification_timeout", subscription_id=subscription.id, activity_id=activity.id)
        except Exception as e:
            logger.error("notification_channel_error", subscription_id=subscription.id, error=str(e))
        return DeliveryReceipt(success=False)

    async def _mark_failed(self, notification_id: int):
        # Best effort; the record stays pending if the store is still failing
        try:
            await asyncio.wait_for(
                self._store.complete_notification(notification_id, NotificationStatus.FAILED),
                timeout=self._timeout,
            )
        except Exception as e:
            logger.error("notification_mark_failed_error", notification_id=notification_id, error=str(e) or type(e).__name__)
