"""
Subscription Store — Async SQLAlchemy access to subscriptions, activity events
and notification records.

Each call opens its own short-lived session so concurrent subscriptions in a
sweep never share one. Duplicate inserts are resolved by the database through
ON CONFLICT DO NOTHING on the unique constraints, which keeps overlapping
sweeps safe.
"""
from datetime import datetime, timezone
from sqlalchemy import and_, or_, select, update, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine
from shared.database import build_session_factory
from agents.radar.models.db import WalletSubscription, WalletActivity, Notification
from agents.radar.models.schemas import NotificationStatus
import structlog

logger = structlog.get_logger()

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class RadarStore:
    def __init__(self, engine: AsyncEngine):
        if engine.dialect.name not in _INSERT_BY_DIALECT:
            raise ValueError(f"Unsupported database dialect: {engine.dialect.name}")
        self._engine = engine
        self._session = build_session_factory(engine)
        self._insert = _INSERT_BY_DIALECT[engine.dialect.name]

    # --- Subscriptions ---

    async def list_active_subscriptions(self) -> list[WalletSubscription]:
        async with self._session() as db:
            result = await db.execute(
                select(WalletSubscription).where(WalletSubscription.is_active == True)
            )
            return list(result.scalars().all())

    async def list_follower_subscriptions(self, follower_fid: str) -> list[WalletSubscription]:
        async with self._session() as db:
            result = await db.execute(
                select(WalletSubscription)
                .where(
                    WalletSubscription.follower_fid == follower_fid,
                    WalletSubscription.is_active == True,
                )
                .order_by(WalletSubscription.created_at.desc(), WalletSubscription.id.desc())
            )
            return list(result.scalars().all())

    async def get_subscription(self, subscription_id: int) -> WalletSubscription | None:
        async with self._session() as db:
            return await db.get(WalletSubscription, subscription_id)

    async def add_subscription(self, **fields) -> WalletSubscription:
        sub = WalletSubscription(
            is_active=True,
            created_at=datetime.now(timezone.utc),
            **fields,
        )
        async with self._session() as db:
            db.add(sub)
            await db.commit()
            await db.refresh(sub)
        logger.info("subscription_added", id=sub.id, follower=sub.follower_fid, target=sub.target_address)
        return sub

    async def deactivate_subscription(self, subscription_id: int) -> bool:
        """Soft delete. Returns False when no such subscription exists."""
        async with self._session() as db:
            result = await db.execute(
                update(WalletSubscription)
                .where(WalletSubscription.id == subscription_id)
                .values(is_active=False)
            )
            await db.commit()
        return result.rowcount > 0

    async def update_last_checked(self, subscription_id: int, checked_at: datetime | None = None):
        async with self._session() as db:
            await db.execute(
                update(WalletSubscription)
                .where(WalletSubscription.id == subscription_id)
                .values(last_checked=checked_at or datetime.now(timezone.utc))
            )
            await db.commit()

    async def count_active_subscriptions(self) -> int:
        async with self._session() as db:
            result = await db.execute(
                select(func.count()).select_from(WalletSubscription)
                .where(WalletSubscription.is_active == True)
            )
            return result.scalar() or 0

    # --- Activity events ---

    async def get_recent_activity(self, address: str, limit: int = 20) -> list[WalletActivity]:
        async with self._session() as db:
            result = await db.execute(
                select(WalletActivity)
                .where(WalletActivity.wallet_address == address.lower())
                .order_by(
                    WalletActivity.timestamp.desc(),
                    WalletActivity.block_number.desc(),
                    WalletActivity.id.desc(),
                )
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_activity(self, activity_id: int) -> WalletActivity | None:
        async with self._session() as db:
            return await db.get(WalletActivity, activity_id)

    async def get_activity_by_tx(self, address: str, tx_hash: str) -> WalletActivity | None:
        async with self._session() as db:
            result = await db.execute(
                select(WalletActivity).where(
                    WalletActivity.wallet_address == address.lower(),
                    WalletActivity.tx_hash == tx_hash,
                )
            )
            return result.scalar_one_or_none()

    async def insert_activity_if_absent(
        self,
        *,
        wallet_address: str,
        tx_hash: str,
        block_number: int | None,
        timestamp: datetime,
        tx_type: str,
        amount_usd: float,
        chain: str,
        metadata: dict | None = None,
    ) -> WalletActivity | None:
        """Insert one activity event. Returns None when (address, tx_hash) already exists."""
        table = WalletActivity.__table__
        stmt = (
            self._insert(table)
            .values(
                wallet_address=wallet_address.lower(),
                tx_hash=tx_hash,
                block_number=block_number,
                timestamp=timestamp,
                tx_type=tx_type,
                amount_usd=amount_usd,
                chain=chain,
                metadata=metadata or {},
                created_at=datetime.now(timezone.utc),
            )
            .on_conflict_do_nothing(index_elements=["wallet_address", "tx_hash"])
            .returning(table.c.id)
        )
        async with self._session() as db:
            result = await db.execute(stmt)
            new_id = result.scalar_one_or_none()
            await db.commit()
            if new_id is None:
                logger.debug("activity_exists", address=wallet_address, tx_hash=tx_hash)
                return None
            return await db.get(WalletActivity, new_id)

    async def count_activities_since(self, since: datetime) -> int:
        async with self._session() as db:
            result = await db.execute(
                select(func.count()).select_from(WalletActivity)
                .where(WalletActivity.created_at >= since)
            )
            return result.scalar() or 0

    # --- Notification records ---

    async def claim_notification(
        self,
        subscription_id: int,
        activity_id: int,
        retry_failed: bool = False,
        stale_before: datetime | None = None,
    ) -> int | None:
        """
        Create the pending record for a (subscription, activity) pair.

        Returns the record id when this caller owns the delivery attempt, None
        when another record already exists. With ``retry_failed`` a failed
        record is moved back to pending and claimed, and so is a pending record
        claimed before ``stale_before`` (an attempt that never completed).
        """
        table = Notification.__table__
        stmt = (
            self._insert(table)
            .values(
                subscription_id=subscription_id,
                activity_id=activity_id,
                status=NotificationStatus.PENDING.value,
                created_at=datetime.now(timezone.utc),
            )
            .on_conflict_do_nothing(index_elements=["subscription_id", "activity_id"])
            .returning(table.c.id)
        )
        async with self._session() as db:
            result = await db.execute(stmt)
            claimed = result.scalar_one_or_none()
            if claimed is None and retry_failed:
                reclaimable = table.c.status == NotificationStatus.FAILED.value
                if stale_before is not None:
                    reclaimable = or_(
                        reclaimable,
                        and_(
                            table.c.status == NotificationStatus.PENDING.value,
                            table.c.created_at < stale_before,
                        ),
                    )
                # created_at restarts so a reclaimed record is not stale again at once
                result = await db.execute(
                    update(table)
                    .where(
                        table.c.subscription_id == subscription_id,
                        table.c.activity_id == activity_id,
                        reclaimable,
                    )
                    .values(
                        status=NotificationStatus.PENDING.value,
                        cast_hash=None,
                        sent_at=None,
                        created_at=datetime.now(timezone.utc),
                    )
                    .returning(table.c.id)
                )
                claimed = result.scalar_one_or_none()
            await db.commit()
        return claimed

    async def complete_notification(
        self,
        notification_id: int,
        status: NotificationStatus,
        cast_hash: str | None = None,
        sent_at: datetime | None = None,
    ):
        async with self._session() as db:
            await db.execute(
                update(Notification)
                .where(Notification.id == notification_id)
                .values(
                    status=status.value,
                    cast_hash=cast_hash,
                    sent_at=sent_at or datetime.now(timezone.utc),
                )
            )
            await db.commit()

    async def get_notification(self, subscription_id: int, activity_id: int) -> Notification | None:
        async with self._session() as db:
            result = await db.execute(
                select(Notification).where(
                    Notification.subscription_id == subscription_id,
                    Notification.activity_id == activity_id,
                )
            )
            return result.scalar_one_or_none()
