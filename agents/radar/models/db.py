from sqlalchemy import (
    Column, Integer, BigInteger, String, Numeric, Boolean, DateTime,
    ForeignKey, Index, JSON, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from shared.models.base import Base, TimestampMixin
from agents.radar.config import DEFAULT_THRESHOLD_TX_COUNT, DEFAULT_THRESHOLD_USD

JSONType = JSON().with_variant(JSONB(), "postgresql")


class WalletSubscription(Base, TimestampMixin):
    __tablename__ = "wallet_subscriptions"

    id = Column(Integer, primary_key=True)
    follower_fid = Column(String(64), nullable=False)
    follower_address = Column(String(66), nullable=False)
    target_address = Column(String(66), nullable=False)
    target_name = Column(String(255))
    threshold_usd = Column(Numeric(30, 2), nullable=False, default=DEFAULT_THRESHOLD_USD)
    threshold_tx_count = Column(Integer, nullable=False, default=DEFAULT_THRESHOLD_TX_COUNT)
    is_active = Column(Boolean, nullable=False, default=True)
    last_checked = Column(DateTime(timezone=True))

    notifications = relationship("Notification", back_populates="subscription")

    __table_args__ = (
        Index("idx_wallet_sub_follower", "follower_fid"),
        Index("idx_wallet_sub_active", "is_active"),
    )


class WalletActivity(Base, TimestampMixin):
    __tablename__ = "wallet_activities"

    id = Column(Integer, primary_key=True)
    wallet_address = Column(String(66), nullable=False)
    tx_hash = Column(String(66), nullable=False)
    block_number = Column(BigInteger)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    tx_type = Column(String(30), nullable=False)
    amount_usd = Column(Numeric(30, 2), nullable=False)
    chain = Column(String(50), nullable=False, default="base")
    metadata_ = Column("metadata", JSONType, default=dict)

    notifications = relationship("Notification", back_populates="activity")

    __table_args__ = (
        UniqueConstraint("wallet_address", "tx_hash", name="uq_wallet_activity_tx"),
        Index("idx_wallet_activity_recent", "wallet_address", timestamp.desc()),
    )


class Notification(Base, TimestampMixin):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    subscription_id = Column(
        Integer, ForeignKey("wallet_subscriptions.id", ondelete="CASCADE"), nullable=False
    )
    activity_id = Column(
        Integer, ForeignKey("wallet_activities.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(String(20), nullable=False, default="pending")
    cast_hash = Column(String(66))
    sent_at = Column(DateTime(timezone=True))

    subscription = relationship("WalletSubscription", back_populates="notifications")
    activity = relationship("WalletActivity", back_populates="notifications")

    __table_args__ = (
        UniqueConstraint("subscription_id", "activity_id", name="uq_notification_pair"),
        Index("idx_notification_status", "status"),
    )
