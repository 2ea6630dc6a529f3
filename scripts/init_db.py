"""
Initialize the Onchain Radar tables in Supabase PostgreSQL.

Usage:
    python -m scripts.init_db

Requires DATABASE_URL in .env pointing to Supabase PostgreSQL.
"""
import asyncio
from sqlalchemy import text
from shared.config import settings
from shared.database import build_engine

SCHEMA_SQL = """
-- Followers watching target wallets (soft-deleted via is_active)
CREATE TABLE IF NOT EXISTS wallet_subscriptions (
    id SERIAL PRIMARY KEY,
    follower_fid VARCHAR(64) NOT NULL,
    follower_address VARCHAR(66) NOT NULL,
    target_address VARCHAR(66) NOT NULL,
    target_name VARCHAR(255),
    threshold_usd NUMERIC(30, 2) NOT NULL DEFAULT 500,
    threshold_tx_count INTEGER NOT NULL DEFAULT 1,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    last_checked TIMESTAMPTZ,
    created_at TIMESTAMPTZ DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_wallet_sub_follower ON wallet_subscriptions(follower_fid);
CREATE INDEX IF NOT EXISTS idx_wallet_sub_active ON wallet_subscriptions(is_active);

-- Significant activity, at most one row per (wallet, tx)
CREATE TABLE IF NOT EXISTS wallet_activities (
    id SERIAL PRIMARY KEY,
    wallet_address VARCHAR(66) NOT NULL,
    tx_hash VARCHAR(66) NOT NULL,
    block_number BIGINT,
    timestamp TIMESTAMPTZ NOT NULL,
    tx_type VARCHAR(30) NOT NULL,  -- 'swap', 'mint', 'bridge', 'transfer'
    amount_usd NUMERIC(30, 2) NOT NULL,
    chain VARCHAR(50) NOT NULL DEFAULT 'base',
    metadata JSONB DEFAULT '{}',
    created_at TIMESTAMPTZ DEFAULT NOW(),
    CONSTRAINT uq_wallet_activity_tx UNIQUE (wallet_address, tx_hash)
);
CREATE INDEX IF NOT EXISTS idx_wallet_activity_recent ON wallet_activities(wallet_address, timestamp DESC);

-- One delivery attempt per (subscription, activity)
CREATE TABLE IF NOT EXISTS notifications (
    id SERIAL PRIMARY KEY,
    subscription_id INTEGER NOT NULL REFERENCES wallet_subscriptions(id) ON DELETE CASCADE,
    activity_id INTEGER NOT NULL REFERENCES wallet_activities(id) ON DELETE CASCADE,
    status VARCHAR(20) NOT NULL DEFAULT 'pending',  -- 'pending', 'sent', 'failed'
    cast_hash VARCHAR(66),
    sent_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    CONSTRAINT uq_notification_pair UNIQUE (subscription_id, activity_id)
);
CREATE INDEX IF NOT EXISTS idx_notification_status ON notifications(status);
"""


async def init_database():
    if not settings.DATABASE_URL:
        print("ERROR: DATABASE_URL not configured. Set it in .env")
        return

    engine = build_engine(settings.DATABASE_URL)
    print("Connecting to database...")
    try:
        async with engine.begin() as conn:
            print("Running schema migration...")
            for statement in SCHEMA_SQL.split(";"):
                statement = statement.strip()
                if statement:
                    await conn.execute(text(statement))
            print("All tables created successfully.")
    finally:
        await engine.dispose()

    print("Database initialization complete.")


if __name__ == "__main__":
    asyncio.run(init_database())
