"""
Dedup Cursor — Incremental scan over a newest-first page of transactions.

The cursor for an address is the tx hash of its most recently stored activity.
It is derived from the activity table, never stored separately.

Known gap: when more transactions than one page arrive between polls the cursor
falls off the page and the whole page is treated as new. Older activity beyond
the page is not fetched.
"""
from typing import Sequence
from agents.radar.models.schemas import ChainTransaction


def select_new_transactions(
    transactions: Sequence[ChainTransaction],
    cursor: str | None,
) -> list[ChainTransaction]:
    """Return the transactions strictly newer than ``cursor`` (exclusive stop)."""
    if cursor is None:
        return list(transactions)

    new_txns = []
    for tx in transactions:
        if tx.tx_hash == cursor:
            break
        new_txns.append(tx)
    return new_txns


async def load_cursor(store, address: str) -> str | None:
    """Derive the cursor from the most recent stored activity for ``address``."""
    latest = await store.get_recent_activity(address, limit=1)
    return latest[0].tx_hash if latest else None
