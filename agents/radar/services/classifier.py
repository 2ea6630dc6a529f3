"""
Activity Classifier — Maps a raw provider transaction to an activity type and a
provisional significance flag. Pure: no I/O, no state.
"""
from agents.radar.config import ACTIVITY_MARKERS, MIN_SIGNIFICANT_USD
from agents.radar.models.schemas import ActivityType, ChainTransaction, Classification


def resolve_activity_type(decoded_logs: list[str]) -> ActivityType:
    """
    First marker present wins, in (Swap, Mint, Bridge) order.
    Log order inside the transaction is irrelevant.
    """
    names = set(decoded_logs)
    for marker, tx_type in ACTIVITY_MARKERS:
        if marker in names:
            return ActivityType(tx_type)
    return ActivityType.TRANSFER


def classify_transaction(tx: ChainTransaction) -> Classification:
    value_usd = tx.value_usd or 0.0
    tx_type = resolve_activity_type(tx.decoded_logs)
    return Classification(
        type=tx_type,
        significant=value_usd >= MIN_SIGNIFICANT_USD,
        description=f"{tx_type.value} worth {value_usd:.2f} USD",
    )
