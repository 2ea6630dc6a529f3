from shared.config import settings

AGENT_NAME = "radar"

# Chain scope
CHAIN_ID = settings.RADAR_CHAIN_ID
CHAIN_NAME = settings.RADAR_CHAIN_NAME

# Polling
TX_PAGE_SIZE = settings.RADAR_TX_PAGE_SIZE
# First-ever poll of an address only sees this many transactions; no history backfill
COLD_START_PAGE_SIZE = settings.RADAR_COLD_START_PAGE_SIZE
POLL_INTERVAL = settings.RADAR_POLL_INTERVAL
MAX_CONCURRENCY = settings.RADAR_MAX_CONCURRENCY

# Timeouts (seconds)
HTTP_TIMEOUT = settings.RADAR_HTTP_TIMEOUT
SUBSCRIPTION_TIMEOUT = settings.RADAR_SUBSCRIPTION_TIMEOUT
SWEEP_DEADLINE = settings.RADAR_SWEEP_DEADLINE
COMPOSE_TIMEOUT = settings.RADAR_COMPOSE_TIMEOUT
# Channel delivery is a user lookup plus a cast
DELIVERY_TIMEOUT = HTTP_TIMEOUT * 2
# One dispatch: compose, deliver, plus the claim and completion writes
NOTIFY_TIMEOUT = COMPOSE_TIMEOUT + DELIVERY_TIMEOUT + 10.0

# Significance (USD)
MIN_SIGNIFICANT_USD = 100
DEFAULT_THRESHOLD_USD = 500
DEFAULT_THRESHOLD_TX_COUNT = 1

# Decoded log event names that mark an activity type, checked in this order
ACTIVITY_MARKERS = (
    ("Swap", "swap"),
    ("Mint", "mint"),
    ("Bridge", "bridge"),
)
