"""
Radar Poller — One sweep over every active subscription.

Per subscription: fetch -> dedup -> classify -> gate -> persist -> notify, in
that order. Subscriptions run concurrently and fail independently; a provider,
store, validation or timeout fault is counted against that subscription only.
Only a fatal error (missing credentials, store unreachable) aborts the sweep.
"""
import asyncio
import time
from datetime import datetime, timezone
from web3 import Web3
from agents.radar.config import DEFAULT_THRESHOLD_USD
from agents.radar.exceptions import (
    ConfigurationError, StoreUnavailableError, SubscriptionValidationError
)
from agents.radar.models.db import WalletActivity, WalletSubscription
from agents.radar.models.schemas import ChainTransaction, Classification, SweepResult
from agents.radar.services.classifier import classify_transaction
from agents.radar.services.cursor import load_cursor, select_new_transactions
import structlog

logger = structlog.get_logger()


def qualifies(tx: ChainTransaction, analysis: Classification, subscription: WalletSubscription) -> bool:
    """Provisional significance plus the subscription's own USD threshold.

    threshold_tx_count is not applied here.
    """
    threshold = (
        float(subscription.threshold_usd)
        if subscription.threshold_usd is not None
        else DEFAULT_THRESHOLD_USD
    )
    return analysis.significant and (tx.value_usd or 0.0) >= threshold


class _Sweep:
    """Mutable state for one sweep. Not shared between sweeps."""

    def __init__(self, deadline: float):
        self.deadline = deadline
        self.result = SweepResult()
        self._cursors: dict[str, asyncio.Task] = {}

    async def cursor_for(self, address: str, store) -> str | None:
        # One lookup per address per sweep, taken before this sweep inserts
        # anything for it, so every subscription on the address sees the same
        # boundary.
        task = self._cursors.get(address)
        if task is None:
            task = asyncio.ensure_future(load_cursor(store, address))
            self._cursors[address] = task
        return await asyncio.shield(task)


class RadarPoller:
    def __init__(
        self,
        store,
        provider,
        dispatcher=None,
        *,
        chain_id: int = 8453,
        chain_name: str = "base",
        page_size: int = 10,
        cold_start_page_size: int = 10,
        max_concurrency: int = 5,
        subscription_timeout: float = 60.0,
        sweep_deadline: float = 240.0,
        notify_timeout: float = 60.0,
    ):
        self._store = store
        self._provider = provider
        self._dispatcher = dispatcher
        self._chain_id = chain_id
        self._chain_name = chain_name
        self._page_size = page_size
        self._cold_start_page_size = cold_start_page_size
        self._max_concurrency = max(1, max_concurrency)
        self._subscription_timeout = subscription_timeout
        self._sweep_deadline = sweep_deadline
        self._notify_timeout = notify_timeout

    async def run_sweep(self) -> SweepResult:
        """Run one sweep. Raises FatalSweepError subclasses only."""
        if not self._provider.configured:
            raise ConfigurationError("Chain data provider credentials are missing")

        started = time.monotonic()
        try:
            subscriptions = await asyncio.wait_for(
                self._store.list_active_subscriptions(),
                timeout=self._subscription_timeout,
            )
        except Exception as e:
            logger.error("subscription_store_unavailable", error=str(e) or type(e).__name__)
            raise StoreUnavailableError("Subscription store unavailable") from e

        loop = asyncio.get_running_loop()
        sweep = _Sweep(deadline=loop.time() + self._sweep_deadline)
        if not subscriptions:
            logger.info("sweep_no_subscriptions")
            return sweep.result

        semaphore = asyncio.Semaphore(self._max_concurrency)
        await asyncio.gather(
            *(self._run_subscription(sweep, semaphore, sub) for sub in subscriptions)
        )

        result = sweep.result
        logger.info(
            "sweep_complete",
            checked=result.checked,
            new_activities=result.new_activities,
            errors=result.errors,
            skipped=result.skipped,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return result

    async def _run_subscription(self, sweep: _Sweep, semaphore: asyncio.Semaphore, sub: WalletSubscription):
        async with semaphore:
            if asyncio.get_running_loop().time() >= sweep.deadline:
                sweep.result.skipped += 1
                logger.warning("subscription_skipped_deadline", subscription_id=sub.id)
                return

            persisted: list[WalletActivity] = []
            with structlog.contextvars.bound_contextvars(subscription_id=sub.id):
                try:
                    await asyncio.wait_for(
                        self._process_subscription(sweep, sub, persisted),
                        timeout=self._subscription_timeout,
                    )
                    sweep.result.checked += 1
                except asyncio.TimeoutError:
                    sweep.result.errors += 1
                    logger.error("subscription_timeout", timeout=self._subscription_timeout)
                except Exception as e:
                    sweep.result.errors += 1
                    logger.error("subscription_failed", error=str(e), error_type=type(e).__name__)

                # Stored events are notified even if the subscription failed later on
                await self._notify_all(sweep, sub, persisted)

    async def _process_subscription(
        self,
        sweep: _Sweep,
        sub: WalletSubscription,
        persisted: list[WalletActivity],
    ):
        address = (sub.target_address or "").lower()
        if not Web3.is_address(address):
            raise SubscriptionValidationError(f"Invalid target address {sub.target_address!r}")

        cursor = await sweep.cursor_for(address, self._store)
        page_size = self._page_size if cursor else self._cold_start_page_size
        transactions = await self._provider.fetch_recent_transactions(
            address, self._chain_id, page_size
        )
        new_txns = select_new_transactions(transactions, cursor)

        for tx in new_txns:
            analysis = classify_transaction(tx)
            if not qualifies(tx, analysis, sub):
                continue

            activity = await self._store.insert_activity_if_absent(
                wallet_address=address,
                tx_hash=tx.tx_hash,
                block_number=tx.block_height,
                timestamp=tx.block_signed_at,
                tx_type=analysis.type.value,
                amount_usd=tx.value_usd,
                chain=self._chain_name,
                metadata={
                    "from": tx.from_address,
                    "to": tx.to_address,
                    "description": analysis.description,
                },
            )
            if activity is not None:
                sweep.result.new_activities += 1
                logger.info("activity_stored", tx_hash=tx.tx_hash, tx_type=analysis.type.value, amount_usd=tx.value_usd)
            else:
                # Stored by another subscription or an overlapping sweep
                activity = await self._store.get_activity_by_tx(address, tx.tx_hash)
            if activity is not None:
                persisted.append(activity)

        await self._store.update_last_checked(sub.id, datetime.now(timezone.utc))
        logger.debug("subscription_checked", fetched=len(transactions), new=len(new_txns), qualifying=len(persisted))

    async def _notify_all(self, sweep: _Sweep, sub: WalletSubscription, activities: list[WalletActivity]):
        """Channel and composer failures are recorded on the notification, not
        counted. A dispatch that overruns ``notify_timeout`` counts as an error."""
        if self._dispatcher is None:
            return
        for activity in activities:
            try:
                await asyncio.wait_for(
                    self._dispatcher.dispatch(sub, activity),
                    timeout=self._notify_timeout,
                )
            except asyncio.TimeoutError:
                sweep.result.errors += 1
                logger.error("notification_timeout", activity_id=activity.id, timeout=self._notify_timeout)
            except Exception as e:
                logger.error("notification_dispatch_failed", activity_id=activity.id, error=str(e))
