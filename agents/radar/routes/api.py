"""
Radar Agent REST API routes.
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query
from web3 import Web3
from shared.auth import verify_api_key, verify_cron_secret
from agents.radar.dependencies import get_dispatcher, get_poller, get_store
from agents.radar.exceptions import FatalSweepError
from agents.radar.models.schemas import (
    ActivityResponse, HealthResponse, NotificationResponse, NotificationStatus, NotifyRequest,
    NotifyResponse, SubscriptionResponse, SweepResponse, WatchRequest
)
from agents.radar.services.dispatcher import NotificationDispatcher
from agents.radar.services.poller import RadarPoller
from agents.radar.services.store import RadarStore
import structlog

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/radar", tags=["radar"])


@router.get("/health", response_model=HealthResponse)
async def health(store: RadarStore = Depends(get_store)):
    resp = HealthResponse()
    try:
        today_start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        resp.active_subscriptions = await store.count_active_subscriptions()
        resp.activities_today = await store.count_activities_since(today_start)
    except Exception as e:
        logger.warning("health_db_unavailable", error=str(e))
        resp.status = "ok (no db)"
    return resp


# --- Trigger ---

@router.post("/poll", response_model=SweepResponse)
async def poll(
    poller: RadarPoller = Depends(get_poller),
    _auth: bool = Depends(verify_cron_secret),
):
    try:
        results = await poller.run_sweep()
    except FatalSweepError as e:
        logger.error("sweep_aborted", error=str(e), error_type=type(e).__name__)
        raise HTTPException(status_code=500, detail=str(e) or "Polling failed")
    return SweepResponse(results=results)


@router.get("/poll")
async def poll_status():
    return {
        "status": "ok",
        "service": "wallet-poller",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# --- Subscriptions ---

@router.get("/watch", response_model=list[SubscriptionResponse])
async def list_subscriptions(
    fid: str = Query(..., min_length=1, description="Follower Farcaster FID"),
    store: RadarStore = Depends(get_store),
    _key: bool = Depends(verify_api_key),
):
    return await store.list_follower_subscriptions(fid)


@router.post("/watch", response_model=SubscriptionResponse, status_code=201)
async def follow(
    req: WatchRequest,
    store: RadarStore = Depends(get_store),
    _key: bool = Depends(verify_api_key),
):
    return await store.add_subscription(**req.model_dump())


@router.delete("/watch")
async def unfollow(
    id: int = Query(..., description="Subscription id"),
    store: RadarStore = Depends(get_store),
    _key: bool = Depends(verify_api_key),
):
    if not await store.deactivate_subscription(id):
        raise HTTPException(status_code=404, detail="Subscription not found")
    return {"success": True, "message": "Subscription removed"}


# --- Activity ---

@router.get("/activity", response_model=list[ActivityResponse])
async def recent_activity(
    address: str,
    limit: int = Query(20, ge=1, le=100),
    store: RadarStore = Depends(get_store),
    _key: bool = Depends(verify_api_key),
):
    if not Web3.is_address(address):
        raise HTTPException(status_code=400, detail="Invalid wallet address")
    return await store.get_recent_activity(address, limit)


# --- Notifications ---

@router.post("/notify", response_model=NotifyResponse)
async def notify(
    req: NotifyRequest,
    store: RadarStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    _key: bool = Depends(verify_api_key),
):
    """Manual (re-)notification for one pair. Failed records may be retried."""
    subscription = await store.get_subscription(req.subscription_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    activity = await store.get_activity(req.activity_id)
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    if activity.wallet_address != subscription.target_address.lower():
        raise HTTPException(status_code=400, detail="Activity does not belong to the subscription's target")

    receipt = await dispatcher.dispatch(subscription, activity, link=req.frame_url, retry_failed=True)
    if receipt is None:
        raise HTTPException(status_code=409, detail="Notification already recorded")

    return NotifyResponse(
        success=receipt.success,
        status=NotificationStatus.SENT if receipt.success else NotificationStatus.FAILED,
        cast_hash=receipt.receipt_id,
    )


@router.get("/notify", response_model=NotificationResponse)
async def notification_status(
    subscription_id: int,
    activity_id: int,
    store: RadarStore = Depends(get_store),
    _key: bool = Depends(verify_api_key),
):
    """Delivery record for one pair; failed records can be re-sent with POST /notify."""
    record = await store.get_notification(subscription_id, activity_id)
    if not record:
        raise HTTPException(status_code=404, detail="Notification not found")
    return record
