"""
Radar collaborators, built once at process start and shared through app.state.
"""
from dataclasses import dataclass
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine
from shared.config import settings
from shared.claude_client import build_claude_client
from shared.database import build_engine
from agents.radar.config import (
    CHAIN_ID, CHAIN_NAME, TX_PAGE_SIZE, COLD_START_PAGE_SIZE, MAX_CONCURRENCY,
    HTTP_TIMEOUT, SUBSCRIPTION_TIMEOUT, SWEEP_DEADLINE, COMPOSE_TIMEOUT, DELIVERY_TIMEOUT,
    NOTIFY_TIMEOUT
)
from agents.radar.services.channels import FarcasterChannel, NeynarClient
from agents.radar.services.composer import NotificationComposer
from agents.radar.services.dispatcher import NotificationDispatcher
from agents.radar.services.poller import RadarPoller
from agents.radar.services.provider import CovalentProvider
from agents.radar.services.store import RadarStore


@dataclass
class RadarServices:
    engine: AsyncEngine
    store: RadarStore
    dispatcher: NotificationDispatcher
    poller: RadarPoller


def build_radar(database_url: str | None = None) -> RadarServices:
    engine = build_engine(
        database_url if database_url is not None else settings.DATABASE_URL,
        echo=settings.LOG_LEVEL == "DEBUG",
    )
    store = RadarStore(engine)
    provider = CovalentProvider(
        api_key=settings.COVALENT_API_KEY,
        base_url=settings.COVALENT_BASE_URL,
        timeout=HTTP_TIMEOUT,
    )
    channel = FarcasterChannel(
        NeynarClient(
            api_key=settings.NEYNAR_API_KEY,
            base_url=settings.NEYNAR_BASE_URL,
            timeout=HTTP_TIMEOUT,
        ),
        signer_uuid=settings.NEYNAR_SIGNER_UUID,
    )
    composer = NotificationComposer(build_claude_client(), timeout=COMPOSE_TIMEOUT)
    dispatcher = NotificationDispatcher(
        store,
        composer,
        channel,
        app_url=settings.APP_URL,
        timeout=DELIVERY_TIMEOUT,
        stale_after=NOTIFY_TIMEOUT,
    )
    poller = RadarPoller(
        store,
        provider,
        dispatcher,
        chain_id=CHAIN_ID,
        chain_name=CHAIN_NAME,
        page_size=TX_PAGE_SIZE,
        cold_start_page_size=COLD_START_PAGE_SIZE,
        max_concurrency=MAX_CONCURRENCY,
        subscription_timeout=SUBSCRIPTION_TIMEOUT,
        sweep_deadline=SWEEP_DEADLINE,
        notify_timeout=NOTIFY_TIMEOUT,
    )
    return RadarServices(engine=engine, store=store, dispatcher=dispatcher, poller=poller)


def get_radar(request: Request) -> RadarServices:
    return request.app.state.radar


def get_store(request: Request) -> RadarStore:
    return get_radar(request).store


def get_poller(request: Request) -> RadarPoller:
    return get_radar(request).poller


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return get_radar(request).dispatcher
