"""
Onchain Radar — FastAPI application (port 8002)

Watches wallets on Base for followers, stores significant activity once per
transaction and casts a Farcaster notification to each follower.

Sweeps are started by an external cron (POST /api/v1/radar/poll) and,
optionally, by the in-process scheduler.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from shared.config import settings
from shared.models.base import Base
from shared.utils.logging import setup_logging
from shared.utils.scheduler import add_interval_job, start_scheduler, stop_scheduler
from agents.radar.config import AGENT_NAME, POLL_INTERVAL
from agents.radar.dependencies import RadarServices, build_radar
from agents.radar.exceptions import FatalSweepError
from agents.radar.routes.api import router
import structlog

logger = structlog.get_logger()


def create_app(radar: RadarServices | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        services = radar or build_radar()
        app.state.radar = services

        if settings.ENVIRONMENT == "development" and services.engine.dialect.name == "sqlite":
            async with services.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        async def _poll_job():
            try:
                await services.poller.run_sweep()
            except FatalSweepError as e:
                logger.error("scheduled_sweep_aborted", error=str(e), error_type=type(e).__name__)

        if settings.RADAR_SCHEDULER_ENABLED:
            add_interval_job(_poll_job, seconds=POLL_INTERVAL, job_id=f"{AGENT_NAME}_poller")
            start_scheduler()

        logger.info("radar_agent_starting", scheduler=settings.RADAR_SCHEDULER_ENABLED)
        yield

        stop_scheduler()
        await services.engine.dispose()
        logger.info("radar_agent_stopped")

    app = FastAPI(
        title="Onchain Radar",
        description="Watches wallets on Base and notifies followers on Farcaster when they make significant moves.",
        version="1.0.0",
        lifespan=lifespan,
    )
    if radar is not None:
        app.state.radar = radar
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("agents.radar.main:app", host="0.0.0.0", port=8002, reload=True)
