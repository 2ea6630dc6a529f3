from apscheduler.schedulers.asyncio import AsyncIOScheduler
import structlog

logger = structlog.get_logger()

scheduler = AsyncIOScheduler()


def add_interval_job(func, seconds: int, job_id: str):
    """Register a non-overlapping interval job; missed runs collapse into one."""
    return scheduler.add_job(
        func,
        "interval",
        seconds=seconds,
        id=job_id,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )


def start_scheduler():
    if not scheduler.running:
        scheduler.start()
        logger.info("scheduler_started", jobs=[job.id for job in scheduler.get_jobs()])


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")
