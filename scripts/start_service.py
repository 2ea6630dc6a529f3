"""
Service starter — reads SERVICE env var and starts the radar API or runs one sweep.
Used by Docker/Railway; SERVICE=sweep suits a platform cron that runs a command
instead of calling the HTTP trigger.
"""
import asyncio
import os
import sys
import uvicorn

SERVICE = os.environ.get("SERVICE", "radar")
PORT = int(os.environ.get("PORT", 8002))

SERVICES = {
    "radar": "agents.radar.main:app",
    "sweep": None,  # Special case: one sweep, then exit
}


async def run_sweep_once() -> int:
    from shared.utils.logging import setup_logging
    from agents.radar.dependencies import build_radar
    from agents.radar.exceptions import FatalSweepError

    setup_logging()
    radar = build_radar()
    try:
        result = await radar.poller.run_sweep()
    except FatalSweepError as e:
        print(f"ERROR: sweep aborted: {e}")
        return 1
    finally:
        await radar.engine.dispose()
    print(result.model_dump_json(by_alias=True))
    return 0


def main():
    if SERVICE not in SERVICES:
        print(f"ERROR: Unknown service '{SERVICE}'. Options: {', '.join(SERVICES.keys())}")
        sys.exit(1)

    if SERVICE == "sweep":
        sys.exit(asyncio.run(run_sweep_once()))

    print(f"Starting {SERVICE} on port {PORT}...")
    uvicorn.run(
        SERVICES[SERVICE],
        host="0.0.0.0",
        port=PORT,
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
