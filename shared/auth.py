import hmac
from fastapi import HTTPException, Header
from shared.config import settings


def _matches(provided: str, expected: str) -> bool:
    return hmac.compare_digest(provided.encode(), expected.encode())


async def verify_api_key(x_api_key: str = Header(...)) -> bool:
    if not _matches(x_api_key, settings.API_SECRET_KEY):
        raise HTTPException(status_code=401, detail="Invalid API key")
    return True


async def verify_cron_secret(authorization: str | None = Header(None)) -> bool:
    """Shared-secret check for the scheduled trigger. Open when CRON_SECRET is unset."""
    if not settings.CRON_SECRET:
        return True
    if not authorization or not _matches(authorization, f"Bearer {settings.CRON_SECRET}"):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return True
