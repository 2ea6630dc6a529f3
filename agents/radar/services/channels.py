"""
Messaging Channel — Delivers notifications as Farcaster casts through Neynar.

The follower identity stored on a subscription is a Farcaster FID; the channel
resolves it to a username through the Neynar user directory so the cast can
mention the follower.
"""
import httpx
from agents.radar.models.schemas import DeliveryReceipt
import structlog

logger = structlog.get_logger()


class NeynarClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.neynar.com/v2",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "accept": "application/json",
            "api_key": self._api_key,
            "content-type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def get_username(self, fid: str) -> str | None:
        """Look up the username behind a FID. None when unknown."""
        async with self._client() as client:
            resp = await client.get(
                f"{self._base_url}/farcaster/user",
                headers=self._headers(),
                params={"fid": fid},
            )
            resp.raise_for_status()
            user = ((resp.json() or {}).get("result") or {}).get("user")
        return user.get("username") if user else None

    async def post_cast(self, signer_uuid: str, text: str, embeds: list[dict] | None = None) -> str:
        """Publish a cast and return its hash."""
        body = {"signer_uuid": signer_uuid, "text": text}
        if embeds:
            body["embeds"] = embeds
        async with self._client() as client:
            resp = await client.post(
                f"{self._base_url}/farcaster/cast",
                headers=self._headers(),
                json=body,
            )
            resp.raise_for_status()
            return ((resp.json() or {}).get("cast") or {}).get("hash") or ""


class FarcasterChannel:
    name = "farcaster"

    def __init__(self, neynar: NeynarClient, signer_uuid: str):
        self._neynar = neynar
        self._signer_uuid = signer_uuid

    async def deliver(
        self,
        recipient_identity: str,
        message: str,
        link: str | None = None,
    ) -> DeliveryReceipt:
        """Cast ``@username message``. Never raises; failures come back as success=False."""
        if not self._signer_uuid:
            logger.warning("farcaster_signer_missing", recipient=recipient_identity)
            return DeliveryReceipt(success=False)

        try:
            username = await self._neynar.get_username(recipient_identity)
            if not username:
                logger.warning("farcaster_user_not_found", fid=recipient_identity)
                return DeliveryReceipt(success=False)

            embeds = [{"url": link}] if link else None
            cast_hash = await self._neynar.post_cast(
                self._signer_uuid, f"@{username} {message}", embeds
            )
        except httpx.TimeoutException:
            logger.warning("farcaster_delivery_timeout", fid=recipient_identity)
            return DeliveryReceipt(success=False)
        except httpx.HTTPStatusError as e:
            logger.warning(
                "farcaster_delivery_rejected",
                fid=recipient_identity,
                status=e.response.status_code,
            )
            return DeliveryReceipt(success=False)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("farcaster_delivery_failed", fid=recipient_identity, error=str(e))
            return DeliveryReceipt(success=False)

        return DeliveryReceipt(receipt_id=cast_hash or None, success=True)
