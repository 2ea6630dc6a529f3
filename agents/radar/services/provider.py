"""
Chain Provider — Fetches recent transactions for an address from Covalent.
Returns newest-first ChainTransaction lists; failures raise instead of
returning an empty page so the poller can count them.
"""
import httpx
from pydantic import ValidationError
from agents.radar.models.schemas import ChainTransaction
from agents.radar.exceptions import ConfigurationError, ProviderError, TransactionValidationError
import structlog

logger = structlog.get_logger()


def parse_transaction(item: dict) -> ChainTransaction:
    """Map one Covalent ``transactions_v3`` item onto a ChainTransaction."""
    logs = item.get("log_events") or []
    decoded_names = [
        (log.get("decoded") or {}).get("name")
        for log in logs
        if isinstance(log, dict)
    ]
    try:
        return ChainTransaction(
            tx_hash=(item.get("tx_hash") or "").lower(),
            block_height=item.get("block_height"),
            block_signed_at=item.get("block_signed_at"),
            from_address=(item.get("from_address") or "").lower() or None,
            to_address=(item.get("to_address") or "").lower() or None,
            value_usd=item.get("value_quote") or 0.0,
            decoded_logs=[name for name in decoded_names if name],
        )
    except ValidationError as e:
        raise TransactionValidationError(
            f"Malformed transaction {item.get('tx_hash')!r}: {e.error_count()} error(s)"
        ) from e


class CovalentProvider:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.covalenthq.com/v1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def fetch_recent_transactions(
        self,
        address: str,
        chain_id: int,
        page_size: int,
    ) -> list[ChainTransaction]:
        if not self._api_key:
            raise ConfigurationError("COVALENT_API_KEY not configured")

        url = f"{self._base_url}/{chain_id}/address/{address}/transactions_v3/"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(
                    url,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    params={"page-size": page_size},
                )
                resp.raise_for_status()
                payload = resp.json()
        except httpx.TimeoutException as e:
            raise ProviderError(f"Covalent timed out for {address}") from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Covalent returned {e.response.status_code} for {address}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"Covalent request failed for {address}: {e}") from e

        if not isinstance(payload, dict):
            raise ProviderError(f"Covalent returned an unexpected body for {address}")
        items = (payload.get("data") or {}).get("items") or []
        txns = [parse_transaction(item) for item in items[:page_size]]
        logger.debug("transactions_fetched", address=address, count=len(txns))
        return txns
