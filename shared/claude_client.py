import anthropic
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
from shared.config import settings


class ClaudeClient:
    """Thin async wrapper around the Anthropic messages API."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        timeout: float = 15.0,
    ):
        self.model = model
        self._client = (
            anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)
            if api_key else None
        )

    @property
    def configured(self) -> bool:
        return self._client is not None

    @retry(
        retry=retry_if_exception_type(
            (anthropic.APIConnectionError, anthropic.RateLimitError, anthropic.InternalServerError)
        ),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def ask(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int = 256,
        temperature: float = 0.7,
    ) -> str:
        """Send a prompt to Claude and return the text response."""
        if not self._client:
            raise RuntimeError("ANTHROPIC_API_KEY not configured")
        response = await self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_message}],
        )
        return response.content[0].text


def build_claude_client() -> ClaudeClient:
    return ClaudeClient(
        api_key=settings.ANTHROPIC_API_KEY,
        model=settings.CLAUDE_MODEL,
        timeout=settings.RADAR_COMPOSE_TIMEOUT,
    )
