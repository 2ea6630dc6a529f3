"""
Notification Composer — Phrases an activity alert with Claude.
Best-effort: any Claude failure falls back to a fixed template.
"""
import asyncio
import json
from shared.claude_client import ClaudeClient
from agents.radar.models.schemas import ActivityType, NotificationContext
import structlog

logger = structlog.get_logger()

MAX_MESSAGE_CHARS = 280

SYSTEM_PROMPT = (
    "You write one-line Farcaster notifications about on-chain wallet activity. "
    "Use the wallet name, the activity, the USD amount and the chain from the JSON you are given. "
    "Keep it under 200 characters, at most one emoji, no hashtags, no financial advice. "
    "Reply with the notification text only."
)

EMOJIS = {
    ActivityType.SWAP: "🔄",
    ActivityType.TRANSFER: "💸",
    ActivityType.MINT: "🎨",
    ActivityType.BRIDGE: "🌉",
}

VERBS = {
    ActivityType.SWAP: "swapped",
    ActivityType.TRANSFER: "transferred",
    ActivityType.MINT: "minted",
    ActivityType.BRIDGE: "bridged",
}


def display_name(address: str, name: str | None) -> str:
    return name or f"Wallet {address[:6]}...{address[-4:]}"


def format_usd(amount: float) -> str:
    return f"${amount:,.0f}"


def fallback_message(ctx: NotificationContext) -> str:
    emoji = EMOJIS.get(ctx.tx_type, "⚡")
    verb = VERBS.get(ctx.tx_type, ctx.tx_type.value)
    return (
        f"{emoji} {display_name(ctx.target_address, ctx.target_name)} just {verb} "
        f"{format_usd(ctx.amount_usd)} on {ctx.chain.upper()}!\n\n"
        f"Check the details in Onchain Radar 📡"
    )


class NotificationComposer:
    def __init__(self, claude: ClaudeClient | None, timeout: float = 15.0):
        self._claude = claude
        self._timeout = timeout

    async def compose_message(self, ctx: NotificationContext) -> str:
        if self._claude is None or not self._claude.configured:
            return fallback_message(ctx)

        payload = {
            "wallet": display_name(ctx.target_address, ctx.target_name),
            "address": ctx.target_address,
            "activity": ctx.tx_type.value,
            "amount_usd": round(ctx.amount_usd, 2),
            "chain": ctx.chain,
        }
        try:
            text = await asyncio.wait_for(
                self._claude.ask(SYSTEM_PROMPT, json.dumps(payload)),
                timeout=self._timeout,
            )
        except Exception as e:
            logger.warning("compose_fallback", error=str(e) or type(e).__name__, address=ctx.target_address)
            return fallback_message(ctx)

        text = (text or "").strip()
        if not text:
            return fallback_message(ctx)
        return text[:MAX_MESSAGE_CHARS]
