"""Operator alerts sent to a Telegram chat."""

from typing import Optional

import httpx

from papelaria.logging_config import get_logger

logger = get_logger("alert_service")

EMOJI = {"INFO": "ℹ️", "WARNING": "⚠️", "ERROR": "❌", "CRITICAL": "🔥"}


class OperatorAlerts:
    """Notify the shop operator (handoff requests, failed uploads).

    Disabled when no bot token / chat id is configured: alerts are then only logged.
    """

    def __init__(self, bot_token: Optional[str], chat_id: Optional[str], timeout_seconds: float = 10.0):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    async def send_alert(self, level: str, message: str, context: Optional[dict] = None) -> bool:
        """Send alert to Telegram.

        Args:
            level: INFO, WARNING, ERROR, CRITICAL
            message: Alert message
            context: Optional context dict

        Returns:
            True if sent successfully
        """
        if not self.enabled:
            logger.warning(f"Alert not configured: {level} - {message}", extra={"context": context or {}})
            return False

        text = f"{EMOJI.get(level, '📢')} *{level}*\n\n{message}"

        if context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
            text += f"\n\n```\n{context_str}\n```"

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    f"https://api.telegram.org/bot{self.bot_token}/sendMessage",
                    json={"chat_id": self.chat_id, "text": text, "parse_mode": "Markdown"},
                )
                return response.status_code == 200
        except Exception as e:
            logger.error(f"Failed to send alert: {e}")
            return False

    async def handoff_requested(self, contact_id: str, sender_name: str) -> bool:
        return await self.send_alert(
            "INFO",
            "Cliente pediu atendimento humano",
            {"contact": contact_id, "name": sender_name},
        )

    async def upload_failed(self, contact_id: str, error: Optional[str]) -> bool:
        return await self.send_alert("ERROR", "Falha ao salvar arquivo enviado", {"contact": contact_id, "error": error})
