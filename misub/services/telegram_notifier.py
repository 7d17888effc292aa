"""
Telegram Notifier
Best-effort access notifications through the Telegram Bot API
"""
from datetime import datetime
from typing import Any, Dict, Optional
import logging

import requests

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Sends Markdown messages to the chat configured in settings"""

    API_URL = "https://api.telegram.org"

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    @staticmethod
    def is_configured(config: Dict[str, Any]) -> bool:
        return bool(str(config.get("BotToken") or "").strip() and str(config.get("ChatID") or "").strip())

    @staticmethod
    def build_message(title: str, client_ip: str, additional_data: str, now: Optional[datetime] = None) -> str:
        stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
        lines = [title, "", f"*IP:* `{client_ip}`"]
        if additional_data:
            lines.append(additional_data)
        lines.append(f"*Time:* `{stamp}`")
        return "\n".join(lines)

    def send(self, config: Dict[str, Any], title: str, client_ip: str, additional_data: str = "") -> bool:
        """Send one notification. Never raises; returns True when Telegram accepted it."""
        if not self.is_configured(config):
            return False
        bot_token = str(config.get("BotToken")).strip()
        payload = {
            "chat_id": str(config.get("ChatID")).strip(),
            "text": self.build_message(title, client_ip, additional_data),
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }
        try:
            response = requests.post(
                f"{self.API_URL}/bot{bot_token}/sendMessage",
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return True
        except requests.RequestException as exc:
            logger.warning("Telegram notification failed: %s", exc)
            return False
