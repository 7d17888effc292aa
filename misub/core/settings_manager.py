"""
Settings Manager
Overlays stored worker settings onto defaults and migrates legacy shapes
"""
import logging
import re
from typing import Any, Dict

logger = logging.getLogger(__name__)


class SettingsManager:
    """Builds the effective settings dict used by a single request"""

    DEFAULT_SETTINGS = {
        # Access
        "FileName": "MiSub",
        "mytoken": "auto",
        "profileToken": "profiles",

        # Conversion backend
        "subConverter": "url.v1.mk",
        "subConfig": "https://raw.githubusercontent.com/cmliu/ACL4SSR/main/Clash/config/ACL4SSR_Online_MultiCountry.ini",
        "subConverterTimeoutSeconds": 30.0,

        # Node composition
        "prependSubName": True,
        "subscriptionFetchTimeoutSeconds": 15.0,

        # Notifications
        "BotToken": "",
        "ChatID": "",
        "notifyTimezone": "Asia/Shanghai",
    }

    # legacy key -> current key
    LEGACY_KEYS = {
        "subconverter": "subConverter",
        "subconfig": "subConfig",
        "filename": "FileName",
        "token": "mytoken",
        "profile_token": "profileToken",
    }

    @classmethod
    def merge(cls, stored: Any) -> Dict[str, Any]:
        """Overlay stored settings on the defaults, then migrate to the current shape."""
        if not isinstance(stored, dict):
            if stored is not None:
                logger.warning("Ignoring stored settings of type %s", type(stored).__name__)
            stored = {}
        migrated = cls.migrate(stored)
        return {**cls.DEFAULT_SETTINGS, **migrated}

    @classmethod
    def migrate(cls, settings: Dict[str, Any]) -> Dict[str, Any]:
        result = dict(settings)
        for legacy, current in cls.LEGACY_KEYS.items():
            if legacy in result:
                value = result.pop(legacy)
                if current not in result:
                    result[current] = value
        if isinstance(result.get("subConverter"), str):
            result["subConverter"] = cls.normalize_backend(result["subConverter"])
        return result

    @staticmethod
    def normalize_backend(value: str) -> str:
        text = re.sub(r"^https?://", "", (value or "").strip(), flags=re.IGNORECASE)
        return text.rstrip("/")

    @staticmethod
    def get_float(settings: Dict[str, Any], key: str, default: float) -> float:
        try:
            return float(settings.get(key, default) or default)
        except (TypeError, ValueError):
            return default
