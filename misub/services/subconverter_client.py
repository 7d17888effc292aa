"""
Subconverter Client
Asks an external subconverter backend to translate a base64 node list
"""
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import urlencode
import logging

import requests

from ..core.errors import UpstreamFailure

logger = logging.getLogger(__name__)

CONFIG_AWARE_TARGETS = {"clash", "loon", "surge"}


@dataclass
class UpstreamResponse:
    status_code: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)


class SubconverterClient:
    """Thin requests wrapper around a subconverter ``/sub`` endpoint"""

    USER_AGENT = "Mozilla/5.0"

    def __init__(self, timeout: Optional[float] = 30.0):
        self.timeout = timeout

    @staticmethod
    def endpoint(backend: str) -> str:
        backend = (backend or "").strip().rstrip("/")
        if backend.lower().startswith(("http://", "https://")):
            return backend if backend.endswith("/sub") else f"{backend}/sub"
        return f"https://{backend}/sub"

    def build_url(self, backend: str, target: str, source_url: str, config: str = "") -> str:
        params = {"target": target, "url": source_url}
        if target in CONFIG_AWARE_TARGETS and config and config.strip():
            params["config"] = config
        params["new_name"] = "true"
        return f"{self.endpoint(backend)}?{urlencode(params)}"

    def convert(self, backend: str, target: str, source_url: str, config: str = "",
                timeout: Optional[float] = None) -> UpstreamResponse:
        url = self.build_url(backend, target, source_url, config)
        try:
            response = requests.get(
                url,
                headers={"User-Agent": self.USER_AGENT},
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Subconverter %s unreachable: %s", backend, exc)
            raise UpstreamFailure(str(exc)) from exc

        # Converters answer UTF-8 without a charset; requests would guess Latin-1 for text/*.
        response.encoding = "utf-8"
        if not 200 <= response.status_code < 300:
            logger.error("Subconverter %s returned %s", backend, response.status_code)
            raise UpstreamFailure(
                f"Subconverter service returned status: {response.status_code}. Body: {response.text}"
            )
        return UpstreamResponse(
            status_code=response.status_code,
            text=response.text,
            headers={str(k).lower(): str(v) for k, v in (response.headers or {}).items()},
        )
