"""
Callback relay for the external converter.

The converter never receives node data inline. It is handed a URL back into
this service, authenticated by a process-wide token derived from secret
material, and fetches the base64 node list from there.
"""

from __future__ import annotations

import hashlib
import hmac
import os
from functools import lru_cache
from typing import Mapping, Optional
from urllib.parse import quote, urlencode

CALLBACK_PARAM = "callback_token"
DEFAULT_CALLBACK_SECRET = "default-callback-secret"


@lru_cache(maxsize=8)
def derive_callback_token(secret: str) -> str:
    digest = hashlib.sha256(f"{secret}-misub-callback".encode("utf-8")).hexdigest()
    return digest[:16]


def callback_token_from_env() -> str:
    secret = str(os.environ.get("MISUB_COOKIE_SECRET", "") or "").strip()
    return derive_callback_token(secret or DEFAULT_CALLBACK_SECRET)


def build_callback_url(
    scheme: str,
    host: str,
    token: str,
    profile_identifier: Optional[str],
    callback_token: str,
) -> str:
    path = f"/sub/{quote(token, safe='')}"
    if profile_identifier:
        path += f"/{quote(profile_identifier, safe='')}"
    query = urlencode({"target": "base64", CALLBACK_PARAM: callback_token})
    return f"{scheme}://{host}{path}?{query}"


def is_machine_request(query: Mapping[str, str]) -> bool:
    """Any request carrying a callback token came from the converter, valid or not."""
    return CALLBACK_PARAM in query


def is_valid_callback(query: Mapping[str, str], callback_token: str) -> bool:
    presented = query.get(CALLBACK_PARAM)
    if not presented or not callback_token:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), callback_token.encode("utf-8"))
