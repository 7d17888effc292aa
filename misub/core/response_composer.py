"""
Response Composer
Turns a composed node list into the final body: base64 directly, or via the converter
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from ..utils.format_utils import attachment_disposition, encode_base64_text
from .callback_relay import build_callback_url, is_valid_callback
from .node_selector import EXPIRED_NODES_TEXT
from .request_context import RequestContext, SubscriptionRequest
from .settings_manager import SettingsManager

PLAIN_TEXT = "text/plain; charset=utf-8"
NO_STORE = "no-store, no-cache"

# Converter headers that clients read for quota and refresh hints.
PASSTHROUGH_HEADERS = ("subscription-userinfo", "profile-update-interval", "profile-web-page-url")


@dataclass
class ComposedResponse:
    body: str
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)


def _plain(body: str, status_code: int = 200, extra: Optional[Dict[str, str]] = None) -> ComposedResponse:
    headers = dict(extra or {})
    headers["Content-Type"] = PLAIN_TEXT
    headers["Cache-Control"] = NO_STORE
    return ComposedResponse(body=body, status_code=status_code, headers=headers)


def compose_response(
    ctx: RequestContext,
    node_list: str,
    request: SubscriptionRequest,
    callback_token: str,
    converter,
) -> ComposedResponse:
    if ctx.target_format == "base64":
        content = EXPIRED_NODES_TEXT if ctx.is_profile_expired else node_list
        return _plain(encode_base64_text(content))

    base64_content = encode_base64_text(node_list)
    callback_url = build_callback_url(
        request.scheme, request.host, ctx.token, ctx.profile_identifier, callback_token
    )
    if is_valid_callback(request.query, callback_token):
        return _plain(base64_content)

    upstream = converter.convert(
        ctx.effective_sub_converter,
        ctx.target_format,
        callback_url,
        ctx.effective_sub_config,
        timeout=SettingsManager.get_float(ctx.settings, "subConverterTimeoutSeconds", 30.0),
    )
    extra = {
        name: upstream.headers[name]
        for name in PASSTHROUGH_HEADERS
        if upstream.headers.get(name)
    }
    extra["Content-Disposition"] = attachment_disposition(ctx.sub_name)
    return _plain(upstream.text, status_code=upstream.status_code, extra=extra)
