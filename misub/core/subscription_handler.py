"""
Subscription request pipeline.

Snapshot storage, authorize, select nodes, negotiate the format, compose the
node list and produce the response. Access notices are handed to a scheduler
callback before any output is produced so that upstream failures still notify.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..models.subscription import Profile, SubscriptionEntry, parse_entries, parse_profiles
from .access import authorize, parse_expiry
from .callback_relay import is_machine_request
from .format_negotiator import negotiate_format
from .kv_store import KV_KEY_PROFILES, KV_KEY_SETTINGS, KV_KEY_SUBS
from .node_selector import resolve_converter, select_entries
from .request_context import RequestContext, SubscriptionRequest
from .response_composer import ComposedResponse, compose_response
from .settings_manager import SettingsManager
from .token_resolver import resolve_token
from .traffic import traffic_placeholder

logger = logging.getLogger(__name__)

ACCESS_TITLE = "🛰️ *Subscription accessed*"


@dataclass(frozen=True)
class StorageSnapshot:
    settings: Dict[str, Any]
    entries: List[SubscriptionEntry]
    profiles: List[Profile]


@dataclass(frozen=True)
class AccessNotice:
    config: Dict[str, Any]
    title: str
    client_ip: str
    text: str


def localize_expiry(value: Any, tz_name: str) -> Optional[str]:
    expiry = parse_expiry(value)
    if expiry is None:
        return None
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown notifyTimezone %r, falling back to UTC", tz_name)
        zone = timezone.utc
    return expiry.astimezone(zone).strftime("%Y-%m-%d %H:%M:%S")


def build_access_notice(ctx: RequestContext, request: SubscriptionRequest) -> AccessNotice:
    lines = [
        f"*Domain:* `{request.host}`",
        f"*Client:* `{request.user_agent}`",
        f"*Format:* `{ctx.target_format}`",
    ]
    if ctx.profile is not None:
        lines.append(f"*Profile:* `{ctx.sub_name}`")
        expiry = localize_expiry(ctx.profile.expires_at, str(ctx.settings.get("notifyTimezone") or "UTC"))
        if expiry:
            lines.append(f"*Expires:* `{expiry}`")
    return AccessNotice(config=ctx.settings, title=ACCESS_TITLE, client_ip=request.client_ip, text="\n".join(lines))


class SubscriptionHandler:
    """Runs one subscription request end to end against a storage snapshot"""

    def __init__(
        self,
        store,
        composer,
        converter,
        callback_token: Callable[[], str],
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.composer = composer
        self.converter = converter
        self.callback_token = callback_token
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def load_snapshot(self) -> StorageSnapshot:
        keys = (KV_KEY_SETTINGS, KV_KEY_SUBS, KV_KEY_PROFILES)
        with ThreadPoolExecutor(max_workers=len(keys)) as pool:
            futures = {key: pool.submit(self.store.get, key) for key in keys}
            wait(list(futures.values()))
        raw = {key: future.result() for key, future in futures.items()}
        return StorageSnapshot(
            settings=SettingsManager.merge(raw[KV_KEY_SETTINGS] or {}),
            entries=parse_entries(raw[KV_KEY_SUBS] or []),
            profiles=parse_profiles(raw[KV_KEY_PROFILES] or []),
        )

    def build_context(self, request: SubscriptionRequest, snapshot: StorageSnapshot) -> RequestContext:
        resolved = resolve_token(request.path, request.query)
        grant = authorize(resolved, snapshot.settings, snapshot.profiles, now=self.clock())
        entries = select_entries(grant, snapshot.entries)
        backend, sub_config = resolve_converter(grant.profile, snapshot.settings)
        sub_name = grant.profile.name if grant.profile else str(snapshot.settings.get("FileName") or "")
        return RequestContext(
            token=resolved.token,
            profile_identifier=resolved.profile_identifier,
            profile=grant.profile,
            target_format=negotiate_format(request.query, request.user_agent),
            is_profile_expired=grant.is_profile_expired,
            effective_sub_converter=backend,
            effective_sub_config=sub_config,
            sub_name=sub_name,
            entries=entries,
            settings=snapshot.settings,
        )

    def compose_node_list(self, ctx: RequestContext, request: SubscriptionRequest) -> str:
        prepended = "" if ctx.is_profile_expired else traffic_placeholder(ctx.entries)
        return self.composer.compose(
            ctx,
            ctx.settings,
            request.user_agent,
            ctx.entries,
            prepended,
            ctx.prefix_settings,
        )

    def handle(
        self,
        request: SubscriptionRequest,
        schedule_notice: Optional[Callable[[AccessNotice], None]] = None,
    ) -> ComposedResponse:
        snapshot = self.load_snapshot()
        ctx = self.build_context(request, snapshot)

        if schedule_notice is not None and not is_machine_request(request.query):
            schedule_notice(build_access_notice(ctx, request))

        node_list = self.compose_node_list(ctx, request)
        return compose_response(ctx, node_list, request, self.callback_token(), self.converter)
