"""
Node-Set Selector
Chooses which entries feed composition and which converter backend serves them
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple

from ..models.subscription import Profile, SubscriptionEntry
from .access import AccessGrant
from .errors import Unconfigured

_EXPIRED_CREDENTIAL = "ss://YWVzLTI1Ni1nY206MDAwMDAwMDAwMDAwMDAwMA==@127.0.0.1:443"

# Served verbatim in place of a profile's real nodes once it has expired.
EXPIRED_NODES: Tuple[str, ...] = (
    f"{_EXPIRED_CREDENTIAL}#🇨🇳 Subscription expired",
    f"{_EXPIRED_CREDENTIAL}#🇨🇳 Subscription expired",
    f"{_EXPIRED_CREDENTIAL}#🇨🇳 Please contact support to renew",
    f"{_EXPIRED_CREDENTIAL}#🇨🇳 Renew from your provider dashboard",
)

EXPIRED_NODES_TEXT = "\n".join(EXPIRED_NODES) + "\n"

EXPIRED_ENTRIES: Tuple[SubscriptionEntry, ...] = tuple(
    SubscriptionEntry(
        id=f"expired-node-{index}",
        url=node,
        name="Subscription expired",
        enabled=True,
        is_expired_node=True,
    )
    for index, node in enumerate(EXPIRED_NODES)
)


def select_entries(grant: AccessGrant, entries: Iterable[SubscriptionEntry]) -> Tuple[SubscriptionEntry, ...]:
    if grant.profile is None:
        return tuple(entry for entry in entries if entry.enabled)
    if grant.is_profile_expired:
        return EXPIRED_ENTRIES

    sub_ids = set(grant.profile.subscriptions)
    node_ids = set(grant.profile.manual_nodes)

    def belongs(entry: SubscriptionEntry) -> bool:
        if entry.is_subscription:
            return entry.id in sub_ids
        return entry.id in node_ids

    return tuple(entry for entry in entries if entry.enabled and belongs(entry))


def _non_blank(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def resolve_converter(profile: Optional[Profile], settings: Dict[str, Any]) -> Tuple[str, str]:
    """Return ``(backend, config)``; a profile's non-blank override beats the global value."""
    backend = str(settings.get("subConverter") or "")
    config = str(settings.get("subConfig") or "")
    if profile is not None:
        if _non_blank(profile.sub_converter):
            backend = profile.sub_converter.strip()
        if _non_blank(profile.sub_config):
            config = profile.sub_config
    backend = backend.strip()
    if not backend:
        raise Unconfigured("Subconverter backend is not configured.")
    return backend, config.strip()
