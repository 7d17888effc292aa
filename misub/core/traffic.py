"""Remaining-traffic summary surfaced to clients as a fake, non-routable node."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import quote

from ..models.subscription import SubscriptionEntry
from ..utils.format_utils import URI_COMPONENT_SAFE, format_bytes

TRAFFIC_NODE_PREFIX = "trojan://00000000-0000-0000-0000-000000000000@127.0.0.1:443#"


def remaining_traffic(entries: Iterable[SubscriptionEntry]) -> int:
    total = 0
    for entry in entries:
        info = entry.user_info
        if entry.enabled and info is not None and info.total > 0:
            total += info.remaining
    return total


def traffic_node(remaining_bytes: int) -> str:
    """Return the placeholder node line, or "" when nothing remains."""
    if remaining_bytes <= 0:
        return ""
    label = f"Traffic remaining ≫ {format_bytes(remaining_bytes)}"
    return TRAFFIC_NODE_PREFIX + quote(label, safe=URI_COMPONENT_SAFE)


def traffic_placeholder(entries: Iterable[SubscriptionEntry]) -> str:
    return traffic_node(remaining_traffic(entries))
