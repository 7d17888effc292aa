"""
Request context for the subscription pipeline.

A request is reduced to a transport-neutral SubscriptionRequest, then resolved
once into a RequestContext that every later stage reads from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..models.subscription import Profile, SubscriptionEntry


@dataclass(frozen=True)
class SubscriptionRequest:
    path: str
    query: Dict[str, str] = field(default_factory=dict)
    user_agent: str = "Unknown"
    client_ip: str = "N/A"
    scheme: str = "https"
    host: str = "localhost"


@dataclass(frozen=True)
class RequestContext:
    token: str
    profile_identifier: Optional[str]
    profile: Optional[Profile]
    target_format: str
    is_profile_expired: bool
    effective_sub_converter: str
    effective_sub_config: str
    sub_name: str
    entries: Tuple[SubscriptionEntry, ...] = ()
    settings: Dict[str, Any] = field(default_factory=dict)

    @property
    def prefix_settings(self) -> Optional[Dict[str, Any]]:
        return self.profile.prefix_settings if self.profile else None
