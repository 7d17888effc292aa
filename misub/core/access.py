"""
Access Authorizer
Validates the shared-secret token and resolves the requested profile
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from ..models.subscription import Profile
from .errors import Forbidden, NotFound
from .token_resolver import ResolvedToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessGrant:
    """Outcome of a successful authorization. ``profile`` is None in direct-token mode."""

    profile: Optional[Profile] = None
    is_profile_expired: bool = False


def find_profile(profiles: Iterable[Profile], identifier: str) -> Optional[Profile]:
    for profile in profiles:
        if profile.matches(identifier):
            return profile
    return None


def parse_expiry(value: Any) -> Optional[datetime]:
    """Parse ``expiresAt`` as epoch milliseconds or an ISO-8601 string (naive means UTC)."""
    if value is None or value == "":
        return None
    try:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    except (OverflowError, OSError, ValueError) as exc:
        logger.warning("Ignoring unparseable expiresAt %r: %s", value, exc)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_expired(profile: Profile, now: Optional[datetime] = None) -> bool:
    expiry = parse_expiry(profile.expires_at)
    if expiry is None:
        return False
    now = now or datetime.now(timezone.utc)
    return now > expiry


def authorize(
    resolved: ResolvedToken,
    settings: Dict[str, Any],
    profiles: Iterable[Profile],
    now: Optional[datetime] = None,
) -> AccessGrant:
    token = resolved.token
    if resolved.profile_identifier:
        if not token or token != str(settings.get("profileToken") or ""):
            logger.info("Rejected profile request for %s: bad profile token", resolved.profile_identifier)
            raise Forbidden("Invalid Profile Token")
        profile = find_profile(profiles, resolved.profile_identifier)
        if profile is None or not profile.enabled:
            logger.info("Profile %s not found or disabled", resolved.profile_identifier)
            raise NotFound("Profile not found or disabled")
        return AccessGrant(profile=profile, is_profile_expired=is_expired(profile, now))

    if not token or token != str(settings.get("mytoken") or ""):
        logger.info("Rejected subscription request: bad token")
        raise Forbidden("Invalid Token")
    return AccessGrant()
