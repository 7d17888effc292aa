"""Extract the access token and optional profile identifier from a request."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional

_SUB_PREFIX = re.compile(r"^/sub(?=/|$)")


@dataclass(frozen=True)
class ResolvedToken:
    token: str
    profile_identifier: Optional[str] = None


def resolve_token(path: str, query: Mapping[str, str]) -> ResolvedToken:
    normalized = _SUB_PREFIX.sub("", path or "")
    segments = [piece for piece in normalized.split("/") if piece]
    if segments:
        profile_identifier = segments[1] if len(segments) > 1 else None
        return ResolvedToken(token=segments[0], profile_identifier=profile_identifier)
    return ResolvedToken(token=str(query.get("token") or ""))
