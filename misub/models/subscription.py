"""
Subscription Models
Stored subscription entries and profiles, parsed from the key-value store
"""
from typing import Any, Dict, List, Optional, Union
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


def _as_int(value: Any) -> int:
    try:
        return int(float(value or 0))
    except (TypeError, ValueError):
        return 0


class UserInfo(BaseModel):
    """Traffic counters reported by a remote subscription (bytes)"""
    model_config = ConfigDict(extra="ignore")

    upload: int = 0
    download: int = 0
    total: int = 0

    @field_validator("upload", "download", "total", mode="before")
    @classmethod
    def coerce_counter(cls, value: Any) -> int:
        return _as_int(value)

    @property
    def remaining(self) -> int:
        return max(0, self.total - (self.upload + self.download))


class SubscriptionEntry(BaseModel):
    """A remote subscription (http url) or a manual node (anything else)"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str
    url: str = ""
    name: str = ""
    enabled: bool = False
    user_info: Optional[UserInfo] = Field(default=None, alias="userInfo")
    is_expired_node: bool = Field(default=False, alias="isExpiredNode")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("url", "name", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return str(value or "")

    @property
    def is_subscription(self) -> bool:
        return self.url.startswith("http")


class Profile(BaseModel):
    """A shareable, curated subset of entries with its own lifecycle"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str
    custom_id: Optional[str] = Field(default=None, alias="customId")
    name: str = ""
    enabled: bool = False
    expires_at: Optional[Union[int, float, str]] = Field(default=None, alias="expiresAt")
    subscriptions: List[str] = Field(default_factory=list)
    manual_nodes: List[str] = Field(default_factory=list, alias="manualNodes")
    sub_converter: Optional[str] = Field(default=None, alias="subConverter")
    sub_config: Optional[str] = Field(default=None, alias="subConfig")
    prefix_settings: Optional[Dict[str, Any]] = Field(default=None, alias="prefixSettings")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, value: Any) -> str:
        return str(value or "")

    @field_validator("custom_id", mode="before")
    @classmethod
    def coerce_custom_id(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("subscriptions", "manual_nodes", mode="before")
    @classmethod
    def coerce_id_list(cls, value: Any) -> List[str]:
        return [str(item) for item in (value or [])]

    def matches(self, identifier: str) -> bool:
        return bool(self.custom_id and self.custom_id == identifier) or self.id == identifier


def _parse_many(model, raw_items: Any, label: str) -> List:
    if not isinstance(raw_items, list):
        if raw_items is not None:
            logger.warning("Ignoring stored %s: expected a list, got %s", label, type(raw_items).__name__)
        return []
    parsed = []
    for index, raw in enumerate(raw_items):
        try:
            parsed.append(model.model_validate(raw))
        except ValidationError as exc:
            logger.warning("Skipping malformed %s #%d: %s", label, index, exc.errors()[:1])
    return parsed


def parse_entries(raw_items: Any) -> List[SubscriptionEntry]:
    return _parse_many(SubscriptionEntry, raw_items, "subscription entry")


def parse_profiles(raw_items: Any) -> List[Profile]:
    return _parse_many(Profile, raw_items, "profile")
