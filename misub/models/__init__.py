from .subscription import Profile, SubscriptionEntry, UserInfo, parse_entries, parse_profiles

__all__ = [
    "Profile",
    "SubscriptionEntry",
    "UserInfo",
    "parse_entries",
    "parse_profiles",
]
