"""Pick the output format from the query string or the client's User-Agent."""

from __future__ import annotations

from typing import Mapping, Tuple

DEFAULT_FORMAT = "base64"

FORMAT_FLAGS: Tuple[str, ...] = ("clash", "singbox", "surge", "loon", "base64", "v2ray", "trojan")
FLAG_ALIASES = {"v2ray": "base64", "trojan": "base64"}

# Ordered: first substring hit wins, so specific clients sit above generic ones.
CLIENT_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("flyclash", "clash"),
    ("mihomo", "clash"),
    ("clash.meta", "clash"),
    ("clash-verge", "clash"),
    ("meta", "clash"),
    ("stash", "clash"),
    ("nekoray", "clash"),
    ("sing-box", "singbox"),
    ("shadowrocket", "base64"),
    ("v2rayn", "base64"),
    ("v2rayng", "base64"),
    ("surge", "surge"),
    ("loon", "loon"),
    ("quantumult%20x", "quanx"),
    ("quantumult", "quanx"),
    ("clash", "clash"),
)


def format_from_flags(query: Mapping[str, str]) -> str:
    for flag in FORMAT_FLAGS:
        if flag in query:
            return FLAG_ALIASES.get(flag, flag)
    return ""


def format_from_user_agent(user_agent: str) -> str:
    ua = (user_agent or "").lower()
    for keyword, target in CLIENT_KEYWORDS:
        if keyword in ua:
            return target
    return ""


def negotiate_format(query: Mapping[str, str], user_agent: str) -> str:
    explicit = query.get("target")
    if explicit:
        return explicit
    return format_from_flags(query) or format_from_user_agent(user_agent) or DEFAULT_FORMAT
