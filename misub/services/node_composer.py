"""
Node Composer
Merges manual nodes and fetched remote subscriptions into one node list
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote, unquote
import base64
import json
import logging
import re

import requests

from ..core.settings_manager import SettingsManager
from ..models.subscription import SubscriptionEntry
from ..utils.format_utils import URI_COMPONENT_SAFE

logger = logging.getLogger(__name__)

NODE_LINE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://\S+")
DEFAULT_MANUAL_PREFIX = "Manual Node"


def decode_payload(text: str) -> str:
    """Return plain node lines, decoding (url-safe) base64 bodies when needed."""
    stripped = (text or "").strip()
    if not stripped or "://" in stripped:
        return stripped
    compact = re.sub(r"\s+", "", stripped).replace("-", "+").replace("_", "/")
    compact += "=" * (-len(compact) % 4)
    try:
        return base64.b64decode(compact, validate=True).decode("utf-8")
    except ValueError:
        return stripped


def node_lines(text: str) -> List[str]:
    return [line.strip() for line in (text or "").splitlines() if NODE_LINE.match(line.strip())]


def rename_node(line: str, prefix: str) -> str:
    """Prepend ``prefix`` to a node's display name (URI fragment, or ``ps`` for vmess)."""
    if not prefix:
        return line
    if line.startswith("vmess://"):
        raw = line[len("vmess://"):]
        try:
            data = json.loads(base64.b64decode(raw + "=" * (-len(raw) % 4)).decode("utf-8"))
        except ValueError:
            return line
        name = str(data.get("ps") or "")
        if name.startswith(prefix):
            return line
        data["ps"] = f"{prefix} - {name}" if name else prefix
        encoded = base64.b64encode(json.dumps(data, ensure_ascii=False).encode("utf-8")).decode("ascii")
        return f"vmess://{encoded}"

    base, _, fragment = line.partition("#")
    name = unquote(fragment)
    if name.startswith(prefix):
        return line
    renamed = f"{prefix} - {name}" if name else prefix
    return f"{base}#{quote(renamed, safe=URI_COMPONENT_SAFE)}"


class NodeComposer:
    """Builds the textual node list handed to clients or the converter"""

    def __init__(self, max_workers: int = 8):
        self.max_workers = max_workers

    @staticmethod
    def _prefix_rules(config: Dict[str, Any], prefix_settings: Optional[Dict[str, Any]]) -> Tuple[bool, bool, str]:
        default = bool(config.get("prependSubName", True))
        rules = prefix_settings or {}
        subs = rules.get("enableSubscriptions")
        manual = rules.get("enableManualNodes")
        return (
            default if subs is None else bool(subs),
            default if manual is None else bool(manual),
            str(rules.get("manualNodePrefix") or DEFAULT_MANUAL_PREFIX),
        )

    def _fetch(self, entry: SubscriptionEntry, user_agent: str, timeout: float) -> List[str]:
        try:
            response = requests.get(entry.url, headers={"User-Agent": user_agent}, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Fetching subscription %s (%s) failed: %s", entry.name or entry.id, entry.url, exc)
            return []
        response.encoding = "utf-8"
        return node_lines(decode_payload(response.text))

    def compose(
        self,
        context: Any,
        config: Dict[str, Any],
        user_agent: str,
        entries: Iterable[SubscriptionEntry],
        prepended: str = "",
        prefix_settings: Optional[Dict[str, Any]] = None,
    ) -> str:
        entries = list(entries)
        prefix_subs, prefix_manual, manual_prefix = self._prefix_rules(config, prefix_settings)
        timeout = SettingsManager.get_float(config, "subscriptionFetchTimeoutSeconds", 15.0)

        remote = [entry for entry in entries if entry.is_subscription]
        fetched: Dict[str, List[str]] = {}
        if remote:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(remote))) as pool:
                futures = {entry.id: pool.submit(self._fetch, entry, user_agent, timeout) for entry in remote}
                fetched = {entry_id: future.result() for entry_id, future in futures.items()}

        nodes: List[str] = []
        seen = set()
        for entry in entries:
            if entry.is_subscription:
                lines = fetched.get(entry.id, [])
                prefix = entry.name if prefix_subs else ""
            else:
                lines = node_lines(entry.url)
                prefix = manual_prefix if prefix_manual else ""
            if entry.is_expired_node:
                prefix = ""
            for line in lines:
                line = rename_node(line, prefix)
                # Synthetic expired nodes are kept verbatim, repeats included.
                if entry.is_expired_node or line not in seen:
                    seen.add(line)
                    nodes.append(line)

        if prepended:
            nodes.insert(0, prepended)
        logger.debug("Composed %d nodes for %s", len(nodes), getattr(context, "sub_name", "-"))
        return "\n".join(nodes)
