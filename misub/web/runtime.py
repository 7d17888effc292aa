"""Runtime bootstrap for the MiSub subscription service."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Optional

from ..core.callback_relay import callback_token_from_env, derive_callback_token
from ..core.event_bus import EventBus, Events
from ..core.kv_store import SqliteKVStore
from ..core.subscription_handler import AccessNotice, SubscriptionHandler
from ..services.node_composer import NodeComposer
from ..services.subconverter_client import SubconverterClient
from ..services.telegram_notifier import TelegramNotifier

LOG_FORMAT = "[{asctime}] #{levelname:8} {filename}:{lineno} - {message}"


def configure_logging(level: Optional[str] = None) -> None:
    level_name = str(level or os.environ.get("MISUB_LOG_LEVEL", "") or "INFO").strip().upper()
    root = logging.getLogger()
    # Leave handlers installed by uvicorn or a test runner alone.
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, style="{"))
        root.addHandler(handler)
    root.setLevel(level_name)


@dataclass
class MisubRuntime:
    """Shared service graph used by web endpoints."""

    store: object
    event_bus: EventBus
    notifier: TelegramNotifier
    handler: SubscriptionHandler


def build_runtime(store=None, callback_secret: Optional[str] = None) -> MisubRuntime:
    """Create and wire core services. ``store`` defaults to sqlite under MISUB_DATA_DIR."""

    if store is None:
        data_dir = str(os.environ.get("MISUB_DATA_DIR", "") or "").strip()
        store = SqliteKVStore(Path(data_dir).expanduser() if data_dir else (Path.home() / ".misub"))
    if callback_secret:
        callback_token = lambda: derive_callback_token(callback_secret)
    else:
        callback_token = callback_token_from_env

    event_bus = EventBus()
    notifier = TelegramNotifier()

    def notify(notice: AccessNotice) -> None:
        notifier.send(notice.config, notice.title, notice.client_ip, notice.text)

    event_bus.subscribe(Events.SUBSCRIPTION_ACCESSED, notify)

    handler = SubscriptionHandler(
        store=store,
        composer=NodeComposer(),
        converter=SubconverterClient(),
        callback_token=callback_token,
    )
    return MisubRuntime(store=store, event_bus=event_bus, notifier=notifier, handler=handler)
