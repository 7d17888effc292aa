"""FastAPI app serving MiSub subscriptions to proxy clients."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional
import logging

from fastapi import BackgroundTasks, FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from ..core.errors import SubscriptionError
from ..core.event_bus import Events
from ..core.request_context import SubscriptionRequest
from ..core.subscription_handler import AccessNotice
from .runtime import MisubRuntime, build_runtime, configure_logging

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _client_ip(request: Request) -> str:
    for header in ("cf-connecting-ip", "x-forwarded-for", "x-real-ip"):
        value = str(request.headers.get(header) or "").split(",")[0].strip()
        if value:
            return value
    if request.client and request.client.host:
        return request.client.host
    return "N/A"


def to_subscription_request(request: Request) -> SubscriptionRequest:
    forwarded_proto = str(request.headers.get("x-forwarded-proto") or "").split(",")[0].strip()
    forwarded_host = str(request.headers.get("x-forwarded-host") or "").split(",")[0].strip()
    return SubscriptionRequest(
        path=request.scope.get("path") or request.url.path,
        query=dict(request.query_params),
        user_agent=request.headers.get("user-agent") or "Unknown",
        client_ip=_client_ip(request),
        scheme=forwarded_proto or request.url.scheme,
        host=forwarded_host or request.headers.get("host") or request.url.netloc,
    )


def create_app(runtime: Optional[MisubRuntime] = None) -> FastAPI:
    configure_logging()
    runtime = runtime or build_runtime()

    app = FastAPI(title="MiSub", version="1.0.0")

    @app.get("/health")
    def health() -> Dict:
        return {"ok": True, "time": _utc_now_iso()}

    def serve_subscription(request: Request, background_tasks: BackgroundTasks) -> Response:
        sub_request = to_subscription_request(request)

        def schedule_notice(notice: AccessNotice) -> None:
            background_tasks.add_task(runtime.event_bus.emit, Events.SUBSCRIPTION_ACCESSED, notice)

        try:
            composed = runtime.handler.handle(sub_request, schedule_notice=schedule_notice)
        except SubscriptionError as exc:
            logger.debug("%s %s -> %s", request.method, sub_request.path, exc.status_code)
            return PlainTextResponse(exc.message, status_code=exc.status_code)
        return Response(
            content=composed.body,
            status_code=composed.status_code,
            headers=composed.headers,
        )

    @app.get("/sub")
    def subscription_by_query(request: Request, background_tasks: BackgroundTasks) -> Response:
        return serve_subscription(request, background_tasks)

    @app.get("/sub/{subpath:path}")
    def subscription_by_path(subpath: str, request: Request, background_tasks: BackgroundTasks) -> Response:
        return serve_subscription(request, background_tasks)

    return app


app = create_app()
