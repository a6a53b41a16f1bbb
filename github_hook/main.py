"""Application wiring.

Run with ``uvicorn --factory github_hook.main:create_app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from .component import GitHubWebhook, GitHubWebhookArgs
from .config import Settings, load_settings
from .gateway import WebhookDelivery, WebhookGateway, WebhookHandler
from .github_api import GitHubClient
from .observability.context import (
    get_delivery_id as _get_delivery_id,
    get_request_id as _get_request_id,
    reset_request_id as _reset_request_id,
    set_request_id as _set_request_id,
)
from .observability.logging import configure_logging as _configure_logging
from .router import create_webhook_router

logger = logging.getLogger(__name__)


async def log_delivery(delivery: WebhookDelivery) -> None:
    """Default application handler: record that the delivery arrived."""
    action = delivery.data.get("action") if isinstance(delivery.data, dict) else None
    logger.info("Received %s event %s (action=%s)", delivery.type, delivery.id, action)


def create_app(
    settings: Optional[Settings] = None,
    *,
    handler: Optional[WebhookHandler] = None,
    client: Optional[GitHubClient] = None,
) -> FastAPI:
    settings = settings or load_settings()
    handler = handler or log_delivery

    try:
        _configure_logging(
            level=settings.log_level,
            request_id_getter=_get_request_id,
            delivery_id_getter=_get_delivery_id,
        )
    except Exception:
        # Fallback to minimal logging if something goes wrong during startup.
        logging.basicConfig(
            level=getattr(logging, settings.log_level, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )

    webhook: Optional[GitHubWebhook] = None
    if settings.auto_provision:
        if client is None:
            client = GitHubClient(
                settings.github_token,
                base_url=settings.github_api_url,
                timeout=settings.github_http_timeout_seconds,
            )
        webhook = GitHubWebhook(
            "github",
            GitHubWebhookArgs(
                handler=handler,
                events=settings.events,
                repositories=settings.repositories,
                organizations=settings.organizations,
                secret_bytes=settings.secret_bytes,
            ),
            url=settings.webhook_url,
            client=client,
        )
        gateway = webhook.gateway
    elif settings.webhook_secret:
        # Hooks were registered elsewhere with this shared secret.
        gateway = WebhookGateway(settings.webhook_secret, handler)
    else:
        raise RuntimeError("WEBHOOK_SECRET is required unless WEBHOOK_AUTO_PROVISION=1")

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if webhook is not None:
            await webhook.up()
            logger.info("Webhooks registered for %s", settings.webhook_url)
        try:
            yield
        finally:
            if webhook is not None:
                await webhook.down()
                logger.info("Webhooks removed")

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.webhook = webhook
    app.include_router(create_webhook_router(gateway, settings.webhook_path))

    # ── Request context: request_id (for tracing) ──────────────────────
    @app.middleware("http")
    async def request_id_middleware(request: StarletteRequest, call_next):
        incoming = (request.headers.get("x-request-id") or "").strip()
        rid, tok = _set_request_id(incoming or None)
        try:
            resp: StarletteResponse = await call_next(request)
            resp.headers["X-Request-Id"] = rid
            return resp
        finally:
            _reset_request_id(tok)

    return app
