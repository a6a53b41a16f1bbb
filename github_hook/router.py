from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from .gateway import InboundRequest, WebhookGateway


def create_webhook_router(gateway: WebhookGateway, path: str = "/") -> APIRouter:
    router = APIRouter()

    @router.post(path)
    async def github_webhook(request: Request):
        """GitHub webhook endpoint (ingress)."""
        body = await request.body()
        resp = await gateway.handle(
            InboundRequest(headers=request.headers, body=body, raw=request)
        )
        return PlainTextResponse(resp.body, status_code=resp.status_code)

    return router
