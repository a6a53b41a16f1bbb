"""Webhook ingress: authenticate a GitHub delivery, then hand it to the app.

Order of work for one request:

1. `X-GitHub-Event`, `X-GitHub-Delivery`, `X-Hub-Signature` and a body must
   all be present, otherwise 400.
2. The body is restored to the exact bytes GitHub signed (base64 transports
   are decoded).
3. `sha1=<hex HMAC-SHA1(secret, body)>` is compared to the header in
   constant time; mismatch is 400 and the body is never parsed.
4. The body is parsed as JSON and the application handler is awaited.
5. 200 with an empty body.

Handler exceptions and unparsable authenticated bodies propagate to the
caller, which owns the 5xx response.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from .errors import PayloadError
from .lifecycle import Deferred
from .observability.context import reset_delivery_id, set_delivery_id

logger = logging.getLogger(__name__)

EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"
SIGNATURE_HEADER = "X-Hub-Signature"


@dataclass
class InboundRequest:
    """What the HTTP substrate hands us for one POST."""

    headers: Mapping[str, str]
    body: Optional[Union[str, bytes]]
    is_base64_encoded: bool = False
    # The substrate's own request object, passed through to the handler.
    raw: Any = None

    def header(self, name: str) -> Optional[str]:
        value = self.headers.get(name)
        if value is not None:
            return value
        lowered = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lowered:
                return v
        return None


@dataclass
class GatewayResponse:
    status_code: int
    body: str = ""


@dataclass
class WebhookDelivery:
    request: InboundRequest
    type: str
    id: str
    data: Any = field(default=None)


WebhookHandler = Callable[[WebhookDelivery], Union[Awaitable[None], None]]


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()
    return f"sha1={digest}"


def verify_signature(secret: str, body: bytes, header_value: str) -> bool:
    expected = compute_signature(secret, body)
    return hmac.compare_digest(expected.encode("utf-8"), (header_value or "").encode("utf-8"))


def _raw_body(request: InboundRequest) -> bytes:
    body = request.body
    if isinstance(body, str):
        return base64.b64decode(body) if request.is_base64_encoded else body.encode("utf-8")
    return base64.b64decode(body) if request.is_base64_encoded else bytes(body)


class WebhookGateway:
    """Stateless per-request handler; the secret is read at request time."""

    def __init__(self, secret: Union[Deferred[str], str], handler: WebhookHandler) -> None:
        self._secret = secret
        self._handler = handler

    def _secret_value(self) -> str:
        if isinstance(self._secret, Deferred):
            return self._secret.get()
        return self._secret

    async def handle(self, request: InboundRequest) -> GatewayResponse:
        event_type = request.header(EVENT_HEADER)
        delivery_id = request.header(DELIVERY_HEADER)
        signature = request.header(SIGNATURE_HEADER)

        if not (event_type and delivery_id and signature and request.body):
            logger.warning(
                "Rejecting delivery: missing parameter (event=%s delivery=%s signature=%s body=%s)",
                bool(event_type),
                bool(delivery_id),
                bool(signature),
                bool(request.body),
            )
            return GatewayResponse(status_code=400, body="missing parameter")

        tok = set_delivery_id(delivery_id)
        try:
            try:
                body = _raw_body(request)
            except (binascii.Error, ValueError):
                logger.warning("[%s] ignoring, body flagged base64 but could not be decoded", delivery_id)
                return GatewayResponse(status_code=400, body="bad body")

            if not verify_signature(self._secret_value(), body, signature):
                logger.warning(
                    "[%s] ignoring, bad signature (header prefix %s, body_len=%d)",
                    delivery_id,
                    signature[:10],
                    len(body),
                )
                return GatewayResponse(status_code=400, body="bad signature")

            try:
                data = json.loads(body)
            except ValueError as exc:
                raise PayloadError(f"delivery {delivery_id}: body is not valid JSON") from exc

            logger.info("[%s] dispatching %s event", delivery_id, event_type)
            result = self._handler(
                WebhookDelivery(request=request, type=event_type, id=delivery_id, data=data)
            )
            if inspect.isawaitable(result):
                await result

            return GatewayResponse(status_code=200, body="")
        finally:
            reset_delivery_id(tok)
