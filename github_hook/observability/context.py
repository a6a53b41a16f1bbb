from __future__ import annotations

from contextvars import ContextVar, Token
from typing import Optional
import uuid

# Request-scoped for HTTP handlers; lifecycle calls run with empty values.
_REQUEST_ID: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_DELIVERY_ID: ContextVar[Optional[str]] = ContextVar("delivery_id", default=None)


def get_request_id() -> Optional[str]:
    return _REQUEST_ID.get()


def set_request_id(value: Optional[str] = None) -> tuple[str, Token[Optional[str]]]:
    rid = (value or "").strip() or uuid.uuid4().hex
    tok = _REQUEST_ID.set(rid)
    return rid, tok


def reset_request_id(token: Token[Optional[str]]) -> None:
    _REQUEST_ID.reset(token)


def get_delivery_id() -> Optional[str]:
    return _DELIVERY_ID.get()


def set_delivery_id(value: Optional[str]) -> Token[Optional[str]]:
    v = (value or "").strip() if value else None
    return _DELIVERY_ID.set(v or None)


def reset_delivery_id(token: Token[Optional[str]]) -> None:
    _DELIVERY_ID.reset(token)
