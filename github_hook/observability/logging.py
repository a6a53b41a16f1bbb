from __future__ import annotations

import logging
from typing import Callable, Optional


class _ContextFilter(logging.Filter):
    def __init__(
        self,
        *,
        request_id_getter: Optional[Callable[[], Optional[str]]] = None,
        delivery_id_getter: Optional[Callable[[], Optional[str]]] = None,
    ) -> None:
        super().__init__()
        self._request_id_getter = request_id_getter
        self._delivery_id_getter = delivery_id_getter

    def filter(self, record: logging.LogRecord) -> bool:
        # Formatters can always reference these fields.
        record.request_id = self._request_id_getter() if self._request_id_getter else None
        record.delivery_id = self._delivery_id_getter() if self._delivery_id_getter else None
        return True


def configure_logging(
    *,
    level: str = "INFO",
    request_id_getter: Optional[Callable[[], Optional[str]]] = None,
    delivery_id_getter: Optional[Callable[[], Optional[str]]] = None,
) -> None:
    """Configure root logging with the request and delivery ids on every record."""
    lvl = getattr(logging, (level or "INFO").upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(lvl)

    ctx_filter = _ContextFilter(
        request_id_getter=request_id_getter,
        delivery_id_getter=delivery_id_getter,
    )

    # If something already configured handlers (uvicorn), avoid duplicating them.
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(lvl)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)s %(name)s "
                "request_id=%(request_id)s delivery=%(delivery_id)s "
                "%(message)s"
            )
        )
        root.addHandler(handler)

    # Attach per handler (idempotent).
    for handler in root.handlers:
        for existing in list(handler.filters):
            if isinstance(existing, _ContextFilter):
                handler.removeFilter(existing)
        handler.addFilter(ctx_filter)
