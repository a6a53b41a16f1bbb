from __future__ import annotations

from typing import Any, List, Optional


class CheckError(ValueError):
    """Raised when inputs that failed `check` are handed to a lifecycle call."""

    def __init__(self, resource: str, failures: List[Any]) -> None:
        self.resource = resource
        self.failures = list(failures)
        reasons = "; ".join(f"{f.property}: {f.reason}" for f in self.failures)
        super().__init__(f"{resource}: invalid inputs ({reasons})")


class RemoteCallError(RuntimeError):
    """A call against the hosting service API did not succeed.

    `response` is the `httpx.Response` that was received, or None when the
    request never produced one (connection reset, timeout, ...).
    """

    def __init__(self, message: str, response: Optional[Any] = None) -> None:
        super().__init__(message)
        self.response = response

    @property
    def status_code(self) -> Optional[int]:
        return getattr(self.response, "status_code", None)


class PayloadError(ValueError):
    """An authenticated delivery carried a body that is not valid JSON."""


class DeferredValueError(RuntimeError):
    """A deferred value was read before it was resolved."""
