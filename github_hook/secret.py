from __future__ import annotations

import base64
import secrets
from dataclasses import dataclass
from typing import Any, List, Mapping

from .lifecycle import (
    CheckFailure,
    CheckResult,
    CreateResult,
    DiffResult,
    ResourceProvider,
    UpdateResult,
)

DEFAULT_SECRET_BYTES = 32


@dataclass(frozen=True)
class SecretInputs:
    byte_count: int


class RandomSecretProvider(ResourceProvider[SecretInputs]):
    """Random HMAC key, base64-encoded.

    The encoded value is both the resource id and its `value` output. Nothing
    lives remotely, so update and delete have no effect.
    """

    sensitive_id = True

    def check(self, proposed: Mapping[str, Any]) -> CheckResult[SecretInputs]:
        failures: List[CheckFailure] = []
        byte_count = proposed.get("byte_count")

        if byte_count is None:
            failures.append(CheckFailure("byte_count", "required property 'byte_count' missing"))
        elif isinstance(byte_count, bool) or not isinstance(byte_count, int) or byte_count <= 0:
            failures.append(CheckFailure("byte_count", "'byte_count' should be a positive integer"))

        if failures:
            return CheckResult(inputs=None, failures=failures)
        return CheckResult(inputs=SecretInputs(byte_count=byte_count))

    def diff(self, id: str, current: SecretInputs, proposed: SecretInputs) -> DiffResult:
        if current.byte_count != proposed.byte_count:
            return DiffResult(replaces={"byte_count"})
        return DiffResult()

    async def create(self, inputs: SecretInputs) -> CreateResult:
        value = base64.b64encode(secrets.token_bytes(inputs.byte_count)).decode("ascii")
        return CreateResult(id=value, outputs={"value": value})

    async def update(self, id: str, current: SecretInputs, proposed: SecretInputs) -> UpdateResult:
        # byte_count always replaces, so this is never reached in practice.
        return UpdateResult()

    async def delete(self, id: str, current: SecretInputs) -> None:
        return None
