"""Reconciliation contract for resources whose real state lives elsewhere.

A provider turns declared properties into a remote counterpart through five
calls:

- ``check(proposed)``: pure validation, every violated constraint reported.
- ``diff(id, current, proposed)``: which changed properties force a replace.
- ``create(inputs)``: make the remote counterpart, return its id.
- ``update(id, current, proposed)``: mutate it in place.
- ``delete(id, current)``: remove it.

The orchestration layer owns sequencing and state; `apply_resource` and
`destroy_resource` are the small in-process driver the composite uses.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Mapping, Optional, Set, TypeVar

from .errors import CheckError, DeferredValueError

logger = logging.getLogger(__name__)

T = TypeVar("T")
InputsT = TypeVar("InputsT")


class Deferred(Generic[T]):
    """Handle to a value that is produced later by another resource.

    Consumers capture the handle at construction time and read it with
    `get()` once the producing resource has been created.
    """

    def __init__(self, description: str = "value") -> None:
        self._description = description
        self._value: Optional[T] = None
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    def resolve(self, value: T) -> None:
        self._value = value
        self._resolved = True

    def get(self) -> T:
        if not self._resolved:
            raise DeferredValueError(f"{self._description} is not available yet")
        return self._value  # type: ignore[return-value]

    def __repr__(self) -> str:
        state = "resolved" if self._resolved else "pending"
        return f"Deferred({self._description!r}, {state})"


def resolve_properties(props: Mapping[str, Any]) -> Dict[str, Any]:
    """Replace every `Deferred` in a property bag with its resolved value."""
    return {k: (v.get() if isinstance(v, Deferred) else v) for k, v in props.items()}


@dataclass(frozen=True)
class CheckFailure:
    property: str
    reason: str


@dataclass
class CheckResult(Generic[InputsT]):
    # None whenever failures is non-empty.
    inputs: Optional[InputsT]
    failures: List[CheckFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class DiffResult:
    replaces: Set[str] = field(default_factory=set)

    @property
    def must_replace(self) -> bool:
        return bool(self.replaces)


@dataclass
class CreateResult:
    id: str
    outputs: Dict[str, Any] = field(default_factory=dict)


@dataclass
class UpdateResult:
    outputs: Dict[str, Any] = field(default_factory=dict)


class ResourceProvider(abc.ABC, Generic[InputsT]):
    """Lifecycle operations for one kind of externally-backed resource."""

    # True when the id is itself a credential and must never be logged.
    sensitive_id: bool = False

    @abc.abstractmethod
    def check(self, proposed: Mapping[str, Any]) -> CheckResult[InputsT]:
        ...

    @abc.abstractmethod
    def diff(self, id: str, current: InputsT, proposed: InputsT) -> DiffResult:
        ...

    @abc.abstractmethod
    async def create(self, inputs: InputsT) -> CreateResult:
        ...

    @abc.abstractmethod
    async def update(self, id: str, current: InputsT, proposed: InputsT) -> UpdateResult:
        ...

    @abc.abstractmethod
    async def delete(self, id: str, current: InputsT) -> None:
        ...


@dataclass
class ResourceState(Generic[InputsT]):
    """What the driver remembers about one live resource."""

    name: str
    id: str
    inputs: InputsT
    outputs: Dict[str, Any] = field(default_factory=dict)


async def apply_resource(
    provider: ResourceProvider[InputsT],
    name: str,
    proposed: Mapping[str, Any],
    state: Optional[ResourceState[InputsT]] = None,
) -> ResourceState[InputsT]:
    """Bring one resource in line with `proposed` and return its new state.

    No state: create. Replace-triggering change: create the new counterpart,
    then delete the old one. Anything else: update in place.
    """
    result = provider.check(resolve_properties(proposed))
    if not result.ok:
        raise CheckError(name, result.failures)
    inputs = result.inputs

    if state is None:
        created = await provider.create(inputs)
        logger.info("Created %s (id=%s)", name, _loggable_id(provider, created.id))
        return ResourceState(name=name, id=created.id, inputs=inputs, outputs=created.outputs)

    diff = provider.diff(state.id, state.inputs, inputs)
    if diff.must_replace:
        logger.info("Replacing %s, changed: %s", name, ", ".join(sorted(diff.replaces)))
        created = await provider.create(inputs)
        await provider.delete(state.id, state.inputs)
        return ResourceState(name=name, id=created.id, inputs=inputs, outputs=created.outputs)

    if inputs == state.inputs:
        return state

    updated = await provider.update(state.id, state.inputs, inputs)
    logger.info("Updated %s (id=%s)", name, _loggable_id(provider, state.id))
    outputs = dict(state.outputs)
    outputs.update(updated.outputs)
    return ResourceState(name=name, id=state.id, inputs=inputs, outputs=outputs)


async def destroy_resource(provider: ResourceProvider[InputsT], state: ResourceState[InputsT]) -> None:
    await provider.delete(state.id, state.inputs)
    logger.info("Deleted %s (id=%s)", state.name, _loggable_id(provider, state.id))


def _loggable_id(provider: ResourceProvider[Any], value: str) -> str:
    return "<redacted>" if provider.sensitive_id else str(value)
