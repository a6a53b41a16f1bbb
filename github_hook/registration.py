from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .errors import RemoteCallError
from .github_api import GitHubClient, describe_response
from .lifecycle import (
    CheckFailure,
    CheckResult,
    CreateResult,
    DiffResult,
    ResourceProvider,
    UpdateResult,
)

logger = logging.getLogger(__name__)

# GitHub subscribes a hook to `push` when no events are given.
DEFAULT_EVENTS: Tuple[str, ...] = ("push",)

# Changing any of these means a different hook endpoint, so it cannot be edited in place.
SCOPE_PROPERTIES = ("owner", "repo", "org")


@dataclass(frozen=True)
class Organization:
    name: str


@dataclass(frozen=True)
class Repository:
    owner: str
    repo: str


Scope = Union[Organization, Repository]


def scope_properties(scope: Scope) -> Dict[str, Optional[str]]:
    if isinstance(scope, Organization):
        return {"org": scope.name, "owner": None, "repo": None}
    return {"org": None, "owner": scope.owner, "repo": scope.repo}


@dataclass(frozen=True)
class WebhookInputs:
    scope: Scope
    url: str
    events: Tuple[str, ...] = DEFAULT_EVENTS
    secret: Optional[str] = None


def _present(value: Any) -> bool:
    return value is not None and value != ""


class WebhookRegistrationProvider(ResourceProvider[WebhookInputs]):
    """One GitHub hook on one organization or repository."""

    def __init__(self, client: GitHubClient) -> None:
        self.client = client

    def check(self, proposed: Mapping[str, Any]) -> CheckResult[WebhookInputs]:
        failures: List[CheckFailure] = []
        url = proposed.get("url")
        org = proposed.get("org")
        owner = proposed.get("owner")
        repo = proposed.get("repo")
        events = proposed.get("events")

        if not _present(url):
            failures.append(CheckFailure("url", "required property 'url' missing"))

        if _present(org) and (_present(owner) or _present(repo)):
            failures.append(CheckFailure("org", "when 'org' is set, 'owner' and 'repo' must not be"))

        if _present(owner) and not _present(repo):
            failures.append(CheckFailure("repo", "when 'owner' is set, 'repo' must be as well"))

        if _present(repo) and not _present(owner):
            failures.append(CheckFailure("owner", "when 'repo' is set, 'owner' must be as well"))

        if not (_present(org) or _present(owner) or _present(repo)):
            failures.append(CheckFailure("org", "one of 'org' or 'owner'/'repo' must be set"))

        if events is not None and (
            not isinstance(events, (list, tuple)) or not all(isinstance(e, str) and e for e in events)
        ):
            failures.append(CheckFailure("events", "'events' should be a list of event names"))

        if failures:
            return CheckResult(inputs=None, failures=failures)

        scope: Scope = Organization(org) if _present(org) else Repository(owner, repo)
        return CheckResult(
            inputs=WebhookInputs(
                scope=scope,
                url=url,
                events=tuple(events) if events is not None else DEFAULT_EVENTS,
                secret=proposed.get("secret"),
            )
        )

    def diff(self, id: str, current: WebhookInputs, proposed: WebhookInputs) -> DiffResult:
        olds = scope_properties(current.scope)
        news = scope_properties(proposed.scope)
        return DiffResult(replaces={p for p in SCOPE_PROPERTIES if olds[p] != news[p]})

    async def create(self, inputs: WebhookInputs) -> CreateResult:
        config: Dict[str, Any] = {"content_type": "json", "url": inputs.url}
        if inputs.secret is not None:
            config["secret"] = inputs.secret

        scope = inputs.scope
        if isinstance(scope, Organization):
            resp = await self.client.create_org_hook(scope.name, events=list(inputs.events), config=config)
        else:
            resp = await self.client.create_repo_hook(
                scope.owner, scope.repo, events=list(inputs.events), config=config
            )

        if resp.status_code != 201:
            logger.warning("Hook creation failed for %s: %s", scope, resp.status_code)
            raise RemoteCallError(describe_response(resp), response=resp)

        hook_id = str((resp.json() or {})["id"])
        return CreateResult(id=hook_id, outputs={"id": hook_id})

    async def update(self, id: str, current: WebhookInputs, proposed: WebhookInputs) -> UpdateResult:
        # The secret is owned by the secret resource and is left untouched here.
        config = {"content_type": "json", "url": proposed.url}

        scope = proposed.scope
        if isinstance(scope, Organization):
            resp = await self.client.edit_org_hook(scope.name, id, events=list(proposed.events), config=config)
        else:
            resp = await self.client.edit_repo_hook(
                scope.owner, scope.repo, id, events=list(proposed.events), config=config
            )

        if not resp.is_success:
            logger.warning("Hook update failed for %s (id=%s): %s", scope, id, resp.status_code)
            raise RemoteCallError(describe_response(resp), response=resp)

        data = resp.json() or {}
        return UpdateResult(outputs={"id": str(data.get("id", id))})

    async def delete(self, id: str, current: WebhookInputs) -> None:
        scope = current.scope
        if isinstance(scope, Organization):
            resp = await self.client.delete_org_hook(scope.name, id)
        else:
            resp = await self.client.delete_repo_hook(scope.owner, scope.repo, id)

        if resp.status_code != 204:
            logger.warning("Hook deletion failed for %s (id=%s): %s", scope, id, resp.status_code)
            raise RemoteCallError(describe_response(resp), response=resp)
