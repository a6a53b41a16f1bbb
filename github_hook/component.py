from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .github_api import GitHubClient
from .gateway import WebhookGateway, WebhookHandler
from .lifecycle import Deferred, ResourceProvider, ResourceState, apply_resource, destroy_resource
from .registration import Repository, WebhookInputs, WebhookRegistrationProvider
from .secret import DEFAULT_SECRET_BYTES, RandomSecretProvider, SecretInputs

logger = logging.getLogger(__name__)

RepositoryRef = Union[Repository, Tuple[str, str]]


@dataclass
class GitHubWebhookArgs:
    handler: WebhookHandler
    events: List[str]
    repositories: Optional[Sequence[RepositoryRef]] = None
    organizations: Optional[Sequence[str]] = None
    secret_bytes: int = DEFAULT_SECRET_BYTES


def _as_repository(ref: RepositoryRef) -> Repository:
    if isinstance(ref, Repository):
        return ref
    owner, repo = ref
    return Repository(owner=owner, repo=repo)


class GitHubWebhook:
    """A signing secret, the ingress gateway and one hook per declared scope.

    Every hook shares the secret and the gateway URL. `up()` creates or
    updates the remote hooks, `down()` removes them.
    """

    def __init__(
        self,
        name: str,
        args: GitHubWebhookArgs,
        *,
        url: str,
        client: Optional[GitHubClient] = None,
        registration_provider: Optional[ResourceProvider[WebhookInputs]] = None,
        secret_provider: Optional[ResourceProvider[SecretInputs]] = None,
    ) -> None:
        if not args.organizations and not args.repositories:
            raise ValueError("at least one organization or repository must be specified")
        if registration_provider is None:
            if client is None:
                raise ValueError("either a GitHub client or a registration provider is required")
            registration_provider = WebhookRegistrationProvider(client)

        self.name = name
        self.url = url
        self.events = list(args.events)
        self.repositories = [_as_repository(r) for r in (args.repositories or [])]
        self.organizations = list(args.organizations or [])
        self.secret_bytes = args.secret_bytes

        self.secret: Deferred[str] = Deferred(f"{name}-secret value")
        self.gateway = WebhookGateway(self.secret, args.handler)

        self._secret_provider = secret_provider or RandomSecretProvider()
        self._registration_provider = registration_provider
        self._secret_state: Optional[ResourceState[SecretInputs]] = None
        self._registrations: Dict[str, ResourceState[WebhookInputs]] = {}

        # Fail at construction on colliding names.
        self.declared_registrations()

    @property
    def secret_name(self) -> str:
        return f"{self.name}-secret"

    @property
    def registrations(self) -> Dict[str, ResourceState[WebhookInputs]]:
        return dict(self._registrations)

    def declared_registrations(self) -> Dict[str, Dict[str, Any]]:
        """Property bags for every hook, keyed by resource name.

        The secret is passed as the deferred handle and resolved when the
        hook is applied. Two scopes that map to the same name are an error.
        """
        declared: Dict[str, Dict[str, Any]] = {}

        def _declare(name: str, props: Dict[str, Any]) -> None:
            if name in declared:
                raise ValueError(f"duplicate registration name {name!r}; rename the organization or repository")
            declared[name] = props

        for r in self.repositories:
            _declare(
                f"{self.name}-registration-{r.owner}-{r.repo}",
                {
                    "owner": r.owner,
                    "repo": r.repo,
                    "secret": self.secret,
                    "events": list(self.events),
                    "url": self.url,
                },
            )
        for org in self.organizations:
            _declare(
                f"{self.name}-registration-{org}",
                {
                    "org": org,
                    "secret": self.secret,
                    "events": list(self.events),
                    "url": self.url,
                },
            )
        return declared

    async def up(self) -> None:
        # The secret has to exist before any hook that embeds it.
        self._secret_state = await apply_resource(
            self._secret_provider,
            self.secret_name,
            {"byte_count": self.secret_bytes},
            self._secret_state,
        )
        self.secret.resolve(self._secret_state.outputs["value"])

        declared = self.declared_registrations()
        names = list(declared)
        results = await asyncio.gather(
            *(
                apply_resource(self._registration_provider, n, declared[n], self._registrations.get(n))
                for n in names
            ),
            return_exceptions=True,
        )
        self._record(names, results, keep=True)

    async def down(self) -> None:
        names = list(self._registrations)
        results = await asyncio.gather(
            *(destroy_resource(self._registration_provider, self._registrations[n]) for n in names),
            return_exceptions=True,
        )
        self._record(names, results, keep=False)

        if self._secret_state is not None:
            await destroy_resource(self._secret_provider, self._secret_state)
            self._secret_state = None

    def _record(self, names: List[str], results: List[Any], *, keep: bool) -> None:
        errors: List[BaseException] = []
        for n, res in zip(names, results):
            if isinstance(res, BaseException):
                logger.warning("%s failed: %s", n, res)
                errors.append(res)
            elif keep:
                self._registrations[n] = res
            else:
                self._registrations.pop(n, None)
        if errors:
            raise errors[0]
