import hashlib
import hmac
import itertools
import json

import httpx
import pytest

from github_hook.github_api import GitHubClient


class FakeGitHub:
    """In-memory stand-in for the hook endpoints, served through httpx.MockTransport."""

    def __init__(self):
        self.calls = []
        self.hooks = {}
        self.status_overrides = {}
        self.path_overrides = {}
        self._ids = itertools.count(1001)

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append(
            {
                "method": request.method,
                "path": request.url.path,
                "json": body,
                "authorization": request.headers.get("authorization"),
            }
        )
        override = self.status_overrides.get(request.method)
        for prefix, status in self.path_overrides.items():
            if request.url.path.startswith(prefix):
                override = status
        if override is not None:
            return httpx.Response(override, json={"message": "nope"})

        if request.method == "POST":
            hook_id = next(self._ids)
            self.hooks[hook_id] = {"path": request.url.path, **body}
            return httpx.Response(201, json={"id": hook_id, "name": "web", **body})
        if request.method == "PATCH":
            hook_id = int(request.url.path.rsplit("/", 1)[1])
            self.hooks[hook_id].update(body)
            return httpx.Response(200, json={"id": hook_id, **self.hooks[hook_id]})
        if request.method == "DELETE":
            hook_id = int(request.url.path.rsplit("/", 1)[1])
            self.hooks.pop(hook_id, None)
            return httpx.Response(204)
        return httpx.Response(405)

    def calls_for(self, method):
        return [c for c in self.calls if c["method"] == method]


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def github_client(fake_github):
    return GitHubClient("test-token", transport=httpx.MockTransport(fake_github.handler))


@pytest.fixture
def sign():
    def _sign(secret: str, body: bytes) -> str:
        return "sha1=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()
    return _sign
