import asyncio
import base64

import pytest

from github_hook.component import GitHubWebhook, GitHubWebhookArgs
from github_hook.errors import RemoteCallError
from github_hook.gateway import InboundRequest
from github_hook.registration import Organization, Repository

URL = "https://hooks.example.com/"


async def _noop(delivery):
    return None


def _webhook(github_client, **kwargs):
    args = GitHubWebhookArgs(
        handler=kwargs.pop("handler", _noop),
        events=kwargs.pop("events", ["push", "pull_request"]),
        repositories=kwargs.pop("repositories", [("octo", "cat")]),
        organizations=kwargs.pop("organizations", ["acme"]),
        **kwargs,
    )
    return GitHubWebhook("ci", args, url=URL, client=github_client)


def test_requires_some_scope(github_client):
    with pytest.raises(ValueError, match="at least one organization or repository"):
        GitHubWebhook("ci", GitHubWebhookArgs(handler=_noop, events=["push"]), url=URL, client=github_client)


def test_declares_one_registration_per_scope(github_client):
    hook = _webhook(github_client)
    declared = hook.declared_registrations()
    assert sorted(declared) == ["ci-registration-acme", "ci-registration-octo-cat"]
    assert declared["ci-registration-acme"]["secret"] is hook.secret


def test_up_creates_hooks_sharing_secret_and_url(github_client, fake_github):
    hook = _webhook(github_client)
    asyncio.run(hook.up())

    posts = fake_github.calls_for("POST")
    assert sorted(c["path"] for c in posts) == ["/orgs/acme/hooks", "/repos/octo/cat/hooks"]
    secrets_sent = {c["json"]["config"]["secret"] for c in posts}
    urls_sent = {c["json"]["config"]["url"] for c in posts}
    assert secrets_sent == {hook.secret.get()}
    assert urls_sent == {URL}
    assert all(c["json"]["events"] == ["push", "pull_request"] for c in posts)
    assert len(base64.b64decode(hook.secret.get())) == 32

    regs = hook.registrations
    assert regs["ci-registration-acme"].inputs.scope == Organization("acme")
    assert regs["ci-registration-octo-cat"].inputs.scope == Repository("octo", "cat")


def test_down_deletes_each_registration_by_its_own_scope(github_client, fake_github):
    hook = _webhook(github_client)
    asyncio.run(hook.up())
    ids = {n: s.id for n, s in hook.registrations.items()}

    calls_before = len(fake_github.calls)
    asyncio.run(hook.down())

    # one remote delete per hook, none for the secret
    deletes = fake_github.calls[calls_before:]
    assert [c["method"] for c in deletes] == ["DELETE", "DELETE"]
    assert sorted(c["path"] for c in deletes) == sorted(
        [
            f"/orgs/acme/hooks/{ids['ci-registration-acme']}",
            f"/repos/octo/cat/hooks/{ids['ci-registration-octo-cat']}",
        ]
    )
    assert hook.registrations == {}
    assert fake_github.hooks == {}


def test_up_again_updates_changed_events_in_place(github_client, fake_github):
    hook = _webhook(github_client, organizations=None)
    asyncio.run(hook.up())
    secret = hook.secret.get()

    hook.events = ["issues"]
    asyncio.run(hook.up())

    assert [c["method"] for c in fake_github.calls] == ["POST", "PATCH"]
    assert fake_github.calls[1]["json"]["events"] == ["issues"]
    assert hook.secret.get() == secret


def test_failed_registration_is_reported_and_others_kept(github_client, fake_github):
    hook = _webhook(github_client)
    fake_github.path_overrides["/orgs/"] = 403

    with pytest.raises(RemoteCallError) as ei:
        asyncio.run(hook.up())
    assert ei.value.status_code == 403
    assert list(hook.registrations) == ["ci-registration-octo-cat"]


def test_gateway_uses_generated_secret(github_client, sign):
    seen = []
    hook = _webhook(github_client, handler=seen.append)
    asyncio.run(hook.up())

    body = b'{"zen": "Keep it logically awesome."}'
    req = InboundRequest(
        headers={
            "X-GitHub-Event": "ping",
            "X-GitHub-Delivery": "d-9",
            "X-Hub-Signature": sign(hook.secret.get(), body),
        },
        body=body,
    )
    assert asyncio.run(hook.gateway.handle(req)).status_code == 200
    assert seen[0].type == "ping"


def test_colliding_registration_names_are_rejected(github_client, fake_github):
    with pytest.raises(ValueError, match="duplicate registration name 'ci-registration-octo-cat'"):
        _webhook(github_client, repositories=[("octo", "cat")], organizations=["octo-cat"])
    assert fake_github.calls == []


def test_distinct_scopes_each_get_a_hook(github_client, fake_github):
    hook = _webhook(github_client, repositories=[("octo", "cat"), ("octo", "dog")], organizations=["acme", "octo"])
    asyncio.run(hook.up())
    assert len(fake_github.calls_for("POST")) == 4
    assert len(hook.registrations) == 4
