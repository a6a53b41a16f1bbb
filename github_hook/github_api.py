"""Thin async client for the GitHub REST hook endpoints.

Returns raw `httpx.Response` objects; deciding which status counts as
success is the caller's business. Transport failures surface as
`RemoteCallError` with no response attached.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import RemoteCallError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"


class GitHubClient:
    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not token:
            raise ValueError("a GitHub token is required")
        self._token = token
        self.base_url = (base_url or DEFAULT_API_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                return await client.request(method, path, json=json)
            except httpx.RequestError as e:
                logger.warning("GitHub %s %s failed: %s", method, path, e)
                raise RemoteCallError(f"GitHub unreachable: {e}") from e

    # ── create ──────────────────────────────────────────────────────

    async def create_org_hook(self, org: str, *, events: List[str], config: Dict[str, Any]) -> httpx.Response:
        body = {"name": "web", "events": list(events), "config": config}
        return await self._request("POST", f"/orgs/{org}/hooks", json=body)

    async def create_repo_hook(
        self, owner: str, repo: str, *, events: List[str], config: Dict[str, Any]
    ) -> httpx.Response:
        body = {"name": "web", "events": list(events), "config": config}
        return await self._request("POST", f"/repos/{owner}/{repo}/hooks", json=body)

    # ── edit ────────────────────────────────────────────────────────

    async def edit_org_hook(
        self, org: str, hook_id: str, *, events: List[str], config: Dict[str, Any]
    ) -> httpx.Response:
        body = {"events": list(events), "config": config}
        return await self._request("PATCH", f"/orgs/{org}/hooks/{hook_id}", json=body)

    async def edit_repo_hook(
        self, owner: str, repo: str, hook_id: str, *, events: List[str], config: Dict[str, Any]
    ) -> httpx.Response:
        body = {"events": list(events), "config": config}
        return await self._request("PATCH", f"/repos/{owner}/{repo}/hooks/{hook_id}", json=body)

    # ── delete ──────────────────────────────────────────────────────

    async def delete_org_hook(self, org: str, hook_id: str) -> httpx.Response:
        return await self._request("DELETE", f"/orgs/{org}/hooks/{hook_id}")

    async def delete_repo_hook(self, owner: str, repo: str, hook_id: str) -> httpx.Response:
        return await self._request("DELETE", f"/repos/{owner}/{repo}/hooks/{hook_id}")


def describe_response(resp: httpx.Response) -> str:
    """Short diagnostic text for an unexpected response."""
    try:
        detail = (resp.text or "").strip()[:300]
    except Exception:
        detail = ""
    try:
        target = f"{resp.request.method} {resp.request.url.path} -> "
    except RuntimeError:
        # Response built without a request (tests, replays).
        target = ""
    return f"bad response: {target}{resp.status_code} {detail}".rstrip()
