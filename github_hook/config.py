from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .github_api import DEFAULT_API_URL
from .secret import DEFAULT_SECRET_BYTES


def _split_list(raw: Optional[str]) -> List[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


def _parse_repositories(raw: Optional[str]) -> List[Tuple[str, str]]:
    out: List[Tuple[str, str]] = []
    for item in _split_list(raw):
        owner, sep, repo = item.partition("/")
        if not sep or not owner.strip() or not repo.strip() or "/" in repo:
            raise ValueError(f"WEBHOOK_REPOSITORIES entry {item!r} is not 'owner/repo'")
        out.append((owner.strip(), repo.strip()))
    return out


@dataclass
class Settings:
    github_token: str = ""
    github_api_url: str = DEFAULT_API_URL
    github_http_timeout_seconds: float = 15.0

    port: int = 8080
    base_url: str = "http://localhost:8080"
    webhook_path: str = "/"

    events: List[str] = field(default_factory=lambda: ["push"])
    repositories: List[Tuple[str, str]] = field(default_factory=list)
    organizations: List[str] = field(default_factory=list)
    secret_bytes: int = DEFAULT_SECRET_BYTES
    auto_provision: bool = False
    # Pre-shared secret for hooks registered outside this process.
    webhook_secret: str = ""

    log_level: str = "INFO"

    @property
    def webhook_url(self) -> str:
        return self.base_url.rstrip("/") + self.webhook_path


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from the environment (a local `.env` is honoured)."""
    if environ is None:
        # In managed platforms the variables are injected directly and this is a no-op.
        load_dotenv()
        environ = os.environ

    port = int(environ.get("PORT", "8080"))
    return Settings(
        github_token=(environ.get("GITHUB_TOKEN") or "").strip(),
        github_api_url=(environ.get("GITHUB_API_URL") or DEFAULT_API_URL).strip(),
        github_http_timeout_seconds=float(environ.get("GITHUB_HTTP_TIMEOUT_SECONDS", "15")),
        port=port,
        base_url=(environ.get("BASE_URL") or f"http://localhost:{port}").strip(),
        webhook_path="/" + (environ.get("WEBHOOK_PATH") or "/").strip().lstrip("/"),
        events=_split_list(environ.get("WEBHOOK_EVENTS")) or ["push"],
        repositories=_parse_repositories(environ.get("WEBHOOK_REPOSITORIES")),
        organizations=_split_list(environ.get("WEBHOOK_ORGANIZATIONS")),
        secret_bytes=int(environ.get("WEBHOOK_SECRET_BYTES", str(DEFAULT_SECRET_BYTES))),
        auto_provision=environ.get("WEBHOOK_AUTO_PROVISION", "0") == "1",
        webhook_secret=(environ.get("WEBHOOK_SECRET") or "").strip(),
        log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
    )
