"""GitHub webhook provisioning + authenticated ingress."""

from .component import GitHubWebhook, GitHubWebhookArgs
from .gateway import GatewayResponse, InboundRequest, WebhookDelivery, WebhookGateway
from .github_api import GitHubClient
from .registration import Organization, Repository, WebhookRegistrationProvider
from .secret import RandomSecretProvider

__all__ = [
    "GatewayResponse",
    "GitHubClient",
    "GitHubWebhook",
    "GitHubWebhookArgs",
    "InboundRequest",
    "Organization",
    "RandomSecretProvider",
    "Repository",
    "WebhookDelivery",
    "WebhookGateway",
    "WebhookRegistrationProvider",
]
