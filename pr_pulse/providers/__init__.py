"""Code-hosting provider adapters."""

from .base import ProviderAdapter
from .enrichment import enrich_pull_request, enrich_pull_requests
from .github import GitHubProvider

__all__ = [
    'GitHubProvider',
    'ProviderAdapter',
    'enrich_pull_request',
    'enrich_pull_requests',
]
