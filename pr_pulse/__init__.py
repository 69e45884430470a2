"""PR Pulse - polls pull requests and reports CI and review health."""

from .aggregation import combined_health, reduce_check_runs, reduce_reviews
from .api_client import APIClient
from .errors import AuthError, ConfigError, CycleError, PRPulseError, ProviderAPIError, TransientFetchError
from .models import (
    ChangeStats, CheckRun, CheckStatus, ItemOutcome, PollingSnapshot, ProviderConfig,
    PullRequest, PullRequestDetail, Reviewer, ReviewStatus, Settings, User,
)
from .providers import GitHubProvider, ProviderAdapter
from .registry import PROVIDER_TYPES, ProviderRegistry
from .scheduler import PollingScheduler
from .storage import Storage

__all__ = [
    'APIClient',
    'AuthError',
    'ChangeStats',
    'CheckRun',
    'CheckStatus',
    'ConfigError',
    'CycleError',
    'GitHubProvider',
    'ItemOutcome',
    'PRPulseError',
    'PROVIDER_TYPES',
    'PollingScheduler',
    'PollingSnapshot',
    'ProviderAPIError',
    'ProviderAdapter',
    'ProviderConfig',
    'ProviderRegistry',
    'PullRequest',
    'PullRequestDetail',
    'ReviewStatus',
    'Reviewer',
    'Settings',
    'Storage',
    'TransientFetchError',
    'User',
    'combined_health',
    'reduce_check_runs',
    'reduce_reviews',
]
