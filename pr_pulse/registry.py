"""Selection of the active provider and the fan-out fetch of both PR lists."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from .api_client import DEFAULT_TIMEOUT_SECONDS
from .errors import ConfigError
from .models import PollingSnapshot, ProviderConfig, PullRequest, User
from .providers import GitHubProvider, ProviderAdapter


# Provider type tag -> adapter class
PROVIDER_TYPES: Dict[str, type] = {
    'github': GitHubProvider,
}


class ProviderRegistry:
    """Holds the active provider adapter.

    Currently a single provider at a time. The registry itself keeps no
    fetched data; every call goes to the adapter.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.provider: Optional[ProviderAdapter] = None
        self.timeout = timeout

    def create_provider(self, provider_type: str, config: ProviderConfig) -> ProviderAdapter:
        """Instantiate the adapter registered for a type tag.

        Args:
            provider_type: Type tag, e.g. 'github'
            config: Credential and API base URL

        Returns:
            A new adapter (not yet active)

        Raises:
            ConfigError: Unknown type or missing token
        """
        adapter_class = PROVIDER_TYPES.get(provider_type)
        if adapter_class is None:
            raise ConfigError(f"Unknown provider type: {provider_type}")
        if not config.token:
            raise ConfigError(f"No token configured for provider '{provider_type}'")

        return adapter_class(config.token, base_url=config.base_url or None, timeout=self.timeout)

    def configure(self, config: ProviderConfig) -> ProviderAdapter:
        """Create the adapter described by a stored configuration and make it active."""
        provider = self.create_provider(config.type, config)
        self.set_provider(provider)
        logging.info(f"Using {provider.display_name} provider at {provider.base_url}")
        return provider

    def set_provider(self, provider: ProviderAdapter):
        """Make a provider active, releasing the one it replaces."""
        previous, self.provider = self.provider, provider
        if previous is not None and previous is not provider:
            previous.close()

    def get_provider(self) -> Optional[ProviderAdapter]:
        return self.provider

    def has_provider(self) -> bool:
        return self.provider is not None

    def clear_provider(self):
        previous, self.provider = self.provider, None
        if previous is not None:
            previous.close()

    def _require_provider(self) -> ProviderAdapter:
        if self.provider is None:
            raise ConfigError("No provider configured")
        return self.provider

    def authenticate(self) -> User:
        return self._require_provider().authenticate()

    def get_user(self) -> User:
        return self._require_provider().get_user()

    def list_own_open_pull_requests(self) -> List[PullRequest]:
        return self._require_provider().list_own_open_pull_requests()

    def list_review_requested_pull_requests(self) -> List[PullRequest]:
        return self._require_provider().list_review_requested_pull_requests()

    def fetch_all(self) -> PollingSnapshot:
        """Fetch my PRs and review requests concurrently.

        Returns:
            A complete snapshot stamped with the current time

        Raises:
            ConfigError: No provider is active
            Exception: Whatever either list call raised; no partial snapshot is built
        """
        provider = self._require_provider()

        with ThreadPoolExecutor(max_workers=2) as executor:
            future_mine = executor.submit(provider.list_own_open_pull_requests)
            future_requested = executor.submit(provider.list_review_requested_pull_requests)

            my_prs = future_mine.result()
            review_requested_prs = future_requested.result()

        return PollingSnapshot(
            my_prs=tuple(my_prs),
            review_requested_prs=tuple(review_requested_prs),
            fetched_at=int(time.time() * 1000),
        )
