"""
Runtime configuration for PR Pulse.

Values come from the environment, optionally seeded from a .env file.
Invalid values are ignored with a warning. Display and polling preferences
left unset here keep whatever the state file already holds.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import load_dotenv

from .api_client import DEFAULT_TIMEOUT_SECONDS
from .models import PINNED_TABS, ProviderConfig
from .providers.github import DEFAULT_BASE_URL
from .storage import DEFAULT_STATE_FILE


DEFAULT_PROVIDER_TYPE = 'github'
MIN_POLL_INTERVAL_MINUTES = 1

# Classic PAT: ghp_ followed by 36 alphanumeric chars
CLASSIC_TOKEN_PATTERN = re.compile(r'^ghp_[a-zA-Z0-9]{36}$')
# Fine-grained PAT: github_pat_ followed by alphanumeric chars and underscores
FINE_GRAINED_TOKEN_PATTERN = re.compile(r'^github_pat_[a-zA-Z0-9_]{22,}$')

TRUE_VALUES = ('true', '1', 'yes')


@dataclass
class AppConfig:
    """Settings the process starts with."""
    token: Optional[str] = None
    provider_type: str = DEFAULT_PROVIDER_TYPE
    api_url: str = DEFAULT_BASE_URL
    state_file: str = DEFAULT_STATE_FILE
    # Preferences stay None unless set in the environment, so stored ones survive restarts
    poll_interval_minutes: Optional[int] = None
    pinned_tab: Optional[str] = None
    jira_base_url: Optional[str] = None
    request_timeout: float = DEFAULT_TIMEOUT_SECONDS
    run_once: bool = False

    @property
    def poll_interval_ms(self) -> Optional[int]:
        if self.poll_interval_minutes is None:
            return None
        return self.poll_interval_minutes * 60000

    def settings_overrides(self) -> Dict:
        """Settings given explicitly in the environment, keyed like Settings fields."""
        overrides = {}
        if self.pinned_tab is not None:
            overrides['pinned_tab'] = self.pinned_tab
        if self.poll_interval_ms is not None:
            overrides['polling_interval_ms'] = self.poll_interval_ms
        if self.jira_base_url is not None:
            overrides['jira_base_url'] = self.jira_base_url
        return overrides

    def provider_config(self) -> Optional[ProviderConfig]:
        """Provider configuration from the environment, if a token was given."""
        if not self.token:
            return None
        return ProviderConfig(type=self.provider_type, token=self.token, base_url=self.api_url)


def is_valid_token_format(token: str) -> bool:
    """Check that a string looks like a GitHub personal access token.

    Args:
        token: Token to validate

    Returns:
        True for classic (ghp_...) and fine-grained (github_pat_...) tokens
    """
    if not token or not isinstance(token, str):
        return False
    return bool(CLASSIC_TOKEN_PATTERN.match(token) or FINE_GRAINED_TOKEN_PATTERN.match(token))


def _get_int(name: str, minimum: int = None) -> Optional[int]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        logging.warning(f"Invalid {name} value '{raw}', keeping the stored setting")
        return None
    if minimum is not None and value < minimum:
        logging.warning(f"{name} must be at least {minimum}, using {minimum}")
        return minimum
    return value


def _get_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logging.warning(f"Invalid {name} value '{raw}', using default: {default}")
        return default
    if value <= 0:
        logging.warning(f"{name} must be positive, using default: {default}")
        return default
    return value


def load_config(dotenv_path: Optional[str] = None) -> AppConfig:
    """Load configuration from the environment (and a .env file if present).

    Args:
        dotenv_path: Explicit .env file; defaults to searching from the working directory

    Returns:
        AppConfig populated from environment variables
    """
    load_dotenv(dotenv_path)

    token = os.environ.get('GITHUB_TOKEN', '').strip() or None
    if token and not is_valid_token_format(token):
        # Enterprise instances and test tokens do not always follow the public format
        logging.warning("GITHUB_TOKEN does not look like a GitHub personal access token")

    pinned_tab = os.environ.get('PINNED_TAB', '').strip().lower() or None
    if pinned_tab is not None and pinned_tab not in PINNED_TABS:
        logging.warning(f"Invalid PINNED_TAB value '{pinned_tab}', keeping the stored setting")
        logging.warning(f"Valid options: {', '.join(PINNED_TABS)}")
        pinned_tab = None

    return AppConfig(
        token=token,
        provider_type=os.environ.get('PR_PULSE_PROVIDER', DEFAULT_PROVIDER_TYPE).strip().lower(),
        api_url=os.environ.get('PR_PULSE_API_URL', DEFAULT_BASE_URL).strip() or DEFAULT_BASE_URL,
        state_file=os.environ.get('PR_PULSE_STATE_FILE', DEFAULT_STATE_FILE).strip() or DEFAULT_STATE_FILE,
        poll_interval_minutes=_get_int('POLL_INTERVAL_MINUTES', minimum=MIN_POLL_INTERVAL_MINUTES),
        pinned_tab=pinned_tab,
        jira_base_url=os.environ['JIRA_BASE_URL'].strip() if 'JIRA_BASE_URL' in os.environ else None,
        request_timeout=_get_float('REQUEST_TIMEOUT_SECONDS', DEFAULT_TIMEOUT_SECONDS),
        run_once=os.environ.get('RUN_ONCE', 'false').lower() in TRUE_VALUES,
    )
