"""
Unit tests for environment configuration
"""

import os

import pytest
from unittest.mock import patch
from pr_pulse.config import AppConfig, is_valid_token_format, load_config


CONFIG_VARS = (
    'GITHUB_TOKEN', 'PR_PULSE_PROVIDER', 'PR_PULSE_API_URL', 'PR_PULSE_STATE_FILE',
    'POLL_INTERVAL_MINUTES', 'PINNED_TAB', 'JIRA_BASE_URL', 'REQUEST_TIMEOUT_SECONDS', 'RUN_ONCE',
)


@pytest.fixture
def env():
    """Clean environment with .env loading disabled."""
    clean = {k: v for k, v in os.environ.items() if k not in CONFIG_VARS}
    with patch.dict(os.environ, clean, clear=True), patch('pr_pulse.config.load_dotenv'):
        yield os.environ


class TestTokenFormat:
    """Test cases for token validation."""

    def test_classic_token(self):
        assert is_valid_token_format('ghp_' + 'a1B2' * 9)

    def test_fine_grained_token(self):
        assert is_valid_token_format('github_pat_' + 'A_b1' * 6)

    @pytest.mark.parametrize('token', [
        '', None, 'ghp_short', 'ghp_' + 'a' * 37, 'github_pat_short', 'gho_' + 'a' * 36, 12345,
    ])
    def test_invalid_tokens(self, token):
        assert not is_valid_token_format(token)


class TestLoadConfig:
    """Test cases for load_config."""

    def test_defaults(self, env):
        config = load_config()

        assert config.token is None
        assert config.provider_type == 'github'
        assert config.api_url == 'https://api.github.com'
        assert config.poll_interval_minutes is None
        assert config.poll_interval_ms is None
        assert config.pinned_tab is None
        assert config.jira_base_url is None
        assert config.settings_overrides() == {}
        assert config.request_timeout == 30.0
        assert config.run_once is False
        assert config.provider_config() is None

    def test_values_from_environment(self, env):
        env.update({
            'GITHUB_TOKEN': 'ghp_' + 'x' * 36,
            'PR_PULSE_API_URL': 'https://ghe.example.com/api/v3',
            'POLL_INTERVAL_MINUTES': '5',
            'PINNED_TAB': 'REVIEW_REQUESTS',
            'JIRA_BASE_URL': 'https://jira.example.com',
            'REQUEST_TIMEOUT_SECONDS': '12.5',
            'RUN_ONCE': 'yes',
        })
        config = load_config()

        assert config.poll_interval_ms == 300000
        assert config.pinned_tab == 'review_requests'
        assert config.jira_base_url == 'https://jira.example.com'
        assert config.request_timeout == 12.5
        assert config.run_once is True
        assert config.settings_overrides() == {
            'pinned_tab': 'review_requests',
            'polling_interval_ms': 300000,
            'jira_base_url': 'https://jira.example.com',
        }

        provider_config = config.provider_config()
        assert provider_config.type == 'github'
        assert provider_config.base_url == 'https://ghe.example.com/api/v3'
        assert provider_config.token == 'ghp_' + 'x' * 36

    def test_interval_below_minimum_is_clamped(self, env):
        env['POLL_INTERVAL_MINUTES'] = '0'
        assert load_config().poll_interval_minutes == 1

    def test_invalid_values_fall_back(self, env, caplog):
        env.update({
            'POLL_INTERVAL_MINUTES': 'often',
            'PINNED_TAB': 'everything',
            'REQUEST_TIMEOUT_SECONDS': '-3',
        })
        config = load_config()

        assert config.poll_interval_minutes is None
        assert config.pinned_tab is None
        assert config.request_timeout == 30.0
        assert config.settings_overrides() == {}
        assert 'Invalid POLL_INTERVAL_MINUTES' in caplog.text
        assert 'Invalid PINNED_TAB' in caplog.text

    def test_empty_jira_url_clears_the_setting(self, env):
        env['JIRA_BASE_URL'] = ''
        assert load_config().settings_overrides() == {'jira_base_url': ''}

    def test_odd_token_format_only_warns(self, env, caplog):
        env['GITHUB_TOKEN'] = 'enterprise-token'
        assert load_config().token == 'enterprise-token'
        assert 'does not look like' in caplog.text

    def test_app_config_defaults(self):
        assert AppConfig().provider_type == 'github'
