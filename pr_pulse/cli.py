#!/usr/bin/env python3
"""
PR Pulse
Polls your pull requests and review requests and shows CI and review health.
"""

import dataclasses
import logging
import os
import sys
import time

from .config import AppConfig, is_valid_token_format, load_config
from .errors import AuthError, PRPulseError
from .output import OutputFormatter
from .registry import ProviderRegistry
from .scheduler import PollingScheduler
from .storage import Storage


def configure_logging():
    """Configure logging (can be overridden by LOG_LEVEL environment variable)."""
    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%m/%d/%Y %I:%M:%S %p'
    )


def connect_provider(config: AppConfig, storage: Storage, registry: ProviderRegistry) -> bool:
    """Validate the token from the environment and store the provider configuration.

    Returns:
        True if a provider configuration was stored
    """
    provider_config = config.provider_config()
    if provider_config is None:
        return False

    provider = registry.create_provider(provider_config.type, provider_config)
    try:
        user = provider.authenticate()
    finally:
        provider.close()
    logging.info(f"Authenticated as {user.login} on {provider.display_name}")

    storage.set_provider_config(dataclasses.replace(provider_config, user=user))
    return True


def prompt_for_token(config: AppConfig) -> AppConfig:
    """Ask for a token on an interactive terminal."""
    if not sys.stdin.isatty():
        return config

    token = input("\nEnter GitHub token (or press Enter to skip): ").strip()
    if not token:
        return config
    if not is_valid_token_format(token):
        logging.warning("Token does not look like a GitHub personal access token (ghp_... or github_pat_...)")
    return dataclasses.replace(config, token=token)


def main():
    """Main entry point for the script."""
    configure_logging()
    config = load_config()

    print("PR Pulse")
    print("="*80)

    storage = Storage(config.state_file)
    overrides = config.settings_overrides()
    if overrides:
        storage.set_settings(**overrides)
    settings = storage.get_settings()
    registry = ProviderRegistry(timeout=config.request_timeout)

    if not config.token and storage.get_provider_config() is None:
        config = prompt_for_token(config)

    try:
        configured = connect_provider(config, storage, registry)
    except AuthError as e:
        logging.error(f"Could not authenticate: {e}")
        sys.exit(1)
    except PRPulseError as e:
        logging.error(f"Could not configure provider: {e}")
        sys.exit(1)

    stored = storage.get_provider_config()
    if stored is None:
        logging.error("No provider configured. Set GITHUB_TOKEN in the environment or a .env file.")
        sys.exit(1)

    formatter = OutputFormatter(
        username=stored.user.login if stored.user else '',
        pinned_tab=settings.pinned_tab,
        jira_base_url=settings.jira_base_url,
        visible_columns=settings.visible_columns,
    )

    scheduler = PollingScheduler(
        storage,
        registry,
        badge_callback=lambda count, text: logging.info(f"Badge: {text or '(empty)'}"),
        on_snapshot=lambda snapshot: formatter.print_summary(snapshot, scheduler.badge_count),
    )

    if config.run_once:
        scheduler.initialize_provider()
        scheduler.refresh()
        if scheduler.last_error is not None:
            # Show what we have from the last successful cycle
            formatter.print_summary(storage.get_snapshot(), scheduler.update_badge())
            sys.exit(1)
        return

    if configured:
        scheduler.on_provider_configured()
    else:
        scheduler.start()
        scheduler.refresh()

    print("\nPolling... press Ctrl+C to stop")
    try:
        while True:
            if scheduler.reconnect_required:
                logging.error("Credential rejected. Update GITHUB_TOKEN and restart to reconnect.")
                sys.exit(1)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping.")
    finally:
        scheduler.stop()


if __name__ == "__main__":
    main()
