"""Background polling: recurring timer, single-flight cycles and the badge."""

import logging
import threading
from typing import Callable, Optional

from .errors import AuthError, ConfigError, CycleError
from .models import PINNED_TABS, PollingSnapshot
from .registry import ProviderRegistry
from .storage import Storage


STATE_IDLE = 'idle'
STATE_FETCHING = 'fetching'
STATE_IDLE_WITH_ERROR = 'idle_with_error'

MIN_INTERVAL_MS = 60000  # Minimum 1 minute


class RepeatingTimer:
    """Calls a function every ``interval`` seconds on a daemon thread.

    The first call happens one full interval after start().
    """

    def __init__(self, interval: float, function: Callable[[], object]):
        self.interval = interval
        self.function = function
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name='pr-pulse-timer', daemon=True)

    def start(self):
        self._thread.start()

    def cancel(self):
        self._stopped.set()

    def is_alive(self) -> bool:
        return self._thread.is_alive() and not self._stopped.is_set()

    def _run(self):
        while not self._stopped.wait(self.interval):
            try:
                self.function()
            except Exception as e:
                # Keep ticking; the next period retries
                logging.error(f"Polling tick failed: {e}", exc_info=True)


def badge_text(count: int) -> str:
    """Text shown on the badge: the count, or nothing for zero."""
    return str(count) if count > 0 else ''


class PollingScheduler:
    """Owns the polling cadence and the decision to persist snapshots.

    State machine: idle -> fetching -> idle | idle_with_error. A trigger that
    arrives while a cycle is in flight is dropped, so cycles never overlap.
    A failed cycle leaves the previously stored snapshot untouched.
    """

    def __init__(
        self,
        storage: Storage,
        registry: ProviderRegistry = None,
        badge_callback: Optional[Callable[[int, str], None]] = None,
        on_snapshot: Optional[Callable[[PollingSnapshot], None]] = None,
        timer_factory: Callable[[float, Callable], RepeatingTimer] = RepeatingTimer,
    ):
        """Initialize the scheduler (nothing is armed until start()).

        Args:
            storage: Store holding provider config, settings and the snapshot
            registry: Provider registry (a new one is created if omitted)
            badge_callback: Called with (count, text) whenever the badge changes
            on_snapshot: Called with each successfully fetched snapshot
            timer_factory: Builds the recurring timer from (seconds, callback)
        """
        self.storage = storage
        self.registry = registry or ProviderRegistry()
        self.badge_callback = badge_callback
        self.on_snapshot = on_snapshot
        self.timer_factory = timer_factory

        self.state = STATE_IDLE
        self.last_error: Optional[Exception] = None
        self.reconnect_required = False
        self.badge_count = 0

        self._state_lock = threading.Lock()
        self._timer_lock = threading.Lock()
        self._timer: Optional[RepeatingTimer] = None

    @property
    def is_armed(self) -> bool:
        return self._timer is not None

    @property
    def is_fetching(self) -> bool:
        return self.state == STATE_FETCHING

    # Lifecycle

    def initialize_provider(self) -> bool:
        """(Re)create the active adapter from the stored provider configuration.

        Returns:
            True if a provider is now active, False if none is configured
        """
        config = self.storage.get_provider_config()
        if config is None:
            return False

        try:
            self.registry.configure(config)
        except ConfigError as e:
            logging.error(f"Stored provider configuration is invalid: {e}")
            self.registry.clear_provider()
            return False
        return True

    def start(self) -> bool:
        """Restore polling after a process start.

        Returns:
            True if the timer was armed
        """
        if not self.initialize_provider():
            logging.info("No provider configured, polling stays disarmed until one is configured")
            return False

        self.arm()
        return True

    def stop(self):
        """Disarm the timer (an in-flight cycle still runs to completion)."""
        self.disarm()

    def arm(self):
        """(Re)arm the timer with the stored polling interval."""
        interval_ms = max(MIN_INTERVAL_MS, self.storage.get_settings().polling_interval_ms)

        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self.timer_factory(interval_ms / 1000.0, self._on_tick)
            self._timer.start()

        logging.info(f"Polling every {interval_ms / 60000:g} minute(s)")

    def disarm(self):
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
                logging.info("Polling disarmed")

    def _on_tick(self):
        logging.debug("Polling timer fired")
        self.refresh()

    # Cycles

    def refresh(self) -> bool:
        """Run one polling cycle now unless one is already running.

        Returns:
            False if the trigger was dropped because a cycle is in flight
        """
        with self._state_lock:
            if self.state == STATE_FETCHING:
                logging.debug("Fetch already in progress, dropping trigger")
                return False
            self.state = STATE_FETCHING

        next_state = STATE_IDLE
        try:
            self._run_cycle()
            self.last_error = None
        except AuthError as e:
            logging.error(f"Authentication failed, reconnect required: {e}")
            self.last_error = e
            self.reconnect_required = True
            next_state = STATE_IDLE_WITH_ERROR
            # No automatic retry with a rejected credential
            self.disarm()
        except ConfigError as e:
            logging.warning(f"Provider configuration unusable, polling disarmed: {e}")
            self.disarm()
        except Exception as e:
            error = CycleError(f"Failed to fetch PR data: {e}")
            error.__cause__ = e
            logging.error(str(error), exc_info=True)
            self.last_error = error
            next_state = STATE_IDLE_WITH_ERROR
        finally:
            with self._state_lock:
                self.state = next_state

        return True

    def _run_cycle(self):
        if not self.registry.has_provider() and not self.initialize_provider():
            logging.info("No provider configured, skipping fetch")
            return

        logging.info("Fetching PR data...")
        snapshot = self.registry.fetch_all()

        # One write replaces the whole snapshot
        self.storage.set_snapshot(snapshot)
        self.update_badge(snapshot)

        logging.info(f"Fetched {len(snapshot.my_prs)} my PRs, "
                     f"{len(snapshot.review_requested_prs)} review requests")

        if self.on_snapshot is not None:
            self.on_snapshot(snapshot)

    # Badge

    def update_badge(self, snapshot: Optional[PollingSnapshot] = None) -> int:
        """Recompute the badge from the pinned list.

        Args:
            snapshot: Snapshot to count; the stored one if omitted

        Returns:
            The new badge count
        """
        if snapshot is None:
            snapshot = self.storage.get_snapshot()
        pinned_tab = self.storage.get_settings().pinned_tab

        count = snapshot.count_for(pinned_tab)
        self.badge_count = count
        if self.badge_callback is not None:
            self.badge_callback(count, badge_text(count))
        return count

    # Inbound events

    def on_provider_configured(self) -> bool:
        """A provider was (re)configured: re-init, fetch now and re-arm."""
        self.reconnect_required = False
        self.registry.clear_provider()

        if not self.initialize_provider():
            logging.warning("Provider configured event received but no usable configuration is stored")
            self.disarm()
            return False

        self.refresh()
        if not self.reconnect_required:
            self.arm()
        return True

    def on_manual_refresh(self) -> bool:
        return self.refresh()

    def on_polling_interval_changed(self, interval_ms: int):
        """Store a new polling interval and re-arm without fetching."""
        self.storage.set_settings(polling_interval_ms=int(interval_ms))
        if self.is_armed:
            self.arm()

    def on_pinned_tab_changed(self, pinned_tab: str) -> int:
        """Store the pinned list and recompute the badge from the stored snapshot."""
        if pinned_tab not in PINNED_TABS:
            logging.warning(f"Invalid pinned tab '{pinned_tab}', keeping current setting")
        else:
            self.storage.set_settings(pinned_tab=pinned_tab)
        return self.update_badge()
