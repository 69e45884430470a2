"""Exception types raised while talking to code-hosting providers."""

from typing import Optional


class PRPulseError(Exception):
    """Base class for all PR Pulse errors."""


class AuthError(PRPulseError):
    """The credential is missing, malformed, invalid or expired.

    Fatal to a polling cycle. The user has to reconnect; it is never retried
    automatically.
    """


class ProviderAPIError(PRPulseError):
    """A provider answered with a non-2xx status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientFetchError(ProviderAPIError):
    """Network failure, timeout, 5xx or rate limit.

    Recovered locally when it happens in a per-PR sub-fetch.
    """


class CycleError(PRPulseError):
    """A polling cycle was abandoned; the previous snapshot is kept."""


class ConfigError(PRPulseError):
    """Provider configuration is missing or invalid."""
