"""
Market Providers - Exceptions
=============================
Data-availability errors (``ProviderError`` and subclasses) never reach
callers of provider operations; the capturing boundary in
``providers.response`` turns them into failed ``ProviderResponse`` objects.

Configuration errors (``ProviderNotConfiguredError``,
``ProviderConfigurationError``) are raised directly by the registry.
"""

from typing import Optional

from market_providers.providers.types import ErrorInfo, ErrorKind


class ProviderError(Exception):
    """Base class for errors that map onto an ``ErrorKind``."""

    kind: ErrorKind = ErrorKind.UPSTREAM_ERROR

    def __init__(self, message: str, upstream_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.upstream_message = upstream_message

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            kind=self.kind,
            message=self.message,
            upstream_message=self.upstream_message,
        )


class UpstreamError(ProviderError):
    """Transport failure, non-2xx response or malformed payload."""
    kind = ErrorKind.UPSTREAM_ERROR


class RateLimitedError(ProviderError):
    """Upstream rejected the call because of a quota or rate limit."""
    kind = ErrorKind.RATE_LIMITED


class RateNotFoundError(ProviderError):
    """Upstream has no exchange rate for the requested pair and date."""
    kind = ErrorKind.RATE_NOT_FOUND


class SecurityNotFoundError(ProviderError):
    """Upstream has no record for the requested security."""
    kind = ErrorKind.SECURITY_NOT_FOUND


_BY_KIND = {
    ErrorKind.UPSTREAM_ERROR: UpstreamError,
    ErrorKind.RATE_LIMITED: RateLimitedError,
    ErrorKind.RATE_NOT_FOUND: RateNotFoundError,
    ErrorKind.SECURITY_NOT_FOUND: SecurityNotFoundError,
}


def error_from_info(info: ErrorInfo) -> ProviderError:
    """Rebuild the matching exception for an ``ErrorInfo``."""
    return _BY_KIND[info.kind](info.message, upstream_message=info.upstream_message)


# ---------------------------------------------------------------------------
# Configuration-time errors
# ---------------------------------------------------------------------------

class ProviderNotConfiguredError(LookupError):
    """Requested provider key (or concept) is unknown or not enabled."""

    def __init__(self, key: str, available=None):
        self.key = key
        self.available = sorted(available or [])
        message = f"Provider '{key}' is not configured"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class ProviderConfigurationError(TypeError):
    """Provider class or registry configuration violates a concept contract."""
