"""
Market Providers - Response Envelope
====================================
Every provider operation returns a ``ProviderResponse``: either a success
carrying ``data`` or a failure carrying an ``ErrorInfo``.  Never both.

``with_provider_response`` is the capturing boundary that builds the
envelope.  Provider code stays straight-line: return a value for success,
return an ``ErrorInfo`` for an expected domain outcome (e.g. "rate not
found"), and let transport / parsing failures raise.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from market_providers.integrations.error_reporter import (
    ErrorEvent,
    ErrorReporter,
    get_error_reporter,
)
from market_providers.providers.errors import ProviderError, error_from_info
from market_providers.providers.types import ErrorInfo, ErrorKind

T = TypeVar('T')

_logger = logging.getLogger('market_providers.provider')


@dataclass(frozen=True)
class ProviderResponse(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None

    def __post_init__(self):
        if self.success and self.error is not None:
            raise ValueError("A successful response cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("A failed response must carry an error")
        if not self.success and self.data is not None:
            raise ValueError("A failed response cannot carry data")

    @classmethod
    def ok(cls, data: T) -> "ProviderResponse[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        upstream_message: Optional[str] = None,
    ) -> "ProviderResponse[T]":
        return cls(
            success=False,
            error=ErrorInfo(kind=kind, message=message, upstream_message=upstream_message),
        )

    @classmethod
    def from_error(cls, error: ErrorInfo) -> "ProviderResponse[T]":
        return cls(success=False, error=error)

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    def unwrap(self) -> T:
        """Return ``data`` or raise the ``ProviderError`` matching the failure."""
        if self.success:
            return self.data
        raise error_from_info(self.error)

    def __bool__(self) -> bool:
        return self.success


def with_provider_response(
    fn: Callable[[], Any],
    *,
    provider: str = "unknown",
    operation: str = "call",
    context: Optional[Dict[str, Any]] = None,
    reporter: Optional[ErrorReporter] = None,
    logger: logging.Logger = None,
) -> ProviderResponse:
    """Run *fn* and capture its outcome in a ``ProviderResponse``.

    - normal return          -> success
    - returned ``ErrorInfo`` -> failure of that kind
    - ``ProviderError``      -> failure of the error's kind
    - any other exception    -> ``UPSTREAM_ERROR`` failure (malformed payload)

    Operational failures are logged at WARNING and forwarded to the error
    reporter; expected "not found" outcomes are logged at INFO only.
    """
    log = logger or _logger
    try:
        result = fn()
    except ProviderError as exc:
        info = exc.to_error_info()
    except Exception as exc:
        info = ErrorInfo(
            kind=ErrorKind.UPSTREAM_ERROR,
            message=f"Unexpected upstream payload: {type(exc).__name__}: {exc}",
            upstream_message=str(exc),
        )
    else:
        if isinstance(result, ProviderResponse):
            return result
        if not isinstance(result, ErrorInfo):
            return ProviderResponse.ok(result)
        info = result

    if info.kind.is_expected:
        log.info("%s.%s: %s", provider, operation, info.message)
    else:
        log.warning("%s.%s failed [%s]: %s", provider, operation, info.kind.value, info.message)
        report_error(reporter, provider, operation, info, context)
    return ProviderResponse.from_error(info)


def report_error(
    reporter: Optional[ErrorReporter],
    provider: str,
    operation: str,
    info: ErrorInfo,
    context: Optional[Dict[str, Any]],
):
    """Forward a failure to *reporter* (or the process default); never raises."""
    event = ErrorEvent(
        provider=provider,
        operation=operation,
        kind=info.kind.value,
        message=info.message,
        context=dict(context or {}),
        upstream_message=info.upstream_message,
    )
    try:
        (reporter or get_error_reporter()).report(event)
    except Exception as exc:
        _logger.debug("Error reporter raised: %s", exc)
