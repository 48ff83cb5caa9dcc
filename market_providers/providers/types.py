"""
Market Providers - Canonical Types
==================================
Defines the shared data types returned by every provider implementation.
These types decouple callers from upstream-specific payload shapes.

Values are constructed per call and never cached; all of them are frozen.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, Optional, Tuple, Union


class Concept(Enum):
    """Capability contract a provider can serve."""
    EXCHANGE_RATES = "exchange_rates"
    SECURITIES = "securities"

    @classmethod
    def parse(cls, value: Union["Concept", str]) -> "Concept":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class ErrorKind(Enum):
    """Failure taxonomy shared by all providers."""
    UPSTREAM_ERROR = "upstream_error"
    RATE_LIMITED = "rate_limited"
    RATE_NOT_FOUND = "rate_not_found"
    SECURITY_NOT_FOUND = "security_not_found"

    @property
    def is_expected(self) -> bool:
        """True for "no data" outcomes that are not operational errors."""
        return self in (ErrorKind.RATE_NOT_FOUND, ErrorKind.SECURITY_NOT_FOUND)


def _as_date(value, field_name: str) -> date:
    # datetime is a date subclass; a timestamp is not a calendar date
    if isinstance(value, datetime) or not isinstance(value, date):
        raise TypeError(f"{field_name} must be a datetime.date, got {type(value).__name__}")
    return value


# ---------------------------------------------------------------------------
# Canonical market-data types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rate:
    """Exchange rate for one currency pair on one calendar day."""
    date: date
    from_currency: str
    to_currency: str
    rate: float

    def __post_init__(self):
        _as_date(self.date, "date")
        if not self.rate > 0:
            raise ValueError(
                f"rate must be positive, got {self.rate!r} "
                f"for {self.from_currency}->{self.to_currency} on {self.date}"
            )

    @property
    def key(self) -> Tuple[str, str, date]:
        """Natural key used for dedup/merge downstream."""
        return (self.from_currency, self.to_currency, self.date)


@dataclass(frozen=True)
class Price:
    """Closing (or latest) price of a security on one calendar day."""
    symbol: str
    date: date
    price: float
    currency: str = "USD"
    exchange_operating_mic: Optional[str] = None

    def __post_init__(self):
        _as_date(self.date, "date")
        if not self.price >= 0:
            raise ValueError(f"price must be >= 0, got {self.price!r} for {self.symbol}")


@dataclass(frozen=True)
class Security:
    """A tradable instrument candidate returned by a search."""
    symbol: str
    name: str
    logo_url: Optional[str] = None
    exchange_operating_mic: Optional[str] = None
    country_code: Optional[str] = None


@dataclass(frozen=True)
class SecurityInfo:
    """Extended metadata for one resolved security."""
    symbol: str
    name: str
    links: Dict[str, str] = field(default_factory=dict)
    logo_url: Optional[str] = None
    description: Optional[str] = None
    kind: Optional[str] = None
    exchange_operating_mic: Optional[str] = None


@dataclass(frozen=True)
class UsageData:
    """Read-only quota snapshot.

    ``limit`` is ``math.inf`` for providers without a quota.  ``utilization``
    is always in ``[0, 1]``.
    """
    used: int
    limit: Union[int, float]
    utilization: float
    plan: str

    def __post_init__(self):
        if self.used < 0:
            raise ValueError(f"used must be >= 0, got {self.used}")
        if not 0.0 <= self.utilization <= 1.0:
            raise ValueError(f"utilization must be within [0, 1], got {self.utilization}")
        if not self.unbounded and self.used > self.limit:
            raise ValueError(f"used ({self.used}) exceeds limit ({self.limit})")

    @property
    def unbounded(self) -> bool:
        return math.isinf(self.limit)

    @classmethod
    def static(cls, limit: Union[int, float], plan: str) -> "UsageData":
        """Zero-usage snapshot for providers without a usage endpoint."""
        return cls(used=0, limit=limit, utilization=0.0, plan=plan)


@dataclass(frozen=True)
class ErrorInfo:
    """Normalized failure carried by a failed ``ProviderResponse``."""
    kind: ErrorKind
    message: str
    upstream_message: Optional[str] = None
