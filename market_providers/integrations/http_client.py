"""
Market Providers - Retrying HTTP Client
=======================================
Thin JSON-over-HTTP client shared by every provider.

  - Bounded retry (urllib3 ``Retry``) on transient transport failures only:
    connect / read errors on idempotent GETs.  HTTP status codes are never
    retried.
  - Any non-2xx response raises before provider-specific parsing
    (429 -> ``RateLimitedError``, everything else -> ``UpstreamError``).
  - A stable ``User-Agent`` header identifies the application upstream.

Usage:
    client = HttpClient(base_url="https://api.frankfurter.app")
    data = client.get_json("/latest", params={"from": "USD"})
"""

import logging
import random
from dataclasses import dataclass
from itertools import takewhile
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from market_providers.providers.errors import RateLimitedError, UpstreamError

DEFAULT_USER_AGENT = "market_providers"
DEFAULT_TIMEOUT = 10


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for transient transport failures.

    The n-th consecutive error waits ``interval * backoff_factor ** (n - 1)``
    seconds, stretched by a random fraction of up to ``interval_randomness``.
    The defaults give roughly 50 ms and then 100 ms.
    """
    max_retries: int = 2
    interval: float = 0.05
    interval_randomness: float = 0.5
    backoff_factor: float = 2.0

    @classmethod
    def from_config(cls, http_config: Dict) -> "RetryPolicy":
        return cls(
            max_retries=int(http_config.get('max_retries', cls.max_retries)),
            interval=float(http_config.get('retry_interval', cls.interval)),
            interval_randomness=float(
                http_config.get('retry_randomness', cls.interval_randomness)
            ),
            backoff_factor=float(http_config.get('backoff_factor', cls.backoff_factor)),
        )

    def to_retry(self) -> "PolicyRetry":
        return PolicyRetry(
            total=self.max_retries,
            connect=self.max_retries,
            read=self.max_retries,
            status=0,
            redirect=3,
            other=0,
            allowed_methods=frozenset(["GET"]),
            status_forcelist=(),
            raise_on_status=False,
            respect_retry_after_header=False,
            policy=self,
        )


class PolicyRetry(Retry):
    """urllib3 ``Retry`` whose backoff follows a ``RetryPolicy``.

    urllib3's own schedule skips the delay before the first retry; this one
    waits ``policy.interval`` from the first error on.
    """

    def __init__(self, *args, policy: Optional[RetryPolicy] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.policy = policy or RetryPolicy()

    def new(self, **kw) -> "PolicyRetry":
        # Retry.new() rebuilds from the standard arguments only
        retry = super().new(**kw)
        retry.policy = self.policy
        return retry

    def get_backoff_time(self) -> float:
        errors = len(list(takewhile(lambda h: h.redirect_location is None, reversed(self.history))))
        if errors == 0:
            return 0.0
        policy = self.policy
        delay = policy.interval * policy.backoff_factor ** (errors - 1)
        delay *= 1 + random.random() * policy.interval_randomness
        return min(self.backoff_max, delay)


class HttpClient:
    """JSON GET client with retry, timeout and status enforcement.

    Safe to share between threads for read-only GETs; the underlying
    ``requests.Session`` is created once and never reconfigured.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        retry_policy: Optional[RetryPolicy] = None,
        headers: Optional[Dict[str, str]] = None,
        logger: logging.Logger = None,
    ):
        self.base_url = base_url.rstrip('/') if base_url else None
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = logger or logging.getLogger('market_providers.http')

        self._session = requests.Session()
        adapter = HTTPAdapter(max_retries=self.retry_policy.to_retry())
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)
        self._session.headers["User-Agent"] = user_agent
        self._session.headers["Accept"] = "application/json"
        if headers:
            self._session.headers.update(headers)

    @property
    def session(self) -> requests.Session:
        return self._session

    def url_for(self, path: str) -> str:
        """Absolute URL for *path* (absolute URLs pass through unchanged)."""
        if path.startswith(("http://", "https://")):
            return path
        if not self.base_url:
            raise ValueError(f"Relative path {path!r} requires a base_url")
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Issue a GET and enforce a 2xx status.

        Raises:
            RateLimitedError: on HTTP 429
            UpstreamError: on transport failure or any other non-2xx status
        """
        url = self.url_for(path)
        self.logger.debug("GET %s params=%s", url, _redact(params))
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout as exc:
            raise UpstreamError(f"Request timed out: {url}", upstream_message=str(exc)) from exc
        except requests.exceptions.RequestException as exc:
            raise UpstreamError(f"Request failed: {url}", upstream_message=str(exc)) from exc

        if response.status_code == 429:
            raise RateLimitedError(
                f"Rate limited by upstream ({url})",
                upstream_message=_body_excerpt(response),
            )
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            raise UpstreamError(
                f"HTTP {response.status_code} from {url}",
                upstream_message=_body_excerpt(response),
            ) from exc
        return response

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET *path* and decode the JSON body."""
        response = self.get(path, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"Invalid JSON from {response.url}",
                upstream_message=_body_excerpt(response),
            ) from exc

    def close(self):
        self._session.close()


def _body_excerpt(response: requests.Response, limit: int = 200) -> Optional[str]:
    text = response.text
    if not text:
        return None
    return text[:limit]


def _redact(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not params:
        return params
    return {
        k: ('***' if 'key' in k.lower() else v)
        for k, v in params.items()
    }
