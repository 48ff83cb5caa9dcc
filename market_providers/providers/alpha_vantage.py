"""
Market Providers - Alpha Vantage Securities
===========================================
Securities provider backed by the Alpha Vantage query API.

Endpoints used (all ``GET /query?function=...``):
  SYMBOL_SEARCH      – search_securities
  OVERVIEW           – fetch_security_info
  GLOBAL_QUOTE       – fetch_security_price for the current date, health check
  TIME_SERIES_DAILY  – fetch_security_prices (and past-date single prices)

Alpha Vantage reports problems inside a 200 response:
  "Error Message"           -> UPSTREAM_ERROR (bad symbol / bad call)
  "Information" / "Note"    -> RATE_LIMITED (quota or premium notices)

Without an API key the public ``demo`` key is used (25 requests/day).
"""

from datetime import date
from typing import Dict, List, Optional, Tuple

from market_providers.providers.base import SecuritiesProvider, normalize_prices
from market_providers.providers.errors import RateLimitedError, UpstreamError
from market_providers.providers.registry import ProviderRegistry
from market_providers.providers.response import ProviderResponse
from market_providers.providers.types import (
    ErrorKind, Price, Security, SecurityInfo, UsageData,
)

DEMO_API_KEY = "demo"

# Alpha Vantage primarily quotes in USD
DEFAULT_CURRENCY = "USD"

DAILY_LIMITS = {
    "demo": 25,
    "free": 500,
}

# Search "region" -> (exchange operating MIC, ISO country code)
REGION_MAP: Dict[str, Tuple[str, str]] = {
    "UNITED STATES": ("XNAS", "US"),  # default to NASDAQ
    "UNITED KINGDOM": ("XLON", "GB"),
    "CANADA": ("XTSE", "CA"),
    "TORONTO": ("XTSE", "CA"),
    "GERMANY": ("XETR", "DE"),
    "XETRA": ("XETR", "DE"),
    "FRANKFURT": ("XFRA", "DE"),
    "INDIA/BOMBAY": ("XBOM", "IN"),
    "JAPAN": ("XTKS", "JP"),
}


def _parse_date(value: str) -> date:
    return date.fromisoformat(value.strip())


def map_region_to_mic(region: Optional[str]) -> Optional[str]:
    entry = REGION_MAP.get((region or "").strip().upper())
    return entry[0] if entry else None


def map_region_to_country(region: Optional[str]) -> Optional[str]:
    entry = REGION_MAP.get((region or "").strip().upper())
    return entry[1] if entry else None


class AlphaVantageProvider(SecuritiesProvider):
    """Security search, overview and daily prices from Alpha Vantage."""

    key = "alpha_vantage"
    base_url = "https://www.alphavantage.co"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        self._api_key = api_key or DEMO_API_KEY
        super().__init__(**kwargs)

    @property
    def plan(self) -> str:
        return "demo" if self._api_key == DEMO_API_KEY else "free"

    def health_check(self) -> ProviderResponse[bool]:
        def _check():
            data = self._query("GLOBAL_QUOTE", symbol="AAPL", check_errors=False)
            return "Global Quote" in data

        return self._call("health_check", _check)

    def usage(self) -> ProviderResponse[UsageData]:
        # No usage endpoint; report the plan's daily allowance
        return self._call("usage", lambda: UsageData.static(DAILY_LIMITS[self.plan], self.plan))

    # ------------------------------------------------------------------
    # Securities
    # ------------------------------------------------------------------

    def search_securities(
        self,
        symbol: str,
        country_code: Optional[str] = None,
        exchange_operating_mic: Optional[str] = None,
    ) -> ProviderResponse[List[Security]]:
        def _search():
            data = self._query("SYMBOL_SEARCH", keywords=symbol)
            matches = data.get("bestMatches")
            if not isinstance(matches, list):
                raise UpstreamError(
                    f"Malformed search payload for {symbol}",
                    upstream_message=repr(data)[:200],
                )

            securities = [self._to_security(match) for match in matches]
            if country_code:
                wanted = country_code.upper()
                securities = [s for s in securities if s.country_code == wanted]
            return securities

        return self._call(
            "search_securities", _search,
            symbol=symbol, country_code=country_code,
            exchange_operating_mic=exchange_operating_mic,
        )

    def fetch_security_info(
        self,
        symbol: str,
        exchange_operating_mic: Optional[str],
    ) -> ProviderResponse[SecurityInfo]:
        def _fetch():
            data = self._query("OVERVIEW", symbol=symbol)
            if not data.get("Symbol"):
                return self.failure(
                    ErrorKind.SECURITY_NOT_FOUND,
                    f"Security info not found for {symbol}",
                )
            links = {}
            if data.get("OfficialSite"):
                links["website"] = data["OfficialSite"]
            return SecurityInfo(
                symbol=data["Symbol"],
                name=data.get("Name") or data["Symbol"],
                links=links,
                logo_url=None,
                description=data.get("Description"),
                kind=data.get("AssetType"),
                exchange_operating_mic=exchange_operating_mic,
            )

        return self._call(
            "fetch_security_info", _fetch,
            symbol=symbol, exchange_operating_mic=exchange_operating_mic,
        )

    def fetch_security_price(
        self,
        symbol: str,
        exchange_operating_mic: Optional[str],
        date: date,
    ) -> ProviderResponse[Price]:
        if date != self.today():
            return self._call(
                "fetch_security_price",
                lambda: self._price_from_range(symbol, exchange_operating_mic, date),
                symbol=symbol, date=date,
            )

        def _latest():
            data = self._query("GLOBAL_QUOTE", symbol=symbol)
            quote = data.get("Global Quote")
            if not isinstance(quote, dict):
                raise UpstreamError(
                    f"Malformed quote payload for {symbol}",
                    upstream_message=repr(data)[:200],
                )
            if not quote.get("05. price"):
                return self.failure(ErrorKind.SECURITY_NOT_FOUND, f"Price not found for {symbol}")
            trading_day = quote.get("07. latest trading day")
            return Price(
                symbol=symbol,
                date=_parse_date(trading_day) if trading_day else date,
                price=float(quote["05. price"]),
                currency=DEFAULT_CURRENCY,
                exchange_operating_mic=exchange_operating_mic,
            )

        return self._call("fetch_security_price", _latest, symbol=symbol, date=date)

    def fetch_security_prices(
        self,
        symbol: str,
        exchange_operating_mic: Optional[str],
        start_date: date,
        end_date: date,
    ) -> ProviderResponse[List[Price]]:
        def _fetch():
            data = self._query("TIME_SERIES_DAILY", symbol=symbol, outputsize="full")
            time_series = data.get("Time Series (Daily)")
            if not isinstance(time_series, dict):
                raise UpstreamError(
                    f"Failed to fetch prices: {data.get('Error Message') or 'Unknown error'}",
                    upstream_message=repr(data)[:200],
                )

            prices = []
            for date_str, price_data in time_series.items():
                price_date = _parse_date(date_str)
                if start_date <= price_date <= end_date:
                    prices.append(Price(
                        symbol=symbol,
                        date=price_date,
                        price=float(price_data["4. close"]),
                        currency=DEFAULT_CURRENCY,
                        exchange_operating_mic=exchange_operating_mic,
                    ))
            return normalize_prices(prices, start_date, end_date)

        return self._call(
            "fetch_security_prices", _fetch,
            symbol=symbol, start_date=start_date, end_date=end_date,
        )

    # ------------------------------------------------------------------
    # Upstream helpers
    # ------------------------------------------------------------------

    def _query(self, function: str, check_errors: bool = True, **params) -> Dict:
        """GET /query and unwrap Alpha Vantage's in-band error fields."""
        data = self.client.get_json(
            "/query",
            params={"function": function, **params, "apikey": self._api_key},
        )
        if not isinstance(data, dict):
            raise UpstreamError(f"Unexpected {function} payload type: {type(data).__name__}")
        if not check_errors:
            return data
        if "Error Message" in data:
            raise UpstreamError(
                f"{function} failed: {data['Error Message']}",
                upstream_message=data["Error Message"],
            )
        notice = data.get("Information") or data.get("Note")
        if notice:
            raise RateLimitedError(f"{function} rejected: {notice}", upstream_message=notice)
        return data

    @staticmethod
    def _to_security(match: Dict) -> Security:
        region = match.get("4. region")
        return Security(
            symbol=match["1. symbol"],
            name=match.get("2. name") or match["1. symbol"],
            logo_url=None,  # search results carry no logos
            exchange_operating_mic=map_region_to_mic(region),
            country_code=map_region_to_country(region),
        )


ProviderRegistry.register(AlphaVantageProvider.key, AlphaVantageProvider)
