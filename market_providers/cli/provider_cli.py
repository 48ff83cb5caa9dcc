"""
Market Providers CLI Tool
=========================

Operator CLI for inspecting configured providers and issuing one-off
lookups.  Every command prints the response envelope's outcome and exits
non-zero on failure.

Usage:
    python -m market_providers list
    python -m market_providers health --concept exchange_rates
    python -m market_providers usage
    python -m market_providers rate USD EUR --date 2024-01-02
    python -m market_providers rate USD EUR --date 2024-01-01 --end 2024-01-31
    python -m market_providers search AAPL --country US
    python -m market_providers price AAPL --mic XNAS --date 2024-01-02
"""

import argparse
import logging
import sys
from datetime import date
from typing import List, Optional

from market_providers.providers.errors import ProviderNotConfiguredError
from market_providers.providers.registry import ProviderRegistry, Registry
from market_providers.providers.types import Concept
from market_providers.utils.config import load_config
from market_providers.utils.logging import setup_logging_from_config

logger = logging.getLogger('market_providers.cli')


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date (expected YYYY-MM-DD): {value}")


def _print_failure(label: str, response) -> None:
    error = response.error
    print(f"  {label:<20} FAILED [{error.kind.value}] {error.message}")


def _providers_for(registry: Registry, args):
    if getattr(args, 'provider', None):
        return [registry.get_provider(args.provider)]
    concept = getattr(args, 'concept', None)
    if concept:
        return list(registry.for_concept(concept))
    return registry.providers()


def cmd_list(args, registry: Registry) -> int:
    """Show registered providers and the configured concept ordering."""
    print(f"\n{'='*60}")
    print("  Registered providers")
    print(f"{'='*60}")
    for concept, keys in ProviderRegistry.list_all().items():
        print(f"  {concept:<16} {', '.join(keys) or '--'}")

    print(f"\n  Configured order")
    print(f"  {'-'*56}")
    for concept in Concept:
        keys = registry.concept_keys(concept)
        print(f"  {concept.value:<16} {' > '.join(keys) or '(none enabled)'}")
    print()
    return 0


def cmd_health(args, registry: Registry) -> int:
    """Run health checks against the selected providers."""
    failures = 0
    for provider in _providers_for(registry, args):
        response = provider.health_check()
        if not response.success:
            _print_failure(provider.key, response)
            failures += 1
        elif response.data:
            print(f"  {provider.key:<20} OK")
        else:
            print(f"  {provider.key:<20} UNHEALTHY")
            failures += 1
    return 1 if failures else 0


def cmd_usage(args, registry: Registry) -> int:
    """Show quota snapshots for the selected providers."""
    failures = 0
    for provider in _providers_for(registry, args):
        response = provider.usage()
        if not response.success:
            _print_failure(provider.key, response)
            failures += 1
            continue
        usage = response.data
        limit = "unlimited" if usage.unbounded else str(usage.limit)
        print(f"  {provider.key:<20} {usage.used}/{limit} ({usage.utilization:.0%}) plan={usage.plan}")
    return 1 if failures else 0


def cmd_rate(args, registry: Registry) -> int:
    """Fetch a single rate or a date range from the first provider that succeeds."""
    start = args.date or date.today()
    providers = _providers_for(registry, argparse.Namespace(
        provider=args.provider, concept=Concept.EXCHANGE_RATES.value,
    ))
    if not providers:
        print("ERROR: No exchange-rate providers enabled.")
        return 1

    for provider in providers:
        if args.end:
            response = provider.fetch_exchange_rates(args.from_currency, args.to_currency, start, args.end)
        else:
            response = provider.fetch_exchange_rate(args.from_currency, args.to_currency, start)
        if not response.success:
            _print_failure(provider.key, response)
            continue

        rates = response.data if args.end else [response.data]
        print(f"\n  {args.from_currency} -> {args.to_currency} via {provider.key}")
        print(f"  {'-'*40}")
        for rate in rates:
            print(f"  {rate.date.isoformat():<12} {rate.rate:>14.6f}")
        print(f"\n  Total: {len(rates)}\n")
        return 0
    return 1


def cmd_search(args, registry: Registry) -> int:
    """Search securities on the primary securities provider."""
    provider = _first_securities_provider(registry, args)
    if provider is None:
        return 1
    response = provider.search_securities(args.query, country_code=args.country)
    if not response.success:
        _print_failure(provider.key, response)
        return 1
    if not response.data:
        print(f"\n  No matches for {args.query!r}\n")
        return 0
    print(f"\n  {'Symbol':<12} {'MIC':<6} {'CC':<4} Name")
    print(f"  {'-'*56}")
    for security in response.data:
        print(
            f"  {security.symbol:<12} {security.exchange_operating_mic or '--':<6} "
            f"{security.country_code or '--':<4} {security.name}"
        )
    print()
    return 0


def cmd_price(args, registry: Registry) -> int:
    """Fetch a security price on the primary securities provider."""
    provider = _first_securities_provider(registry, args)
    if provider is None:
        return 1
    response = provider.fetch_security_price(args.symbol, args.mic, args.date or date.today())
    if not response.success:
        _print_failure(provider.key, response)
        return 1
    price = response.data
    print(f"\n  {price.symbol} {price.date.isoformat()} {price.price:.4f} {price.currency}\n")
    return 0


def _first_securities_provider(registry: Registry, args):
    if args.provider:
        return registry.get_provider(args.provider)
    group = registry.for_concept(Concept.SECURITIES)
    if not group:
        print("ERROR: No securities providers enabled.")
        return None
    return group.primary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='market_providers',
        description='Inspect and query configured market data providers',
    )
    parser.add_argument('-c', '--config', help='Path to config YAML')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    list_parser = subparsers.add_parser('list', help='Show providers and concept ordering')
    list_parser.set_defaults(func=cmd_list)

    for name, func, text in (
        ('health', cmd_health, 'Run provider health checks'),
        ('usage', cmd_usage, 'Show provider quota usage'),
    ):
        sub = subparsers.add_parser(name, help=text)
        sub.add_argument('--concept', choices=[c.value for c in Concept])
        sub.add_argument('--provider', help='Single provider key')
        sub.set_defaults(func=func)

    rate_parser = subparsers.add_parser('rate', help='Fetch exchange rate(s)')
    rate_parser.add_argument('from_currency')
    rate_parser.add_argument('to_currency')
    rate_parser.add_argument('--date', type=_parse_date, help='Day (default: today)')
    rate_parser.add_argument('--end', type=_parse_date, help='Range end (inclusive)')
    rate_parser.add_argument('--provider', help='Single provider key')
    rate_parser.set_defaults(func=cmd_rate)

    search_parser = subparsers.add_parser('search', help='Search securities')
    search_parser.add_argument('query')
    search_parser.add_argument('--country', help='ISO country code filter')
    search_parser.add_argument('--provider', help='Single provider key')
    search_parser.set_defaults(func=cmd_search)

    price_parser = subparsers.add_parser('price', help='Fetch a security price')
    price_parser.add_argument('symbol')
    price_parser.add_argument('--mic', help='Exchange operating MIC')
    price_parser.add_argument('--date', type=_parse_date, help='Day (default: today)')
    price_parser.add_argument('--provider', help='Single provider key')
    price_parser.set_defaults(func=cmd_price)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    manager = setup_logging_from_config(config)
    if args.verbose:
        manager.set_console_level(logging.DEBUG)

    registry = Registry(config)
    try:
        return args.func(args, registry)
    except ProviderNotConfiguredError as exc:
        logger.error("%s", exc)
        print(f"ERROR: {exc}")
        return 2
    finally:
        registry.close()


if __name__ == '__main__':
    sys.exit(main())
