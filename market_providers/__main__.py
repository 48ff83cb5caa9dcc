"""
Market Providers - Main Launcher

Usage:
    python -m market_providers list
    python -m market_providers health
    python -m market_providers rate USD EUR --date 2024-01-02
"""

import sys

from market_providers.cli.provider_cli import main


if __name__ == '__main__':
    sys.exit(main())
