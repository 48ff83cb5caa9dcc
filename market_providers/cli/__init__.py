"""Market Providers - command line tools."""
