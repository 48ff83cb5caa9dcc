"""
Market Providers - Integrations
Upstream HTTP transport and the error-reporting sink.
"""
