"""Storefront catalog, recommendations and order ledger."""

__version__ = "0.1.0"
