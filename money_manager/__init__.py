"""Money Manager: users, spending and income over a JSON HTTP API."""

__version__ = "0.1.0"
