"""Shared utilities for the backend."""
from utils.case import to_camel_key
from utils.currency import format_currency, parse_currency

__all__ = [
    "to_camel_key",
    "format_currency",
    "parse_currency",
]
