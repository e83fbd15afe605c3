"""Utility functions for finca."""

from finca.utils.date_parser import parse_date, normalize_date
from finca.utils.amount_parser import parse_amount
from finca.utils.text import normalize_text

__all__ = ["parse_date", "normalize_date", "parse_amount", "normalize_text"]
