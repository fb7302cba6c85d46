"""Utility functions for bankrec."""

from bankrec.utils.date_parser import parse_date, parse_statement_date
from bankrec.utils.amount_parser import parse_amount, parse_statement_amount

__all__ = ["parse_date", "parse_statement_date", "parse_amount", "parse_statement_amount"]
