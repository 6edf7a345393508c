"""Utility functions for ledgerkeep."""

from ledgerkeep.utils.date_parser import parse_date, parse_datetime
from ledgerkeep.utils.amount_parser import parse_amount
from ledgerkeep.utils.account_resolver import resolve_account

__all__ = ["parse_date", "parse_datetime", "parse_amount", "resolve_account"]
