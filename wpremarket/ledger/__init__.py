"""Ledger — балансы токенов, потребляемые pool (Protocol + in-memory Token)."""

from .token import Ledger, Token

__all__ = [
    "Ledger",
    "Token",
]
