"""
Ledger — Балансы токенов (внешний коллаборатор pool)

Pool не хранит балансы аккаунтов: он читает и изменяет их через Ledger.
Модуль содержит:
- Ledger: Protocol, который ожидает pool
- Token: in-memory реализация для тестов и симуляций

Правила Ledger:
- mint(account, amount): ошибка если amount <= 0
- burn(account, amount): ошибка если amount <= 0 или balance < amount
- transfer(src, dst, amount): ошибка если amount <= 0 или balance(src) < amount

Все ошибки выбрасываются до изменения балансов.
"""

import logging
from typing import Protocol, runtime_checkable

from wpremarket.core.errors import InsufficientBalance
from wpremarket.core.math.numerical_safeguards import validate_positive_amount

logger = logging.getLogger(__name__)


# =============================================================================
# PROTOCOL
# =============================================================================


@runtime_checkable
class Ledger(Protocol):
    """Интерфейс per-token хранилища балансов, потребляемый pool."""

    @property
    def symbol(self) -> str: ...

    def balance_of(self, account: str) -> float: ...

    def mint(self, account: str, amount: float) -> None: ...

    def burn(self, account: str, amount: float) -> None: ...

    def transfer(self, sender: str, recipient: str, amount: float) -> None: ...


# =============================================================================
# IN-MEMORY TOKEN
# =============================================================================


class Token:
    """
    In-memory ERC20-подобный токен.

    Используется как base token, pre-token и real token в симуляциях.
    """

    def __init__(self, name: str, symbol: str, decimals: int = 18):
        if not symbol:
            raise ValueError("Token symbol must be non-empty")
        if decimals < 0:
            raise ValueError(f"decimals must be non-negative, got {decimals}")

        self._name = name
        self._symbol = symbol
        self._decimals = decimals
        self._total_supply = 0.0
        self._balances: dict[str, float] = {}

    def __repr__(self) -> str:
        return f"Token(symbol={self._symbol!r}, total_supply={self._total_supply})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def decimals(self) -> int:
        return self._decimals

    @property
    def total_supply(self) -> float:
        return self._total_supply

    def balance_of(self, account: str) -> float:
        return self._balances.get(account, 0.0)

    def mint(self, account: str, amount: float) -> None:
        """
        Минт токенов на аккаунт.

        Raises:
            NonPositiveAmount: Если amount <= 0 или NaN/Inf
        """
        validate_positive_amount(amount, f"{self._symbol} mint amount")

        self._balances[account] = self.balance_of(account) + amount
        self._total_supply += amount

        logger.debug(
            "Token minted",
            extra={"event": "token.minted", "symbol": self._symbol, "account": account, "amount": amount},
        )

    def burn(self, account: str, amount: float) -> None:
        """
        Сжигание токенов с аккаунта.

        Raises:
            NonPositiveAmount: Если amount <= 0
            InsufficientBalance: Если баланс меньше amount
        """
        validate_positive_amount(amount, f"{self._symbol} burn amount")
        self._require_balance(account, amount)

        self._balances[account] = self.balance_of(account) - amount
        self._total_supply -= amount

        logger.debug(
            "Token burned",
            extra={"event": "token.burned", "symbol": self._symbol, "account": account, "amount": amount},
        )

    def transfer(self, sender: str, recipient: str, amount: float) -> None:
        """
        Перевод токенов между аккаунтами.

        Raises:
            NonPositiveAmount: Если amount <= 0
            InsufficientBalance: Если баланс sender меньше amount
        """
        validate_positive_amount(amount, f"{self._symbol} transfer amount")
        self._require_balance(sender, amount)

        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

        logger.debug(
            "Token transferred",
            extra={
                "event": "token.transferred",
                "symbol": self._symbol,
                "sender": sender,
                "recipient": recipient,
                "amount": amount,
            },
        )

    def _require_balance(self, account: str, amount: float) -> None:
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalance(
                f"Insufficient balance: {account} needs {amount} {self._symbol}, "
                f"but only has {balance}"
            )


__all__ = ["Ledger", "Token"]
