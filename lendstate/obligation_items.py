"""Collateral and liquidity entries held by an obligation."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import MathOverflowError, NegativeInterestRateError
from .fixed import PUBKEY_BYTES, U64_MAX, Decimal


def _pubkey(value, name: str) -> bytes:
    key = bytes(value)
    if len(key) != PUBKEY_BYTES:
        raise ValueError(f"{name} must be {PUBKEY_BYTES} bytes")
    return key


def _u64(value: int) -> int:
    if not 0 <= value <= U64_MAX:
        raise MathOverflowError()
    return value


@dataclass
class ObligationCollateral:
    """Collateral deposited to one reserve by an obligation."""

    deposit_reserve: bytes = bytes(PUBKEY_BYTES)
    deposited_amount: int = 0
    market_value: Decimal = field(default_factory=Decimal.zero)

    def __post_init__(self):
        self.deposit_reserve = _pubkey(self.deposit_reserve, "deposit_reserve")
        if not 0 <= self.deposited_amount <= U64_MAX:
            raise ValueError("deposited_amount must fit in 64 bits")

    @classmethod
    def create(cls, deposit_reserve) -> ObligationCollateral:
        """Create an empty collateral entry for ``deposit_reserve``."""
        return cls(deposit_reserve=deposit_reserve)

    def deposit(self, collateral_amount: int) -> None:
        """Increase deposited collateral."""
        self.deposited_amount = _u64(self.deposited_amount + _u64(collateral_amount))

    def withdraw(self, collateral_amount: int) -> None:
        """Decrease deposited collateral."""
        self.deposited_amount = _u64(self.deposited_amount - _u64(collateral_amount))


@dataclass
class ObligationLiquidity:
    """Liquidity borrowed from one reserve by an obligation."""

    borrow_reserve: bytes = bytes(PUBKEY_BYTES)
    cumulative_borrow_rate_wads: Decimal = field(default_factory=Decimal.zero)
    borrowed_amount_wads: Decimal = field(default_factory=Decimal.zero)
    market_value: Decimal = field(default_factory=Decimal.zero)

    def __post_init__(self):
        self.borrow_reserve = _pubkey(self.borrow_reserve, "borrow_reserve")

    @classmethod
    def create(cls, borrow_reserve, cumulative_borrow_rate_wads) -> ObligationLiquidity:
        """Create an empty liquidity entry at the reserve's current borrow rate."""
        return cls(
            borrow_reserve=borrow_reserve,
            cumulative_borrow_rate_wads=cumulative_borrow_rate_wads,
        )

    def repay(self, settle_amount: Decimal) -> None:
        """Decrease borrowed liquidity."""
        self.borrowed_amount_wads = self.borrowed_amount_wads.try_sub(settle_amount)

    def borrow(self, borrow_amount: Decimal) -> None:
        """Increase borrowed liquidity."""
        self.borrowed_amount_wads = self.borrowed_amount_wads.try_add(borrow_amount)

    def accrue_interest(self, cumulative_borrow_rate_wads: Decimal) -> None:
        """Compound the borrowed amount up to a new cumulative borrow rate."""
        if cumulative_borrow_rate_wads < self.cumulative_borrow_rate_wads:
            raise NegativeInterestRateError()
        if cumulative_borrow_rate_wads == self.cumulative_borrow_rate_wads:
            return
        compounded_interest_rate = cumulative_borrow_rate_wads.try_div(
            self.cumulative_borrow_rate_wads
        ).to_rate()
        self.borrowed_amount_wads = self.borrowed_amount_wads.try_mul(
            compounded_interest_rate
        )
        self.cumulative_borrow_rate_wads = cumulative_borrow_rate_wads