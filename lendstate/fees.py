"""Reserve fee schedule and configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .errors import BorrowTooSmallError
from .fixed import PUBKEY_BYTES, U64_MAX, Decimal, Rate


class FeeCalculation(Enum):
    """Whether a fee is added to an amount or already included in it."""

    EXCLUSIVE = "exclusive"
    """Fee added to amount: fee = rate * amount."""
    INCLUSIVE = "inclusive"
    """Fee included in amount: fee = (rate / (1 + rate)) * amount."""


def _check_u8(value: int, name: str) -> None:
    if not isinstance(value, int) or not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must fit in one byte")


def _check_u64(value: int, name: str) -> None:
    if not isinstance(value, int) or not 0 <= value <= U64_MAX:
        raise ValueError(f"{name} must fit in 64 bits")


@dataclass(frozen=True)
class ReserveFees:
    """Owner and host fees, separate from interest accrual.

    Fee rates are wads, where 10**18 means 100%: 1% is 10**16 and
    0.3% is 3 * 10**15. ``host_fee_percentage`` is the share of a fee that
    goes to the host account.
    """

    borrow_fee_wad: int = 0
    flash_loan_fee_wad: int = 0
    host_fee_percentage: int = 0

    def __post_init__(self):
        _check_u64(self.borrow_fee_wad, "borrow_fee_wad")
        _check_u64(self.flash_loan_fee_wad, "flash_loan_fee_wad")
        _check_u8(self.host_fee_percentage, "host_fee_percentage")

    def calculate_borrow_fees(
        self, borrow_amount: Decimal, fee_calculation: FeeCalculation
    ) -> tuple[int, int]:
        """Return ``(total_fee, host_fee)`` for a borrow."""
        return self._calculate_fees(borrow_amount, self.borrow_fee_wad, fee_calculation)

    def calculate_flash_loan_fees(self, flash_loan_amount: Decimal) -> tuple[int, int]:
        """Return ``(total_fee, host_fee)`` for a flash loan."""
        return self._calculate_fees(
            flash_loan_amount, self.flash_loan_fee_wad, FeeCalculation.EXCLUSIVE
        )

    def _calculate_fees(
        self, amount: Decimal, fee_wad: int, fee_calculation: FeeCalculation
    ) -> tuple[int, int]:
        fee_rate = Rate.from_scaled_val(fee_wad)
        host_fee_rate = Rate.from_percent(self.host_fee_percentage)
        if fee_rate <= Rate.zero() or amount <= Decimal.zero():
            return 0, 0

        need_host_fee = host_fee_rate > Rate.zero()
        # one token to the owner, and one to the host when there is a host fee
        minimum_fee = 2 if need_host_fee else 1

        if fee_calculation is FeeCalculation.EXCLUSIVE:
            fee_amount = amount.try_mul(fee_rate)
        else:
            inclusive_rate = fee_rate.try_div(fee_rate.try_add(Rate.one()))
            fee_amount = amount.try_mul(inclusive_rate)

        total_fee = max(fee_amount.try_round_u64(), minimum_fee)
        if Decimal.from_int(total_fee) >= amount:
            raise BorrowTooSmallError()

        host_fee = (
            max(host_fee_rate.try_mul(total_fee).try_round_u64(), 1) if need_host_fee else 0
        )
        return total_fee, host_fee


@dataclass(frozen=True)
class ReserveConfig:
    """Configuration values of a reserve; rates are percentages."""

    optimal_utilization_rate: int = 0
    loan_to_value_ratio: int = 0
    liquidation_bonus: int = 0
    liquidation_threshold: int = 0
    min_borrow_rate: int = 0
    optimal_borrow_rate: int = 0
    max_borrow_rate: int = 0
    fees: ReserveFees = field(default_factory=ReserveFees)
    deposit_limit: int = 0
    borrow_limit: int = 0
    fee_receiver: bytes = bytes(PUBKEY_BYTES)

    def __post_init__(self):
        for name in (
            "optimal_utilization_rate",
            "loan_to_value_ratio",
            "liquidation_bonus",
            "liquidation_threshold",
            "min_borrow_rate",
            "optimal_borrow_rate",
            "max_borrow_rate",
        ):
            _check_u8(getattr(self, name), name)
        _check_u64(self.deposit_limit, "deposit_limit")
        _check_u64(self.borrow_limit, "borrow_limit")
        if not isinstance(self.fees, ReserveFees):
            raise TypeError("fees must be ReserveFees")
        receiver = bytes(self.fee_receiver)
        if len(receiver) != PUBKEY_BYTES:
            raise ValueError(f"fee_receiver must be {PUBKEY_BYTES} bytes")
        object.__setattr__(self, "fee_receiver", receiver)