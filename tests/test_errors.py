import pytest

from lendstate.errors import (
    BorrowTooLargeError,
    BorrowTooSmallError,
    InvalidAccountDataError,
    LendingError,
    MathOverflowError,
    NegativeInterestRateError,
    ObligationBorrowsEmptyError,
    ObligationDepositsEmptyError,
)
from lendstate.fixed import Decimal, unpack_bool


@pytest.mark.parametrize(
    "error_class, message",
    [
        (NegativeInterestRateError, "Interest rate cannot be negative"),
        (ObligationDepositsEmptyError, "Obligation has no deposits"),
        (ObligationBorrowsEmptyError, "Obligation has no borrows"),
        (BorrowTooLargeError, "Borrow value cannot exceed maximum borrow value"),
        (
            BorrowTooSmallError,
            "Borrow amount is too small to receive liquidity after fees",
        ),
    ],
)
def test_default_messages(error_class, message):
    assert str(error_class()) == message


def test_custom_message_overrides_default():
    assert str(MathOverflowError("custom")) == "custom"


def test_empty_message_is_kept():
    assert str(BorrowTooSmallError("")) == ""


def test_overflow_is_lending_and_arithmetic_error():
    big = Decimal.from_scaled_val(2**192 - 1)
    with pytest.raises(LendingError):
        big.try_add(Decimal.one())
    with pytest.raises(ArithmeticError):
        big.try_add(Decimal.one())


def test_invalid_account_data_raised_from_bool_decoding():
    with pytest.raises(InvalidAccountDataError) as excinfo:
        unpack_bool(b"\x02")
    assert str(excinfo.value) == "Boolean cannot be unpacked"
    assert isinstance(excinfo.value, LendingError)