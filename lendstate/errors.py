"""Exceptions raised by lending state operations."""


class LendingError(Exception):
    """Base class for every error raised by lending state operations."""

    default_message = "Lending operation failed"

    def __init__(self, message=None):
        super().__init__(self.default_message if message is None else message)


class MathOverflowError(LendingError, ArithmeticError):
    """A checked arithmetic operation overflowed, underflowed or divided by zero."""

    default_message = "Math operation overflow"


class InvalidAccountDataError(LendingError):
    """Serialized account data could not be decoded."""

    default_message = "Invalid account data"


class NegativeInterestRateError(LendingError):
    """A new cumulative borrow rate is lower than the current one."""

    default_message = "Interest rate cannot be negative"


class ObligationDepositsEmptyError(LendingError):
    """The obligation holds no deposits."""

    default_message = "Obligation has no deposits"


class ObligationBorrowsEmptyError(LendingError):
    """The obligation holds no borrows."""

    default_message = "Obligation has no borrows"


class InvalidObligationCollateralError(LendingError):
    """No collateral matches the requested deposit reserve."""

    default_message = "Invalid obligation collateral"


class InvalidObligationLiquidityError(LendingError):
    """No liquidity matches the requested borrow reserve."""

    default_message = "Invalid obligation liquidity"


class ObligationReserveLimitError(LendingError):
    """The obligation already holds the maximum number of reserves."""

    default_message = "Obligation cannot have more than 10 deposits and borrows combined"


class InsufficientLiquidityError(LendingError):
    """The reserve does not hold enough available liquidity."""

    default_message = "Withdraw amount cannot exceed available amount"


class BorrowTooLargeError(LendingError):
    """The requested borrow exceeds the maximum borrow value."""

    default_message = "Borrow value cannot exceed maximum borrow value"


class BorrowTooSmallError(LendingError):
    """The requested borrow is too small to cover its fees."""

    default_message = "Borrow amount is too small to receive liquidity after fees"