"""Fixed-point numbers scaled by 10**18 and byte helpers for account layouts."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidAccountDataError, MathOverflowError

U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1
U192_MAX = 2**192 - 1

WAD = 10**18
HALF_WAD = WAD // 2
PERCENT_SCALER = 10**16

PUBKEY_BYTES = 32

# Collateral tokens are initially valued at this ratio to liquidity.
INITIAL_COLLATERAL_RATIO = 1
INITIAL_COLLATERAL_RATE = INITIAL_COLLATERAL_RATIO * WAD

PROGRAM_VERSION = 1
UNINITIALIZED_VERSION = 0

# 2 slots per second for a 365-day year
SLOTS_PER_YEAR = 63_072_000


def _checked(value: int, limit: int) -> int:
    if not 0 <= value <= limit:
        raise MathOverflowError()
    return value


def _u64(value: int) -> int:
    if not isinstance(value, int):
        raise TypeError(f"expected an integer, got {type(value).__name__}")
    return _checked(value, U64_MAX)


def _scaled(other) -> int:
    if isinstance(other, (Decimal, Rate)):
        return other.value
    raise TypeError(f"expected Decimal or Rate, got {type(other).__name__}")


def _round_u64(value: int) -> int:
    return _checked(_checked(value + HALF_WAD, U192_MAX) // WAD, U64_MAX)


@dataclass(frozen=True, order=True, slots=True)
class Decimal:
    """Unsigned 192-bit fixed-point number with 18 decimal places.

    ``value`` holds the scaled integer representation.
    """

    value: int = 0

    def __post_init__(self):
        _checked(self.value, U192_MAX)

    def __str__(self) -> str:
        whole, frac = divmod(self.value, WAD)
        return f"{whole}.{frac:018d}"

    @classmethod
    def zero(cls) -> Decimal:
        return cls(0)

    @classmethod
    def one(cls) -> Decimal:
        return cls(WAD)

    @classmethod
    def from_int(cls, value: int) -> Decimal:
        """Create a decimal from an unsigned 64-bit integer."""
        return cls(_u64(value) * WAD)

    @classmethod
    def from_percent(cls, percent: int) -> Decimal:
        return cls(percent * PERCENT_SCALER)

    @classmethod
    def from_scaled_val(cls, scaled_val: int) -> Decimal:
        return cls(scaled_val)

    def to_scaled_val(self) -> int:
        """Return the scaled value, which must fit in 128 bits."""
        return _checked(self.value, U128_MAX)

    def to_rate(self) -> Rate:
        return Rate(self.to_scaled_val())

    def try_add(self, other: Decimal) -> Decimal:
        if not isinstance(other, Decimal):
            raise TypeError(f"expected Decimal, got {type(other).__name__}")
        return Decimal(_checked(self.value + other.value, U192_MAX))

    def try_sub(self, other: Decimal) -> Decimal:
        if not isinstance(other, Decimal):
            raise TypeError(f"expected Decimal, got {type(other).__name__}")
        return Decimal(_checked(self.value - other.value, U192_MAX))

    def try_mul(self, other) -> Decimal:
        """Multiply by a Decimal, a Rate or an unsigned 64-bit integer."""
        if isinstance(other, int):
            return Decimal(_checked(self.value * _u64(other), U192_MAX))
        product = _checked(self.value * _scaled(other), U192_MAX)
        return Decimal(product // WAD)

    def try_div(self, other) -> Decimal:
        """Divide by a Decimal, a Rate or an unsigned 64-bit integer."""
        if isinstance(other, int):
            divisor = _u64(other)
            if divisor == 0:
                raise MathOverflowError()
            return Decimal(self.value // divisor)
        divisor = _scaled(other)
        if divisor == 0:
            raise MathOverflowError()
        return Decimal(_checked(self.value * WAD, U192_MAX) // divisor)

    def try_floor_u64(self) -> int:
        return _checked(self.value // WAD, U64_MAX)

    def try_ceil_u64(self) -> int:
        return _checked(_checked(self.value + WAD - 1, U192_MAX) // WAD, U64_MAX)

    def try_round_u64(self) -> int:
        return _round_u64(self.value)


@dataclass(frozen=True, order=True, slots=True)
class Rate:
    """Unsigned 128-bit fixed-point rate with 18 decimal places.

    ``value`` holds the scaled integer representation.
    """

    value: int = 0

    def __post_init__(self):
        _checked(self.value, U128_MAX)

    def __str__(self) -> str:
        whole, frac = divmod(self.value, WAD)
        return f"{whole}.{frac:018d}"

    @classmethod
    def zero(cls) -> Rate:
        return cls(0)

    @classmethod
    def one(cls) -> Rate:
        return cls(WAD)

    @classmethod
    def from_percent(cls, percent: int) -> Rate:
        return cls(percent * PERCENT_SCALER)

    @classmethod
    def from_scaled_val(cls, scaled_val: int) -> Rate:
        return cls(scaled_val)

    def to_scaled_val(self) -> int:
        return self.value

    def to_decimal(self) -> Decimal:
        return Decimal(self.value)

    def try_add(self, other: Rate) -> Rate:
        if not isinstance(other, Rate):
            raise TypeError(f"expected Rate, got {type(other).__name__}")
        return Rate(_checked(self.value + other.value, U128_MAX))

    def try_sub(self, other: Rate) -> Rate:
        if not isinstance(other, Rate):
            raise TypeError(f"expected Rate, got {type(other).__name__}")
        return Rate(_checked(self.value - other.value, U128_MAX))

    def try_mul(self, other) -> Rate:
        """Multiply by a Rate or an unsigned 64-bit integer."""
        if isinstance(other, int):
            return Rate(_checked(self.value * _u64(other), U128_MAX))
        if not isinstance(other, Rate):
            raise TypeError(f"expected Rate, got {type(other).__name__}")
        return Rate(_checked(self.value * other.value, U128_MAX) // WAD)

    def try_div(self, other) -> Rate:
        """Divide by a Rate or an unsigned 64-bit integer."""
        if isinstance(other, int):
            divisor = _u64(other)
            if divisor == 0:
                raise MathOverflowError()
            return Rate(self.value // divisor)
        if not isinstance(other, Rate):
            raise TypeError(f"expected Rate, got {type(other).__name__}")
        if other.value == 0:
            raise MathOverflowError()
        return Rate(_checked(self.value * WAD, U128_MAX) // other.value)

    def try_pow(self, exponent: int) -> Rate:
        """Raise to an integer power by repeated squaring."""
        exponent = _u64(exponent)
        base = self
        result = base if exponent % 2 else Rate.one()
        while exponent > 0:
            exponent //= 2
            base = base.try_mul(base)
            if exponent % 2:
                result = result.try_mul(base)
        return result

    def try_round_u64(self) -> int:
        return _round_u64(self.value)


def pack_decimal(value: Decimal) -> bytes:
    """Encode a decimal as 16 little-endian bytes."""
    return value.to_scaled_val().to_bytes(16, "little")


def unpack_decimal(data: bytes) -> Decimal:
    """Decode a decimal from 16 little-endian bytes."""
    if len(data) != 16:
        raise ValueError(f"expected 16 bytes, got {len(data)}")
    return Decimal.from_scaled_val(int.from_bytes(data, "little"))


def pack_bool(value: bool) -> bytes:
    return b"\x01" if value else b"\x00"


def unpack_bool(data: bytes) -> bool:
    if len(data) != 1:
        raise ValueError(f"expected 1 byte, got {len(data)}")
    if data[0] == 0:
        return False
    if data[0] == 1:
        return True
    raise InvalidAccountDataError("Boolean cannot be unpacked")