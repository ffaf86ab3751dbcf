"""Reserve liquidity, reserve collateral and the collateral exchange rate."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import InsufficientLiquidityError, MathOverflowError
from .fixed import (
    INITIAL_COLLATERAL_RATE,
    PUBKEY_BYTES,
    SLOTS_PER_YEAR,
    U64_MAX,
    Decimal,
    Rate,
)


def _pubkey(value, name: str) -> bytes:
    key = bytes(value)
    if len(key) != PUBKEY_BYTES:
        raise ValueError(f"{name} must be {PUBKEY_BYTES} bytes")
    return key


def _check_u64(value: int, name: str) -> None:
    if not isinstance(value, int) or not 0 <= value <= U64_MAX:
        raise ValueError(f"{name} must fit in 64 bits")


def _u64(value: int) -> int:
    if not 0 <= value <= U64_MAX:
        raise MathOverflowError()
    return value


@dataclass
class ReserveLiquidity:
    """Liquidity held and lent out by a reserve."""

    mint_pubkey: bytes = bytes(PUBKEY_BYTES)
    mint_decimals: int = 0
    supply_pubkey: bytes = bytes(PUBKEY_BYTES)
    pyth_oracle_pubkey: bytes = bytes(PUBKEY_BYTES)
    switchboard_oracle_pubkey: bytes = bytes(PUBKEY_BYTES)
    available_amount: int = 0
    borrowed_amount_wads: Decimal = field(default_factory=Decimal.zero)
    cumulative_borrow_rate_wads: Decimal = field(default_factory=Decimal.zero)
    market_price: Decimal = field(default_factory=Decimal.zero)

    def __post_init__(self):
        for name in (
            "mint_pubkey",
            "supply_pubkey",
            "pyth_oracle_pubkey",
            "switchboard_oracle_pubkey",
        ):
            setattr(self, name, _pubkey(getattr(self, name), name))
        if not isinstance(self.mint_decimals, int) or not 0 <= self.mint_decimals <= 0xFF:
            raise ValueError("mint_decimals must fit in one byte")
        _check_u64(self.available_amount, "available_amount")

    @classmethod
    def create(
        cls,
        mint_pubkey,
        mint_decimals,
        supply_pubkey,
        pyth_oracle_pubkey,
        switchboard_oracle_pubkey,
        market_price,
    ) -> ReserveLiquidity:
        """Create empty liquidity with a cumulative borrow rate of one."""
        return cls(
            mint_pubkey=mint_pubkey,
            mint_decimals=mint_decimals,
            supply_pubkey=supply_pubkey,
            pyth_oracle_pubkey=pyth_oracle_pubkey,
            switchboard_oracle_pubkey=switchboard_oracle_pubkey,
            available_amount=0,
            borrowed_amount_wads=Decimal.zero(),
            cumulative_borrow_rate_wads=Decimal.one(),
            market_price=market_price,
        )

    def total_supply(self) -> Decimal:
        """Total reserve supply including active loans."""
        return Decimal.from_int(self.available_amount).try_add(self.borrowed_amount_wads)

    def deposit(self, liquidity_amount: int) -> None:
        """Add liquidity to the available amount."""
        self.available_amount = _u64(self.available_amount + _u64(liquidity_amount))

    def withdraw(self, liquidity_amount: int) -> None:
        """Remove liquidity from the available amount."""
        if liquidity_amount > self.available_amount:
            raise InsufficientLiquidityError()
        self.available_amount = _u64(self.available_amount - _u64(liquidity_amount))

    def borrow(self, borrow_decimal: Decimal) -> None:
        """Move a borrowed amount out of available liquidity into borrows."""
        borrow_amount = borrow_decimal.try_floor_u64()
        if borrow_amount > self.available_amount:
            raise InsufficientLiquidityError("Borrow amount cannot exceed available amount")
        self.available_amount = _u64(self.available_amount - borrow_amount)
        self.borrowed_amount_wads = self.borrowed_amount_wads.try_add(borrow_decimal)

    def repay(self, repay_amount: int, settle_amount: Decimal) -> None:
        """Return repaid liquidity and settle at most the borrowed amount."""
        self.available_amount = _u64(self.available_amount + _u64(repay_amount))
        safe_settle_amount = min(settle_amount, self.borrowed_amount_wads)
        self.borrowed_amount_wads = self.borrowed_amount_wads.try_sub(safe_settle_amount)

    def utilization_rate(self) -> Rate:
        """Share of the total supply that is borrowed."""
        total_supply = self.total_supply()
        if total_supply == Decimal.zero():
            return Rate.zero()
        return self.borrowed_amount_wads.try_div(total_supply).to_rate()

    def compound_interest(self, current_borrow_rate: Rate, slots_elapsed: int) -> None:
        """Compound a yearly borrow rate over the elapsed slots."""
        slot_interest_rate = current_borrow_rate.try_div(SLOTS_PER_YEAR)
        compounded_interest_rate = Rate.one().try_add(slot_interest_rate).try_pow(slots_elapsed)
        self.cumulative_borrow_rate_wads = self.cumulative_borrow_rate_wads.try_mul(
            compounded_interest_rate
        )
        self.borrowed_amount_wads = self.borrowed_amount_wads.try_mul(compounded_interest_rate)


@dataclass(frozen=True, order=True)
class CollateralExchangeRate:
    """Amount of collateral minted per unit of liquidity."""

    rate: Rate

    def collateral_to_liquidity(self, collateral_amount: int) -> int:
        return Decimal.from_int(collateral_amount).try_div(self.rate).try_round_u64()

    def decimal_collateral_to_liquidity(self, collateral_amount: Decimal) -> Decimal:
        return collateral_amount.try_div(self.rate)

    def liquidity_to_collateral(self, liquidity_amount: int) -> int:
        return self.rate.try_mul(liquidity_amount).try_round_u64()

    def decimal_liquidity_to_collateral(self, liquidity_amount: Decimal) -> Decimal:
        return liquidity_amount.try_mul(self.rate)


@dataclass
class ReserveCollateral:
    """Collateral tokens minted by a reserve."""

    mint_pubkey: bytes = bytes(PUBKEY_BYTES)
    mint_total_supply: int = 0
    supply_pubkey: bytes = bytes(PUBKEY_BYTES)

    def __post_init__(self):
        self.mint_pubkey = _pubkey(self.mint_pubkey, "mint_pubkey")
        self.supply_pubkey = _pubkey(self.supply_pubkey, "supply_pubkey")
        _check_u64(self.mint_total_supply, "mint_total_supply")

    @classmethod
    def create(cls, mint_pubkey, supply_pubkey) -> ReserveCollateral:
        """Create collateral with nothing minted yet."""
        return cls(mint_pubkey=mint_pubkey, mint_total_supply=0, supply_pubkey=supply_pubkey)

    def mint(self, collateral_amount: int) -> None:
        """Add collateral to the total supply."""
        self.mint_total_supply = _u64(self.mint_total_supply + _u64(collateral_amount))

    def burn(self, collateral_amount: int) -> None:
        """Remove collateral from the total supply."""
        self.mint_total_supply = _u64(self.mint_total_supply - _u64(collateral_amount))

    def exchange_rate(self, total_liquidity: Decimal) -> CollateralExchangeRate:
        """Current exchange rate given the reserve's total liquidity."""
        if self.mint_total_supply == 0 or total_liquidity == Decimal.zero():
            rate = Rate.from_scaled_val(INITIAL_COLLATERAL_RATE)
        else:
            rate = Decimal.from_int(self.mint_total_supply).try_div(total_liquidity).to_rate()
        return CollateralExchangeRate(rate)