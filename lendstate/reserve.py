"""Reserve account state: liquidity, collateral, configuration and the maths on them."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar

from .errors import BorrowTooLargeError, InvalidAccountDataError, MathOverflowError
from .fees import FeeCalculation, ReserveConfig, ReserveFees
from .fixed import (
    PROGRAM_VERSION,
    PUBKEY_BYTES,
    U64_MAX,
    UNINITIALIZED_VERSION,
    Decimal,
    Rate,
    pack_bool,
    pack_decimal,
    unpack_bool,
    unpack_decimal,
)
from .last_update import LastUpdate
from .obligation import LIQUIDATION_CLOSE_FACTOR, Obligation
from .obligation_items import ObligationCollateral, ObligationLiquidity
from .reserve_liquidity import CollateralExchangeRate, ReserveCollateral, ReserveLiquidity

__all__ = [
    "LIQUIDATION_CLOSE_AMOUNT",
    "LIQUIDATION_CLOSE_FACTOR",
    "RESERVE_LEN",
    "CalculateBorrowResult",
    "CalculateLiquidationResult",
    "CalculateRepayResult",
    "Reserve",
]

# Obligation borrow amount that is small enough to close out
LIQUIDATION_CLOSE_AMOUNT = 2

RESERVE_LEN = 619

_LAYOUT = struct.Struct(
    "<"
    "BQ1s32s"  # version, last update slot, stale, lending market
    "32sB32s32s32sQ16s16s16s"  # liquidity
    "32sQ32s"  # collateral
    "BBBBBBB"  # config rates
    "QQB"  # config fees
    "QQ32s"  # deposit limit, borrow limit, fee receiver
    "248x"
)


def _pubkey(value, name: str) -> bytes:
    key = bytes(value)
    if len(key) != PUBKEY_BYTES:
        raise ValueError(f"{name} must be {PUBKEY_BYTES} bytes")
    return key


def _checked_u8_sub(a: int, b: int) -> int:
    if a < b:
        raise MathOverflowError()
    return a - b


@dataclass(frozen=True)
class CalculateBorrowResult:
    """Outcome of a borrow calculation."""

    borrow_amount: Decimal
    """Total amount of borrow including fees."""
    receive_amount: int
    """Borrow amount portion of the total amount."""
    borrow_fee: int
    """Loan origination fee."""
    host_fee: int
    """Host fee portion of the origination fee."""


@dataclass(frozen=True)
class CalculateRepayResult:
    """Outcome of a repay calculation."""

    settle_amount: Decimal
    """Amount of liquidity settled from the obligation."""
    repay_amount: int
    """Amount that will be repaid, in whole tokens."""


@dataclass(frozen=True)
class CalculateLiquidationResult:
    """Outcome of a liquidation calculation."""

    settle_amount: Decimal
    """Amount settled from the obligation, including defaulted loan if collateral runs out."""
    repay_amount: int
    """Amount that will be repaid, in whole tokens."""
    withdraw_amount: int
    """Amount of collateral withdrawn in exchange for the repay amount."""


@dataclass
class Reserve:
    """A lending market reserve."""

    LEN: ClassVar[int] = RESERVE_LEN

    version: int = 0
    last_update: LastUpdate = field(default_factory=LastUpdate)
    lending_market: bytes = bytes(PUBKEY_BYTES)
    liquidity: ReserveLiquidity = field(default_factory=ReserveLiquidity)
    collateral: ReserveCollateral = field(default_factory=ReserveCollateral)
    config: ReserveConfig = field(default_factory=ReserveConfig)

    def __post_init__(self):
        if not 0 <= self.version <= 0xFF:
            raise ValueError("version must fit in one byte")
        self.lending_market = _pubkey(self.lending_market, "lending_market")

    @classmethod
    def create(cls, current_slot, lending_market, liquidity, collateral, config) -> Reserve:
        """Create an initialized reserve at the current version."""
        return cls(
            version=PROGRAM_VERSION,
            last_update=LastUpdate.create(current_slot),
            lending_market=lending_market,
            liquidity=liquidity,
            collateral=collateral,
            config=config,
        )

    def is_initialized(self) -> bool:
        return self.version != UNINITIALIZED_VERSION

    def deposit_liquidity(self, liquidity_amount: int) -> int:
        """Record deposited liquidity and return the collateral amount to mint."""
        collateral_amount = self.collateral_exchange_rate().liquidity_to_collateral(
            liquidity_amount
        )
        self.liquidity.deposit(liquidity_amount)
        self.collateral.mint(collateral_amount)
        return collateral_amount

    def redeem_collateral(self, collateral_amount: int) -> int:
        """Record redeemed collateral and return the liquidity amount to withdraw."""
        liquidity_amount = self.collateral_exchange_rate().collateral_to_liquidity(
            collateral_amount
        )
        self.collateral.burn(collateral_amount)
        self.liquidity.withdraw(liquidity_amount)
        return liquidity_amount

    def current_borrow_rate(self) -> Rate:
        """Borrow rate for the current utilization, on a piecewise linear curve."""
        config = self.config
        utilization_rate = self.liquidity.utilization_rate()
        optimal_utilization_rate = Rate.from_percent(config.optimal_utilization_rate)
        low_utilization = utilization_rate < optimal_utilization_rate
        if low_utilization or config.optimal_utilization_rate == 100:
            normalized_rate = utilization_rate.try_div(optimal_utilization_rate)
            min_rate = Rate.from_percent(config.min_borrow_rate)
            rate_range = Rate.from_percent(
                _checked_u8_sub(config.optimal_borrow_rate, config.min_borrow_rate)
            )
        else:
            normalized_rate = utilization_rate.try_sub(optimal_utilization_rate).try_div(
                Rate.from_percent(_checked_u8_sub(100, config.optimal_utilization_rate))
            )
            min_rate = Rate.from_percent(config.optimal_borrow_rate)
            rate_range = Rate.from_percent(
                _checked_u8_sub(config.max_borrow_rate, config.optimal_borrow_rate)
            )
        return normalized_rate.try_mul(rate_range).try_add(min_rate)

    def collateral_exchange_rate(self) -> CollateralExchangeRate:
        return self.collateral.exchange_rate(self.liquidity.total_supply())

    def accrue_interest(self, current_slot: int) -> None:
        """Compound interest over the slots elapsed since the last update."""
        slots_elapsed = self.last_update.slots_elapsed(current_slot)
        if slots_elapsed > 0:
            self.liquidity.compound_interest(self.current_borrow_rate(), slots_elapsed)

    def calculate_borrow(
        self, amount_to_borrow: int, max_borrow_value: Decimal
    ) -> CalculateBorrowResult:
        """Borrow liquidity up to a maximum market value.

        ``amount_to_borrow`` of 2**64 - 1 borrows as much as allowed.
        """
        decimals = 10**self.liquidity.mint_decimals
        if decimals > U64_MAX:
            raise MathOverflowError()
        fees: ReserveFees = self.config.fees

        if amount_to_borrow == U64_MAX:
            borrow_amount = min(
                max_borrow_value.try_mul(decimals).try_div(self.liquidity.market_price),
                Decimal.from_int(self.liquidity.available_amount),
            )
            borrow_fee, host_fee = fees.calculate_borrow_fees(
                borrow_amount, FeeCalculation.INCLUSIVE
            )
            receive_amount = borrow_amount.try_floor_u64() - borrow_fee
            if receive_amount < 0:
                raise MathOverflowError()
            return CalculateBorrowResult(borrow_amount, receive_amount, borrow_fee, host_fee)

        receive_amount = amount_to_borrow
        borrow_amount = Decimal.from_int(receive_amount)
        borrow_fee, host_fee = fees.calculate_borrow_fees(
            borrow_amount, FeeCalculation.EXCLUSIVE
        )
        borrow_amount = borrow_amount.try_add(Decimal.from_int(borrow_fee))
        borrow_value = borrow_amount.try_mul(self.liquidity.market_price).try_div(decimals)
        if borrow_value > max_borrow_value:
            raise BorrowTooLargeError()
        return CalculateBorrowResult(borrow_amount, receive_amount, borrow_fee, host_fee)

    def calculate_repay(
        self, amount_to_repay: int, borrowed_amount: Decimal
    ) -> CalculateRepayResult:
        """Repay liquidity up to the borrowed amount.

        ``amount_to_repay`` of 2**64 - 1 repays everything.
        """
        if amount_to_repay == U64_MAX:
            settle_amount = borrowed_amount
        else:
            settle_amount = min(Decimal.from_int(amount_to_repay), borrowed_amount)
        return CalculateRepayResult(settle_amount, settle_amount.try_ceil_u64())

    def calculate_liquidation(
        self,
        amount_to_liquidate: int,
        obligation: Obligation,
        liquidity: ObligationLiquidity,
        collateral: ObligationCollateral,
    ) -> CalculateLiquidationResult:
        """Liquidate some or all of an unhealthy obligation."""
        bonus_rate = Rate.from_percent(self.config.liquidation_bonus).try_add(Rate.one())

        if amount_to_liquidate == U64_MAX:
            max_amount = liquidity.borrowed_amount_wads
        else:
            max_amount = min(
                Decimal.from_int(amount_to_liquidate), liquidity.borrowed_amount_wads
            )

        if liquidity.borrowed_amount_wads < Decimal.from_int(LIQUIDATION_CLOSE_AMOUNT):
            # Too small to liquidate normally: settle the whole borrow.
            settle_amount = liquidity.borrowed_amount_wads
            liquidation_value = liquidity.market_value.try_mul(bonus_rate)
            if liquidation_value > collateral.market_value:
                repay_pct = collateral.market_value.try_div(liquidation_value)
                repay_amount = max_amount.try_mul(repay_pct).try_ceil_u64()
                withdraw_amount = collateral.deposited_amount
            elif liquidation_value == collateral.market_value:
                repay_amount = max_amount.try_ceil_u64()
                withdraw_amount = collateral.deposited_amount
            else:
                withdraw_pct = liquidation_value.try_div(collateral.market_value)
                repay_amount = max_amount.try_floor_u64()
                withdraw_amount = (
                    Decimal.from_int(collateral.deposited_amount)
                    .try_mul(withdraw_pct)
                    .try_floor_u64()
                )
        else:
            liquidation_amount = min(obligation.max_liquidation_amount(liquidity), max_amount)
            liquidation_pct = liquidation_amount.try_div(liquidity.borrowed_amount_wads)
            liquidation_value = liquidity.market_value.try_mul(liquidation_pct).try_mul(
                bonus_rate
            )
            if liquidation_value > collateral.market_value:
                repay_pct = collateral.market_value.try_div(liquidation_value)
                settle_amount = liquidation_amount.try_mul(repay_pct)
                repay_amount = settle_amount.try_ceil_u64()
                withdraw_amount = collateral.deposited_amount
            elif liquidation_value == collateral.market_value:
                settle_amount = liquidation_amount
                repay_amount = settle_amount.try_ceil_u64()
                withdraw_amount = collateral.deposited_amount
            else:
                withdraw_pct = liquidation_value.try_div(collateral.market_value)
                settle_amount = liquidation_amount
                repay_amount = settle_amount.try_floor_u64()
                withdraw_amount = (
                    Decimal.from_int(collateral.deposited_amount)
                    .try_mul(withdraw_pct)
                    .try_floor_u64()
                )

        return CalculateLiquidationResult(settle_amount, repay_amount, withdraw_amount)

    def pack(self) -> bytes:
        """Serialize to the fixed 619-byte account layout."""
        liquidity = self.liquidity
        collateral = self.collateral
        config = self.config
        return _LAYOUT.pack(
            self.version,
            self.last_update.slot,
            pack_bool(self.last_update.stale),
            self.lending_market,
            liquidity.mint_pubkey,
            liquidity.mint_decimals,
            liquidity.supply_pubkey,
            liquidity.pyth_oracle_pubkey,
            liquidity.switchboard_oracle_pubkey,
            liquidity.available_amount,
            pack_decimal(liquidity.borrowed_amount_wads),
            pack_decimal(liquidity.cumulative_borrow_rate_wads),
            pack_decimal(liquidity.market_price),
            collateral.mint_pubkey,
            collateral.mint_total_supply,
            collateral.supply_pubkey,
            config.optimal_utilization_rate,
            config.loan_to_value_ratio,
            config.liquidation_bonus,
            config.liquidation_threshold,
            config.min_borrow_rate,
            config.optimal_borrow_rate,
            config.max_borrow_rate,
            config.fees.borrow_fee_wad,
            config.fees.flash_loan_fee_wad,
            config.fees.host_fee_percentage,
            config.deposit_limit,
            config.borrow_limit,
            config.fee_receiver,
        )

    @classmethod
    def unpack(cls, data: bytes) -> Reserve:
        """Deserialize from the fixed 619-byte account layout."""
        data = bytes(data)
        if len(data) != cls.LEN:
            raise InvalidAccountDataError(
                f"Reserve data must be {cls.LEN} bytes, got {len(data)}"
            )
        (
            version,
            slot,
            stale,
            lending_market,
            liquidity_mint_pubkey,
            liquidity_mint_decimals,
            liquidity_supply_pubkey,
            liquidity_pyth_oracle_pubkey,
            liquidity_switchboard_oracle_pubkey,
            liquidity_available_amount,
            liquidity_borrowed_amount_wads,
            liquidity_cumulative_borrow_rate_wads,
            liquidity_market_price,
            collateral_mint_pubkey,
            collateral_mint_total_supply,
            collateral_supply_pubkey,
            optimal_utilization_rate,
            loan_to_value_ratio,
            liquidation_bonus,
            liquidation_threshold,
            min_borrow_rate,
            optimal_borrow_rate,
            max_borrow_rate,
            borrow_fee_wad,
            flash_loan_fee_wad,
            host_fee_percentage,
            deposit_limit,
            borrow_limit,
            fee_receiver,
        ) = _LAYOUT.unpack(data)
        if version > PROGRAM_VERSION:
            raise InvalidAccountDataError(
                "Reserve version does not match lending program version"
            )
        return cls(
            version=version,
            last_update=LastUpdate(slot=slot, stale=unpack_bool(stale)),
            lending_market=lending_market,
            liquidity=ReserveLiquidity(
                mint_pubkey=liquidity_mint_pubkey,
                mint_decimals=liquidity_mint_decimals,
                supply_pubkey=liquidity_supply_pubkey,
                pyth_oracle_pubkey=liquidity_pyth_oracle_pubkey,
                switchboard_oracle_pubkey=liquidity_switchboard_oracle_pubkey,
                available_amount=liquidity_available_amount,
                borrowed_amount_wads=unpack_decimal(liquidity_borrowed_amount_wads),
                cumulative_borrow_rate_wads=unpack_decimal(
                    liquidity_cumulative_borrow_rate_wads
                ),
                market_price=unpack_decimal(liquidity_market_price),
            ),
            collateral=ReserveCollateral(
                mint_pubkey=collateral_mint_pubkey,
                mint_total_supply=collateral_mint_total_supply,
                supply_pubkey=collateral_supply_pubkey,
            ),
            config=ReserveConfig(
                optimal_utilization_rate=optimal_utilization_rate,
                loan_to_value_ratio=loan_to_value_ratio,
                liquidation_bonus=liquidation_bonus,
                liquidation_threshold=liquidation_threshold,
                min_borrow_rate=min_borrow_rate,
                optimal_borrow_rate=optimal_borrow_rate,
                max_borrow_rate=max_borrow_rate,
                fees=ReserveFees(
                    borrow_fee_wad=borrow_fee_wad,
                    flash_loan_fee_wad=flash_loan_fee_wad,
                    host_fee_percentage=host_fee_percentage,
                ),
                deposit_limit=deposit_limit,
                borrow_limit=borrow_limit,
                fee_receiver=fee_receiver,
            ),
        )