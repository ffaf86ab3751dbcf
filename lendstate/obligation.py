"""Obligation account state: a borrower's deposits, borrows and their values."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar

from .errors import (
    InvalidAccountDataError,
    InvalidObligationCollateralError,
    InvalidObligationLiquidityError,
    ObligationBorrowsEmptyError,
    ObligationDepositsEmptyError,
    ObligationReserveLimitError,
)
from .fixed import (
    PROGRAM_VERSION,
    PUBKEY_BYTES,
    UNINITIALIZED_VERSION,
    Decimal,
    Rate,
    pack_bool,
    pack_decimal,
    unpack_bool,
    unpack_decimal,
)
from .last_update import LastUpdate
from .obligation_items import ObligationCollateral, ObligationLiquidity

# Max number of collateral and liquidity reserve accounts combined for an obligation
MAX_OBLIGATION_RESERVES = 10

# Percentage of an obligation that can be repaid during each liquidation call
LIQUIDATION_CLOSE_FACTOR = 50

OBLIGATION_COLLATERAL_LEN = 88
OBLIGATION_LIQUIDITY_LEN = 112
OBLIGATION_LEN = 1300

_HEADER = struct.Struct("<BQ1s32s32s16s16s16s16s64xBB")
_COLLATERAL = struct.Struct("<32sQ16s32x")
_LIQUIDITY = struct.Struct("<32s16s16s16s32x")
_DATA_LEN = OBLIGATION_COLLATERAL_LEN + OBLIGATION_LIQUIDITY_LEN * (MAX_OBLIGATION_RESERVES - 1)


def _pubkey(value, name: str) -> bytes:
    key = bytes(value)
    if len(key) != PUBKEY_BYTES:
        raise ValueError(f"{name} must be {PUBKEY_BYTES} bytes")
    return key


@dataclass
class Obligation:
    """A borrower's position in a lending market."""

    LEN: ClassVar[int] = OBLIGATION_LEN

    version: int = 0
    last_update: LastUpdate = field(default_factory=LastUpdate)
    lending_market: bytes = bytes(PUBKEY_BYTES)
    owner: bytes = bytes(PUBKEY_BYTES)
    deposits: list[ObligationCollateral] = field(default_factory=list)
    borrows: list[ObligationLiquidity] = field(default_factory=list)
    deposited_value: Decimal = field(default_factory=Decimal.zero)
    borrowed_value: Decimal = field(default_factory=Decimal.zero)
    allowed_borrow_value: Decimal = field(default_factory=Decimal.zero)
    unhealthy_borrow_value: Decimal = field(default_factory=Decimal.zero)

    def __post_init__(self):
        if not 0 <= self.version <= 0xFF:
            raise ValueError("version must fit in one byte")
        self.lending_market = _pubkey(self.lending_market, "lending_market")
        self.owner = _pubkey(self.owner, "owner")
        self.deposits = list(self.deposits)
        self.borrows = list(self.borrows)

    @classmethod
    def create(cls, current_slot, lending_market, owner, deposits, borrows) -> Obligation:
        """Create an initialized obligation at the current version."""
        return cls(
            version=PROGRAM_VERSION,
            last_update=LastUpdate.create(current_slot),
            lending_market=lending_market,
            owner=owner,
            deposits=deposits,
            borrows=borrows,
        )

    def is_initialized(self) -> bool:
        return self.version != UNINITIALIZED_VERSION

    def loan_to_value(self) -> Decimal:
        """Ratio of borrowed value to deposited value."""
        return self.borrowed_value.try_div(self.deposited_value)

    def repay(self, settle_amount: Decimal, liquidity_index: int) -> None:
        """Repay liquidity, removing the borrow once it is settled in full."""
        liquidity = self.borrows[liquidity_index]
        if settle_amount == liquidity.borrowed_amount_wads:
            del self.borrows[liquidity_index]
        else:
            liquidity.repay(settle_amount)

    def withdraw(self, withdraw_amount: int, collateral_index: int) -> None:
        """Withdraw collateral, removing the deposit once it is emptied."""
        collateral = self.deposits[collateral_index]
        if withdraw_amount == collateral.deposited_amount:
            del self.deposits[collateral_index]
        else:
            collateral.withdraw(withdraw_amount)

    def max_withdraw_value(self) -> Decimal:
        """Maximum collateral value that can be withdrawn."""
        required_deposit_value = self.borrowed_value.try_mul(self.deposited_value).try_div(
            self.allowed_borrow_value
        )
        if required_deposit_value >= self.deposited_value:
            return Decimal.zero()
        return self.deposited_value.try_sub(required_deposit_value)

    def remaining_borrow_value(self) -> Decimal:
        """Maximum liquidity value that can still be borrowed."""
        return self.allowed_borrow_value.try_sub(self.borrowed_value)

    def max_liquidation_amount(self, liquidity: ObligationLiquidity) -> Decimal:
        """Maximum amount of ``liquidity`` that one liquidation may repay."""
        max_liquidation_value = min(
            self.borrowed_value.try_mul(Rate.from_percent(LIQUIDATION_CLOSE_FACTOR)),
            liquidity.market_value,
        )
        max_liquidation_pct = max_liquidation_value.try_div(liquidity.market_value)
        return liquidity.borrowed_amount_wads.try_mul(max_liquidation_pct)

    def _reserve_count_check(self) -> None:
        if len(self.deposits) + len(self.borrows) >= MAX_OBLIGATION_RESERVES:
            raise ObligationReserveLimitError(
                f"Obligation cannot have more than {MAX_OBLIGATION_RESERVES} "
                "deposits and borrows combined"
            )

    def _collateral_index(self, deposit_reserve: bytes) -> int | None:
        key = bytes(deposit_reserve)
        return next(
            (i for i, c in enumerate(self.deposits) if c.deposit_reserve == key), None
        )

    def _liquidity_index(self, borrow_reserve: bytes) -> int | None:
        key = bytes(borrow_reserve)
        return next(
            (i for i, l in enumerate(self.borrows) if l.borrow_reserve == key), None
        )

    def find_collateral_in_deposits(self, deposit_reserve) -> tuple[ObligationCollateral, int]:
        """Return the collateral for ``deposit_reserve`` and its index."""
        if not self.deposits:
            raise ObligationDepositsEmptyError()
        index = self._collateral_index(deposit_reserve)
        if index is None:
            raise InvalidObligationCollateralError()
        return self.deposits[index], index

    def find_or_add_collateral_to_deposits(self, deposit_reserve) -> ObligationCollateral:
        """Return the collateral for ``deposit_reserve``, adding it if absent."""
        index = self._collateral_index(deposit_reserve)
        if index is not None:
            return self.deposits[index]
        self._reserve_count_check()
        collateral = ObligationCollateral.create(deposit_reserve)
        self.deposits.append(collateral)
        return collateral

    def find_liquidity_in_borrows(self, borrow_reserve) -> tuple[ObligationLiquidity, int]:
        """Return the liquidity for ``borrow_reserve`` and its index."""
        if not self.borrows:
            raise ObligationBorrowsEmptyError()
        index = self._liquidity_index(borrow_reserve)
        if index is None:
            raise InvalidObligationLiquidityError()
        return self.borrows[index], index

    def find_or_add_liquidity_to_borrows(
        self, borrow_reserve, cumulative_borrow_rate_wads
    ) -> ObligationLiquidity:
        """Return the liquidity for ``borrow_reserve``, adding it if absent."""
        index = self._liquidity_index(borrow_reserve)
        if index is not None:
            return self.borrows[index]
        self._reserve_count_check()
        liquidity = ObligationLiquidity.create(borrow_reserve, cumulative_borrow_rate_wads)
        self.borrows.append(liquidity)
        return liquidity

    def pack(self) -> bytes:
        """Serialize to the fixed 1300-byte account layout."""
        if len(self.deposits) > 0xFF or len(self.borrows) > 0xFF:
            raise ValueError("too many deposits or borrows to pack")
        header = _HEADER.pack(
            self.version,
            self.last_update.slot,
            pack_bool(self.last_update.stale),
            self.lending_market,
            self.owner,
            pack_decimal(self.deposited_value),
            pack_decimal(self.borrowed_value),
            pack_decimal(self.allowed_borrow_value),
            pack_decimal(self.unhealthy_borrow_value),
            len(self.deposits),
            len(self.borrows),
        )
        items = [
            _COLLATERAL.pack(c.deposit_reserve, c.deposited_amount, pack_decimal(c.market_value))
            for c in self.deposits
        ]
        items.extend(
            _LIQUIDITY.pack(
                l.borrow_reserve,
                pack_decimal(l.cumulative_borrow_rate_wads),
                pack_decimal(l.borrowed_amount_wads),
                pack_decimal(l.market_value),
            )
            for l in self.borrows
        )
        data = b"".join(items)
        if len(data) > _DATA_LEN:
            raise ValueError("deposits and borrows do not fit in the obligation layout")
        return header + data.ljust(_DATA_LEN, b"\x00")

    @classmethod
    def unpack(cls, data: bytes) -> Obligation:
        """Deserialize from the fixed 1300-byte account layout."""
        data = bytes(data)
        if len(data) != cls.LEN:
            raise InvalidAccountDataError(
                f"Obligation data must be {cls.LEN} bytes, got {len(data)}"
            )
        (
            version,
            slot,
            stale,
            lending_market,
            owner,
            deposited_value,
            borrowed_value,
            allowed_borrow_value,
            unhealthy_borrow_value,
            deposits_len,
            borrows_len,
        ) = _HEADER.unpack_from(data)
        if version > PROGRAM_VERSION:
            raise InvalidAccountDataError(
                "Obligation version does not match lending program version"
            )
        needed = deposits_len * OBLIGATION_COLLATERAL_LEN + borrows_len * OBLIGATION_LIQUIDITY_LEN
        if needed > _DATA_LEN:
            raise InvalidAccountDataError("Obligation deposits and borrows exceed account size")

        offset = _HEADER.size
        deposits = []
        for _ in range(deposits_len):
            reserve, amount, market_value = _COLLATERAL.unpack_from(data, offset)
            deposits.append(
                ObligationCollateral(
                    deposit_reserve=reserve,
                    deposited_amount=amount,
                    market_value=unpack_decimal(market_value),
                )
            )
            offset += OBLIGATION_COLLATERAL_LEN
        borrows = []
        for _ in range(borrows_len):
            reserve, rate, borrowed, market_value = _LIQUIDITY.unpack_from(data, offset)
            borrows.append(
                ObligationLiquidity(
                    borrow_reserve=reserve,
                    cumulative_borrow_rate_wads=unpack_decimal(rate),
                    borrowed_amount_wads=unpack_decimal(borrowed),
                    market_value=unpack_decimal(market_value),
                )
            )
            offset += OBLIGATION_LIQUIDITY_LEN

        return cls(
            version=version,
            last_update=LastUpdate(slot=slot, stale=unpack_bool(stale)),
            lending_market=lending_market,
            owner=owner,
            deposits=deposits,
            borrows=borrows,
            deposited_value=unpack_decimal(deposited_value),
            borrowed_value=unpack_decimal(borrowed_value),
            allowed_borrow_value=unpack_decimal(allowed_borrow_value),
            unhealthy_borrow_value=unpack_decimal(unhealthy_borrow_value),
        )