# lendstate

`lendstate` models the account state of a token lending market: markets,
reserves, obligations, fees and interest. Amounts use 18-decimal fixed-point
arithmetic with checked bounds, and each account type packs to and unpacks
from a fixed little-endian byte layout.

## Installation

```
pip install lendstate
```

To run the test suite:

```
pip install "lendstate[test]"
pytest
```

## Modules

- `lendstate.fixed`
  - `Decimal`: unsigned 192-bit fixed-point number (packs only if it fits in
    128 bits). Constructors `zero`, `one`, `from_int`, `from_percent`,
    `from_scaled_val`; checked `try_add`, `try_sub`, `try_mul`, `try_div`
    (by a `Decimal`, a `Rate` or an unsigned 64-bit integer); rounding with
    `try_floor_u64`, `try_ceil_u64`, `try_round_u64`; `to_scaled_val`,
    `to_rate`.
  - `Rate`: unsigned 128-bit fixed-point rate with `zero`, `one`,
    `from_percent`, `from_scaled_val`, `try_add`, `try_sub`, `try_mul`,
    `try_div`, `try_pow`, `try_round_u64`, `to_scaled_val`, `to_decimal`.
  - `pack_decimal` / `unpack_decimal` (16 bytes) and `pack_bool` /
    `unpack_bool` (1 byte).
  - Constants such as `WAD`, `PERCENT_SCALER`, `U64_MAX`, `PROGRAM_VERSION`,
    `UNINITIALIZED_VERSION`, `INITIAL_COLLATERAL_RATE` and `SLOTS_PER_YEAR`.
- `lendstate.errors`: `LendingError` and its subclasses, among them
  `MathOverflowError`, `InvalidAccountDataError`, `NegativeInterestRateError`,
  `ObligationReserveLimitError`, `InsufficientLiquidityError`,
  `BorrowTooLargeError` and `BorrowTooSmallError`.
- `lendstate.last_update.LastUpdate`: the slot of the last refresh and a stale
  flag. `create(slot)` starts stale; `update_slot`, `mark_stale`,
  `slots_elapsed` and `is_stale` manage it. Equality and ordering compare the
  slot only.
- `lendstate.lending_market.LendingMarket`: owner, quote currency and program
  ids, with `create`, `is_initialized`, and `pack` / `unpack` for the 290-byte
  layout.
- `lendstate.obligation_items`: `ObligationCollateral` (`deposit`,
  `withdraw`) and `ObligationLiquidity` (`borrow`, `repay`,
  `accrue_interest`).
- `lendstate.obligation.Obligation`: a borrower's deposits and borrows (at most
  `MAX_OBLIGATION_RESERVES` combined), with `loan_to_value`,
  `max_withdraw_value`, `remaining_borrow_value`, `max_liquidation_amount`,
  lookup helpers (`find_collateral_in_deposits`,
  `find_or_add_collateral_to_deposits`, `find_liquidity_in_borrows`,
  `find_or_add_liquidity_to_borrows`), and `pack` / `unpack` for the
  1300-byte layout.
- `lendstate.fees`: `FeeCalculation` (`EXCLUSIVE`, `INCLUSIVE`),
  `ReserveFees` (`calculate_borrow_fees`, `calculate_flash_loan_fees`) and
  `ReserveConfig`.
- `lendstate.reserve_liquidity`: `ReserveLiquidity`, `ReserveCollateral` and
  `CollateralExchangeRate`.
- `lendstate.reserve.Reserve`: `deposit_liquidity`, `redeem_collateral`,
  `current_borrow_rate`, `collateral_exchange_rate`, `accrue_interest`,
  `calculate_borrow`, `calculate_repay`, `calculate_liquidation`, and
  `pack` / `unpack` for the 619-byte layout. The calculations return
  `CalculateBorrowResult`, `CalculateRepayResult` and
  `CalculateLiquidationResult`. Passing `U64_MAX` as the amount to borrow,
  repay or liquidate means "as much as allowed".

## Example

```python
from lendstate.fees import FeeCalculation, ReserveFees
from lendstate.fixed import Decimal
from lendstate.reserve import Reserve

fees = ReserveFees(borrow_fee_wad=10_000_000_000_000_000, flash_loan_fee_wad=0,
                   host_fee_percentage=20)
total_fee, host_fee = fees.calculate_borrow_fees(Decimal.from_int(1000),
                                                 FeeCalculation.EXCLUSIVE)
assert (total_fee, host_fee) == (10, 2)

reserve = Reserve()
assert reserve.deposit_liquidity(100) == 100
assert Reserve.unpack(reserve.pack()) == reserve
```

## Errors

Arithmetic that overflows or underflows, and operations that break a market
rule, raise a subclass of `LendingError`. Account data that cannot be decoded
raises `InvalidAccountDataError`. Constructing a state object with a field
out of range (for example a public key that is not 32 bytes) raises
`ValueError` or `TypeError`.

## What it does not do

The package holds state and the maths on it only. It does not process
instructions, read oracle prices, sign or send transactions, or store
accounts anywhere; callers supply the bytes and prices and keep the results.