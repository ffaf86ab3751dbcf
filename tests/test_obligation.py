import pytest
from hypothesis import given
from hypothesis import strategies as st

from lendstate.errors import (
    InvalidAccountDataError,
    InvalidObligationCollateralError,
    InvalidObligationLiquidityError,
    MathOverflowError,
    ObligationBorrowsEmptyError,
    ObligationDepositsEmptyError,
    ObligationReserveLimitError,
)
from lendstate.fixed import U64_MAX, WAD, Decimal
from lendstate.last_update import LastUpdate
from lendstate.obligation import Obligation
from lendstate.obligation_items import ObligationCollateral, ObligationLiquidity

MAX_BORROWED = U64_MAX * WAD


def key(n):
    return bytes([n]) * 32


@st.composite
def repay_partial_amounts(draw):
    amount = draw(st.integers(min_value=1, max_value=U64_MAX))
    repay_amount = WAD * amount
    borrowed_amount = draw(st.integers(min_value=repay_amount + 1, max_value=MAX_BORROWED))
    return repay_amount, borrowed_amount


@given(st.integers(min_value=1, max_value=U64_MAX))
def test_repay_full(amount):
    repay_amount = WAD * amount
    borrowed = Decimal.from_scaled_val(repay_amount)
    obligation = Obligation(borrows=[ObligationLiquidity(borrowed_amount_wads=borrowed)])
    obligation.repay(Decimal.from_scaled_val(repay_amount), 0)
    assert len(obligation.borrows) == 0


def test_create_is_initialized_and_stale():
    obligation = Obligation.create(7, key(1), key(2), [], [])
    assert obligation.version == 1
    assert obligation.is_initialized()
    assert obligation.last_update.slot == 7
    assert obligation.last_update.stale is True
    assert not Obligation().is_initialized()


def test_withdraw_partial_and_full():
    obligation = Obligation(deposits=[ObligationCollateral(deposit_reserve=key(3), deposited_amount=10)])
    obligation.withdraw(4, 0)
    assert obligation.deposits[0].deposited_amount == 6
    obligation.withdraw(6, 0)
    assert obligation.deposits == []


def test_withdraw_too_much_overflows():
    obligation = Obligation(deposits=[ObligationCollateral(deposited_amount=5)])
    with pytest.raises(MathOverflowError):
        obligation.withdraw(6, 0)


def test_loan_to_value():
    obligation = Obligation(deposited_value=Decimal.from_int(200), borrowed_value=Decimal.from_int(50))
    assert obligation.loan_to_value() == Decimal.from_percent(25)


def test_loan_to_value_zero_deposits():
    with pytest.raises(MathOverflowError):
        Obligation(borrowed_value=Decimal.one()).loan_to_value()


def test_max_withdraw_value():
    obligation = Obligation(
        deposited_value=Decimal.from_int(100),
        borrowed_value=Decimal.from_int(50),
        allowed_borrow_value=Decimal.from_int(80),
    )
    assert obligation.max_withdraw_value() == Decimal.from_scaled_val(375 * WAD // 10)


def test_max_withdraw_value_zero_when_undercollateralized():
    obligation = Obligation(
        deposited_value=Decimal.from_int(100),
        borrowed_value=Decimal.from_int(90),
        allowed_borrow_value=Decimal.from_int(80),
    )
    assert obligation.max_withdraw_value() == Decimal.zero()


def test_remaining_borrow_value():
    obligation = Obligation(borrowed_value=Decimal.from_int(30), allowed_borrow_value=Decimal.from_int(80))
    assert obligation.remaining_borrow_value() == Decimal.from_int(50)
    over = Obligation(borrowed_value=Decimal.from_int(90), allowed_borrow_value=Decimal.from_int(80))
    with pytest.raises(MathOverflowError):
        over.remaining_borrow_value()


def test_max_liquidation_amount():
    obligation = Obligation(borrowed_value=Decimal.from_int(100))
    liquidity = ObligationLiquidity(
        borrowed_amount_wads=Decimal.from_int(10), market_value=Decimal.from_int(100)
    )
    assert obligation.max_liquidation_amount(liquidity) == Decimal.from_int(5)


def test_max_liquidation_amount_capped_by_market_value():
    obligation = Obligation(borrowed_value=Decimal.from_int(100))
    liquidity = ObligationLiquidity(
        borrowed_amount_wads=Decimal.from_int(10), market_value=Decimal.from_int(20)
    )
    assert obligation.max_liquidation_amount(liquidity) == Decimal.from_int(10)


def test_find_collateral_errors():
    obligation = Obligation()
    with pytest.raises(ObligationDepositsEmptyError):
        obligation.find_collateral_in_deposits(key(1))
    obligation.find_or_add_collateral_to_deposits(key(1))
    with pytest.raises(InvalidObligationCollateralError):
        obligation.find_collateral_in_deposits(key(2))


def test_find_or_add_collateral_reuses_existing():
    obligation = Obligation()
    first = obligation.find_or_add_collateral_to_deposits(key(1))
    first.deposit(9)
    second = obligation.find_or_add_collateral_to_deposits(key(1))
    assert second.deposited_amount == 9
    found, index = obligation.find_collateral_in_deposits(key(1))
    assert (found.deposited_amount, index) == (9, 0)
    assert len(obligation.deposits) == 1


def test_find_liquidity_errors_and_lookup():
    obligation = Obligation()
    with pytest.raises(ObligationBorrowsEmptyError):
        obligation.find_liquidity_in_borrows(key(1))
    obligation.find_or_add_liquidity_to_borrows(key(1), Decimal.one())
    obligation.find_or_add_liquidity_to_borrows(key(2), Decimal.from_int(2))
    found, index = obligation.find_liquidity_in_borrows(key(2))
    assert index == 1
    assert found.cumulative_borrow_rate_wads == Decimal.from_int(2)
    with pytest.raises(InvalidObligationLiquidityError):
        obligation.find_liquidity_in_borrows(key(3))


def test_reserve_limit():
    obligation = Obligation()
    for n in range(5):
        obligation.find_or_add_collateral_to_deposits(key(n))
    for n in range(5):
        obligation.find_or_add_liquidity_to_borrows(key(100 + n), Decimal.one())
    with pytest.raises(ObligationReserveLimitError):
        obligation.find_or_add_collateral_to_deposits(key(50))
    with pytest.raises(ObligationReserveLimitError):
        obligation.find_or_add_liquidity_to_borrows(key(150), Decimal.one())
    assert obligation.find_or_add_collateral_to_deposits(key(0)).deposit_reserve == key(0)


def _sample():
    return Obligation(
        version=1,
        last_update=LastUpdate(slot=42, stale=True),
        lending_market=key(1),
        owner=key(2),
        deposits=[ObligationCollateral(key(3), 1000, Decimal.from_int(5))],
        borrows=[
            ObligationLiquidity(key(4), Decimal.one(), Decimal.from_int(7), Decimal.from_int(8)),
            ObligationLiquidity(key(5), Decimal.from_int(2), Decimal.from_percent(50), Decimal.zero()),
        ],
        deposited_value=Decimal.from_int(100),
        borrowed_value=Decimal.from_int(40),
        allowed_borrow_value=Decimal.from_int(75),
        unhealthy_borrow_value=Decimal.from_int(80),
    )


def test_pack_unpack_round_trip():
    obligation = _sample()
    packed = obligation.pack()
    assert len(packed) == 1300
    restored = Obligation.unpack(packed)
    assert restored == obligation
    assert restored.last_update.stale is True
    assert restored.borrows[1].borrowed_amount_wads == Decimal.from_percent(50)


def test_pack_layout_fields():
    packed = _sample().pack()
    assert packed[0] == 1
    assert int.from_bytes(packed[1:9], "little") == 42
    assert packed[9] == 1
    assert packed[10:42] == key(1)
    assert packed[202] == 1
    assert packed[203] == 2
    assert packed[204:236] == key(3)


def test_unpack_rejects_newer_version():
    packed = bytearray(_sample().pack())
    packed[0] = 2
    with pytest.raises(InvalidAccountDataError):
        Obligation.unpack(bytes(packed))


def test_unpack_rejects_bad_bool():
    packed = bytearray(_sample().pack())
    packed[9] = 2
    with pytest.raises(InvalidAccountDataError):
        Obligation.unpack(bytes(packed))


def test_unpack_rejects_wrong_length():
    with pytest.raises(InvalidAccountDataError):
        Obligation.unpack(bytes(100))


def test_unpack_zeroed_is_uninitialized_default():
    restored = Obligation.unpack(bytes(1300))
    assert restored == Obligation()
    assert not restored.is_initialized()


def test_pack_too_many_borrows():
    obligation = Obligation(borrows=[ObligationLiquidity(key(n)) for n in range(10)])
    with pytest.raises(ValueError):
        obligation.pack()