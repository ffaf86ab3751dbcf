import pytest

from lendstate.errors import InvalidAccountDataError
from lendstate.fixed import PROGRAM_VERSION
from lendstate.lending_market import LendingMarket

OWNER = bytes([1]) * 32
QUOTE = b"USD" + bytes(29)
TOKEN_PROGRAM = bytes([2]) * 32
PYTH_PROGRAM = bytes([3]) * 32
SWITCHBOARD_PROGRAM = bytes([4]) * 32


def _market():
    return LendingMarket.create(
        254, OWNER, QUOTE, TOKEN_PROGRAM, PYTH_PROGRAM, SWITCHBOARD_PROGRAM
    )


def test_create_sets_version():
    market = _market()
    assert market.version == PROGRAM_VERSION
    assert market.is_initialized() is True
    assert market.owner == OWNER
    assert market.quote_currency == QUOTE


def test_default_is_uninitialized():
    assert LendingMarket().is_initialized() is False


def test_pack_length():
    assert len(_market().pack()) == LendingMarket.LEN == 290


def test_pack_layout():
    data = _market().pack()
    assert data[0] == PROGRAM_VERSION
    assert data[1] == 254
    assert data[2:34] == OWNER
    assert data[34:66] == QUOTE
    assert data[66:98] == TOKEN_PROGRAM
    assert data[98:130] == PYTH_PROGRAM
    assert data[130:162] == SWITCHBOARD_PROGRAM
    assert data[162:] == bytes(128)


def test_round_trip():
    market = _market()
    assert LendingMarket.unpack(market.pack()) == market


def test_default_round_trip():
    market = LendingMarket()
    assert LendingMarket.unpack(market.pack()) == market


def test_unpack_newer_version_rejected():
    data = bytearray(_market().pack())
    data[0] = PROGRAM_VERSION + 1
    with pytest.raises(InvalidAccountDataError):
        LendingMarket.unpack(bytes(data))


def test_unpack_wrong_length_rejected():
    with pytest.raises(InvalidAccountDataError):
        LendingMarket.unpack(_market().pack()[:-1])


def test_invalid_pubkey_length():
    with pytest.raises(ValueError):
        LendingMarket.create(
            1, bytes(31), QUOTE, TOKEN_PROGRAM, PYTH_PROGRAM, SWITCHBOARD_PROGRAM
        )


def test_invalid_bump_seed():
    with pytest.raises(ValueError):
        LendingMarket.create(
            256, OWNER, QUOTE, TOKEN_PROGRAM, PYTH_PROGRAM, SWITCHBOARD_PROGRAM
        )