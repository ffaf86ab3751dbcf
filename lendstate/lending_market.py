"""Lending market account state and its fixed binary layout."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

from .errors import InvalidAccountDataError
from .fixed import PROGRAM_VERSION, PUBKEY_BYTES, UNINITIALIZED_VERSION

_LAYOUT = struct.Struct("<BB32s32s32s32s32s128x")

_KEY_FIELDS = (
    "owner",
    "quote_currency",
    "token_program_id",
    "oracle_program_id",
    "switchboard_oracle_program_id",
)


@dataclass
class LendingMarket:
    """A lending market: its owner, quote currency and program ids.

    The quote currency is 32 bytes, e.g. ``b"USD"`` null padded, or a token
    mint public key.
    """

    LEN: ClassVar[int] = 290

    version: int = 0
    bump_seed: int = 0
    owner: bytes = bytes(PUBKEY_BYTES)
    quote_currency: bytes = bytes(PUBKEY_BYTES)
    token_program_id: bytes = bytes(PUBKEY_BYTES)
    oracle_program_id: bytes = bytes(PUBKEY_BYTES)
    switchboard_oracle_program_id: bytes = bytes(PUBKEY_BYTES)

    def __post_init__(self):
        for name in ("version", "bump_seed"):
            if not 0 <= getattr(self, name) <= 0xFF:
                raise ValueError(f"{name} must fit in one byte")
        for name in _KEY_FIELDS:
            value = bytes(getattr(self, name))
            if len(value) != PUBKEY_BYTES:
                raise ValueError(f"{name} must be {PUBKEY_BYTES} bytes")
            setattr(self, name, value)

    @classmethod
    def create(
        cls,
        bump_seed,
        owner,
        quote_currency,
        token_program_id,
        oracle_program_id,
        switchboard_oracle_program_id,
    ) -> LendingMarket:
        """Create an initialized lending market at the current version."""
        return cls(
            version=PROGRAM_VERSION,
            bump_seed=bump_seed,
            owner=owner,
            quote_currency=quote_currency,
            token_program_id=token_program_id,
            oracle_program_id=oracle_program_id,
            switchboard_oracle_program_id=switchboard_oracle_program_id,
        )

    def is_initialized(self) -> bool:
        return self.version != UNINITIALIZED_VERSION

    def pack(self) -> bytes:
        return _LAYOUT.pack(
            self.version,
            self.bump_seed,
            *(getattr(self, name) for name in _KEY_FIELDS),
        )

    @classmethod
    def unpack(cls, data: bytes) -> LendingMarket:
        if len(data) != cls.LEN:
            raise InvalidAccountDataError(
                f"Lending market data must be {cls.LEN} bytes, got {len(data)}"
            )
        version, bump_seed, *keys = _LAYOUT.unpack(bytes(data))
        if version > PROGRAM_VERSION:
            raise InvalidAccountDataError(
                "Lending market version does not match lending program version"
            )
        return cls(version, bump_seed, *keys)