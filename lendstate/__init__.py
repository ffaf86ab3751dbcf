"""Lending market state: fixed-point math, reserves, obligations, fees and their byte layouts."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "fixed",
    "last_update",
    "lending_market",
    "obligation_items",
    "obligation",
    "fees",
    "reserve_liquidity",
    "reserve",
]