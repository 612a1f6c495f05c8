"""
Data models for Ergo explorer aggregation.

This module defines the normalized AssetBalance and MarketQuote models
and the AddressResponse wrapper that keeps raw API results attributable
to the key that produced them.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Generic, List, Optional, TypeVar


T = TypeVar("T")

# Native asset
ERG_TOKEN_ID = "0" * 64
ERG_DECIMALS = 9
ERG_NAME = "ERG"

# Asset standard classification
STANDARD_NATIVE = "Native"
STANDARD_EIP4 = "EIP-004"  # Same string the explorer reports as tokenType
STANDARD_UNSTANDARDIZED = "Unstandardized"

# Key used for the native-denominated price in rate tables
NATIVE_RATE_KEY = "erg"

# CSV column order for balance output
BALANCE_CSV_COLUMNS = [
    "address",
    "token_id",
    "name",
    "decimals",
    "standard",
    "confirmed_amount",
    "unconfirmed_amount",
]

RATE_CSV_COLUMNS = ["token_id", "erg_rate"]

PriceRates = Dict[str, Dict[str, float]]


@dataclass
class AddressResponse(Generic[T]):
    """Raw API payload paired with the address (or box/token id) it was fetched for."""

    address: str
    data: T


@dataclass
class AssetBalance:
    """
    Flattened balance of one token held by one address.

    Amounts are integer strings in the token's smallest unit.
    """

    token_id: str
    name: Optional[str]
    decimals: Optional[int]
    standard: str  # Native, EIP-004 or Unstandardized
    confirmed_amount: str
    address: str
    unconfirmed_amount: Optional[str] = None  # Only set for the native asset

    def to_csv_row(self) -> List[str]:
        """Convert balance to a CSV row (list of strings)."""
        return [
            self.address,
            self.token_id,
            self.name or "",
            "" if self.decimals is None else str(self.decimals),
            self.standard,
            self.confirmed_amount,
            self.unconfirmed_amount or "",
        ]


def to_decimal(value: Any) -> Decimal:
    """
    Parse a JSON number or numeric string.

    Missing, unparsable and non-finite values (NaN, Infinity) become zero.
    """
    if value is None:
        return Decimal(0)
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return Decimal(0)
    return result if result.is_finite() else Decimal(0)


@dataclass
class MarketQuote:
    """One market pair from the DEX feed."""

    base_id: str
    quote_id: str
    last_price: Decimal
    base_volume: Decimal

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "MarketQuote":
        """
        Build a quote from a raw market feed entry.

        The feed reports baseVolume as {"value": ..., "window": ...};
        a bare number is accepted too.
        """
        volume = raw.get("baseVolume")
        if isinstance(volume, dict):
            volume = volume.get("value")

        return cls(
            base_id=raw.get("baseId", ""),
            quote_id=raw.get("quoteId", ""),
            last_price=to_decimal(raw.get("lastPrice")),
            base_volume=to_decimal(volume),
        )
