"""
Pure aggregation logic over raw explorer and market feed responses.

Nothing here performs I/O: the service fetches, these functions merge
and normalize. Calling any of them twice on the same input yields the
same output.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    ERG_DECIMALS,
    ERG_NAME,
    ERG_TOKEN_ID,
    NATIVE_RATE_KEY,
    STANDARD_EIP4,
    STANDARD_NATIVE,
    STANDARD_UNSTANDARDIZED,
    AddressResponse,
    AssetBalance,
    MarketQuote,
    PriceRates,
    to_decimal,
)

RATES_WINDOW_DAYS = 30


def amount_to_string(amount: Any) -> str:
    """Stringify a raw amount, defaulting to "0" when it is missing."""
    if amount is None:
        return "0"
    return str(amount) or "0"


def _section(balance: Dict[str, Any], name: str) -> Dict[str, Any]:
    return balance.get(name) or {}


def is_empty_balance(balance: Dict[str, Any]) -> bool:
    """
    Check whether a raw balance holds nothing at all.

    Both native quantities must be zero (missing counts as zero) and both
    token lists empty.
    """
    confirmed = _section(balance, "confirmed")
    unconfirmed = _section(balance, "unconfirmed")

    return (
        to_decimal(confirmed.get("nanoErgs")).is_zero()
        and to_decimal(unconfirmed.get("nanoErgs")).is_zero()
        and not confirmed.get("tokens")
        and not unconfirmed.get("tokens")
    )


def classify_token(token_type: Optional[str]) -> str:
    if token_type == STANDARD_EIP4:
        return STANDARD_EIP4
    return STANDARD_UNSTANDARDIZED


def parse_address_balance(response: AddressResponse[Dict[str, Any]]) -> List[AssetBalance]:
    """
    Flatten one address balance into AssetBalance records.

    Confirmed tokens come first, followed by a single native ERG record.
    Empty balances produce no records.
    """
    if not response.data or is_empty_balance(response.data):
        return []

    confirmed = _section(response.data, "confirmed")
    unconfirmed = _section(response.data, "unconfirmed")

    assets: List[AssetBalance] = [
        AssetBalance(
            token_id=token.get("tokenId", ""),
            name=token.get("name"),
            decimals=token.get("decimals"),
            standard=classify_token(token.get("tokenType")),
            confirmed_amount=amount_to_string(token.get("amount")),
            address=response.address,
        )
        for token in confirmed.get("tokens") or []
    ]

    # Absent unconfirmed amount stays None, it is not defaulted to "0"
    unconfirmed_nano = unconfirmed.get("nanoErgs")
    assets.append(
        AssetBalance(
            token_id=ERG_TOKEN_ID,
            name=ERG_NAME,
            decimals=ERG_DECIMALS,
            standard=STANDARD_NATIVE,
            confirmed_amount=amount_to_string(confirmed.get("nanoErgs")),
            unconfirmed_amount=None if unconfirmed_nano is None else str(unconfirmed_nano),
            address=response.address,
        )
    )

    return assets


def parse_addresses_balance(
    responses: Iterable[AddressResponse[Dict[str, Any]]],
) -> List[AssetBalance]:
    """
    Merge raw balances of many addresses into one flat list.

    Args:
        responses: Balance responses tagged with their address, in input order

    Returns:
        AssetBalance records, grouped by address in input order
    """
    assets: List[AssetBalance] = []
    for response in responses:
        assets.extend(parse_address_balance(response))
    return assets


def filter_used_addresses(
    addresses: Sequence[str],
    responses: Iterable[AddressResponse[Dict[str, Any]]],
) -> List[str]:
    """
    Keep the addresses whose transaction history is not empty.

    Order follows `addresses`, not the order of `responses`. Duplicate
    addresses pass or fail together.
    """
    used = {
        response.address
        for response in responses
        if response.data and (response.data.get("total") or 0) > 0
    }
    return [address for address in addresses if address in used]


def utc_timestamp_ms(moment: datetime) -> int:
    """
    Epoch milliseconds of a moment, truncated to whole seconds.

    Naive datetimes are taken as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc).replace(microsecond=0)
    return int(moment.timestamp()) * 1000


def token_rates_window(now: Optional[datetime] = None) -> Tuple[int, int]:
    """Return the (from, to) millisecond window of the trailing 30 days."""
    if now is None:
        now = datetime.now(timezone.utc)
    start = now - timedelta(days=RATES_WINDOW_DAYS)
    return utc_timestamp_ms(start), utc_timestamp_ms(now)


def deduplicate_quotes(quotes: Iterable[MarketQuote]) -> List[MarketQuote]:
    """
    Drop quotes outbid on volume by an earlier quote for the same token.

    Quotes are walked in order. A quote is dropped when an already kept
    quote has the same quote_id and a strictly larger base volume. Equal
    volumes keep both, and a later quote with a larger volume is kept
    next to the earlier one.
    """
    kept: List[MarketQuote] = []
    for quote in quotes:
        outbid = any(
            other.quote_id == quote.quote_id and quote.base_volume < other.base_volume
            for other in kept
        )
        if not outbid:
            kept.append(quote)
    return kept


def build_price_rates(quotes: Iterable[MarketQuote]) -> PriceRates:
    """
    Turn ERG-based market quotes into an ERG-denominated rate table.

    Returns:
        {quote_id: {"erg": 1 / last_price}}. When several quotes survive
        deduplication for one token the last one wins.
    """
    native_quotes = [q for q in quotes if q.base_id == ERG_TOKEN_ID]

    rates: PriceRates = {}
    for quote in deduplicate_quotes(native_quotes):
        if quote.last_price.is_zero():
            continue
        rates[quote.quote_id] = {NATIVE_RATE_KEY: float(Decimal(1) / quote.last_price)}
    return rates
