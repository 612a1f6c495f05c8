"""
Unit tests for the data models.

Tests follow the Given/When/Then pattern for clarity.
"""

from decimal import Decimal

from scripts.lib.models import (
    BALANCE_CSV_COLUMNS,
    ERG_TOKEN_ID,
    STANDARD_EIP4,
    STANDARD_NATIVE,
    AssetBalance,
    MarketQuote,
    to_decimal,
)


class TestAssetBalance:
    """Tests for the AssetBalance model."""

    def test_to_csv_row_includes_all_columns(self):
        """
        Given an AssetBalance with all fields populated
        When converting to CSV row
        Then all columns should be present in order
        """
        # Given
        balance = AssetBalance(
            token_id=ERG_TOKEN_ID,
            name="ERG",
            decimals=9,
            standard=STANDARD_NATIVE,
            confirmed_amount="1000000000",
            unconfirmed_amount="5",
            address="9fAddr",
        )

        # When
        row = balance.to_csv_row()

        # Then
        assert len(row) == len(BALANCE_CSV_COLUMNS)
        assert row == ["9fAddr", ERG_TOKEN_ID, "ERG", "9", "Native", "1000000000", "5"]

    def test_to_csv_row_handles_none_values(self):
        """
        Given a token balance without name, decimals or unconfirmed amount
        When converting to CSV row
        Then None should become empty string, zero decimals should stay
        """
        # Given
        balance = AssetBalance(
            token_id="abc",
            name=None,
            decimals=None,
            standard=STANDARD_EIP4,
            confirmed_amount="0",
            address="9fAddr",
        )
        zero_decimals = AssetBalance("abc", "T", 0, STANDARD_EIP4, "1", "9fAddr")

        # When / Then
        assert balance.to_csv_row() == ["9fAddr", "abc", "", "", "EIP-004", "0", ""]
        assert zero_decimals.to_csv_row()[3] == "0"

    def test_unconfirmed_amount_defaults_to_none(self):
        balance = AssetBalance("abc", "T", 2, STANDARD_EIP4, "1", "9fAddr")

        assert balance.unconfirmed_amount is None


class TestMarketQuote:
    """Tests for parsing market feed entries."""

    def test_from_api_reads_nested_volume(self):
        """
        Given a raw market entry with baseVolume as an object
        When parsing
        Then prices and volumes should be exact decimals
        """
        # Given
        raw = {
            "id": "pool",
            "baseId": ERG_TOKEN_ID,
            "baseSymbol": "ERG",
            "quoteId": "tok",
            "quoteSymbol": "SigUSD",
            "lastPrice": 0.1,
            "baseVolume": {"value": 123456789, "window": {}},
        }

        # When
        quote = MarketQuote.from_api(raw)

        # Then
        assert quote.base_id == ERG_TOKEN_ID
        assert quote.quote_id == "tok"
        assert quote.last_price == Decimal("0.1")
        assert quote.base_volume == Decimal(123456789)

    def test_from_api_accepts_bare_volume_and_missing_fields(self):
        quote = MarketQuote.from_api({"quoteId": "tok", "baseVolume": "42"})

        assert quote.base_id == ""
        assert quote.base_volume == Decimal(42)
        assert quote.last_price == Decimal(0)

    def test_to_decimal_defaults_to_zero(self):
        assert to_decimal(None) == 0
        assert to_decimal("garbage") == 0
        assert to_decimal("12.5") == Decimal("12.5")

    def test_to_decimal_treats_non_finite_values_as_zero(self):
        """
        Given NaN and infinite values, as strings or floats
        When parsing
        Then each should become zero so comparisons never raise
        """
        for value in ("NaN", "-Infinity", "Infinity", "sNaN", float("nan"), float("inf")):
            result = to_decimal(value)

            assert result == 0
            assert result.is_finite()
