"""Valuation composition: zero balances, sentinel errors, USD rendering."""

from unittest.mock import patch

import pytest

from balance import format_units
from errors import MalformedResponse, TransportError
from models import BALANCE_ERROR_MARKER, Identity, PriceQuote, TokenBalance
from summary import CANNOT_CALCULATE, ValuationComposer

ADDRESS = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


@pytest.fixture
def composer():
    return ValuationComposer("$GOLDIES", "Polygon")


def _balance(formatted):
    return TokenBalance(raw=None, decimals=None, formatted=formatted)


class TestZeroBalance:
    @pytest.mark.parametrize("formatted", ["0", "0.00", "0.0", "000"])
    def test_no_tokens_message(self, composer, formatted):
        valuation = composer.compose(_balance(formatted), PriceQuote(usd=0.05), ADDRESS)
        assert valuation.balance_display == "You don't have any $GOLDIES tokens on Polygon yet!"
        assert valuation.usd_display is None

    def test_skips_usd_computation(self, composer):
        with patch.object(ValuationComposer, "format_usd") as format_usd:
            composer.compose(_balance("0"), PriceQuote(usd=0.05), ADDRESS)
        format_usd.assert_not_called()

    def test_zero_even_without_price(self, composer):
        valuation = composer.compose(_balance("0"), TransportError("HTTP error! status: 500"), ADDRESS)
        assert valuation.usd_display is None


class TestErrorBalance:
    def test_marker_passes_through(self, composer):
        valuation = composer.compose(TokenBalance.failed(), PriceQuote(usd=2.0), ADDRESS)
        assert valuation.balance_display == BALANCE_ERROR_MARKER
        assert valuation.usd_display == CANNOT_CALCULATE

    def test_marker_with_price_failure(self, composer):
        valuation = composer.compose(TokenBalance.failed(), MalformedResponse("bad"), ADDRESS)
        assert valuation.balance_display == BALANCE_ERROR_MARKER
        assert valuation.usd_display == CANNOT_CALCULATE


class TestUsdValue:
    def test_two_fraction_digits(self, composer):
        valuation = composer.compose(_balance("100"), PriceQuote(usd=0.05), ADDRESS)
        assert valuation.usd_display == "$5.00"
        assert valuation.balance_display == "100 $GOLDIES on Polygon"

    def test_thousands_separators(self, composer):
        valuation = composer.compose(_balance("1234567.891"), PriceQuote(usd=1.0), ADDRESS)
        assert valuation.balance_display == "1,234,567.891 $GOLDIES on Polygon"
        assert valuation.usd_display == "$1,234,567.89"

    def test_rounds_half_up(self, composer):
        valuation = composer.compose(_balance("1"), PriceQuote(usd=0.005), ADDRESS)
        assert valuation.usd_display == "$0.01"

    def test_balance_display_limited_to_three_decimals(self, composer):
        valuation = composer.compose(_balance("1234.56789"), PriceQuote(usd=1.0), ADDRESS)
        assert valuation.balance_display == "1,234.568 $GOLDIES on Polygon"

    def test_keeps_address_price_and_identity(self, composer):
        quote = PriceQuote(usd=2.0)
        identity = Identity.social_id(12345)
        valuation = composer.compose(_balance("0.5"), quote, ADDRESS, identity)
        assert valuation.address == ADDRESS
        assert valuation.price is quote
        assert valuation.identity == identity


class TestPriceFailure:
    def test_balance_still_shown(self, composer):
        error = TransportError("HTTP error! status: 502")
        valuation = composer.compose(_balance("1234.5"), error, ADDRESS)
        assert valuation.balance_display == "1,234.5 $GOLDIES on Polygon"
        assert valuation.usd_display == "Error fetching USD value: HTTP error! status: 502"
        assert valuation.price is None

    def test_describes_malformed_response(self, composer):
        error = MalformedResponse("Invalid price data received from DEX Screener")
        valuation = composer.compose(_balance("10"), error, ADDRESS)
        assert "Invalid price data received from DEX Screener" in valuation.usd_display


def test_unparseable_balance_is_not_valued(composer):
    valuation = composer.compose(_balance("lots"), PriceQuote(usd=1.0), ADDRESS)
    assert valuation.balance_display == "lots"
    assert valuation.usd_display == CANNOT_CALCULATE


class TestLargeBalances:
    def test_beyond_default_decimal_precision(self, composer):
        valuation = composer.compose(_balance("1" + "0" * 27), PriceQuote(usd=0.05), ADDRESS)
        assert valuation.balance_display == "1" + ",000" * 9 + " $GOLDIES on Polygon"
        assert valuation.usd_display == "$50" + ",000" * 8 + ".00"

    def test_max_uint256_with_fraction(self, composer):
        formatted = format_units(2 ** 256 - 1, 18)
        valuation = composer.compose(_balance(formatted), PriceQuote(usd=1234.56789), ADDRESS)
        assert valuation.balance_display.endswith(" $GOLDIES on Polygon")
        assert valuation.usd_display.startswith("$")
        assert valuation.usd_display[-3] == "."

    def test_non_finite_balance_not_valued(self, composer):
        valuation = composer.compose(_balance("NaN"), PriceQuote(usd=1.0), ADDRESS)
        assert valuation.usd_display == CANNOT_CALCULATE

    def test_non_finite_price_not_valued(self, composer):
        valuation = composer.compose(_balance("10"), PriceQuote(usd=float("inf")), ADDRESS)
        assert valuation.balance_display == "10 $GOLDIES on Polygon"
        assert valuation.usd_display == CANNOT_CALCULATE
