# valuation composer

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from errors import PriceFetchError
from models import Identity, PriceQuote, TokenBalance, Valuation

CANNOT_CALCULATE = "Unable to calculate USD value"


def _precision(*values: Decimal) -> int:
    """Digits needed to multiply and quantize *values* without rounding."""
    return sum(len(v.as_tuple().digits) + abs(v.as_tuple().exponent) for v in values) + 4


class ValuationComposer:
    def __init__(self, token_symbol: str = "$GOLDIES", chain_name: str = "Polygon"):
        self.token_symbol = token_symbol
        self.chain_name = chain_name

    @property
    def no_tokens_message(self) -> str:
        return f"You don't have any {self.token_symbol} tokens on {self.chain_name} yet!"

    def compose(
        self,
        balance: TokenBalance,
        price: PriceQuote | PriceFetchError,
        address: str = "",
        identity: Identity | None = None,
    ) -> Valuation:
        quote = price if isinstance(price, PriceQuote) else None

        if balance.is_error:
            return Valuation(address, balance.formatted, CANNOT_CALCULATE, quote, identity)

        amount = self.parse_amount(balance.formatted)
        if amount is None:
            return Valuation(address, balance.formatted, CANNOT_CALCULATE, quote, identity)

        if amount == 0:
            return Valuation(address, self.no_tokens_message, None, quote, identity)

        balance_display = f"{self.format_amount(amount)} {self.token_symbol} on {self.chain_name}"
        if quote is not None and not math.isfinite(quote.usd):
            usd_display = CANNOT_CALCULATE
        elif quote is not None:
            usd_display = self.format_usd(self.usd_value(amount, quote.usd))
        else:
            usd_display = f"Error fetching USD value: {self.describe(price)}"

        return Valuation(address, balance_display, usd_display, quote, identity)

    @staticmethod
    def parse_amount(formatted: str) -> Decimal | None:
        try:
            amount = Decimal(formatted)
        except (InvalidOperation, TypeError):
            return None
        return amount if amount.is_finite() else None

    @staticmethod
    def format_amount(amount: Decimal) -> str:
        with localcontext() as ctx:
            ctx.prec = _precision(amount)
            rounded = amount.quantize(Decimal("0.001"), rounding=ROUND_HALF_UP).normalize()
        return f"{rounded:,f}"

    @staticmethod
    def usd_value(amount: Decimal, usd: float) -> Decimal:
        price = Decimal(str(usd))
        with localcontext() as ctx:
            ctx.prec = _precision(amount, price)
            return amount * price

    @staticmethod
    def format_usd(value: Decimal) -> str:
        with localcontext() as ctx:
            ctx.prec = _precision(value)
            rounded = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return f"${rounded:,.2f}"

    @staticmethod
    def describe(error) -> str:
        if isinstance(error, Exception):
            return str(error) or type(error).__name__
        return "Unknown error fetching price"
