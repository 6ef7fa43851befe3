import asyncio
import logging
import math

import requests

from errors import MalformedResponse, TransportError
from models import PriceQuote

logger = logging.getLogger(__name__)


class PriceFetcher:
    """USD price of the token's trading pair from DEX Screener.

    Errors are raised, not swallowed: a missing price has to reach the
    composer so it can say why the USD value is absent.
    """

    def __init__(self, pair_url: str, timeout: float = 10):
        self.pair_url = pair_url
        self.timeout = timeout

    def get_usd_price(self) -> PriceQuote:
        try:
            res = requests.get(self.pair_url, headers={"accept": "application/json"}, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise TransportError("Price request timed out.")
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Price request failed: {e}") from e

        if res.status_code != 200:
            raise TransportError(f"HTTP error! status: {res.status_code}")

        try:
            data = res.json()
        except ValueError as e:
            raise MalformedResponse("Invalid price data received from DEX Screener") from e

        if not isinstance(data, dict):
            raise MalformedResponse("Invalid price data received from DEX Screener")

        pairs = data.get("pairs")
        pair = data.get("pair") or (pairs[0] if isinstance(pairs, list) and pairs else None)
        if not isinstance(pair, dict):
            raise MalformedResponse("Invalid price data received from DEX Screener")
        price_usd = pair.get("priceUsd")
        if price_usd in (None, ""):
            raise MalformedResponse("Invalid price data received from DEX Screener")

        try:
            usd = float(price_usd)
        except (TypeError, ValueError) as e:
            raise MalformedResponse(f"Unparseable priceUsd: {price_usd!r}") from e

        if not math.isfinite(usd):
            raise MalformedResponse(f"Non-finite priceUsd: {price_usd!r}")

        logger.debug("Fetched price %s USD", usd)
        return PriceQuote(usd=usd)

    async def fetch_price(self) -> PriceQuote:
        try:
            return await asyncio.wait_for(asyncio.to_thread(self.get_usd_price), self.timeout)
        except asyncio.TimeoutError:
            raise TransportError(f"Price request timed out after {self.timeout}s")
