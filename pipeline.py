"""Resolution-and-valuation pipeline.

identity -> address -> {balance, price} -> Valuation

Resolution failures stop the request and come back as a ``PipelineError``.
Balance and price only depend on the address, so they run concurrently and
are joined before composing; neither of them can abort the request.
"""

import asyncio
import logging
import time

from airstack import AirstackClient
from balance import BalanceFetcher, ContractBalanceSource, IndexedBalanceSource
from config import Settings, get_settings
from errors import GoldiesError, InvalidFormat, MissingIdentity, PriceFetchError
from models import Identity, PipelineError, PriceQuote, Valuation
from observability import EventHook, PipelineEvent, log_event
from price import PriceFetcher
from resolver import (
    AddressResolver,
    CustodyAddressSource,
    EnsAddressSource,
    LinkedAddressSource,
)
from summary import ValuationComposer

logger = logging.getLogger(__name__)


def identity_from_inputs(text: str | None = None, social_id: int | str | None = None) -> Identity:
    """Pick the identity to resolve from what the request carried.

    A social account id wins over free text: an address linked to the
    authenticated account is preferred to one the user typed in.
    """
    if social_id not in (None, ""):
        if not str(social_id).strip().isdigit():
            raise InvalidFormat(f"Invalid Farcaster ID: {social_id}")
        return Identity.social_id(int(social_id))
    text = (text or "").strip()
    if not text:
        raise MissingIdentity()
    if text.lower().startswith("0x"):
        return Identity.address(text)
    return Identity.ens(text)


class ValuationPipeline:
    def __init__(
        self,
        resolver: AddressResolver,
        balance_fetcher: BalanceFetcher,
        price_fetcher: PriceFetcher,
        composer: ValuationComposer,
        on_event: EventHook = log_event,
    ):
        self.resolver = resolver
        self.balance_fetcher = balance_fetcher
        self.price_fetcher = price_fetcher
        self.composer = composer
        self.on_event = on_event

    def _emit(self, name: str, **data):
        self.on_event(PipelineEvent(name, data))

    async def run(self, identity: Identity) -> Valuation | PipelineError:
        started = time.perf_counter()
        self._emit("resolution.attempted", identity_kind=identity.kind)
        try:
            address = await self.resolver.resolve(identity)
        except GoldiesError as e:
            self._emit("resolution.failed", identity_kind=identity.kind, error_code=e.code, message=e.message)
            return PipelineError.from_exception(e)
        self._emit("resolution.succeeded", identity_kind=identity.kind, address=address)

        balance, price = await asyncio.gather(
            self.balance_fetcher.fetch_balance(address),
            self._fetch_price(),
        )
        self._emit("balance.fetched", address=address, formatted=balance.formatted, error=balance.is_error)

        valuation = self.composer.compose(balance, price, address=address, identity=identity)
        self._emit(
            "valuation.composed",
            address=address,
            elapsed_ms=round((time.perf_counter() - started) * 1000),
        )
        return valuation

    async def _fetch_price(self) -> PriceQuote | PriceFetchError:
        try:
            quote = await self.price_fetcher.fetch_price()
        except PriceFetchError as e:
            self._emit("price.failed", error_code=e.code, message=e.message)
            return e
        self._emit("price.fetched", usd=quote.usd)
        return quote

    async def run_inputs(self, text: str | None = None, social_id: int | str | None = None) -> Valuation | PipelineError:
        try:
            identity = identity_from_inputs(text, social_id)
        except (MissingIdentity, InvalidFormat) as e:
            self._emit("resolution.failed", error_code=e.code, message=e.message)
            return PipelineError.from_exception(e)
        return await self.run(identity)


def build_pipeline(settings: Settings | None = None, on_event: EventHook = log_event) -> ValuationPipeline:
    settings = settings or get_settings()
    timeout = settings.request_timeout
    airstack = AirstackClient(settings.airstack_api_url, settings.airstack_api_key, timeout)

    if settings.social_source == "warpcast":
        social_source = CustodyAddressSource(settings.warpcast_api_url, timeout)
    elif settings.social_source == "airstack":
        social_source = LinkedAddressSource(airstack)
    else:
        raise ValueError(f"Unknown SOCIAL_SOURCE: {settings.social_source}")

    if settings.balance_source == "contract":
        balance_source = ContractBalanceSource(settings.balance_rpc_url, settings.token_address, timeout)
    elif settings.balance_source == "airstack":
        balance_source = IndexedBalanceSource(airstack, settings.token_address, settings.airstack_blockchain)
    else:
        raise ValueError(f"Unknown BALANCE_SOURCE: {settings.balance_source}")

    return ValuationPipeline(
        resolver=AddressResolver(EnsAddressSource(settings.ens_rpc_url, timeout), social_source, timeout),
        balance_fetcher=BalanceFetcher(balance_source, timeout),
        price_fetcher=PriceFetcher(settings.dexscreener_pair_url, timeout),
        composer=ValuationComposer(settings.token_symbol, settings.chain_name),
        on_event=on_event,
    )


async def run_pipeline(identity: Identity) -> Valuation | PipelineError:
    return await build_pipeline().run(identity)
