from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union

from errors import GoldiesError

BALANCE_ERROR_MARKER = "Error: Unable to fetch balance"


@dataclass(frozen=True)
class Identity:
    kind: str  # "address" | "ens" | "social_id"
    value: Union[str, int]

    @classmethod
    def address(cls, value: str) -> "Identity":
        return cls("address", value.strip())

    @classmethod
    def ens(cls, value: str) -> "Identity":
        return cls("ens", value.strip().lower())

    @classmethod
    def social_id(cls, value: int) -> "Identity":
        return cls("social_id", int(value))


@dataclass(frozen=True)
class TokenBalance:
    raw: int | None
    decimals: int | None
    formatted: str
    error: str | None = None

    @classmethod
    def failed(cls, marker: str = BALANCE_ERROR_MARKER) -> "TokenBalance":
        """Sentinel returned instead of raising when a balance lookup fails."""
        return cls(raw=None, decimals=None, formatted=marker, error=marker)

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class PriceQuote:
    usd: float
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class Valuation:
    address: str
    balance_display: str
    usd_display: str | None
    price: PriceQuote | None = None
    identity: Identity | None = None


@dataclass(frozen=True)
class PipelineError:
    stage: str
    kind: str
    message: str
    user_message: str

    @classmethod
    def from_exception(cls, exc: GoldiesError) -> "PipelineError":
        if exc.stage == "input":
            user_message = "No identity provided. Send a wallet address, an ENS name or a Farcaster ID."
        elif exc.stage == "resolution":
            user_message = f"Could not resolve a wallet address: {exc.message}"
        else:
            user_message = f"Unable to fetch balance or price: {exc.message}"
        return cls(
            stage=exc.stage,
            kind=type(exc).__name__,
            message=exc.message,
            user_message=user_message,
        )
