"""Error hierarchy for the resolution-and-valuation pipeline.

Resolution errors abort a request. Balance errors never leave
``balance.py``: they are folded into a sentinel ``TokenBalance``. Price
errors are handed to the composer as values so it can describe them.
"""


class GoldiesError(Exception):
    code = "GOLDIES_ERROR"
    stage = "pipeline"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ─── Resolution ──────────────────────────────────────────────

class ResolutionError(GoldiesError):
    code = "RESOLUTION_ERROR"
    stage = "resolution"


class MissingIdentity(ResolutionError):
    code = "MISSING_IDENTITY"
    stage = "input"

    def __init__(self, message: str = "No wallet address, ENS name or Farcaster ID provided"):
        super().__init__(message)


class InvalidFormat(ResolutionError):
    code = "INVALID_FORMAT"


class NameNotFound(ResolutionError):
    code = "NAME_NOT_FOUND"


class ResolutionServiceError(ResolutionError):
    code = "RESOLUTION_SERVICE_ERROR"


class NoLinkedAddress(ResolutionError):
    code = "NO_LINKED_ADDRESS"


# ─── Balance ─────────────────────────────────────────────────

class BalanceFetchError(GoldiesError):
    code = "BALANCE_FETCH_ERROR"
    stage = "balance"


# ─── Price ───────────────────────────────────────────────────

class PriceFetchError(GoldiesError):
    code = "PRICE_FETCH_ERROR"
    stage = "price"


class TransportError(PriceFetchError):
    code = "PRICE_TRANSPORT_ERROR"


class MalformedResponse(PriceFetchError):
    code = "PRICE_MALFORMED_RESPONSE"


# ─── Upstream ────────────────────────────────────────────────

class AirstackError(GoldiesError):
    """Airstack GraphQL call failed (HTTP status, transport or `errors` payload)."""
    code = "AIRSTACK_ERROR"
    stage = "airstack"
