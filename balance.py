"""Token balance lookup.

Two interchangeable sources read the same ledger: the Airstack index and a
direct ERC-20 call over JSON-RPC. ``BalanceFetcher`` never raises; a failed
lookup comes back as ``TokenBalance.failed()`` so the composer can show it
inline next to whatever else the response has.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation

import requests
from web3 import Web3
from web3.exceptions import Web3Exception

from airstack import AirstackClient
from errors import AirstackError, BalanceFetchError
from models import TokenBalance

logger = logging.getLogger(__name__)

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def format_units(raw: int, decimals: int) -> str:
    """Exact ``raw / 10**decimals`` as a plain decimal string.

    Integer arithmetic only, so 18-decimal balances keep every digit:
    ``format_units(1234500000000000000, 18) == "1234.5"``.
    """
    if decimals <= 0:
        return str(raw)
    sign = "-" if raw < 0 else ""
    whole, frac = divmod(abs(raw), 10 ** decimals)
    frac_digits = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_digits}" if frac_digits else f"{sign}{whole}"


def normalize_amount(value) -> str:
    """Render an already-scaled amount the same way ``format_units`` does."""
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise BalanceFetchError(f"Unparseable amount: {value!r}") from e
    if amount == 0:
        return "0"
    return format(amount.normalize(), "f")


class BalanceSource(ABC):
    @abstractmethod
    def fetch(self, address: str) -> TokenBalance:
        ...


class IndexedBalanceSource(BalanceSource):
    """Balance from Airstack's TokenBalances index."""

    def __init__(self, client: AirstackClient, token_address: str, blockchain: str):
        self.client = client
        self.token_address = token_address
        self.blockchain = blockchain

    def _query(self) -> str:
        return f"""
query GetTokenBalance($ownerAddress: Identity!) {{
  TokenBalances(
    input: {{
      filter: {{
        tokenAddress: {{_eq: "{self.token_address}"}},
        owner: {{_eq: $ownerAddress}}
      }},
      blockchain: {self.blockchain}
    }}
  ) {{
    TokenBalance {{
      amount
      formattedAmount
      token {{
        decimals
      }}
    }}
  }}
}}
"""

    def fetch(self, address: str) -> TokenBalance:
        try:
            data = self.client.query(self._query(), {"ownerAddress": address})
        except AirstackError as e:
            raise BalanceFetchError(e.message) from e

        rows = (data.get("TokenBalances") or {}).get("TokenBalance") or []
        if not rows:
            logger.info("No token balance indexed for %s", address)
            return TokenBalance(raw=0, decimals=0, formatted="0")

        row = rows[0]
        decimals = (row.get("token") or {}).get("decimals")
        if row.get("amount") is not None and decimals is not None:
            raw = int(row["amount"])
            return TokenBalance(raw=raw, decimals=int(decimals), formatted=format_units(raw, int(decimals)))

        if row.get("formattedAmount") is None:
            raise BalanceFetchError("Indexed balance has neither amount nor formattedAmount")
        return TokenBalance(raw=None, decimals=None, formatted=normalize_amount(row["formattedAmount"]))


class ContractBalanceSource(BalanceSource):
    """Balance read straight from the ERC-20 contract on the target chain."""

    def __init__(self, rpc_url: str, token_address: str, timeout: float = 10):
        self.rpc_url = rpc_url
        self.token_address = Web3.to_checksum_address(token_address.lower())
        self.timeout = timeout

    def _read(self, address: str) -> tuple[int, int]:
        w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": self.timeout}))
        token = w3.eth.contract(address=self.token_address, abi=ERC20_ABI)
        raw = token.functions.balanceOf(address).call()
        decimals = token.functions.decimals().call()
        return raw, decimals

    def fetch(self, address: str) -> TokenBalance:
        try:
            raw, decimals = self._read(address)
        except (Web3Exception, requests.exceptions.RequestException, ValueError) as e:
            raise BalanceFetchError(f"Contract read failed: {e}") from e
        return TokenBalance(raw=raw, decimals=decimals, formatted=format_units(raw, decimals))


class BalanceFetcher:
    def __init__(self, source: BalanceSource, timeout: float = 10):
        self.source = source
        self.timeout = timeout

    async def fetch_balance(self, address: str) -> TokenBalance:
        try:
            return await asyncio.wait_for(asyncio.to_thread(self.source.fetch, address), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Balance lookup for %s timed out after %ss", address, self.timeout)
        except Exception:
            logger.exception("Balance lookup for %s failed", address)
        return TokenBalance.failed()
