"""Identity -> canonical wallet address.

Address sources are plain synchronous clients (requests / web3). The
``AddressResolver`` runs them off the event loop with a per-call timeout
and turns whatever they return into a checksummed address.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod

import requests
from ens.exceptions import ENSException, InvalidName
from web3 import Web3
from web3.exceptions import Web3Exception

from airstack import AirstackClient
from errors import (
    AirstackError,
    InvalidFormat,
    NameNotFound,
    NoLinkedAddress,
    ResolutionServiceError,
)
from models import Identity

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

SOCIAL_ADDRESSES_QUERY = """
query ConnectWalletWithFID($fid: String!) {
  Socials(
    input: {filter: {userId: {_eq: $fid}, dappName: {_eq: farcaster}}, blockchain: ethereum}
  ) {
    Social {
      userAssociatedAddresses
    }
  }
}
"""


def is_hex_address(value) -> bool:
    return isinstance(value, str) and bool(ADDRESS_RE.match(value))


def canonical_address(value: str) -> str:
    """EIP-55 checksum a hex address regardless of the case it came in."""
    return Web3.to_checksum_address(value.lower())


class AddressSource(ABC):
    @abstractmethod
    def lookup(self, key) -> str | None:
        """Return an address for *key*, or None when there is none."""


class EnsAddressSource(AddressSource):
    """Forward ENS resolution on the reference chain (Ethereum mainnet)."""

    def __init__(self, rpc_url: str, timeout: float = 10):
        self.rpc_url = rpc_url
        self.timeout = timeout

    def _web3(self) -> Web3:
        return Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": self.timeout}))

    def lookup(self, name: str) -> str | None:
        try:
            return self._web3().ens.address(name)
        except InvalidName as e:
            raise InvalidFormat(f"Invalid ENS name: {name}") from e
        except (ENSException, Web3Exception, requests.exceptions.RequestException, ValueError) as e:
            raise ResolutionServiceError(f"ENS lookup for {name} failed: {e}") from e


class LinkedAddressSource(AddressSource):
    """Farcaster account -> first hex-shaped address Airstack links to it."""

    def __init__(self, client: AirstackClient):
        self.client = client

    def lookup(self, fid: int) -> str | None:
        try:
            data = self.client.query(SOCIAL_ADDRESSES_QUERY, {"fid": str(fid)})
        except AirstackError as e:
            raise ResolutionServiceError(e.message) from e

        container = data.get("Socials") or {}
        if not isinstance(container, dict):
            raise ResolutionServiceError("Unexpected Airstack Socials payload")
        socials = container.get("Social") or []
        if not isinstance(socials, list):
            raise ResolutionServiceError("Unexpected Airstack Social payload")
        if not socials:
            logger.info("No Farcaster profile found for FID %s", fid)
            return None

        if not isinstance(socials[0], dict):
            raise ResolutionServiceError("Unexpected Airstack Social entry")
        addresses = socials[0].get("userAssociatedAddresses") or []
        if not isinstance(addresses, list):
            raise ResolutionServiceError("Unexpected Airstack userAssociatedAddresses payload")
        logger.debug("FID %s associated addresses: %s", fid, addresses)
        return next((a for a in addresses if is_hex_address(a)), None)


class CustodyAddressSource(AddressSource):
    """Farcaster account -> custody address, straight from Warpcast."""

    def __init__(self, api_url: str, timeout: float = 10):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def lookup(self, fid: int) -> str | None:
        url = f"{self.api_url}/v2/custody-address"
        try:
            res = requests.get(url, params={"fid": fid}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ResolutionServiceError(f"Warpcast request failed: {e}") from e

        if res.status_code in (400, 404):
            return None
        if res.status_code != 200:
            raise ResolutionServiceError(f"Warpcast HTTP {res.status_code}: {res.text}")

        try:
            payload = res.json()
        except ValueError as e:
            raise ResolutionServiceError("Warpcast returned a non-JSON body") from e

        result = payload.get("result") if isinstance(payload, dict) else None
        if not isinstance(result, dict):
            raise ResolutionServiceError("Unexpected Warpcast custody-address payload")
        return result.get("custodyAddress")


class AddressResolver:
    def __init__(self, name_source: AddressSource, social_source: AddressSource, timeout: float = 10):
        self.name_source = name_source
        self.social_source = social_source
        self.timeout = timeout

    async def resolve(self, identity: Identity) -> str:
        if identity.kind == "address":
            if not is_hex_address(identity.value):
                raise InvalidFormat(f"Invalid Ethereum address: {identity.value}")
            return canonical_address(identity.value)

        if identity.kind == "ens":
            if not identity.value.endswith(".eth"):
                raise InvalidFormat(f"Not an ENS name (expected a .eth suffix): {identity.value}")
            address = await self._lookup(self.name_source, identity.value)
            if not address:
                raise NameNotFound(f"ENS name {identity.value} does not resolve to an address")

        elif identity.kind == "social_id":
            address = await self._lookup(self.social_source, identity.value)
            if not address:
                raise NoLinkedAddress(
                    f"No connected Ethereum or Polygon address found for FID {identity.value}"
                )

        else:
            raise InvalidFormat(f"Unknown identity kind: {identity.kind}")

        if not is_hex_address(address):
            raise ResolutionServiceError(f"Lookup returned a malformed address: {address}")
        return canonical_address(address)

    async def _lookup(self, source: AddressSource, key):
        try:
            return await asyncio.wait_for(asyncio.to_thread(source.lookup, key), self.timeout)
        except asyncio.TimeoutError:
            raise ResolutionServiceError(f"Address lookup for {key} timed out after {self.timeout}s")
