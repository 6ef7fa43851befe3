import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

GOLDIES_TOKEN_ADDRESS = "0x3150E01c36ad3Af80bA16C1836eFCD967E96776e"
GOLDIES_PAIR_ADDRESS = "0x19976577bb2fa3174b4ae4cf55e6795dde730135"


@dataclass(frozen=True)
class Settings:
    bot_token: str | None
    token_address: str
    token_symbol: str
    chain_name: str
    chain_id: int
    airstack_api_url: str
    airstack_api_key: str | None
    airstack_blockchain: str
    warpcast_api_url: str
    dexscreener_pair_url: str
    balance_rpc_url: str
    ens_rpc_url: str
    social_source: str
    balance_source: str
    request_timeout: float
    log_level: str
    log_format: str

    @property
    def explorer_url(self) -> str:
        return f"https://polygonscan.com/token/{self.token_address.lower()}"


def load_settings() -> Settings:
    """Build settings from the environment (after .env has been loaded)."""
    pair = os.getenv("DEXSCREENER_PAIR", f"polygon/{GOLDIES_PAIR_ADDRESS}")
    return Settings(
        bot_token=os.getenv("BOT_TOKEN"),
        token_address=os.getenv("TOKEN_ADDRESS", GOLDIES_TOKEN_ADDRESS),
        token_symbol=os.getenv("TOKEN_SYMBOL", "$GOLDIES"),
        chain_name=os.getenv("CHAIN_NAME", "Polygon"),
        chain_id=int(os.getenv("CHAIN_ID", "137")),
        airstack_api_url=os.getenv("AIRSTACK_API_URL", "https://api.airstack.xyz/gql"),
        airstack_api_key=os.getenv("AIRSTACK_API_KEY"),
        airstack_blockchain=os.getenv("AIRSTACK_BLOCKCHAIN", "polygon"),
        warpcast_api_url=os.getenv("WARPCAST_API_URL", "https://api.warpcast.com"),
        dexscreener_pair_url=f"https://api.dexscreener.com/latest/dex/pairs/{pair}",
        balance_rpc_url=os.getenv("BALANCE_RPC_URL", "https://polygon-rpc.com"),
        ens_rpc_url=os.getenv("ENS_RPC_URL", "https://eth.llamarpc.com"),
        social_source=os.getenv("SOCIAL_SOURCE", "airstack").lower(),
        balance_source=os.getenv("BALANCE_SOURCE", "airstack").lower(),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "10")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_format=os.getenv("LOG_FORMAT", "text"),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
