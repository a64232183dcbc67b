"""Network and program constants."""

from typing import TypedDict

SECONDS_PER_DAY = 86400
DAYS_PER_YEAR = 365

# Valuations and APR are combined at this precision.
TOTAL_AMOUNTS_DECIMALS = 18

MAX_UINT256 = 2**256 - 1

DEFAULT_POLL_INTERVAL_SECONDS = 5.0


class NetworkInfo(TypedDict):
    chain_id: int
    name: str
    rpc_url: str
    reward_token_symbol: str


NETWORKS: dict[str, NetworkInfo] = {
    "ethereum": {
        "chain_id": 1,
        "name": "Ethereum",
        "rpc_url": "https://eth.drpc.org",
        "reward_token_symbol": "MATIC",
    },
    "gnosis": {
        "chain_id": 100,
        "name": "Gnosis",
        "rpc_url": "https://rpc.gnosischain.com",
        "reward_token_symbol": "GNO",
    },
    "polygon": {
        "chain_id": 137,
        "name": "Polygon",
        "rpc_url": "https://polygon-rpc.com",
        "reward_token_symbol": "MATIC",
    },
    "optimism": {
        "chain_id": 10,
        "name": "Optimism",
        "rpc_url": "https://mainnet.optimism.io",
        "reward_token_symbol": "MATIC",
    },
    "arbitrum": {
        "chain_id": 42161,
        "name": "Arbitrum One",
        "rpc_url": "https://arb1.arbitrum.io/rpc",
        "reward_token_symbol": "MATIC",
    },
}

# Wrapped and bridged symbols priced as their underlying asset.
PRICE_SYMBOL_ALIASES: dict[str, str] = {
    "WETH": "ETH",
    "XDAI": "DAI",
    "WXDAI": "DAI",
    "WMATIC": "MATIC",
    "USDC.E": "USDC",
    "HUSDC": "USDC",
    "HUSDT": "USDT",
    "HDAI": "DAI",
    "HETH": "ETH",
    "HMATIC": "MATIC",
}

COINGECKO_IDS: dict[str, str] = {
    "ETH": "ethereum",
    "USDC": "usd-coin",
    "USDT": "tether",
    "DAI": "dai",
    "MATIC": "matic-network",
    "GNO": "gnosis",
    "WBTC": "wrapped-bitcoin",
    "HOP": "hop-protocol",
    "SNX": "havven",
}

DEFAULT_COINGECKO_ENDPOINT = "https://api.coingecko.com/api/v3"
DEFAULT_COINBASE_ENDPOINT = "https://api.coinbase.com/v2"
