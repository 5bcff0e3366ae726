"""Feed constants and enumerations."""

from enum import Enum


class AlertSeverity(str, Enum):
    """CAP alert severity levels, most severe first."""

    EXTREME = "Extreme"
    SEVERE = "Severe"
    MODERATE = "Moderate"
    MINOR = "Minor"
    UNKNOWN = "Unknown"


# Ranking used when ordering aggregated records (lower = more severe)
SEVERITY_ORDER = {
    AlertSeverity.EXTREME.value: 0,
    AlertSeverity.SEVERE.value: 1,
    AlertSeverity.MODERATE.value: 2,
    AlertSeverity.MINOR.value: 3,
    AlertSeverity.UNKNOWN.value: 4,
}
UNKNOWN_SEVERITY_RANK = SEVERITY_ORDER[AlertSeverity.UNKNOWN.value]


class MarketItemType(str, Enum):
    """Dashboard market row types."""

    INDEX = "index"
    COMMODITY = "commodity"


# Major market indices (symbol -> display name)
INDICES = {
    "^DJI": "Dow Jones",
    "^GSPC": "S&P 500",
    "^IXIC": "NASDAQ",
    "^RUT": "Russell 2000",
}

# Finnhub free tier has no index quotes, so indices are proxied by ETFs
INDEX_ETF_MAP = {
    "^DJI": "DIA",
    "^GSPC": "SPY",
    "^IXIC": "QQQ",
    "^RUT": "IWM",
}

# Sector ETFs
SECTORS = {
    "XLK": "Tech",
    "XLF": "Finance",
    "XLE": "Energy",
    "XLV": "Health",
    "XLY": "Consumer",
    "XLI": "Industrial",
    "XLP": "Staples",
    "XLU": "Utilities",
    "XLB": "Materials",
    "XLRE": "Real Est",
    "XLC": "Comms",
}

# Commodities and volatility
COMMODITIES = {
    "^VIX": "VIX",
    "GC=F": "Gold",
    "CL=F": "Crude Oil",
    "NG=F": "Natural Gas",
    "SI=F": "Silver",
    "HG=F": "Copper",
}

# Finnhub commodity ETF proxies
COMMODITY_SYMBOL_MAP = {
    "^VIX": "VIXY",
    "GC=F": "GLD",
    "CL=F": "USO",
    "NG=F": "UNG",
    "SI=F": "SLV",
    "HG=F": "CPER",
}

# Crypto assets (config id -> (symbol, name))
CRYPTO = {
    "bitcoin": ("BTC", "Bitcoin"),
    "ethereum": ("ETH", "Ethereum"),
    "solana": ("SOL", "Solana"),
}

# Facade cache keys
CACHE_KEY_PREFIX = "api"
CACHE_KEYS = {
    "crypto": "api:crypto",
    "indices": "api:indices",
    "sectors": "api:sectors",
    "commodities": "api:commodities",
    "all_markets": "api:allMarkets",
    "alerts": "api:alerts",
}

# Quote cache keys live in their own namespace
QUOTE_KEY_PREFIX = "quote"
