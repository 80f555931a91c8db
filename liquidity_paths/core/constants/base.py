DEFAULT_SLIPPAGE_PCT = 0.5

# Timeout constants (seconds)
DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_DEADLINE_SECONDS = 20 * 60

DEFAULT_PRICE_CACHE_TTL = 30.0
DEFAULT_TOKEN_CACHE_TTL = 3600

# Fallbacks used when a chain or price read fails
UNKNOWN_SYMBOL = "UNKNOWN"
DEFAULT_DECIMALS = 18
DEFAULT_PRICE_USD = 0.0

# Global tick bounds shared by the concentrated-liquidity generations
MIN_TICK = -887272
MAX_TICK = 887272

BPS_DENOMINATOR = 10_000
# Fee tiers are hundredths of a basis point: 3000 == 0.30%
FEE_DENOMINATOR = 1_000_000

ADAPTER_UNISWAP = "UNISWAP"
