from liquidity_paths.core.clients.PriceClient import (
    GeckoTerminalPriceClient,
)
from liquidity_paths.core.clients.protocols import (
    ChainReaderProtocol,
    PriceSourceProtocol,
    TokenReaderProtocol,
)

__all__ = [
    "ChainReaderProtocol",
    "GeckoTerminalPriceClient",
    "PriceSourceProtocol",
    "TokenReaderProtocol",
]
