__version__ = "0.1.0"

from liquidity_paths.core import (
    BaseAdapter,
    ProtocolVersion,
    Transaction,
)

__all__ = [
    "__version__",
    "BaseAdapter",
    "ProtocolVersion",
    "Transaction",
]
