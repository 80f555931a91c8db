from .adapter import UniswapAdapter
from .positions import PositionAggregator, can_collect_fees
from .reader import Web3PoolReader
from .transactions import TransactionBuilder

__all__ = [
    "UniswapAdapter",
    "PositionAggregator",
    "TransactionBuilder",
    "Web3PoolReader",
    "can_collect_fees",
]
