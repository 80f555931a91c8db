from liquidity_paths.core.adapters.BaseAdapter import BaseAdapter
from liquidity_paths.core.adapters.models import ProtocolVersion, Transaction

__all__ = [
    "BaseAdapter",
    "ProtocolVersion",
    "Transaction",
]
