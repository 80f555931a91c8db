ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

MAX_UINT48 = 2**48 - 1
MAX_UINT128 = 2**128 - 1
MAX_UINT160 = 2**160 - 1
MAX_UINT256 = 2**256 - 1

__all__ = [
    "ZERO_ADDRESS",
    "MAX_UINT48",
    "MAX_UINT128",
    "MAX_UINT160",
    "MAX_UINT256",
]
