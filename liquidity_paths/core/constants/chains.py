CHAIN_ID_ETHEREUM = 1
CHAIN_ID_BASE = 8453

CHAIN_CODE_TO_ID = {
    "base": CHAIN_ID_BASE,
    "ethereum": CHAIN_ID_ETHEREUM,
    "mainnet": CHAIN_ID_ETHEREUM,
}

CHAIN_ID_TO_CODE: dict[int, str] = {
    v: k for k, v in CHAIN_CODE_TO_ID.items() if k != "mainnet"
}

SUPPORTED_CHAINS = [CHAIN_ID_BASE]

# Average block time is 2s on Base
BLOCKS_PER_DAY: dict[int, int] = {
    CHAIN_ID_ETHEREUM: 7_200,
    CHAIN_ID_BASE: 43_200,
}
