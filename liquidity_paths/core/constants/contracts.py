from liquidity_paths.core.constants.chains import CHAIN_ID_BASE

WETH: dict[int, str] = {
    CHAIN_ID_BASE: "0x4200000000000000000000000000000000000006",
}

PERMIT2 = "0x000000000022D473030F116dDEE9F6B43aC78BA3"

# Generation 1 (constant product)
UNISWAP_V2_ROUTER: dict[int, str] = {
    CHAIN_ID_BASE: "0x4752ba5dbc23f44d87826276bf6fd6b1c372ad24",
}
UNISWAP_V2_FACTORY: dict[int, str] = {
    CHAIN_ID_BASE: "0x8909dc15e40173ff4699343b6eb8132c65e18ec6",
}

# Generation 2 (concentrated liquidity)
UNISWAP_V3_NPM: dict[int, str] = {
    CHAIN_ID_BASE: "0x03a520b32c04bf3beef7beb72e919cf822ed34f1",
}
UNISWAP_V3_FACTORY: dict[int, str] = {
    CHAIN_ID_BASE: "0x33128a8fc17869897dce68ed026d694621f6fdfd",
}
UNISWAP_V3_SWAP_ROUTER: dict[int, str] = {
    CHAIN_ID_BASE: "0x2626664c2603336e57b271c5c0b26f421741e481",
}

# Generation 3 (singleton pool manager with hooks)
UNISWAP_V4_POOL_MANAGER: dict[int, str] = {
    CHAIN_ID_BASE: "0x498581ff718922c3f8e6a244956af099b2652b2b",
}
UNISWAP_V4_POSITION_MANAGER: dict[int, str] = {
    CHAIN_ID_BASE: "0x7c5f5a4bbd8fd63184577525326123b519429bdc",
}
UNISWAP_V4_STATE_VIEW: dict[int, str] = {
    CHAIN_ID_BASE: "0xa3c0c9b65bad0b08107aa264b0f3db444b867a71",
}
UNIVERSAL_ROUTER: dict[int, str] = {
    CHAIN_ID_BASE: "0x6ff5693b99212da76ad316178a184ab56d299b43",
}
