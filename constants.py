#!/usr/bin/env python3
from typing import Tuple

# --- ANSI Color Codes ---
C_GREEN = '\033[92m'
C_RED = '\033[91m'
C_YELLOW = '\033[93m'
C_BLUE = '\033[94m'
C_RESET = '\033[0m'

# --- API Configuration ---
ETHERSCAN_API_BASE_URL = 'https://api.etherscan.io/v2/api'
MARKET_API_BASE_URL = 'https://www.marketwebb.me'
MARKET_TICKER_PATH = '/api/v3/ticker/price'
MARKET_ALPHA_TOKEN_LIST_PATH = '/bapi/defi/v1/public/wallet-direct/buw/wallet/cex/alpha/all/token/list'
DEFAULT_BSC_RPC_URL = 'https://bsc-rpc.publicnode.com/'

# --- Environment Variable Names ---
ETHERSCAN_API_KEY_ENV_VAR = 'ETHERSCAN_API_KEY'
BSC_RPC_URL_ENV_VAR = 'BSC_RPC_URL'
ONCHAIN_FALLBACK_ENABLED_ENV_VAR = 'ONCHAIN_FALLBACK_ENABLED'

# --- Chain Configuration ---
BSC_CHAIN_ID = 56
ALPHA_CHAIN_NAME = 'BSC'
NATIVE_TICKER_SYMBOL = 'BNBUSDT'

# Lowercase; lookups normalise addresses first.
USDT_ADDRESS = '0x55d398326f99059ff775485246999027b3197955'
USDC_ADDRESS = '0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d'
WBNB_ADDRESS = '0xbb4cdb9cbd36b01bd1cbaebf2de08d9173bc095c'

STABLECOIN_ADDRESSES = frozenset({USDT_ADDRESS, USDC_ADDRESS})

# Binance DEX router; only transactions touching it count as trades.
DEX_ROUTER_ADDRESS = '0xb300000b72deaeb607a12d5f54773d1c19c7028d'

# --- PancakeSwap V3 ---
PANCAKE_QUOTER_V2_ADDRESS = '0xb048bbc1ee6b733fffcfb9e9cef7375518e25997'
PANCAKE_FACTORY_ADDRESS = '0x0bfbcf9fa4f9c56b0f40a671ad40e0805a091865'
ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'

FEE_0_01_PERCENT = 100
FEE_0_05_PERCENT = 500
FEE_0_25_PERCENT = 2500

# (token -> WBNB fee, WBNB -> USDT fee)
MULTI_HOP_FEE_OPTIONS: Tuple[Tuple[int, int], ...] = (
    (FEE_0_01_PERCENT, FEE_0_01_PERCENT),
    (FEE_0_01_PERCENT, FEE_0_05_PERCENT),
    (FEE_0_01_PERCENT, FEE_0_25_PERCENT),
)

DEFAULT_TOKEN_DECIMALS = 18
USDT_DECIMALS = 18

# --- Explorer paging ---
PAGE_SIZE = 1000
END_BLOCK = 99999999
EXPLORER_RATE_LIMIT_DELAY = 0.2  # 5 calls/sec
NO_RESULT_MESSAGES = ('no transactions found', 'no records found')

# --- Pricing ---
DEFAULT_NATIVE_PRICE_USD = 600.0
# Gas is valued at this fixed price, never the live one.
GAS_REFERENCE_NATIVE_PRICE_USD = 600.0
WEI_PER_NATIVE = 10 ** 18

ALPHA_LIST_CACHE_TTL = 5 * 60
NATIVE_PRICE_CACHE_TTL = 5 * 60
ONCHAIN_QUOTE_CACHE_TTL = 30
QUOTE_STAGGER_DELAY = 0.1

# --- Scoring ---
# (threshold USD, score)
SCORE_LEVELS: Tuple[Tuple[float, int], ...] = (
    (2, 1),
    (4, 2),
    (8, 3),
    (16, 4),
    (32, 5),
)
# Qualifying volume counts double towards the score.
ALPHA_VOLUME_MULTIPLIER = 2
