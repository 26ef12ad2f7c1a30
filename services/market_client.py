#!/usr/bin/env python3
import asyncio
import time
from typing import Callable, Dict, List, Optional

import aiohttp
from constants import (
    ALPHA_CHAIN_NAME,
    ALPHA_LIST_CACHE_TTL,
    C_RED,
    C_RESET,
    MARKET_ALPHA_TOKEN_LIST_PATH,
    MARKET_API_BASE_URL,
    MARKET_TICKER_PATH,
    NATIVE_PRICE_CACHE_TTL,
    NATIVE_TICKER_SYMBOL,
)
from services.errors import PriceUnavailable
from services.ttl_cache import TTLCache

def log_error(message: str) -> None:
    """Centralized error logging."""
    print(f"{C_RED}{message}{C_RESET}")

async def api_get(url: str, session: aiohttp.ClientSession, params: Optional[Dict] = None, timeout: int = 10) -> Optional[Dict]:
    """Makes a single async GET request; failures are logged and return None."""
    try:
        async with session.get(url, params=params, timeout=timeout) as response:
            response.raise_for_status()
            return await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        log_error(f"API request to {url} failed: {e}")
        return None


class MarketClient:
    """Native coin spot price and the bulk alpha token list, both cached with a TTL."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str = MARKET_API_BASE_URL,
        chain_name: str = ALPHA_CHAIN_NAME,
        clock: Callable[[], float] = time.time,
    ):
        self.session = session
        self.base_url = base_url.rstrip('/')
        self.chain_name = chain_name
        self._native_cache: TTLCache[float] = TTLCache(NATIVE_PRICE_CACHE_TTL, clock=clock)
        self._alpha_cache: TTLCache[List[Dict]] = TTLCache(ALPHA_LIST_CACHE_TTL, clock=clock)

    async def get_native_price(self, symbol: str = NATIVE_TICKER_SYMBOL) -> float:
        """Spot price for a ticker pair such as BNBUSDT. Raises PriceUnavailable."""
        cached = self._native_cache.get(symbol)
        if cached is not None:
            return cached

        url = f"{self.base_url}{MARKET_TICKER_PATH}"
        data = await api_get(url, self.session, params={'symbol': symbol}, timeout=8)
        try:
            price = float(data['price'])
        except (KeyError, TypeError, ValueError):
            log_error(f"Could not parse {symbol} price from market API response.")
            raise PriceUnavailable(f"no spot price for {symbol}")
        if not price > 0:
            raise PriceUnavailable(f"non-positive spot price for {symbol}: {price}")

        self._native_cache.set(symbol, price)
        return price

    async def get_alpha_tokens(self) -> List[Dict]:
        """Token descriptors of the alpha list, filtered to this client's chain.

        Raises PriceUnavailable when the list cannot be fetched.
        """
        cached = self._alpha_cache.get(self.chain_name)
        if cached is not None:
            return cached

        url = f"{self.base_url}{MARKET_ALPHA_TOKEN_LIST_PATH}"
        data = await api_get(url, self.session, timeout=15)
        if not data or not data.get('success') or not isinstance(data.get('data'), list):
            log_error("Alpha token list response was empty or unsuccessful.")
            raise PriceUnavailable("alpha token list unavailable")

        tokens = [
            token for token in data['data']
            if token.get('chainName') == self.chain_name and token.get('contractAddress')
        ]
        self._alpha_cache.set(self.chain_name, tokens)
        return tokens
