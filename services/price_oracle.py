#!/usr/bin/env python3
"""Tiered USD price resolution for token contracts."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from analysis.models import PriceEntry
from constants import DEFAULT_NATIVE_PRICE_USD, QUOTE_STAGGER_DELAY, STABLECOIN_ADDRESSES, WBNB_ADDRESS
from services.market_client import MarketClient
from services.pancake_quoter import PancakeQuoter

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Optional[float]]


class PriceOracle:
    """
    Resolves a USD unit price for any token, first hit wins:

    1. real-time prices captured by the latest ``warm`` / ``backfill_onchain``
    2. stablecoins at 1.0
    3. wrapped native at the native spot price
    4. the bulk alpha token list snapshot
    5. (``resolve_price`` only) an on-chain PancakeSwap quote

    ``price_of`` never raises: a failing tier is a miss, and missing everywhere
    yields 0.0.
    """

    def __init__(
        self,
        market_client: MarketClient,
        quoter: Optional[PancakeQuoter] = None,
        *,
        stablecoins: Iterable[str] = STABLECOIN_ADDRESSES,
        wrapped_native: str = WBNB_ADDRESS,
        default_native_price: float = DEFAULT_NATIVE_PRICE_USD,
        quote_stagger: float = QUOTE_STAGGER_DELAY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.market_client = market_client
        self.quoter = quoter
        self.stablecoins: FrozenSet[str] = frozenset(a.lower() for a in stablecoins)
        self.wrapped_native = wrapped_native.lower()
        self.default_native_price = default_native_price
        self.native_price = default_native_price
        self.quote_stagger = quote_stagger
        self._clock = clock
        self._realtime: Dict[str, PriceEntry] = {}
        self._alpha_prices: Dict[str, float] = {}
        self._alpha_addresses: FrozenSet[str] = frozenset()
        self._resolvers: List[Resolver] = [
            self._from_realtime,
            self._from_stablecoin,
            self._from_wrapped_native,
            self._from_alpha_list,
        ]

    @property
    def alpha_addresses(self) -> FrozenSet[str]:
        """Contracts on the alpha list as of the latest warm."""
        return self._alpha_addresses

    def is_stablecoin(self, address: str) -> bool:
        return address.lower() in self.stablecoins

    async def warm(self, contract_addresses: Iterable[str]) -> None:
        """Refreshes the native price and alpha list and captures prices for the given contracts."""
        native_price, alpha_tokens = await asyncio.gather(
            self.market_client.get_native_price(),
            self.market_client.get_alpha_tokens(),
            return_exceptions=True,
        )

        if isinstance(native_price, Exception):
            logger.warning("Native price unavailable (%s), using default $%s", native_price, self.default_native_price)
            self.native_price = self.default_native_price
        else:
            self.native_price = native_price

        if isinstance(alpha_tokens, Exception):
            # Keep the previous snapshot; a failed refresh is a miss, not an error.
            logger.warning("Alpha token list unavailable: %s", alpha_tokens)
        else:
            self._load_alpha_tokens(alpha_tokens)

        wanted = {
            addr.lower() for addr in contract_addresses
            if not self.is_stablecoin(addr) and addr.lower() != self.wrapped_native
        }
        now = self._clock()
        self._realtime = {
            addr: PriceEntry(contract_address=addr, price_usd=self._alpha_prices[addr], fetched_at=now)
            for addr in wanted
            if addr in self._alpha_prices
        }
        logger.info("Captured real-time prices for %d/%d tokens", len(self._realtime), len(wanted))

    def _load_alpha_tokens(self, tokens: List[Dict]) -> None:
        prices: Dict[str, float] = {}
        addresses = set()
        for token in tokens:
            address = str(token.get('contractAddress') or '').lower()
            if not address:
                continue
            addresses.add(address)
            try:
                price = float(token.get('price'))
            except (TypeError, ValueError):
                continue
            if price > 0:
                prices[address] = price
        self._alpha_addresses = frozenset(addresses)
        self._alpha_prices = prices

    def _resolve_cached(self, address: str) -> Optional[float]:
        for resolver in self._resolvers:
            try:
                price = resolver(address)
            except Exception as exc:
                logger.warning("Price resolver %s failed for %s: %s", resolver.__name__, address, exc)
                continue
            if price is not None:
                return price
        return None

    def price_of(self, contract_address: str) -> float:
        address = contract_address.lower()
        price = self._resolve_cached(address)
        if price is None:
            logger.debug("Price unavailable for %s", address)
            return 0.0
        return price

    async def resolve_price(self, contract_address: str, amount: str = "1") -> float:
        """Like ``price_of`` but falls back to an on-chain quote when every cached tier misses."""
        address = contract_address.lower()
        price = self._resolve_cached(address)
        if price is not None:
            return price
        return await self._from_onchain(address, amount)

    async def backfill_onchain(self, contract_addresses: Iterable[str]) -> Dict[str, float]:
        """Quotes still-unpriced contracts on-chain and keeps positive results as real-time prices."""
        if self.quoter is None:
            return {}
        missing = [
            a for a in dict.fromkeys(addr.lower() for addr in contract_addresses)
            if self.price_of(a) <= 0
        ]
        if not missing:
            return {}

        logger.info("Quoting %d unpriced tokens on-chain", len(missing))
        quotes = await self.quoter.get_token_prices(missing, stagger=self.quote_stagger)
        now = self._clock()
        found: Dict[str, float] = {}
        for address, price in quotes.items():
            if price > 0:
                self._realtime[address] = PriceEntry(contract_address=address, price_usd=price, fetched_at=now)
                found[address] = price
        return found

    def _from_realtime(self, address: str) -> Optional[float]:
        entry = self._realtime.get(address)
        return entry.price_usd if entry else None

    def _from_stablecoin(self, address: str) -> Optional[float]:
        return 1.0 if address in self.stablecoins else None

    def _from_wrapped_native(self, address: str) -> Optional[float]:
        return self.native_price if address == self.wrapped_native else None

    def _from_alpha_list(self, address: str) -> Optional[float]:
        return self._alpha_prices.get(address)

    async def _from_onchain(self, address: str, amount: str) -> float:
        if self.quoter is None:
            logger.debug("Price unavailable for %s and no on-chain quoter configured", address)
            return 0.0
        value = await self.quoter.get_token_price(address, amount)
        if value <= 0:
            logger.info("Price unavailable for %s (no on-chain value)", address)
            return 0.0
        return value / float(amount)
