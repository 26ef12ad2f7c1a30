#!/usr/bin/env python3
"""PancakeSwap V3 on-chain quoting through raw JSON-RPC ``eth_call``s."""
from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional, Sequence, Tuple

from aiohttp import ClientSession
from eth_abi import decode, encode
from web3 import Web3

from constants import (
    DEFAULT_TOKEN_DECIMALS,
    FEE_0_01_PERCENT,
    MULTI_HOP_FEE_OPTIONS,
    ONCHAIN_QUOTE_CACHE_TTL,
    PANCAKE_FACTORY_ADDRESS,
    PANCAKE_QUOTER_V2_ADDRESS,
    QUOTE_STAGGER_DELAY,
    USDT_ADDRESS,
    USDT_DECIMALS,
    WBNB_ADDRESS,
    ZERO_ADDRESS,
)
from services.errors import QuoteRouteNotFound
from services.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


def _selector(signature: str) -> str:
    return '0x' + bytes(Web3.keccak(text=signature)[:4]).hex()


def encode_path(path: Sequence[str], fees: Sequence[int]) -> bytes:
    """Packs token0, fee0, token1, fee1, ... tokenN as the V3 quoter expects.

    Each fee is a 3-byte big-endian integer.
    """
    if len(path) != len(fees) + 1:
        raise ValueError("path must contain exactly one more token than fees")
    encoded = bytes.fromhex(path[0].lower().replace('0x', ''))
    for fee, token in zip(fees, path[1:]):
        encoded += int(fee).to_bytes(3, 'big')
        encoded += bytes.fromhex(token.lower().replace('0x', ''))
    return encoded


def parse_units(amount: str, decimals: int) -> int:
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid token amount: {amount!r}") from exc
    return int((value * (Decimal(10) ** decimals)).to_integral_value())


def format_units(value: int, decimals: int) -> float:
    return float(Decimal(value) / (Decimal(10) ** decimals))


class PancakeQuoter:
    """Values tokens in USDT using PancakeSwap V3 pools.

    Tries a direct token/USDT pool first, then token -> WBNB -> USDT across a
    few fee combinations. Results are cached briefly and concurrent identical
    requests share one in-flight lookup.
    """

    _GET_POOL_SIG = _selector("getPool(address,address,uint24)")
    _QUOTE_SINGLE_SIG = _selector("quoteExactInputSingle((address,address,uint256,uint24,uint160))")
    _QUOTE_MULTI_SIG = _selector("quoteExactInput(bytes,uint256)")
    _DECIMALS_SIG = "0x313ce567"

    def __init__(
        self,
        session: ClientSession,
        *,
        rpc_url: str,
        timeout: float = 10.0,
        quoter_address: str = PANCAKE_QUOTER_V2_ADDRESS,
        factory_address: str = PANCAKE_FACTORY_ADDRESS,
        cache_ttl: float = ONCHAIN_QUOTE_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session = session
        self._rpc_url = rpc_url
        self._timeout = timeout
        self._quoter = quoter_address.lower()
        self._factory = factory_address.lower()
        self._cache: TTLCache[float] = TTLCache(cache_ttl, clock=clock)
        self._pending: Dict[Tuple[str, str], asyncio.Future] = {}
        self._decimals_cache: Dict[str, int] = {}
        self._id_lock = asyncio.Lock()
        self._next_request_id = 1

    async def get_token_price(self, token_address: str, amount: str = "1") -> float:
        """USD value of ``amount`` tokens (the unit price for the default amount).

        Returns 0.0 when no pool can quote the token; callers should read that
        as "unknown", not "worthless".
        """
        key = (token_address.lower(), str(amount))

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Using cached on-chain price for %s: %s", key[0], cached)
            return cached

        pending = self._pending.get(key)
        if pending is not None:
            logger.debug("Awaiting in-flight quote for %s", key[0])
            return await asyncio.shield(pending)

        future = asyncio.ensure_future(self._execute_get_token_price(*key))
        self._pending[key] = future
        future.add_done_callback(lambda _: self._pending.pop(key, None))
        return await asyncio.shield(future)

    async def get_token_prices(
        self,
        token_addresses: Sequence[str],
        amount: str = "1",
        stagger: float = QUOTE_STAGGER_DELAY,
    ) -> Dict[str, float]:
        """Quotes several tokens, starting each request ``stagger`` seconds after the previous."""

        async def _delayed(index: int, address: str) -> float:
            if stagger > 0 and index:
                await asyncio.sleep(stagger * index)
            return await self.get_token_price(address, amount)

        addresses = list(dict.fromkeys(a.lower() for a in token_addresses))
        results = await asyncio.gather(*(_delayed(i, a) for i, a in enumerate(addresses)))
        return dict(zip(addresses, results))

    def clear_cache(self) -> None:
        self._cache.clear()

    async def _execute_get_token_price(self, token_address: str, amount: str) -> float:
        try:
            value = await self._quote_usdt_value(token_address, amount)
        except QuoteRouteNotFound as exc:
            logger.warning("No on-chain route for %s: %s", token_address, exc)
            return 0.0
        except Exception as exc:
            logger.error("On-chain quote for %s failed: %s", token_address, exc)
            return 0.0

        if value <= 0:
            logger.info("On-chain quote for %s returned no value", token_address)
            return 0.0
        self._cache.set((token_address, amount), value)
        logger.debug("On-chain value of %s %s: $%s", amount, token_address, value)
        return value

    async def _quote_usdt_value(self, token_address: str, amount: str) -> float:
        decimals = await self._get_decimals(token_address)
        amount_in = parse_units(amount, decimals)

        direct = await self._try_direct_quote(token_address, USDT_ADDRESS, FEE_0_01_PERCENT, amount_in)
        if direct is not None and direct > 0:
            return direct

        multi_hop = await self._try_multi_hop_quote(token_address, amount_in)
        if multi_hop is not None and multi_hop > 0:
            return multi_hop

        raise QuoteRouteNotFound(f"no direct or multi-hop pool for {token_address}")

    async def _try_direct_quote(self, token_in: str, token_out: str, fee: int, amount_in: int) -> Optional[float]:
        try:
            if not await self._pool_exists(token_in, token_out, fee):
                return None
            data = encode(
                ['(address,address,uint256,uint24,uint160)'],
                [(token_in, token_out, amount_in, fee, 0)],
            )
            result = await self._eth_call(self._quoter, self._QUOTE_SINGLE_SIG + data.hex())
            amount_out = decode(['uint256', 'uint160', 'uint32', 'uint256'], self._to_bytes(result))[0]
        except Exception as exc:
            logger.warning("Direct quote %s -> %s (fee %s) failed: %s", token_in, token_out, fee, exc)
            return None
        return format_units(amount_out, USDT_DECIMALS)

    async def _try_multi_hop_quote(self, token_in: str, amount_in: int) -> Optional[float]:
        path = [token_in, WBNB_ADDRESS, USDT_ADDRESS]
        for fees in MULTI_HOP_FEE_OPTIONS:
            try:
                if not await self._pool_exists(token_in, WBNB_ADDRESS, fees[0]):
                    continue
                if not await self._pool_exists(WBNB_ADDRESS, USDT_ADDRESS, fees[1]):
                    continue
                data = encode(['bytes', 'uint256'], [encode_path(path, fees), amount_in])
                result = await self._eth_call(self._quoter, self._QUOTE_MULTI_SIG + data.hex())
                amount_out = decode(
                    ['uint256', 'uint160[]', 'uint32[]', 'uint256'], self._to_bytes(result)
                )[0]
            except Exception as exc:
                logger.warning("Multi-hop quote for %s with fees %s failed: %s", token_in, fees, exc)
                continue
            if amount_out > 0:
                return format_units(amount_out, USDT_DECIMALS)
        return None

    async def _pool_exists(self, token_a: str, token_b: str, fee: int) -> bool:
        data = encode(['address', 'address', 'uint24'], [token_a, token_b, fee])
        result = await self._eth_call(self._factory, self._GET_POOL_SIG + data.hex())
        pool = decode(['address'], self._to_bytes(result))[0]
        return pool.lower() != ZERO_ADDRESS

    async def _get_decimals(self, token_address: str) -> int:
        cached = self._decimals_cache.get(token_address)
        if cached is not None:
            return cached
        try:
            result = await self._eth_call(token_address, self._DECIMALS_SIG)
            decimals = int(result, 16)
        except Exception as exc:
            logger.warning("Could not read decimals of %s, assuming %d: %s", token_address, DEFAULT_TOKEN_DECIMALS, exc)
            return DEFAULT_TOKEN_DECIMALS
        self._decimals_cache[token_address] = decimals
        return decimals

    async def _eth_call(self, to: str, data: str, block: str = "latest") -> str:
        call_params = {"to": to, "data": data}
        result = await self._rpc_call("eth_call", [call_params, block])
        if not result or result == "0x":
            raise ValueError("empty_result")
        return result

    async def _rpc_call(self, method: str, params: list) -> Optional[str]:
        request_id = await self._get_request_id()
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id,
        }
        async with self._session.post(self._rpc_url, json=payload, timeout=self._timeout) as response:
            response.raise_for_status()
            data = await response.json()
        if 'error' in data:
            raise RuntimeError(data['error'])
        return data.get('result')

    async def _get_request_id(self) -> int:
        async with self._id_lock:
            request_id = self._next_request_id
            self._next_request_id += 1
        return request_id

    @staticmethod
    def _to_bytes(value: str) -> bytes:
        return bytes.fromhex(value[2:] if value.startswith('0x') else value)
