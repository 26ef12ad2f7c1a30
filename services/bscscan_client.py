#!/usr/bin/env python3
import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List

import aiohttp
from analysis.models import ChainData, RawTokenTransfer, RawTransaction
from constants import (
    BSC_CHAIN_ID,
    C_RED,
    C_RESET,
    END_BLOCK,
    ETHERSCAN_API_BASE_URL,
    EXPLORER_RATE_LIMIT_DELAY,
    NO_RESULT_MESSAGES,
    PAGE_SIZE,
)
from services.errors import FetchError
from services.ttl_cache import TTLCache

def log_error(message: str) -> None:
    """Centralized error logging."""
    print(f"{C_RED}{message}{C_RESET}")


def utc_day_start(now_ts: float) -> int:
    """Unix timestamp of 00:00 UTC on the day containing ``now_ts``."""
    now = datetime.fromtimestamp(now_ts, tz=timezone.utc)
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(start.timestamp())


class BscScanClient:
    """Pages through an address' transactions and token transfers for today (UTC)."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_key: str,
        *,
        base_url: str = ETHERSCAN_API_BASE_URL,
        chain_id: int = BSC_CHAIN_ID,
        page_size: int = PAGE_SIZE,
        timeout: float = 30,
        rate_limit_delay: float = EXPLORER_RATE_LIMIT_DELAY,
        clock: Callable[[], float] = time.time,
    ):
        self.session = session
        self.api_key = api_key
        self.base_url = base_url
        self.chain_id = chain_id
        self.page_size = page_size
        self.timeout = timeout
        self._clock = clock
        self._last_request_time = 0.0
        self._rate_limit_delay = rate_limit_delay
        # Keyed by the day's start timestamp; entries expire at the next UTC midnight.
        self._start_block_cache: TTLCache[int] = TTLCache(ttl=24 * 3600, clock=clock)

    async def _wait_for_rate_limit(self):
        if self._rate_limit_delay <= 0:
            return
        elapsed = self._clock() - self._last_request_time
        if elapsed < self._rate_limit_delay:
            await asyncio.sleep(self._rate_limit_delay - elapsed)
        self._last_request_time = self._clock()

    async def _call(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Issues one explorer request. Transport and decoding failures raise FetchError."""
        await self._wait_for_rate_limit()
        query = dict(params)
        query['apikey'] = self.api_key
        query['chainid'] = str(self.chain_id)
        try:
            async with self.session.get(self.base_url, params=query, timeout=self.timeout) as response:
                response.raise_for_status()
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            # ValueError covers malformed JSON bodies.
            log_error(f"Explorer request {params.get('action')} failed: {e}")
            raise FetchError(f"Explorer request {params.get('action')} failed: {e}") from e

        if not isinstance(data, dict):
            raise FetchError(f"Unexpected explorer response: {data!r}")
        return data

    @staticmethod
    def _is_empty_result(data: Dict[str, Any]) -> bool:
        message = str(data.get('message') or '').lower()
        return any(m in message for m in NO_RESULT_MESSAGES)

    async def _get_list(self, action: str, address: str, start_block: int, end_block: int, page: int, offset: int) -> List[Dict]:
        data = await self._call({
            'module': 'account',
            'action': action,
            'address': address,
            'startblock': start_block,
            'endblock': end_block,
            'page': page,
            'offset': offset,
            'sort': 'desc',
        })
        if str(data.get('status')) == '1' and isinstance(data.get('result'), list):
            return data['result']
        if self._is_empty_result(data):
            return []
        message = data.get('message') or 'unknown error'
        log_error(f"Explorer {action} error for {address} (page {page}): {message} {data.get('result')}")
        raise FetchError(f"Explorer {action} returned status {data.get('status')}: {message}")

    async def get_block_by_timestamp(self, timestamp: int) -> int:
        data = await self._call({
            'module': 'block',
            'action': 'getblocknobytime',
            'timestamp': str(int(timestamp)),
            'closest': 'before',
        })
        if str(data.get('status')) != '1':
            raise FetchError(f"getblocknobytime failed: {data.get('message')} {data.get('result')}")
        try:
            return int(data['result'])
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(f"Invalid block result: {data}") from e

    async def get_today_start_block(self) -> int:
        """Block at 00:00 UTC today, cached until the day rolls over."""
        now = self._clock()
        day_start = utc_day_start(now)
        cached = self._start_block_cache.get(day_start)
        if cached is not None:
            return cached
        block = await self.get_block_by_timestamp(day_start)
        seconds_left = day_start + int(timedelta(days=1).total_seconds()) - now
        self._start_block_cache.set(day_start, block, ttl=max(seconds_left, 1))
        return block

    async def get_transactions(self, address: str, start_block: int, end_block: int = END_BLOCK, page: int = 1, offset: int = PAGE_SIZE) -> List[RawTransaction]:
        rows = await self._get_list('txlist', address, start_block, end_block, page, offset)
        return [RawTransaction.from_explorer(r) for r in rows]

    async def get_token_transfers(self, address: str, start_block: int, end_block: int = END_BLOCK, page: int = 1, offset: int = PAGE_SIZE) -> List[RawTokenTransfer]:
        rows = await self._get_list('tokentx', address, start_block, end_block, page, offset)
        return [RawTokenTransfer.from_explorer(r) for r in rows]

    async def _get_all(self, fetch_page, address: str, start_block: int) -> list:
        # A short page is the only stop condition; there is no page cap.
        items: list = []
        page = 1
        while True:
            rows = await fetch_page(address, start_block, END_BLOCK, page, self.page_size)
            items.extend(rows)
            if len(rows) < self.page_size:
                break
            page += 1
        return items

    async def get_all_transactions(self, address: str, start_block: int) -> List[RawTransaction]:
        return await self._get_all(self.get_transactions, address, start_block)

    async def get_all_token_transfers(self, address: str, start_block: int) -> List[RawTokenTransfer]:
        return await self._get_all(self.get_token_transfers, address, start_block)

    async def get_today_data(self, address: str) -> ChainData:
        """Fetches today's transactions and token transfers concurrently."""
        start_block = await self.get_today_start_block()
        tasks = [
            asyncio.ensure_future(self.get_all_transactions(address, start_block)),
            asyncio.ensure_future(self.get_all_token_transfers(address, start_block)),
        ]
        try:
            transactions, transfers = await asyncio.gather(*tasks)
        except Exception:
            # A failed loop must not leave its sibling paging in the background.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return ChainData(start_block=start_block, transactions=transactions, token_transfers=transfers)
