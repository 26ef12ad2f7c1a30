#!/usr/bin/env python3
import asyncio
import logging
import sys
from typing import List, Optional

import aiohttp

import constants
from analysis.analyzer import TransactionAnalyzer
from analysis.models import AnalysisReport
from config import AppConfig, load_config
from daily_analyzer import DailyAnalyzer
from reports.daily_report import build_daily_report
from services.bscscan_client import BscScanClient
from services.errors import FetchError
from services.market_client import MarketClient
from services.pancake_quoter import PancakeQuoter
from services.price_oracle import PriceOracle


def build_analyzer(config: AppConfig, session: aiohttp.ClientSession) -> DailyAnalyzer:
    """Wires the clients for one run around a shared session."""
    explorer = BscScanClient(
        session,
        config.etherscan_api_key,
        base_url=config.explorer_url,
        chain_id=config.chain_id,
    )
    quoter = None
    if config.onchain_fallback:
        quoter = PancakeQuoter(session, rpc_url=config.rpc_url)
    oracle = PriceOracle(MarketClient(session), quoter, quote_stagger=config.quote_stagger)
    analyzer = TransactionAnalyzer(oracle, extra_alpha_addresses=config.extra_alpha)
    return DailyAnalyzer(explorer, oracle, analyzer, onchain_fallback=config.onchain_fallback)


async def run(config: AppConfig) -> AnalysisReport:
    async with aiohttp.ClientSession(headers={'User-Agent': 'DailyAlphaAnalyzer/1.0'}) as session:
        daily = build_analyzer(config, session)
        return await daily.run(config.address)


def main(argv: Optional[List[str]] = None) -> int:
    """The main synchronous entry point for the application."""
    config = load_config(argv)
    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        report = asyncio.run(run(config))
    except FetchError as exc:
        print(f"{constants.C_RED}Could not fetch on-chain data: {exc}{constants.C_RESET}")
        return 1

    print()
    print(build_daily_report(report, show_all_trades=config.show_all_trades))
    return 0


if __name__ == "__main__":
    sys.exit(main())
