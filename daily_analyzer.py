# daily_analyzer.py
import logging

from analysis.analyzer import TransactionAnalyzer
from analysis.models import AnalysisReport
from constants import C_BLUE, C_GREEN, C_RESET
from services.bscscan_client import BscScanClient
from services.price_oracle import PriceOracle

logger = logging.getLogger(__name__)


class DailyAnalyzer:
    """Runs one analysis of an address' activity since 00:00 UTC."""

    def __init__(
        self,
        explorer: BscScanClient,
        price_oracle: PriceOracle,
        analyzer: TransactionAnalyzer,
        onchain_fallback: bool = False,
    ):
        self.explorer = explorer
        self.price_oracle = price_oracle
        self.analyzer = analyzer
        self.onchain_fallback = onchain_fallback

    async def run(self, address: str) -> AnalysisReport:
        """Fetch, price, score and value. FetchError from the explorer propagates."""
        address = address.lower()
        print(f"{C_BLUE}Fetching today's activity for {address}...{C_RESET}")
        data = await self.explorer.get_today_data(address)
        print(
            f"Found {len(data.transactions)} transactions and "
            f"{len(data.token_transfers)} token transfers since block {data.start_block}."
        )

        contracts = list(dict.fromkeys(t.contract_address for t in data.token_transfers))
        await self.price_oracle.warm(contracts)

        if self.onchain_fallback and contracts:
            found = await self.price_oracle.backfill_onchain(contracts)
            if found:
                print(f"{C_GREEN}Priced {len(found)} additional tokens on-chain.{C_RESET}")

        alpha = self.analyzer.analyze_alpha_trades(data.transactions, data.token_transfers)
        pnl = self.analyzer.analyze_pnl(data.transactions, data.token_transfers, alpha.trades)
        logger.debug("Analysis of %s complete: score %d, pnl %.2f", address, alpha.score, pnl.total_pnl)

        return AnalysisReport(
            address=address,
            start_block=data.start_block,
            alpha=alpha,
            pnl=pnl,
            transaction_count=len(data.transactions),
            transfer_count=len(data.token_transfers),
        )
