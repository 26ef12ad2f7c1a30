#!/usr/bin/env python3
import logging
from typing import Iterable, List, Optional, Sequence

from analysis.alpha_classifier import AlphaClassifier
from analysis.models import AlphaTradeResult, PNLResult, RawTokenTransfer, RawTransaction, TradeInfo
from analysis.pnl import PNLEngine
from analysis.scoring import calculate_score, level_progress
from analysis.trade_parser import TradeParser
from constants import ALPHA_VOLUME_MULTIPLIER, DEX_ROUTER_ADDRESS

logger = logging.getLogger(__name__)


class TransactionAnalyzer:
    """Scores and values one address' daily activity using a warmed price oracle."""

    def __init__(
        self,
        price_oracle,
        extra_alpha_addresses: Iterable[str] = (),
        router: str = DEX_ROUTER_ADDRESS,
    ):
        self.price_oracle = price_oracle
        self.extra_alpha_addresses = [a.lower() for a in extra_alpha_addresses]
        self.router = router

    def _build_parser(self) -> TradeParser:
        # Alpha membership comes from the oracle's latest list, so build per analysis.
        alpha = set(self.price_oracle.alpha_addresses) | set(self.extra_alpha_addresses)
        classifier = AlphaClassifier(alpha)
        return TradeParser(self.price_oracle, classifier, router=self.router)

    def analyze_alpha_trades(
        self,
        transactions: Sequence[RawTransaction],
        token_transfers: Sequence[RawTokenTransfer],
    ) -> AlphaTradeResult:
        trades = self._build_parser().parse_trades(transactions, token_transfers)
        qualifying = [t for t in trades if t.is_qualifying]
        qualifying.sort(key=lambda t: t.timestamp, reverse=True)

        actual_value = sum(t.usd_value for t in qualifying)
        total_value = actual_value * ALPHA_VOLUME_MULTIPLIER
        breakdown = calculate_score(total_value)

        logger.info(
            "Parsed %d trades (%d qualifying), volume $%.2f -> score %d",
            len(trades),
            len(qualifying),
            actual_value,
            breakdown.score,
        )

        return AlphaTradeResult(
            total_value=total_value,
            actual_value=actual_value,
            score=breakdown.score,
            next_level_amount=breakdown.amount_needed_for_next_level,
            trades=qualifying,
            level_info=level_progress(breakdown),
        )

    def analyze_pnl(
        self,
        transactions: Sequence[RawTransaction],
        token_transfers: Sequence[RawTokenTransfer],
        alpha_trades: Optional[List[TradeInfo]] = None,
    ) -> PNLResult:
        engine = PNLEngine(self.price_oracle, self._build_parser())
        result = engine.compute_pnl(transactions, token_transfers, alpha_trades)
        logger.info(
            "PNL over %d tokens: $%.2f (gas $%.4f)",
            len(result.token_balances),
            result.total_pnl,
            result.total_gas_cost,
        )
        return result
