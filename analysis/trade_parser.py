#!/usr/bin/env python3
"""Rebuilds swaps from raw token-transfer logs."""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from analysis.alpha_classifier import AlphaClassifier
from analysis.models import RawTokenTransfer, RawTransaction, TradeInfo
from constants import DEX_ROUTER_ADDRESS


def index_transactions(transactions: Iterable[RawTransaction]) -> Dict[str, RawTransaction]:
    return {tx.hash: tx for tx in transactions}


def touches_router(tx: Optional[RawTransaction], router: str = DEX_ROUTER_ADDRESS) -> bool:
    if tx is None:
        return False
    return tx.to_address == router or tx.from_address == router


def filter_router_transfers(
    tx_by_hash: Dict[str, RawTransaction],
    transfers: Iterable[RawTokenTransfer],
    router: str = DEX_ROUTER_ADDRESS,
) -> List[RawTokenTransfer]:
    """Keeps transfers whose parent transaction was sent to or from the router."""
    router = router.lower()
    return [t for t in transfers if touches_router(tx_by_hash.get(t.hash), router)]


def dominant_leg(legs: Sequence[RawTokenTransfer]) -> RawTokenTransfer:
    """Largest normalised amount wins; the first leg wins ties."""
    best = legs[0]
    for leg in legs[1:]:
        if leg.amount > best.amount:
            best = leg
    return best


class TradeParser:
    """
    Turns router-mediated transfer groups into one sell/buy pair per hash.

    Pairing by largest amount tolerates the small intermediate transfers that
    routing hops emit. It is a heuristic: hops of similar size to the real legs
    can be mis-paired.
    """

    def __init__(self, price_oracle, classifier: AlphaClassifier, router: str = DEX_ROUTER_ADDRESS):
        self.price_oracle = price_oracle
        self.classifier = classifier
        self.router = router.lower()

    def parse_trades(
        self,
        transactions: Iterable[RawTransaction],
        transfers: Iterable[RawTokenTransfer],
    ) -> List[TradeInfo]:
        tx_by_hash = index_transactions(transactions)
        groups: Dict[str, List[RawTokenTransfer]] = defaultdict(list)
        for transfer in filter_router_transfers(tx_by_hash, transfers, self.router):
            groups[transfer.hash].append(transfer)

        trades: List[TradeInfo] = []
        for tx_hash, group in groups.items():
            trade = self._parse_group(tx_by_hash[tx_hash], group)
            if trade is not None:
                trades.append(trade)
        return trades

    def _parse_group(self, tx: RawTransaction, group: List[RawTokenTransfer]) -> Optional[TradeInfo]:
        if len(group) < 2:
            return None

        initiator = tx.from_address
        sent = [t for t in group if t.from_address == initiator]
        received = [t for t in group if t.to_address == initiator]
        if not sent or not received:
            return None

        sell_leg = dominant_leg(sent)
        buy_leg = dominant_leg(received)

        usd_value = self.value_of_leg(sell_leg)
        if usd_value <= 0:
            return None

        return TradeInfo(
            hash=tx.hash,
            sell_leg=sell_leg,
            buy_leg=buy_leg,
            usd_value=usd_value,
            is_qualifying=self.classifier.is_qualifying(sell_leg, buy_leg),
        )

    def value_of_leg(self, leg: RawTokenTransfer) -> float:
        amount = leg.amount
        if self.classifier.is_stablecoin(leg.contract_address):
            return amount
        if self.classifier.is_wrapped_native(leg.contract_address):
            return amount * self.price_oracle.native_price
        return amount * self.price_oracle.price_of(leg.contract_address)
