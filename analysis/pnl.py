#!/usr/bin/env python3
from typing import Dict, List, Optional, Sequence

from analysis.models import PNLResult, RawTokenTransfer, RawTransaction, TokenBalance, TradeInfo
from analysis.trade_parser import TradeParser, filter_router_transfers, index_transactions
from constants import GAS_REFERENCE_NATIVE_PRICE_USD, WEI_PER_NATIVE


def gas_cost_usd(
    transactions: Sequence[RawTransaction],
    native_price: float = GAS_REFERENCE_NATIVE_PRICE_USD,
) -> float:
    """Total gas spent, valued at a fixed reference price rather than the live one."""
    total_wei = sum(tx.gas_used * tx.gas_price for tx in transactions)
    return total_wei / WEI_PER_NATIVE * native_price


class PNLEngine:
    def __init__(self, price_oracle, trade_parser: TradeParser):
        self.price_oracle = price_oracle
        self.trade_parser = trade_parser

    def compute_pnl(
        self,
        transactions: Sequence[RawTransaction],
        transfers: Sequence[RawTokenTransfer],
        qualifying_trades: Optional[List[TradeInfo]] = None,
    ) -> PNLResult:
        """Values the net router-mediated token flow of the address at current prices."""
        total_gas_cost = gas_cost_usd(transactions)

        # Single-address analysis: the first sender is the wallet being analysed.
        primary = transactions[0].from_address if transactions else ''

        tx_by_hash = index_transactions(transactions)
        router_transfers = filter_router_transfers(tx_by_hash, transfers, self.trade_parser.router)

        balances: Dict[str, TokenBalance] = {}
        for transfer in router_transfers:
            contract = transfer.contract_address
            balance = balances.get(contract)
            if balance is None:
                balance = TokenBalance(
                    contract_address=contract,
                    symbol=transfer.symbol,
                    name=transfer.name,
                )
                balances[contract] = balance

            if transfer.to_address == primary:
                balance.total_in += transfer.amount
            elif transfer.from_address == primary:
                balance.total_out += transfer.amount

        retained: List[TokenBalance] = []
        for balance in balances.values():
            if balance.total_in <= 0 and balance.total_out <= 0:
                continue
            balance.net_amount = balance.total_in - balance.total_out
            balance.current_price = self.price_oracle.price_of(balance.contract_address)
            balance.pnl = balance.net_amount * balance.current_price
            retained.append(balance)

        all_trades = self.trade_parser.parse_trades(transactions, transfers)
        all_trades.sort(key=lambda t: t.timestamp, reverse=True)

        return PNLResult(
            total_pnl=sum(b.pnl for b in retained),
            total_gas_cost=total_gas_cost,
            token_balances=retained,
            all_trades=all_trades,
            trades=list(qualifying_trades or []),
        )
