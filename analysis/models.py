#!/usr/bin/env python3
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _normalise(address: Optional[str]) -> str:
    return (address or '').lower()


@dataclass(frozen=True)
class RawTransaction:
    """A native transaction as returned by the explorer's txlist endpoint."""
    hash: str
    from_address: str
    to_address: str
    timestamp: int
    gas_used: int
    gas_price: int  # wei
    status: str = '1'
    block_number: int = 0
    is_error: bool = False

    @classmethod
    def from_explorer(cls, row: Dict[str, Any]) -> 'RawTransaction':
        return cls(
            hash=row.get('hash', ''),
            from_address=_normalise(row.get('from')),
            to_address=_normalise(row.get('to')),
            timestamp=_to_int(row.get('timeStamp')),
            gas_used=_to_int(row.get('gasUsed')),
            gas_price=_to_int(row.get('gasPrice')),
            status=str(row.get('txreceipt_status', '1') or '1'),
            block_number=_to_int(row.get('blockNumber')),
            is_error=str(row.get('isError', '0')) == '1',
        )


@dataclass(frozen=True)
class RawTokenTransfer:
    """A single token Transfer event from the explorer's tokentx endpoint."""
    hash: str
    from_address: str
    to_address: str
    contract_address: str
    raw_value: int
    decimals: int
    symbol: str = ''
    name: str = ''
    timestamp: int = 0
    block_number: int = 0

    @property
    def amount(self) -> float:
        """Value normalised by the token decimals."""
        return self.raw_value / (10 ** self.decimals)

    @classmethod
    def from_explorer(cls, row: Dict[str, Any]) -> 'RawTokenTransfer':
        return cls(
            hash=row.get('hash', ''),
            from_address=_normalise(row.get('from')),
            to_address=_normalise(row.get('to')),
            contract_address=_normalise(row.get('contractAddress')),
            raw_value=_to_int(row.get('value')),
            decimals=_to_int(row.get('tokenDecimal'), default=18),
            symbol=row.get('tokenSymbol') or '',
            name=row.get('tokenName') or '',
            timestamp=_to_int(row.get('timeStamp')),
            block_number=_to_int(row.get('blockNumber')),
        )


@dataclass
class TradeInfo:
    """A swap reconstructed from the transfers sharing one transaction hash."""
    hash: str
    sell_leg: RawTokenTransfer
    buy_leg: RawTokenTransfer
    usd_value: float
    is_qualifying: bool = False

    @property
    def timestamp(self) -> int:
        return self.sell_leg.timestamp

    @property
    def sell_amount(self) -> float:
        return self.sell_leg.amount

    @property
    def buy_amount(self) -> float:
        return self.buy_leg.amount


@dataclass
class PriceEntry:
    """A cached USD unit price and when it was obtained."""
    contract_address: str
    price_usd: float
    fetched_at: float


@dataclass
class TokenBalance:
    """Net router-mediated flow of one token for the analysed address."""
    contract_address: str
    symbol: str
    name: str
    total_in: float = 0.0
    total_out: float = 0.0
    net_amount: float = 0.0
    current_price: float = 0.0
    pnl: float = 0.0


@dataclass(frozen=True)
class ScoreLevel:
    """One row of the scoring table."""
    amount: float
    score: int


@dataclass
class LevelProgress:
    """Where a volume sits between two scoring thresholds."""
    current_level: float
    next_level: float
    progress: float


@dataclass
class ScoreBreakdown:
    score: int
    current_level_floor: float
    next_level_ceiling: float
    progress_percent: float
    amount_needed_for_next_level: float


@dataclass
class AlphaTradeResult:
    """Score-relevant summary of a day's qualifying trades."""
    total_value: float  # doubled volume used for scoring
    actual_value: float
    score: int
    next_level_amount: float
    trades: List[TradeInfo] = field(default_factory=list)
    level_info: Optional[LevelProgress] = None


@dataclass
class PNLResult:
    """Per-token PNL, gas cost and trade lists for the analysed address."""
    total_pnl: float
    total_gas_cost: float
    token_balances: List[TokenBalance] = field(default_factory=list)
    all_trades: List[TradeInfo] = field(default_factory=list)
    trades: List[TradeInfo] = field(default_factory=list)


@dataclass
class ChainData:
    """Raw explorer data for one address and one UTC day."""
    start_block: int
    transactions: List[RawTransaction] = field(default_factory=list)
    token_transfers: List[RawTokenTransfer] = field(default_factory=list)


@dataclass
class AnalysisReport:
    address: str
    start_block: int
    alpha: AlphaTradeResult
    pnl: PNLResult
    transaction_count: int = 0
    transfer_count: int = 0
