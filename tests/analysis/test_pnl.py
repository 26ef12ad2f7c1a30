import pytest

from analysis.alpha_classifier import AlphaClassifier
from analysis.models import RawTokenTransfer, RawTransaction
from analysis.pnl import PNLEngine, gas_cost_usd
from analysis.trade_parser import TradeParser
from constants import DEX_ROUTER_ADDRESS, USDT_ADDRESS

WALLET = '0x000000000000000000000000000000000000beef'
POOL = '0x0000000000000000000000000000000000000d01'
ALPHA = '0x00000000000000000000000000000000000000a1'


class FakeOracle:
    native_price = 600.0

    def __init__(self, prices):
        self.prices = prices

    def price_of(self, address):
        return self.prices.get(address, 0.0)


def make_tx(tx_hash, to=DEX_ROUTER_ADDRESS, timestamp=1_700_000_000, gas_used=100_000, gas_price=10 ** 9):
    return RawTransaction(
        hash=tx_hash, from_address=WALLET, to_address=to,
        timestamp=timestamp, gas_used=gas_used, gas_price=gas_price,
    )


def make_transfer(tx_hash, sender, receiver, contract, amount, symbol='', timestamp=1_700_000_000):
    return RawTokenTransfer(
        hash=tx_hash, from_address=sender, to_address=receiver, contract_address=contract,
        raw_value=int(amount * 10 ** 18), decimals=18, symbol=symbol, timestamp=timestamp,
    )


def make_engine(prices):
    oracle = FakeOracle(prices)
    return PNLEngine(oracle, TradeParser(oracle, AlphaClassifier([ALPHA])))


def test_gas_cost_uses_reference_price():
    txs = [make_tx('0x1', gas_used=21_000, gas_price=5 * 10 ** 9), make_tx('0x2', gas_used=100_000, gas_price=10 ** 9)]
    # (105000 + 100000) gwei = 0.000205 BNB
    assert gas_cost_usd(txs) == pytest.approx(0.000205 * 600)
    assert gas_cost_usd(txs, native_price=300) == pytest.approx(0.000205 * 300)
    assert gas_cost_usd([]) == 0


def test_net_flow_valued_at_current_price():
    txs = [make_tx('0x1', timestamp=100), make_tx('0x2', timestamp=200)]
    transfers = [
        make_transfer('0x1', WALLET, POOL, USDT_ADDRESS, 10, 'USDT', timestamp=100),
        make_transfer('0x1', POOL, WALLET, ALPHA, 1000, 'ALPHA', timestamp=100),
        make_transfer('0x2', WALLET, POOL, ALPHA, 400, 'ALPHA', timestamp=200),
        make_transfer('0x2', POOL, WALLET, USDT_ADDRESS, 5, 'USDT', timestamp=200),
    ]
    result = make_engine({ALPHA: 0.02, USDT_ADDRESS: 1.0}).compute_pnl(txs, transfers)

    balances = {b.symbol: b for b in result.token_balances}
    assert balances['ALPHA'].total_in == pytest.approx(1000)
    assert balances['ALPHA'].total_out == pytest.approx(400)
    assert balances['ALPHA'].net_amount == pytest.approx(600)
    assert balances['ALPHA'].pnl == pytest.approx(12.0)
    assert balances['USDT'].net_amount == pytest.approx(-5)
    assert balances['USDT'].pnl == pytest.approx(-5.0)
    assert result.total_pnl == pytest.approx(sum(b.pnl for b in result.token_balances))
    assert [t.hash for t in result.all_trades] == ['0x2', '0x1']


def test_transfers_outside_router_transactions_are_excluded():
    txs = [make_tx('0x1'), make_tx('0x2', to='0x0000000000000000000000000000000000000123')]
    transfers = [
        make_transfer('0x1', POOL, WALLET, ALPHA, 10, 'ALPHA'),
        make_transfer('0x2', POOL, WALLET, ALPHA, 999, 'ALPHA'),
    ]
    result = make_engine({ALPHA: 1.0}).compute_pnl(txs, transfers)
    assert len(result.token_balances) == 1
    assert result.token_balances[0].total_in == pytest.approx(10)


def test_transfers_not_touching_wallet_are_dropped():
    txs = [make_tx('0x1')]
    transfers = [make_transfer('0x1', POOL, '0x0000000000000000000000000000000000000d02', ALPHA, 10)]
    result = make_engine({ALPHA: 1.0}).compute_pnl(txs, transfers)
    assert result.token_balances == []
    assert result.total_pnl == 0


def test_unknown_price_gives_zero_pnl():
    txs = [make_tx('0x1')]
    transfers = [make_transfer('0x1', POOL, WALLET, ALPHA, 10, 'ALPHA')]
    result = make_engine({}).compute_pnl(txs, transfers)
    assert result.token_balances[0].current_price == 0
    assert result.token_balances[0].pnl == 0


def test_no_transactions():
    result = make_engine({}).compute_pnl([], [])
    assert result.total_pnl == 0
    assert result.total_gas_cost == 0
    assert result.token_balances == []
    assert result.all_trades == []
