import pytest

from analysis.analyzer import TransactionAnalyzer
from analysis.models import ChainData, RawTokenTransfer, RawTransaction
from constants import DEX_ROUTER_ADDRESS, USDT_ADDRESS
from daily_analyzer import DailyAnalyzer
from services.errors import FetchError
from services.price_oracle import PriceOracle

WALLET = '0x000000000000000000000000000000000000beef'
POOL = '0x0000000000000000000000000000000000000d01'
ALPHA = '0x00000000000000000000000000000000000000a1'
UNLISTED = '0x00000000000000000000000000000000000000b2'


class FakeExplorer:
    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.requested = []

    async def get_today_data(self, address):
        self.requested.append(address)
        if self.error:
            raise self.error
        return self.data


class FakeMarketClient:
    async def get_native_price(self):
        return 600.0

    async def get_alpha_tokens(self):
        return [{'contractAddress': ALPHA, 'chainName': 'BSC', 'price': '0.5'}]


class FakeQuoter:
    def __init__(self):
        self.requested = []

    async def get_token_prices(self, addresses, amount="1", stagger=0.1):
        self.requested.extend(addresses)
        return {a: 0.25 for a in addresses}


def _day():
    tx = RawTransaction(
        hash='0x1', from_address=WALLET, to_address=DEX_ROUTER_ADDRESS,
        timestamp=1_700_000_000, gas_used=21_000, gas_price=10 ** 9,
    )

    def transfer(sender, receiver, contract, amount):
        return RawTokenTransfer(
            hash='0x1', from_address=sender, to_address=receiver, contract_address=contract,
            raw_value=amount * 10 ** 18, decimals=18, timestamp=1_700_000_000,
        )

    return ChainData(
        start_block=100,
        transactions=[tx],
        token_transfers=[
            transfer(WALLET, POOL, USDT_ADDRESS, 2),
            transfer(POOL, WALLET, ALPHA, 4),
            transfer(POOL, WALLET, UNLISTED, 1),
        ],
    )


def _build(explorer, quoter=None, onchain_fallback=False):
    oracle = PriceOracle(FakeMarketClient(), quoter)
    return DailyAnalyzer(explorer, oracle, TransactionAnalyzer(oracle), onchain_fallback=onchain_fallback)


@pytest.mark.asyncio
async def test_run_produces_report(capsys):
    explorer = FakeExplorer(_day())
    report = await _build(explorer).run(WALLET.upper().replace('0X', '0x'))

    assert explorer.requested == [WALLET]
    assert report.address == WALLET
    assert report.start_block == 100
    assert report.transaction_count == 1
    assert report.transfer_count == 3
    assert report.alpha.actual_value == pytest.approx(2.0)
    assert report.alpha.score == 2
    balances = {b.contract_address: b for b in report.pnl.token_balances}
    assert balances[ALPHA].pnl == pytest.approx(2.0)
    assert balances[UNLISTED].pnl == 0
    assert 'Fetching' in capsys.readouterr().out


@pytest.mark.asyncio
async def test_onchain_fallback_prices_unlisted_tokens():
    quoter = FakeQuoter()
    report = await _build(FakeExplorer(_day()), quoter, onchain_fallback=True).run(WALLET)

    assert quoter.requested == [UNLISTED]
    balances = {b.contract_address: b for b in report.pnl.token_balances}
    assert balances[UNLISTED].pnl == pytest.approx(0.25)


@pytest.mark.asyncio
async def test_fetch_error_propagates():
    explorer = FakeExplorer(error=FetchError('rate limited'))
    with pytest.raises(FetchError):
        await _build(explorer).run(WALLET)
