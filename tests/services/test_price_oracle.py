import pytest

from constants import USDC_ADDRESS, USDT_ADDRESS, WBNB_ADDRESS
from services.errors import PriceUnavailable
from services.price_oracle import PriceOracle

ALPHA = '0x00000000000000000000000000000000000000a1'
OTHER = '0x00000000000000000000000000000000000000b2'


class FakeMarketClient:
    def __init__(self, native_price=610.0, alpha_tokens=None):
        self.native_price = native_price
        self.alpha_tokens = alpha_tokens if alpha_tokens is not None else []

    async def get_native_price(self):
        if isinstance(self.native_price, Exception):
            raise self.native_price
        return self.native_price

    async def get_alpha_tokens(self):
        if isinstance(self.alpha_tokens, Exception):
            raise self.alpha_tokens
        return self.alpha_tokens


class FakeQuoter:
    def __init__(self, prices):
        self.prices = prices
        self.requested = []

    async def get_token_price(self, address, amount="1"):
        self.requested.append(address)
        return self.prices.get(address, 0.0) * float(amount)

    async def get_token_prices(self, addresses, amount="1", stagger=0.1):
        return {a: await self.get_token_price(a, amount) for a in addresses}


@pytest.mark.asyncio
async def test_tiers_resolve_in_order():
    market = FakeMarketClient(
        native_price=600.0,
        alpha_tokens=[
            {'contractAddress': ALPHA.upper().replace('0X', '0x'), 'chainName': 'BSC', 'price': '0.25'},
            {'contractAddress': USDT_ADDRESS, 'chainName': 'BSC', 'price': '0.98'},
        ],
    )
    oracle = PriceOracle(market)
    await oracle.warm([ALPHA, USDT_ADDRESS, WBNB_ADDRESS, OTHER])

    assert oracle.price_of(ALPHA) == 0.25
    assert oracle.price_of(USDT_ADDRESS) == 1.0
    assert oracle.price_of(USDC_ADDRESS) == 1.0
    assert oracle.price_of(WBNB_ADDRESS) == 600.0
    assert oracle.price_of(OTHER) == 0.0
    assert ALPHA in oracle.alpha_addresses


@pytest.mark.asyncio
async def test_native_failure_falls_back_to_default():
    market = FakeMarketClient(native_price=PriceUnavailable('ticker down'))
    oracle = PriceOracle(market, default_native_price=600.0)
    await oracle.warm([])
    assert oracle.native_price == 600.0
    assert oracle.price_of(WBNB_ADDRESS) == 600.0


@pytest.mark.asyncio
async def test_failed_alpha_refresh_keeps_previous_snapshot():
    market = FakeMarketClient(alpha_tokens=[{'contractAddress': ALPHA, 'price': '2'}])
    oracle = PriceOracle(market)
    await oracle.warm([ALPHA])

    market.alpha_tokens = PriceUnavailable('list down')
    await oracle.warm([ALPHA])
    assert oracle.price_of(ALPHA) == 2.0
    assert ALPHA in oracle.alpha_addresses


@pytest.mark.asyncio
async def test_listed_token_without_price_is_alpha_but_unpriced():
    market = FakeMarketClient(alpha_tokens=[{'contractAddress': ALPHA, 'price': None}])
    oracle = PriceOracle(market)
    await oracle.warm([ALPHA])
    assert ALPHA in oracle.alpha_addresses
    assert oracle.price_of(ALPHA) == 0.0


@pytest.mark.asyncio
async def test_resolve_price_uses_onchain_quote_as_last_resort():
    quoter = FakeQuoter({OTHER: 0.5})
    oracle = PriceOracle(FakeMarketClient(), quoter)
    await oracle.warm([OTHER])

    assert await oracle.resolve_price(USDT_ADDRESS) == 1.0
    assert quoter.requested == []
    assert await oracle.resolve_price(OTHER) == pytest.approx(0.5)
    assert quoter.requested == [OTHER]


@pytest.mark.asyncio
async def test_resolve_price_without_quoter_is_zero():
    oracle = PriceOracle(FakeMarketClient())
    assert await oracle.resolve_price(OTHER) == 0.0


@pytest.mark.asyncio
async def test_backfill_only_quotes_unpriced_tokens():
    quoter = FakeQuoter({OTHER: 0.75})
    market = FakeMarketClient(alpha_tokens=[{'contractAddress': ALPHA, 'price': '3'}])
    oracle = PriceOracle(market, quoter)
    await oracle.warm([ALPHA, OTHER, USDT_ADDRESS])

    found = await oracle.backfill_onchain([ALPHA, OTHER, USDT_ADDRESS, OTHER])

    assert found == {OTHER: pytest.approx(0.75)}
    assert quoter.requested == [OTHER]
    assert oracle.price_of(OTHER) == pytest.approx(0.75)
