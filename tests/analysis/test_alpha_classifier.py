import pytest

from analysis.alpha_classifier import AlphaClassifier
from analysis.models import RawTokenTransfer
from constants import USDC_ADDRESS, USDT_ADDRESS, WBNB_ADDRESS

ALPHA = '0x00000000000000000000000000000000000000a1'
ALPHA_2 = '0x00000000000000000000000000000000000000a2'
OTHER = '0x00000000000000000000000000000000000000b2'


def leg(contract):
    return RawTokenTransfer(
        hash='0x1', from_address='0x1', to_address='0x2',
        contract_address=contract, raw_value=1, decimals=0,
    )


@pytest.fixture
def classifier():
    return AlphaClassifier([ALPHA.upper().replace('0X', '0x'), ALPHA_2])


@pytest.mark.parametrize(
    'sold, bought, expected',
    [
        (USDT_ADDRESS, ALPHA, True),
        (USDC_ADDRESS, ALPHA, True),
        (WBNB_ADDRESS, ALPHA, True),
        (ALPHA_2, ALPHA, True),
        (OTHER, ALPHA, False),
        (ALPHA, USDT_ADDRESS, False),
        (USDT_ADDRESS, OTHER, False),
        (USDT_ADDRESS, WBNB_ADDRESS, False),
    ],
)
def test_qualifying_pairs(classifier, sold, bought, expected):
    assert classifier.is_qualifying(leg(sold), leg(bought)) is expected


def test_membership_is_case_insensitive(classifier):
    assert classifier.is_alpha(ALPHA)
    assert classifier.is_stablecoin(USDT_ADDRESS.upper().replace('0X', '0x'))
    assert classifier.is_wrapped_native(WBNB_ADDRESS)
    assert not classifier.is_stablecoin(WBNB_ADDRESS)
