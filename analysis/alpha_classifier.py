#!/usr/bin/env python3
from typing import FrozenSet, Iterable

from analysis.models import RawTokenTransfer
from constants import STABLECOIN_ADDRESSES, WBNB_ADDRESS


class AlphaClassifier:
    """Decides which swaps count towards the alpha score."""

    def __init__(
        self,
        alpha_addresses: Iterable[str],
        stablecoins: Iterable[str] = STABLECOIN_ADDRESSES,
        wrapped_native: str = WBNB_ADDRESS,
    ):
        self.alpha_addresses: FrozenSet[str] = frozenset(a.lower() for a in alpha_addresses)
        self.stablecoins: FrozenSet[str] = frozenset(a.lower() for a in stablecoins)
        self.wrapped_native = wrapped_native.lower()

    def is_alpha(self, contract_address: str) -> bool:
        return contract_address.lower() in self.alpha_addresses

    def is_stablecoin(self, contract_address: str) -> bool:
        return contract_address.lower() in self.stablecoins

    def is_wrapped_native(self, contract_address: str) -> bool:
        return contract_address.lower() == self.wrapped_native

    def is_qualifying(self, sell_leg: RawTokenTransfer, buy_leg: RawTokenTransfer) -> bool:
        """Stable -> alpha, wrapped native -> alpha and alpha -> alpha qualify."""
        if not self.is_alpha(buy_leg.contract_address):
            return False
        sold = sell_leg.contract_address
        return self.is_stablecoin(sold) or self.is_wrapped_native(sold) or self.is_alpha(sold)
