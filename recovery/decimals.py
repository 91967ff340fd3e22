"""
Display decimals per coin.

Amounts rendered here are shown to the operator during confirmation and are
never used to build or sign a transaction.
"""

from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from types import MappingProxyType
from typing import Mapping, Optional, Union


COIN_DECIMALS: Mapping[str, int] = MappingProxyType({
    'btc': 8,
    'tbtc': 8,
    'bch': 8,
    'tbch': 8,
    'ltc': 8,
    'tltc': 8,
    'zec': 8,
    'tzec': 8,
    'dash': 8,
    'tdash': 8,
    'eth': 18,
    'teth': 18,
    'xrp': 6,
    'txrp': 6,
    'xlm': 7,
    'txlm': 7,
})


def format_amount(value: Union[int, str], decimals: int) -> str:
    """
    Format an integer amount of base units as a decimal string.

    Args:
        value: Amount in base units (satoshis, wei, drops, ...)
        decimals: Number of decimal places of the coin

    Returns:
        Plain decimal string without exponent or trailing zeros
    """
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = Decimal(int(value)).scaleb(-decimals).normalize()
        return format(scaled, 'f')


@dataclass(frozen=True)
class DecimalTable:
    """Fixed mapping from coin identifier to display decimals."""
    decimals: Mapping[str, int] = field(default_factory=lambda: COIN_DECIMALS)

    def for_coin(self, coin: str) -> Optional[int]:
        return self.decimals.get(coin)

    def format(self, coin: str, value: Union[int, str]) -> str:
        """
        Format `value` base units of `coin`; coins without a decimal count
        (e.g. tokens) are shown as the raw integer.
        """
        decimals = self.for_coin(coin)
        if decimals is None:
            return str(int(value))
        return format_amount(value, decimals)
