"""
Recovery Signer - Coin Dispatch

Maps a coin identifier to its protocol family and constructs the matching
handler. The table is fixed; unknown coins are rejected before any decoding
or key handling takes place.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from utxo.networks import NetworkParams

from .config import RecoveryConfig
from .exceptions import UnsupportedCoin
from .handlers import AccountHandler, LedgerHandler, PaymentHandler, RecoveryHandler, UtxoHandler
from .verifier import KeyVerifier


class ProtocolFamily(str, Enum):
    """Signing and serialization family of a coin."""
    UTXO = "utxo"
    ACCOUNT = "account"
    LEDGER = "ledger"
    PAYMENT = "payment"


FAMILY_BY_COIN: Mapping[str, ProtocolFamily] = MappingProxyType({
    'eth': ProtocolFamily.ACCOUNT,
    'teth': ProtocolFamily.ACCOUNT,
    'erc20': ProtocolFamily.ACCOUNT,
    'terc20': ProtocolFamily.ACCOUNT,
    'xrp': ProtocolFamily.LEDGER,
    'txrp': ProtocolFamily.LEDGER,
    'xlm': ProtocolFamily.PAYMENT,
    'txlm': ProtocolFamily.PAYMENT,
})

TOKEN_COINS = frozenset({'erc20', 'terc20'})

HANDLERS = MappingProxyType({
    ProtocolFamily.UTXO: UtxoHandler,
    ProtocolFamily.ACCOUNT: AccountHandler,
    ProtocolFamily.LEDGER: LedgerHandler,
    ProtocolFamily.PAYMENT: PaymentHandler,
})


@dataclass(frozen=True)
class Dispatch:
    """Resolved routing for one coin."""
    coin: str
    family: ProtocolFamily
    network: Optional[NetworkParams] = None
    token: bool = False


class CoinDispatcher:
    """Resolves coins to protocol families and handlers."""

    def __init__(self, config: Optional[RecoveryConfig] = None,
                 verifier: Optional[KeyVerifier] = None):
        self.config = config or RecoveryConfig.default()
        self.verifier = verifier or KeyVerifier()

    def resolve(self, coin: str) -> Dispatch:
        """
        Resolve a coin identifier.

        Args:
            coin: Coin identifier from the recovery request

        Returns:
            Dispatch describing family, network parameters and token flag

        Raises:
            UnsupportedCoin: If no family handles the coin
        """
        family = FAMILY_BY_COIN.get(coin)
        if family is not None:
            return Dispatch(coin=coin, family=family, token=coin in TOKEN_COINS)

        network = self.config.networks.get(coin)
        if network is None:
            raise UnsupportedCoin(coin)
        return Dispatch(coin=coin, family=ProtocolFamily.UTXO, network=network)

    def handler_for(self, dispatch: Dispatch) -> RecoveryHandler:
        """Construct the handler for a resolved coin."""
        handler_class = HANDLERS[dispatch.family]
        return handler_class(dispatch, self.config, verifier=self.verifier)
