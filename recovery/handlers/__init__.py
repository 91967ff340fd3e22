"""
Recovery Signer - Protocol Handlers

One handler per protocol family. Handlers share a call shape rather than a
base class: decode, extract_outputs, acquire_key, sign and serialize, plus a
key_prompt describing the secret they expect.
"""

from typing import Union

from .account import AccountHandler
from .ledger import LedgerHandler
from .payment import PaymentHandler
from .utxo import UtxoHandler, normalize_chain_path

RecoveryHandler = Union[UtxoHandler, AccountHandler, LedgerHandler, PaymentHandler]

__all__ = [
    'AccountHandler',
    'LedgerHandler',
    'PaymentHandler',
    'UtxoHandler',
    'RecoveryHandler',
    'normalize_chain_path',
]
