"""
Recovery Signer - Offline Recovery Cosigning

Verifies an operator's backup key against a recovery request, shows the
operator what will be signed, and adds the backup signature to UTXO,
Ethereum, XRP Ledger and Stellar recovery transactions.
"""

from .config import RecoveryConfig
from .confirmer import RecoveryConfirmer
from .decimals import DecimalTable, format_amount
from .dispatcher import CoinDispatcher, Dispatch, ProtocolFamily
from .providers import (
    ConfirmationProvider,
    PromptConfirmationProvider,
    PromptSecretProvider,
    SecretProvider,
    StaticConfirmationProvider,
    StaticSecretProvider,
)
from .request import InputSpec, Output, RecoveryRequest, SignedRecovery
from .signer import RecoverySigner, RecoveryState
from .storage import ResultWriter, load_request
from .verifier import KeyVerifier
from .exceptions import *

__all__ = [
    'RecoveryConfig',
    'RecoveryConfirmer',
    'DecimalTable',
    'format_amount',
    'CoinDispatcher',
    'Dispatch',
    'ProtocolFamily',
    'ConfirmationProvider',
    'PromptConfirmationProvider',
    'PromptSecretProvider',
    'SecretProvider',
    'StaticConfirmationProvider',
    'StaticSecretProvider',
    'InputSpec',
    'Output',
    'RecoveryRequest',
    'SignedRecovery',
    'RecoverySigner',
    'RecoveryState',
    'ResultWriter',
    'load_request',
    'KeyVerifier',
    'RecoveryError',
    'RequestError',
    'UnsupportedCoin',
    'InvalidKey',
    'NotPrivateKey',
    'KeyMismatch',
    'RecoveryAborted',
    'MalformedTransaction',
    'SigningFailure',
]

__version__ = '0.1.0'
