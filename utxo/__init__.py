"""
Recovery Signer - UTXO Transaction Support

This package decodes, signs and re-encodes the raw multisig transactions of
UTXO recovery requests: network parameters, the raw transaction codec,
script helpers, signature hash algorithms and the multisig input builder.
"""

from .builder import InputScripts, RecoveryTransactionBuilder, ScriptKind, classify_input
from .networks import NetworkParams, TxFormat, UTXO_NETWORKS
from .scripts import output_script_to_address, parse_multisig
from .transaction import Transaction, TxInput, TxOutput
from .exceptions import *

__all__ = [
    'InputScripts',
    'RecoveryTransactionBuilder',
    'ScriptKind',
    'classify_input',
    'NetworkParams',
    'TxFormat',
    'UTXO_NETWORKS',
    'output_script_to_address',
    'parse_multisig',
    'Transaction',
    'TxInput',
    'TxOutput',
    'TransactionError',
    'TransactionDecodeError',
    'InvalidScriptError',
    'UnsupportedScriptTypeError',
    'SighashError',
    'InputSigningError',
]

__version__ = '0.1.0'
