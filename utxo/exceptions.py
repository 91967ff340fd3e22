"""
Recovery Signer - UTXO Transaction Exceptions

This module defines custom exceptions for transaction decoding, script
handling and input signing.
"""


class TransactionError(Exception):
    """Base exception for UTXO transaction errors."""
    pass


class TransactionDecodeError(TransactionError):
    """Exception raised when raw transaction bytes cannot be decoded."""
    pass


class InvalidScriptError(TransactionError):
    """Exception raised for malformed scripts."""
    pass


class UnsupportedScriptTypeError(TransactionError):
    """Exception raised for scripts the signer does not handle."""
    pass


class SighashError(TransactionError):
    """Exception raised when a signature hash cannot be computed."""
    pass


class InputSigningError(TransactionError):
    """Exception raised when an input cannot be signed or reassembled."""
    pass
