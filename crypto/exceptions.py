"""
Cryptographic Exceptions for the Recovery Signer

This module defines custom exceptions for key handling and signing operations.
"""


class CryptoError(Exception):
    """Base exception for all cryptographic errors."""
    pass


class InvalidKeyError(CryptoError):
    """Raised when a key is invalid or malformed."""
    pass


class InvalidSignatureError(CryptoError):
    """Raised when a signature is invalid or verification fails."""
    pass


class DerivationError(CryptoError):
    """Raised when key derivation fails."""
    pass
