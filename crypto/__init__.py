"""
Recovery Signer - Cryptographic Operations Module

This module provides the cryptographic primitives used by the recovery
signing engine:
- secp256k1 private/public keys
- BIP32 extended keys (xprv/xpub parsing, neutering, path derivation)
- ECDSA transaction signatures

Dependencies:
- coincurve: Fast secp256k1 operations
- base58: Base58check encoding of extended keys
- pycryptodome: RIPEMD160 for key fingerprints
"""

from .exceptions import (
    CryptoError,
    InvalidKeyError,
    InvalidSignatureError,
    DerivationError,
)
from .keys import (
    PrivateKey,
    PublicKey,
    ExtendedKey,
    hash160,
    seed_to_master_key,
    parse_derivation_path,
)
from .signatures import (
    ECDSASignature,
    sign_ecdsa,
    split_signature,
    verify_ecdsa,
)

__version__ = "0.1.0"
__all__ = [
    # Exceptions
    "CryptoError",
    "InvalidKeyError",
    "InvalidSignatureError",
    "DerivationError",

    # Keys
    "PrivateKey",
    "PublicKey",
    "ExtendedKey",
    "hash160",
    "seed_to_master_key",
    "parse_derivation_path",

    # Signatures
    "ECDSASignature",
    "sign_ecdsa",
    "split_signature",
    "verify_ecdsa",
]
