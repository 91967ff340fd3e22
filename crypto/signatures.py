"""
ECDSA Signature Operations for the Recovery Signer

This module provides ECDSA signing and verification following Bitcoin
standards: DER encoding, low-S normalization and the trailing sighash byte
carried by transaction signatures.

References:
- BIP62: https://github.com/bitcoin/bips/blob/master/bip-0062.mediawiki
- RFC6979: https://tools.ietf.org/rfc/rfc6979.txt (Deterministic ECDSA)
"""

from typing import Tuple
from dataclasses import dataclass

from .exceptions import InvalidSignatureError
from .keys import PrivateKey, PublicKey, BIP32_CURVE_ORDER


@dataclass
class ECDSASignature:
    """
    ECDSA signature representation.
    """
    r: int
    s: int

    def __post_init__(self):
        """Validate signature components."""
        if not (1 <= self.r < BIP32_CURVE_ORDER):
            raise InvalidSignatureError("Invalid r value")
        if not (1 <= self.s < BIP32_CURVE_ORDER):
            raise InvalidSignatureError("Invalid s value")

    @classmethod
    def from_der(cls, der_bytes: bytes) -> 'ECDSASignature':
        """
        Parse DER-encoded signature.

        Args:
            der_bytes: DER-encoded signature

        Returns:
            ECDSASignature object
        """
        try:
            if len(der_bytes) < 8:
                raise InvalidSignatureError("DER signature too short")

            if der_bytes[0] != 0x30:
                raise InvalidSignatureError("Invalid DER signature header")

            length = der_bytes[1]
            if length != len(der_bytes) - 2:
                raise InvalidSignatureError("Invalid DER length")

            if der_bytes[2] != 0x02:
                raise InvalidSignatureError("Invalid r component")

            r_length = der_bytes[3]
            r = int.from_bytes(der_bytes[4:4 + r_length], 'big')

            s_offset = 4 + r_length
            if der_bytes[s_offset] != 0x02:
                raise InvalidSignatureError("Invalid s component")

            s_length = der_bytes[s_offset + 1]
            if s_offset + 2 + s_length != len(der_bytes):
                raise InvalidSignatureError("Trailing bytes after s component")
            s = int.from_bytes(der_bytes[s_offset + 2:s_offset + 2 + s_length], 'big')

            return cls(r=r, s=s)

        except InvalidSignatureError:
            raise
        except Exception as e:
            raise InvalidSignatureError(f"Failed to parse DER signature: {e}")

    @property
    def is_low_s(self) -> bool:
        """Check if the signature has a low s value (BIP62)."""
        return self.s <= BIP32_CURVE_ORDER // 2


def sign_ecdsa(private_key: PrivateKey, message_hash: bytes, sighash_type: int) -> bytes:
    """
    Sign a transaction digest and append the sighash type byte.

    Args:
        private_key: Private key for signing
        message_hash: 32-byte signature hash
        sighash_type: Sighash flags; the low byte is appended to the signature

    Returns:
        DER signature followed by one sighash byte
    """
    if len(message_hash) != 32:
        raise InvalidSignatureError("Message hash must be 32 bytes")

    try:
        signature_der = private_key.sign(message_hash)
    except Exception as e:
        raise InvalidSignatureError(f"ECDSA signing failed: {e}")

    # Non-canonical (high s) signatures are not relayed
    if not ECDSASignature.from_der(signature_der).is_low_s:
        raise InvalidSignatureError("Signature is not low-s")

    return signature_der + bytes([sighash_type & 0xff])


def split_signature(signature: bytes) -> Tuple[bytes, int]:
    """
    Split a transaction signature into its DER body and sighash byte.

    Args:
        signature: DER signature with trailing sighash byte

    Returns:
        Tuple of (der_signature, sighash_byte)
    """
    if len(signature) < 9:
        raise InvalidSignatureError("Transaction signature too short")
    der = signature[:-1]
    ECDSASignature.from_der(der)
    return der, signature[-1]


def verify_ecdsa(public_key: PublicKey, signature_der: bytes, message_hash: bytes) -> bool:
    """
    Verify ECDSA signature.

    Args:
        public_key: Public key for verification
        signature_der: DER-encoded signature without sighash byte
        message_hash: 32-byte message hash

    Returns:
        True if signature is valid
    """
    if len(message_hash) != 32:
        return False
    return public_key.verify(signature_der, message_hash)
