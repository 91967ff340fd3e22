"""
Key Management and Derivation for the Recovery Signer

This module handles private/public key operations and BIP32 extended keys:
parsing and serializing xprv/xpub strings, neutering a private node to its
public projection and deriving children along a path.

References:
- BIP32: https://github.com/bitcoin/bips/blob/master/bip-0032.mediawiki
"""

import hashlib
import hmac
from typing import Optional, List, Union

import base58
from Crypto.Hash import RIPEMD160
from coincurve import PrivateKey as CoinCurvePrivateKey, PublicKey as CoinCurvePublicKey

from .exceptions import (
    InvalidKeyError,
    DerivationError,
)


# Constants for BIP32
BIP32_CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
BIP32_HARDENED_OFFSET = 0x80000000
BIP32_SERIALIZED_LENGTH = 78

# Extended key version bytes: (private, public)
EXTENDED_KEY_VERSIONS = {
    'mainnet': (bytes.fromhex('0488ade4'), bytes.fromhex('0488b21e')),
    'testnet': (bytes.fromhex('04358394'), bytes.fromhex('043587cf')),
}


def hash160(data: bytes) -> bytes:
    """
    Compute HASH160 (RIPEMD160(SHA256(data))).

    Args:
        data: Input data to hash

    Returns:
        20-byte HASH160 digest
    """
    sha256_hash = hashlib.sha256(data).digest()
    rmd = RIPEMD160.new()
    rmd.update(sha256_hash)
    return rmd.digest()


class PrivateKey:
    """
    Wrapper for secp256k1 private key operations.
    """

    def __init__(self, key_bytes: bytes):
        """
        Initialize private key.

        Args:
            key_bytes: 32-byte private key
        """
        try:
            if not isinstance(key_bytes, bytes) or len(key_bytes) != 32:
                raise InvalidKeyError("Private key must be 32 bytes")

            # Validate key is in valid range
            key_int = int.from_bytes(key_bytes, 'big')
            if key_int == 0 or key_int >= BIP32_CURVE_ORDER:
                raise InvalidKeyError("Private key out of valid range")

            self._key = CoinCurvePrivateKey(key_bytes)

        except Exception as e:
            if isinstance(e, InvalidKeyError):
                raise
            raise InvalidKeyError(f"Failed to create private key: {e}")

    @property
    def bytes(self) -> bytes:
        """Get private key as bytes."""
        return self._key.secret

    @property
    def hex(self) -> str:
        """Get private key as hex string."""
        return self._key.secret.hex()

    def public_key(self) -> 'PublicKey':
        """Get corresponding public key."""
        return PublicKey(self._key.public_key)

    def sign(self, message_hash: bytes) -> bytes:
        """
        Sign a message hash.

        Args:
            message_hash: 32-byte message hash to sign

        Returns:
            DER-encoded low-S signature
        """
        if len(message_hash) != 32:
            raise InvalidKeyError("Message hash must be 32 bytes")
        return self._key.sign(message_hash, hasher=None)

    def __repr__(self) -> str:
        return "PrivateKey(<redacted>)"


class PublicKey:
    """
    Wrapper for public key operations.
    """

    def __init__(self, key_data: Union[bytes, CoinCurvePublicKey]):
        """
        Initialize public key.

        Args:
            key_data: Public key bytes (33 or 65 bytes) or CoinCurvePublicKey
        """
        try:
            if isinstance(key_data, CoinCurvePublicKey):
                self._key = key_data
            else:
                if not isinstance(key_data, bytes):
                    raise InvalidKeyError("Public key data must be bytes")
                if len(key_data) not in [33, 65]:
                    raise InvalidKeyError("Public key must be 33 or 65 bytes")
                self._key = CoinCurvePublicKey(key_data)
        except Exception as e:
            if isinstance(e, InvalidKeyError):
                raise
            raise InvalidKeyError(f"Failed to create public key: {e}")

    @property
    def bytes(self) -> bytes:
        """Get compressed public key as bytes."""
        return self._key.format(compressed=True)

    @property
    def hex(self) -> str:
        """Get compressed public key as hex string."""
        return self.bytes.hex()

    def verify(self, signature: bytes, message_hash: bytes) -> bool:
        """
        Verify signature against message hash.

        Args:
            signature: DER-encoded signature
            message_hash: 32-byte message hash

        Returns:
            True if signature is valid
        """
        try:
            if len(message_hash) != 32:
                return False
            return self._key.verify(signature, message_hash, hasher=None)
        except Exception:
            return False

    def __eq__(self, other) -> bool:
        return isinstance(other, PublicKey) and self.bytes == other.bytes

    def __hash__(self) -> int:
        return hash(self.bytes)


class ExtendedKey:
    """
    BIP32 Extended Key for hierarchical deterministic key derivation.
    """

    def __init__(self, key: Union[PrivateKey, PublicKey], chain_code: bytes,
                 depth: int = 0, fingerprint: bytes = b'\x00\x00\x00\x00',
                 child_number: int = 0, network: str = 'mainnet'):
        """
        Initialize extended key.

        Args:
            key: Private or public key
            chain_code: 32-byte chain code for derivation
            depth: Depth in derivation tree
            fingerprint: Parent fingerprint
            child_number: Child number
            network: Version byte family ('mainnet' or 'testnet')
        """
        if not isinstance(chain_code, bytes) or len(chain_code) != 32:
            raise DerivationError("Chain code must be 32 bytes")
        if not isinstance(fingerprint, bytes) or len(fingerprint) != 4:
            raise DerivationError("Fingerprint must be 4 bytes")
        if depth < 0 or depth > 255:
            raise DerivationError("Depth must be 0-255")
        if network not in EXTENDED_KEY_VERSIONS:
            raise DerivationError(f"Unknown extended key network: {network}")

        self.key = key
        self.chain_code = chain_code
        self.depth = depth
        self.fingerprint = fingerprint
        self.child_number = child_number
        self.network = network

    @property
    def is_private(self) -> bool:
        """Check if this is a private extended key."""
        return isinstance(self.key, PrivateKey)

    @property
    def public_key(self) -> PublicKey:
        """Public key of this node, whether or not it is private."""
        if self.is_private:
            return self.key.public_key()
        return self.key

    @property
    def private_key(self) -> PrivateKey:
        """Private key of this node; raises for neutered nodes."""
        if not self.is_private:
            raise InvalidKeyError("Extended key has no private component")
        return self.key

    def neutered(self) -> 'ExtendedKey':
        """
        Get the public-only projection of this node.

        Returns:
            Extended public key with identical chain code and position
        """
        if not self.is_private:
            return self
        return ExtendedKey(
            key=self.key.public_key(),
            chain_code=self.chain_code,
            depth=self.depth,
            fingerprint=self.fingerprint,
            child_number=self.child_number,
            network=self.network
        )

    def to_base58(self) -> str:
        """
        Serialize as a base58check xprv/xpub string.

        Returns:
            Base58check encoded extended key
        """
        private_version, public_version = EXTENDED_KEY_VERSIONS[self.network]
        if self.is_private:
            version = private_version
            key_data = b'\x00' + self.key.bytes
        else:
            version = public_version
            key_data = self.key.bytes

        payload = (
            version +
            bytes([self.depth]) +
            self.fingerprint +
            self.child_number.to_bytes(4, 'big') +
            self.chain_code +
            key_data
        )
        return base58.b58encode_check(payload).decode('ascii')

    @classmethod
    def from_base58(cls, encoded: str) -> 'ExtendedKey':
        """
        Parse a base58check xprv/xpub string.

        Args:
            encoded: Extended key string

        Returns:
            Parsed extended key
        """
        if not isinstance(encoded, str) or not encoded:
            raise InvalidKeyError("Extended key must be a non-empty string")

        try:
            payload = base58.b58decode_check(encoded.strip())
        except ValueError as e:
            raise InvalidKeyError(f"Invalid base58 extended key: {e}")

        if len(payload) != BIP32_SERIALIZED_LENGTH:
            raise InvalidKeyError(f"Extended key must be {BIP32_SERIALIZED_LENGTH} bytes, got {len(payload)}")

        version = payload[0:4]
        depth = payload[4]
        fingerprint = payload[5:9]
        child_number = int.from_bytes(payload[9:13], 'big')
        chain_code = payload[13:45]
        key_data = payload[45:78]

        for network, (private_version, public_version) in EXTENDED_KEY_VERSIONS.items():
            if version == private_version:
                if key_data[0] != 0:
                    raise InvalidKeyError("Private extended key data must start with 0x00")
                key = PrivateKey(key_data[1:])
                break
            if version == public_version:
                key = PublicKey(key_data)
                break
        else:
            raise InvalidKeyError(f"Unknown extended key version: {version.hex()}")

        if depth == 0 and (fingerprint != b'\x00\x00\x00\x00' or child_number != 0):
            raise InvalidKeyError("Master key with non-zero parent fingerprint or index")

        try:
            return cls(key, chain_code, depth, fingerprint, child_number, network)
        except DerivationError as e:
            raise InvalidKeyError(str(e))

    def derive_child(self, index: int) -> 'ExtendedKey':
        """
        Derive child key at given index.

        Args:
            index: Child index (use index >= 2^31 for hardened derivation)

        Returns:
            Extended child key
        """
        try:
            if not 0 <= index < 2 ** 32:
                raise DerivationError(f"Child index out of range: {index}")

            hardened = index >= BIP32_HARDENED_OFFSET

            if hardened and not self.is_private:
                raise DerivationError("Cannot derive hardened child from public key")

            # Prepare data for HMAC
            if hardened:
                # Hardened derivation: 0x00 || private_key || index
                data = b'\x00' + self.key.bytes + index.to_bytes(4, 'big')
            else:
                # Non-hardened derivation: public_key || index
                data = self.public_key.bytes + index.to_bytes(4, 'big')

            I = hmac.new(self.chain_code, data, hashlib.sha512).digest()
            I_L = I[:32]
            I_R = I[32:]

            I_L_int = int.from_bytes(I_L, 'big')

            if I_L_int == 0 or I_L_int >= BIP32_CURVE_ORDER:
                # Invalid key, try next index
                return self.derive_child(index + 1)

            if self.is_private:
                # child_private_key = (parent_private_key + I_L) mod n
                parent_key_int = int.from_bytes(self.key.bytes, 'big')
                child_key_int = (parent_key_int + I_L_int) % BIP32_CURVE_ORDER
                child_key = PrivateKey(child_key_int.to_bytes(32, 'big'))
            else:
                # child_public_key = parent_public_key + I_L * G
                I_L_public = CoinCurvePrivateKey(I_L).public_key
                parent_point = CoinCurvePublicKey(self.key.bytes)
                child_point = CoinCurvePublicKey.combine_keys([parent_point, I_L_public])
                child_key = PublicKey(child_point.format())

            # Fingerprint is the first 4 bytes of HASH160 of the parent public key
            fingerprint = hash160(self.public_key.bytes)[:4]

            return ExtendedKey(
                key=child_key,
                chain_code=I_R,
                depth=self.depth + 1,
                fingerprint=fingerprint,
                child_number=index,
                network=self.network
            )

        except Exception as e:
            if isinstance(e, DerivationError):
                raise
            raise DerivationError(f"Child derivation failed: {e}")

    def derive_path(self, path: str) -> 'ExtendedKey':
        """
        Derive key from derivation path.

        Args:
            path: Absolute ("m/0/5") or relative ("0/5") derivation path

        Returns:
            Extended key at path
        """
        current_key = self
        for index in parse_derivation_path(path):
            current_key = current_key.derive_child(index)
        return current_key

    def __repr__(self) -> str:
        return f"ExtendedKey({self.neutered().to_base58()}, private={self.is_private})"


def seed_to_master_key(seed: bytes, network: str = 'mainnet') -> ExtendedKey:
    """
    Generate master extended key from seed.

    Args:
        seed: Seed bytes (16 to 64 bytes)
        network: Version byte family for serialization

    Returns:
        Master extended private key
    """
    if len(seed) < 16 or len(seed) > 64:
        raise DerivationError("Seed must be 16-64 bytes")

    # Generate master key using HMAC-SHA512 with "Bitcoin seed"
    I = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
    I_L = I[:32]  # Master private key
    I_R = I[32:]  # Master chain code

    I_L_int = int.from_bytes(I_L, 'big')
    if I_L_int == 0 or I_L_int >= BIP32_CURVE_ORDER:
        raise DerivationError("Invalid master key generated")

    return ExtendedKey(
        key=PrivateKey(I_L),
        chain_code=I_R,
        depth=0,
        fingerprint=b'\x00\x00\x00\x00',
        child_number=0,
        network=network
    )


def parse_derivation_path(path: str) -> List[int]:
    """
    Parse derivation path into list of integers.

    Accepts "m", "m/..." and relative paths such as "0/5". Every segment
    must be a decimal index, optionally suffixed with ' or h for hardened.

    Args:
        path: Derivation path like "m/84'/0'/0'/0/0"

    Returns:
        List of derivation indices
    """
    if not isinstance(path, str):
        raise DerivationError("Derivation path must be a string")

    if path in ('m', 'M'):
        return []
    if path.startswith(('m/', 'M/')):
        path = path[2:]
    if not path:
        raise DerivationError("Empty derivation path")

    indices = []
    for part in path.split('/'):
        hardened = part.endswith(("'", 'h', 'H'))
        digits = part[:-1] if hardened else part

        if not (digits.isascii() and digits.isdigit()):
            raise DerivationError(f"Invalid path segment: {part!r}")

        index = int(digits)
        if index >= BIP32_HARDENED_OFFSET:
            raise DerivationError(f"Path index out of range: {part}")

        indices.append(index + BIP32_HARDENED_OFFSET if hardened else index)

    return indices
