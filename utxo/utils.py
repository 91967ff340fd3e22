"""
Recovery Signer - UTXO Serialization Utilities

Compact-size integers, length-prefixed strings and the hash helpers shared by
the transaction codec and the signature hash routines.
"""

import hashlib
import struct
from io import BytesIO

from .exceptions import TransactionDecodeError


def double_sha256(data: bytes) -> bytes:
    """Compute double SHA256 hash (Bitcoin standard)."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def sha256(data: bytes) -> bytes:
    """Compute single SHA256 hash."""
    return hashlib.sha256(data).digest()


def blake2b_256(data: bytes, personalization: bytes) -> bytes:
    """
    Compute personalized BLAKE2b-256 as used by Zcash signature hashes.

    Args:
        data: Data to hash
        personalization: 16-byte personalization string

    Returns:
        32-byte digest
    """
    return hashlib.blake2b(data, digest_size=32, person=personalization).digest()


def serialize_compact_size(n: int) -> bytes:
    """
    Serialize integer as Bitcoin compact size.

    Args:
        n: Integer to serialize

    Returns:
        Compact size encoded bytes
    """
    if n < 0xfd:
        return struct.pack('<B', n)
    elif n <= 0xffff:
        return b'\xfd' + struct.pack('<H', n)
    elif n <= 0xffffffff:
        return b'\xfe' + struct.pack('<I', n)
    else:
        return b'\xff' + struct.pack('<Q', n)


def serialize_varstr(data: bytes) -> bytes:
    """Serialize bytes with a compact-size length prefix."""
    return serialize_compact_size(len(data)) + data


def read_exact(stream: BytesIO, length: int) -> bytes:
    """
    Read exactly `length` bytes from a stream.

    Raises:
        TransactionDecodeError: If the stream ends early
    """
    data = stream.read(length)
    if len(data) != length:
        raise TransactionDecodeError(
            f"Unexpected end of data: wanted {length} bytes, got {len(data)}"
        )
    return data


def read_compact_size(stream: BytesIO) -> int:
    """Read a compact size integer from a stream."""
    first_byte = read_exact(stream, 1)[0]

    if first_byte < 0xfd:
        return first_byte
    elif first_byte == 0xfd:
        return struct.unpack('<H', read_exact(stream, 2))[0]
    elif first_byte == 0xfe:
        return struct.unpack('<I', read_exact(stream, 4))[0]
    else:  # 0xff
        return struct.unpack('<Q', read_exact(stream, 8))[0]


def read_varstr(stream: BytesIO) -> bytes:
    """Read a compact-size prefixed byte string from a stream."""
    length = read_compact_size(stream)
    return read_exact(stream, length)


def read_uint32(stream: BytesIO) -> int:
    return struct.unpack('<I', read_exact(stream, 4))[0]


def read_int64(stream: BytesIO) -> int:
    return struct.unpack('<q', read_exact(stream, 8))[0]


def read_uint64(stream: BytesIO) -> int:
    return struct.unpack('<Q', read_exact(stream, 8))[0]
