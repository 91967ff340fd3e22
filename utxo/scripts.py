"""
Recovery Signer - Script Encoding and Decoding Utilities

This module parses and builds the handful of script templates a recovery
transaction touches: multisig redeem/witness scripts, push-only signature
scripts and the standard output templates that map to addresses.
"""

from dataclasses import dataclass
from typing import List, Union

import base58
from bitcoinlib.encoding import pubkeyhash_to_addr_bech32

from .exceptions import InvalidScriptError, UnsupportedScriptTypeError
from .networks import NetworkParams
from .utils import sha256


# Opcodes
OP_0 = 0x00
OP_PUSHDATA1 = 0x4c
OP_PUSHDATA2 = 0x4d
OP_PUSHDATA4 = 0x4e
OP_1NEGATE = 0x4f
OP_1 = 0x51
OP_16 = 0x60
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xa9
OP_CHECKSIG = 0xac
OP_CHECKMULTISIG = 0xae

ScriptElement = Union[int, bytes]


@dataclass(frozen=True)
class MultisigScript:
    """An m-of-n OP_CHECKMULTISIG script."""
    threshold: int
    public_keys: List[bytes]

    @property
    def total(self) -> int:
        return len(self.public_keys)


def push_data(data: bytes) -> bytes:
    """
    Encode a minimal data push.

    Args:
        data: Bytes to push (empty pushes OP_0)

    Returns:
        Script bytes pushing `data`
    """
    length = len(data)
    if length == 0:
        return bytes([OP_0])
    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xff:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xffff:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, 'little') + data
    return bytes([OP_PUSHDATA4]) + length.to_bytes(4, 'little') + data


def decode_script(script: bytes) -> List[ScriptElement]:
    """
    Split a script into elements.

    Data pushes become `bytes` (OP_0 becomes b''), every other opcode is
    returned as its integer value.

    Raises:
        InvalidScriptError: If a push runs past the end of the script
    """
    elements: List[ScriptElement] = []
    offset = 0

    while offset < len(script):
        opcode = script[offset]
        offset += 1

        if opcode == OP_0:
            elements.append(b'')
            continue

        if opcode < OP_PUSHDATA1:
            length = opcode
        elif opcode == OP_PUSHDATA1:
            if offset + 1 > len(script):
                raise InvalidScriptError("Truncated OP_PUSHDATA1")
            length = script[offset]
            offset += 1
        elif opcode == OP_PUSHDATA2:
            if offset + 2 > len(script):
                raise InvalidScriptError("Truncated OP_PUSHDATA2")
            length = int.from_bytes(script[offset:offset + 2], 'little')
            offset += 2
        elif opcode == OP_PUSHDATA4:
            if offset + 4 > len(script):
                raise InvalidScriptError("Truncated OP_PUSHDATA4")
            length = int.from_bytes(script[offset:offset + 4], 'little')
            offset += 4
        else:
            elements.append(opcode)
            continue

        if offset + length > len(script):
            raise InvalidScriptError(f"Push of {length} bytes runs past end of script")
        elements.append(script[offset:offset + length])
        offset += length

    return elements


def parse_pushes(script: bytes) -> List[bytes]:
    """
    Decode a push-only script (such as a signature script).

    Raises:
        InvalidScriptError: If the script contains a non-push opcode
    """
    pushes = []
    for element in decode_script(script):
        if not isinstance(element, bytes):
            raise InvalidScriptError(f"Unexpected opcode 0x{element:02x} in push-only script")
        pushes.append(element)
    return pushes


def _small_int(element: ScriptElement) -> int:
    if isinstance(element, int) and OP_1 <= element <= OP_16:
        return element - OP_1 + 1
    raise InvalidScriptError("Expected OP_1..OP_16")


def parse_multisig(script: bytes) -> MultisigScript:
    """
    Parse `OP_m <pubkey>... OP_n OP_CHECKMULTISIG`.

    Raises:
        UnsupportedScriptTypeError: If the script is not a bare multisig script
    """
    try:
        elements = decode_script(script)
        if len(elements) < 4 or elements[-1] != OP_CHECKMULTISIG:
            raise InvalidScriptError("Missing OP_CHECKMULTISIG")

        threshold = _small_int(elements[0])
        total = _small_int(elements[-2])
        public_keys = elements[1:-2]
    except InvalidScriptError as e:
        raise UnsupportedScriptTypeError(f"Not a multisig script: {e}")

    if len(public_keys) != total:
        raise UnsupportedScriptTypeError(
            f"Multisig script declares {total} keys but contains {len(public_keys)}"
        )
    if not 1 <= threshold <= total:
        raise UnsupportedScriptTypeError(f"Invalid multisig threshold {threshold}-of-{total}")
    for key in public_keys:
        if not isinstance(key, bytes) or len(key) not in (33, 65):
            raise UnsupportedScriptTypeError("Multisig script contains a non-key element")

    return MultisigScript(threshold=threshold, public_keys=list(public_keys))


def build_multisig(threshold: int, public_keys: List[bytes]) -> bytes:
    """Build an m-of-n multisig script from public keys in the given order."""
    if not 1 <= threshold <= len(public_keys) <= 16:
        raise InvalidScriptError(f"Invalid multisig {threshold}-of-{len(public_keys)}")
    script = bytes([OP_1 + threshold - 1])
    for key in public_keys:
        script += push_data(key)
    return script + bytes([OP_1 + len(public_keys) - 1, OP_CHECKMULTISIG])


def p2wsh_output_script(witness_script: bytes) -> bytes:
    """P2WSH output script: OP_0 <sha256(witness_script)>."""
    return bytes([OP_0, 0x20]) + sha256(witness_script)


def p2sh_output_script(script_hash: bytes) -> bytes:
    """P2SH output script: OP_HASH160 <hash> OP_EQUAL."""
    return bytes([OP_HASH160, 0x14]) + script_hash + bytes([OP_EQUAL])


def p2pkh_output_script(pubkey_hash: bytes) -> bytes:
    """P2PKH output script: OP_DUP OP_HASH160 <hash> OP_EQUALVERIFY OP_CHECKSIG."""
    return bytes([OP_DUP, OP_HASH160, 0x14]) + pubkey_hash + bytes([OP_EQUALVERIFY, OP_CHECKSIG])


def output_script_to_address(script: bytes, network: NetworkParams) -> str:
    """
    Encode an output script as an address on `network`.

    Args:
        script: Output (scriptPubKey) bytes
        network: Network whose version bytes / HRP to use

    Returns:
        Base58check or bech32 address

    Raises:
        UnsupportedScriptTypeError: If the script has no address form
    """
    if (len(script) == 25 and script[:3] == bytes([OP_DUP, OP_HASH160, 0x14])
            and script[23:] == bytes([OP_EQUALVERIFY, OP_CHECKSIG])):
        return base58.b58encode_check(network.pub_key_hash + script[3:23]).decode('ascii')

    if len(script) == 23 and script[:2] == bytes([OP_HASH160, 0x14]) and script[22] == OP_EQUAL:
        return base58.b58encode_check(network.script_hash + script[2:22]).decode('ascii')

    if script[:1] == bytes([OP_0]) and len(script) in (22, 34) and script[1] == len(script) - 2:
        if not network.supports_segwit:
            raise UnsupportedScriptTypeError(f"{network.name} has no witness addresses")
        return pubkeyhash_to_addr_bech32(script[2:], prefix=network.bech32_hrp, witver=0)

    raise UnsupportedScriptTypeError(f"Output script has no address form: {script.hex()}")
