"""
Recovery Signer - Raw Transaction Codec

Decodes and re-encodes the raw transactions embedded in UTXO recovery
requests. Serialization families handled:

- Bitcoin and Litecoin, with optional BIP144 witness data, parsed and
  written through bitcoinlib
- Bitcoin Cash, which shares the legacy layout
- Dash special transactions (16-bit version + 16-bit type + extra payload)
- Zcash Sapling v4 transactions with no shielded components
"""

import copy
import struct
from dataclasses import dataclass, field
from io import BytesIO
from typing import List, Optional

from bitcoinlib.transactions import Input as LibInput
from bitcoinlib.transactions import Output as LibOutput
from bitcoinlib.transactions import Transaction as LibTransaction

from .exceptions import TransactionDecodeError, TransactionError
from .networks import NetworkParams, TxFormat, ZCASH_SAPLING_VERSION_GROUP_ID
from .utils import (
    read_compact_size,
    read_exact,
    read_int64,
    read_uint32,
    read_uint64,
    read_varstr,
    serialize_compact_size,
    serialize_varstr,
)


ZCASH_OVERWINTERED_FLAG = 0x80000000


@dataclass
class TxInput:
    """A transaction input; `prev_hash` is in serialized (little-endian) order."""
    prev_hash: bytes
    prev_index: int
    script_sig: bytes = b''
    sequence: int = 0xffffffff
    witness: List[bytes] = field(default_factory=list)

    def outpoint(self) -> bytes:
        return self.prev_hash + struct.pack('<I', self.prev_index)


@dataclass
class TxOutput:
    """A transaction output."""
    value: int
    script: bytes

    def serialize(self) -> bytes:
        return struct.pack('<Q', self.value) + serialize_varstr(self.script)


@dataclass
class Transaction:
    """
    Decoded UTXO transaction.

    Zcash and Dash specific header fields are carried alongside the common
    fields so that re-serialization is byte-exact.
    """
    network: NetworkParams
    version: int = 1
    inputs: List[TxInput] = field(default_factory=list)
    outputs: List[TxOutput] = field(default_factory=list)
    locktime: int = 0
    # Dash
    tx_type: int = 0
    extra_payload: bytes = b''
    # Zcash
    version_group_id: int = 0
    expiry_height: int = 0
    value_balance: int = 0

    @classmethod
    def from_hex(cls, tx_hex: str, network: NetworkParams) -> 'Transaction':
        """
        Decode a hex encoded raw transaction.

        Args:
            tx_hex: Raw transaction hex
            network: Network the transaction belongs to

        Returns:
            Decoded transaction
        """
        if not isinstance(tx_hex, str):
            raise TransactionDecodeError("Transaction hex must be a string")
        try:
            raw = bytes.fromhex(tx_hex.strip())
        except ValueError as e:
            raise TransactionDecodeError(f"Invalid transaction hex: {e}")
        return cls.from_bytes(raw, network)

    @classmethod
    def from_bytes(cls, raw: bytes, network: NetworkParams) -> 'Transaction':
        """Decode a raw transaction."""
        if network.bitcoinlib_network is not None:
            return cls._parse_library(raw, network)

        stream = BytesIO(raw)

        if network.tx_format == TxFormat.ZCASH:
            tx = cls._parse_zcash(stream, network)
        else:
            tx = cls._parse_bitcoin(stream, network)

        if stream.read(1):
            raise TransactionDecodeError("Trailing bytes after transaction")
        return tx

    @classmethod
    def _parse_library(cls, raw: bytes, network: NetworkParams) -> 'Transaction':
        try:
            parsed = LibTransaction.parse_bytes(raw, strict=False, network=network.bitcoinlib_network)
            inputs = []
            for lib_input in parsed.inputs:
                witnesses = lib_input.witnesses if isinstance(lib_input.witnesses, list) else []
                inputs.append(TxInput(
                    prev_hash=lib_input.prev_txid[::-1],
                    prev_index=lib_input.output_n_int,
                    script_sig=lib_input.unlocking_script,
                    sequence=lib_input.sequence,
                    # empty witness items are kept as a single zero byte
                    witness=[b'' if item == b'\0' else item for item in witnesses],
                ))
            tx = cls(
                network=network,
                version=struct.unpack('>i', parsed.version)[0],
                inputs=inputs,
                outputs=[TxOutput(value=o.value, script=o.lock_script) for o in parsed.outputs],
                locktime=parsed.locktime,
            )
            encoded = tx.serialize()
        except Exception as e:
            raise TransactionDecodeError(f"Failed to parse transaction: {e}")

        # bitcoinlib rebuilds the unlocking data of inputs it recognizes, and
        # it does not report truncated or trailing bytes
        if encoded != raw:
            raise TransactionDecodeError("Transaction does not re-encode to the same bytes")
        return tx

    @classmethod
    def _parse_bitcoin(cls, stream: BytesIO, network: NetworkParams) -> 'Transaction':
        tx = cls(network=network)

        if network.tx_format == TxFormat.DASH:
            tx.version, tx.tx_type = struct.unpack('<HH', read_exact(stream, 4))
        else:
            tx.version = struct.unpack('<i', read_exact(stream, 4))[0]

        tx.inputs = cls._parse_inputs(stream)
        tx.outputs = cls._parse_outputs(stream)

        tx.locktime = read_uint32(stream)

        if tx.has_extra_payload:
            tx.extra_payload = read_varstr(stream)

        return tx

    @classmethod
    def _parse_zcash(cls, stream: BytesIO, network: NetworkParams) -> 'Transaction':
        header = read_uint32(stream)
        version = header & ~ZCASH_OVERWINTERED_FLAG
        if not header & ZCASH_OVERWINTERED_FLAG or version != 4:
            raise TransactionDecodeError(
                f"Only overwintered v4 Zcash transactions are supported (header 0x{header:08x})"
            )

        tx = cls(network=network, version=version)
        tx.version_group_id = read_uint32(stream)
        if tx.version_group_id != ZCASH_SAPLING_VERSION_GROUP_ID:
            raise TransactionDecodeError(
                f"Unexpected Zcash version group id 0x{tx.version_group_id:08x}"
            )

        tx.inputs = cls._parse_inputs(stream)
        tx.outputs = cls._parse_outputs(stream)
        tx.locktime = read_uint32(stream)
        tx.expiry_height = read_uint32(stream)
        tx.value_balance = read_int64(stream)

        spends = read_compact_size(stream)
        outputs = read_compact_size(stream)
        joinsplits = read_compact_size(stream)
        if spends or outputs or joinsplits:
            raise TransactionDecodeError("Shielded Zcash components are not supported")
        if tx.value_balance != 0:
            raise TransactionDecodeError("Non-zero value balance without shielded components")

        return tx

    @staticmethod
    def _parse_inputs(stream: BytesIO) -> List[TxInput]:
        count = read_compact_size(stream)
        inputs = []
        for _ in range(count):
            prev_hash = read_exact(stream, 32)
            prev_index = read_uint32(stream)
            script_sig = read_varstr(stream)
            sequence = read_uint32(stream)
            inputs.append(TxInput(prev_hash, prev_index, script_sig, sequence))
        return inputs

    @staticmethod
    def _parse_outputs(stream: BytesIO) -> List[TxOutput]:
        count = read_compact_size(stream)
        outputs = []
        for _ in range(count):
            value = read_uint64(stream)
            script = read_varstr(stream)
            outputs.append(TxOutput(value, script))
        return outputs

    @property
    def has_extra_payload(self) -> bool:
        """Dash special transactions carry a payload after the locktime."""
        return (self.network.tx_format == TxFormat.DASH
                and self.version >= 3 and self.tx_type != 0)

    @property
    def has_witness(self) -> bool:
        return any(tx_input.witness for tx_input in self.inputs)

    def version_bytes(self) -> bytes:
        """The 4-byte version/header field exactly as serialized."""
        if self.network.tx_format == TxFormat.ZCASH:
            return struct.pack('<I', self.version | ZCASH_OVERWINTERED_FLAG)
        if self.network.tx_format == TxFormat.DASH:
            return struct.pack('<HH', self.version, self.tx_type)
        return struct.pack('<i', self.version)

    def serialize(self, include_witness: bool = True) -> bytes:
        """
        Serialize the transaction.

        Args:
            include_witness: Emit BIP144 marker, flag and witnesses when present

        Returns:
            Raw transaction bytes
        """
        if self.network.bitcoinlib_network is not None:
            witness_type = 'segwit' if include_witness and self.has_witness else 'legacy'
            return self.to_library(witness_type).raw()

        result = self.version_bytes()

        if self.network.tx_format == TxFormat.ZCASH:
            result += struct.pack('<I', self.version_group_id)

        result += serialize_compact_size(len(self.inputs))
        for tx_input in self.inputs:
            result += tx_input.outpoint()
            result += serialize_varstr(tx_input.script_sig)
            result += struct.pack('<I', tx_input.sequence)

        result += serialize_compact_size(len(self.outputs))
        for tx_output in self.outputs:
            result += tx_output.serialize()

        result += struct.pack('<I', self.locktime)

        if self.network.tx_format == TxFormat.ZCASH:
            result += struct.pack('<I', self.expiry_height)
            result += struct.pack('<q', self.value_balance)
            # No shielded spends, shielded outputs or joinsplits
            result += b'\x00\x00\x00'
        elif self.has_extra_payload:
            result += serialize_varstr(self.extra_payload)

        return result

    def to_hex(self) -> str:
        return self.serialize().hex()

    def copy(self) -> 'Transaction':
        return copy.deepcopy(self)

    def to_library(self, witness_type: Optional[str] = None) -> LibTransaction:
        """
        Build the bitcoinlib transaction for this transaction's network.

        Args:
            witness_type: 'segwit' or 'legacy'; defaults to 'segwit' when any
                input carries witness data

        Returns:
            bitcoinlib Transaction writing the same scripts as this one
        """
        network = self.network.bitcoinlib_network
        if network is None:
            raise TransactionError(f"{self.network.name} transactions are not handled by bitcoinlib")
        if witness_type is None:
            witness_type = 'segwit' if self.has_witness else 'legacy'

        inputs = []
        for index, tx_input in enumerate(self.inputs):
            lib_input = LibInput(
                prev_txid=tx_input.prev_hash[::-1],
                output_n=tx_input.prev_index,
                sequence=tx_input.sequence,
                index_n=index,
                script_type='unknown',
                witness_type='segwit' if tx_input.witness else 'legacy',
                strict=False,
                network=network,
            )
            # Set after construction so bitcoinlib does not re-derive them
            lib_input.unlocking_script = tx_input.script_sig
            lib_input.witnesses = list(tx_input.witness)
            if tx_input.script_sig == b'\x00':
                lib_input.script_type = 'nonstandard_0001'
            inputs.append(lib_input)

        outputs = [
            LibOutput(value=tx_output.value, lock_script=tx_output.script, output_n=index,
                      strict=False, network=network)
            for index, tx_output in enumerate(self.outputs)
        ]

        return LibTransaction(
            inputs=inputs,
            outputs=outputs,
            locktime=self.locktime,
            version=self.version_bytes()[::-1],
            network=network,
            witness_type=witness_type,
        )
