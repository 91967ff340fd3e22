"""
Recovery Signer - Signature Hash Computation

Computes the digest a transaction input signature commits to:

- legacy digest (original Bitcoin algorithm) for non-witness inputs
- BIP143 digest for witness inputs
- BIP143-style SIGHASH_FORKID digest for Bitcoin Cash
- ZIP-243 digest for Zcash Sapling transactions

Bitcoin and Litecoin digests are computed by bitcoinlib.

Only SIGHASH_ALL (optionally with SIGHASH_FORKID) is supported; recovery
transactions never omit inputs or outputs from the signed message.
"""

import struct
from typing import Optional

from bitcoinlib.transactions import TransactionError as LibTransactionError

from .exceptions import SighashError
from .networks import TxFormat
from .transaction import Transaction
from .utils import blake2b_256, double_sha256, serialize_varstr


SIGHASH_ALL = 0x01
SIGHASH_FORKID = 0x40
SIGHASH_BASE_MASK = 0x1f

ZCASH_PREVOUTS_PERSONALIZATION = b'ZcashPrevoutHash'
ZCASH_SEQUENCE_PERSONALIZATION = b'ZcashSequencHash'
ZCASH_OUTPUTS_PERSONALIZATION = b'ZcashOutputsHash'
ZCASH_SIGHASH_PERSONALIZATION_PREFIX = b'ZcashSigHash'


def default_hash_type(transaction: Transaction) -> int:
    """The sighash byte new signatures on this transaction's network use."""
    if transaction.network.fork_id is not None:
        return SIGHASH_ALL | SIGHASH_FORKID
    return SIGHASH_ALL


def _check_hash_type(transaction: Transaction, hash_type: int):
    if hash_type & SIGHASH_BASE_MASK != SIGHASH_ALL or hash_type & 0x80:
        raise SighashError(f"Unsupported sighash type 0x{hash_type:02x}")

    forkid = bool(hash_type & SIGHASH_FORKID)
    if forkid != (transaction.network.fork_id is not None):
        raise SighashError(
            f"Sighash type 0x{hash_type:02x} does not match replay protection of {transaction.network.name}"
        )


def _check_index(transaction: Transaction, index: int):
    if not 0 <= index < len(transaction.inputs):
        raise SighashError(f"Input index {index} out of range")


def legacy_signature_hash(transaction: Transaction, index: int,
                          script_code: bytes, hash_type: int = SIGHASH_ALL) -> bytes:
    """
    Original Bitcoin signature hash.

    Bitcoin and Litecoin digests come from bitcoinlib; Dash transactions
    commit to their special transaction payload as well and are hashed
    here.

    Args:
        transaction: Transaction being signed
        index: Input index
        script_code: Script being satisfied (the redeem script for P2SH)
        hash_type: Sighash byte

    Returns:
        32-byte digest
    """
    _check_index(transaction, index)

    if transaction.network.bitcoinlib_network is not None:
        lib_tx = transaction.to_library('legacy')
        lib_tx.inputs[index].locking_script = script_code
        return lib_tx.signature_hash(index, hash_type, witness_type='legacy')

    tx_copy = transaction.copy()
    for i, tx_input in enumerate(tx_copy.inputs):
        tx_input.script_sig = script_code if i == index else b''
        tx_input.witness = []

    preimage = tx_copy.serialize(include_witness=False) + struct.pack('<I', hash_type)
    return double_sha256(preimage)


def segwit_signature_hash(transaction: Transaction, index: int, script_code: bytes,
                          amount: int, hash_type: int = SIGHASH_ALL) -> bytes:
    """BIP143 signature hash of a witness input, computed by bitcoinlib."""
    _check_index(transaction, index)

    if transaction.network.bitcoinlib_network is None:
        raise SighashError(f"{transaction.network.name} has no witness inputs")

    lib_tx = transaction.to_library('segwit')
    lib_input = lib_tx.inputs[index]
    lib_input.locking_script = script_code
    lib_input.value = amount
    try:
        return lib_tx.signature_hash(index, hash_type, witness_type='segwit')
    except LibTransactionError as e:
        raise SighashError(f"Cannot compute witness digest for input {index}: {e}")


def forkid_signature_hash(transaction: Transaction, index: int, script_code: bytes,
                          amount: int, hash_type: int = SIGHASH_ALL | SIGHASH_FORKID) -> bytes:
    """
    BIP143-style signature hash used with SIGHASH_FORKID replay protection.

    Args:
        transaction: Transaction being signed
        index: Input index
        script_code: Redeem script being satisfied
        amount: Value of the output being spent, in base units
        hash_type: Sighash byte

    Returns:
        32-byte digest
    """
    _check_index(transaction, index)

    hash_prevouts = double_sha256(b''.join(i.outpoint() for i in transaction.inputs))
    hash_sequence = double_sha256(b''.join(struct.pack('<I', i.sequence) for i in transaction.inputs))
    hash_outputs = double_sha256(b''.join(o.serialize() for o in transaction.outputs))

    full_hash_type = hash_type
    if transaction.network.fork_id is not None:
        full_hash_type |= transaction.network.fork_id << 8

    tx_input = transaction.inputs[index]
    preimage = (
        transaction.version_bytes() +
        hash_prevouts +
        hash_sequence +
        tx_input.outpoint() +
        serialize_varstr(script_code) +
        struct.pack('<Q', amount) +
        struct.pack('<I', tx_input.sequence) +
        hash_outputs +
        struct.pack('<I', transaction.locktime) +
        struct.pack('<I', full_hash_type)
    )
    return double_sha256(preimage)


def zcash_signature_hash(transaction: Transaction, index: int, script_code: bytes,
                         amount: int, hash_type: int = SIGHASH_ALL) -> bytes:
    """
    ZIP-243 signature hash for Sapling v4 transactions.

    Args:
        transaction: Transaction being signed
        index: Input index
        script_code: Redeem script being satisfied
        amount: Value of the output being spent, in zatoshis
        hash_type: Sighash byte

    Returns:
        32-byte digest
    """
    _check_index(transaction, index)

    branch_id = transaction.network.consensus_branch_id
    if branch_id is None:
        raise SighashError(f"{transaction.network.name} has no consensus branch id")

    hash_prevouts = blake2b_256(
        b''.join(i.outpoint() for i in transaction.inputs),
        ZCASH_PREVOUTS_PERSONALIZATION
    )
    hash_sequence = blake2b_256(
        b''.join(struct.pack('<I', i.sequence) for i in transaction.inputs),
        ZCASH_SEQUENCE_PERSONALIZATION
    )
    hash_outputs = blake2b_256(
        b''.join(o.serialize() for o in transaction.outputs),
        ZCASH_OUTPUTS_PERSONALIZATION
    )
    # hashJoinSplits, hashShieldedSpends, hashShieldedOutputs
    empty_hash = b'\x00' * 32

    tx_input = transaction.inputs[index]
    preimage = (
        transaction.version_bytes() +
        struct.pack('<I', transaction.version_group_id) +
        hash_prevouts +
        hash_sequence +
        hash_outputs +
        empty_hash * 3 +
        struct.pack('<I', transaction.locktime) +
        struct.pack('<I', transaction.expiry_height) +
        struct.pack('<q', transaction.value_balance) +
        struct.pack('<I', hash_type) +
        tx_input.outpoint() +
        serialize_varstr(script_code) +
        struct.pack('<Q', amount) +
        struct.pack('<I', tx_input.sequence)
    )
    personalization = ZCASH_SIGHASH_PERSONALIZATION_PREFIX + struct.pack('<I', branch_id)
    return blake2b_256(preimage, personalization)


def signature_hash(transaction: Transaction, index: int, script_code: bytes,
                   hash_type: int, amount: Optional[int] = None, witness: bool = False) -> bytes:
    """
    Compute the digest for input `index` using the algorithm its network
    and script kind require.

    Args:
        transaction: Transaction being signed
        index: Input index
        script_code: Script being satisfied
        hash_type: Sighash byte
        amount: Value of the spent output (required unless legacy digest)
        witness: Whether the input is a witness (segwit) input

    Returns:
        32-byte digest
    """
    _check_hash_type(transaction, hash_type)

    network = transaction.network
    needs_amount = (witness or network.fork_id is not None
                    or network.tx_format == TxFormat.ZCASH)
    if needs_amount and amount is None:
        raise SighashError(f"Input {index} needs the spent amount to be signed on {network.name}")

    if network.tx_format == TxFormat.ZCASH:
        return zcash_signature_hash(transaction, index, script_code, amount, hash_type)
    if network.fork_id is not None:
        return forkid_signature_hash(transaction, index, script_code, amount, hash_type)
    if witness:
        return segwit_signature_hash(transaction, index, script_code, amount, hash_type)
    return legacy_signature_hash(transaction, index, script_code, hash_type)
