"""
Pytest configuration and fixtures for recovery signer tests.
"""

import json

import pytest

from crypto.keys import hash160, seed_to_master_key
from utxo.builder import InputScripts, RecoveryTransactionBuilder
from utxo.networks import BITCOIN
from utxo.scripts import build_multisig, p2pkh_output_script
from utxo.transaction import Transaction, TxInput, TxOutput


BACKUP_SEED = bytes(range(32))
USER_SEED = bytes(range(32, 64))
BITGO_SEED = bytes(range(64, 96))

CHAIN_PATH = "/0/5"


@pytest.fixture(scope="session")
def backup_root():
    """Deterministic backup root node."""
    return seed_to_master_key(BACKUP_SEED)


@pytest.fixture(scope="session")
def backup_xprv(backup_root):
    return backup_root.to_base58()


@pytest.fixture(scope="session")
def backup_xpub(backup_root):
    return backup_root.neutered().to_base58()


@pytest.fixture(scope="session")
def user_root():
    return seed_to_master_key(USER_SEED)


@pytest.fixture(scope="session")
def bitgo_root():
    return seed_to_master_key(BITGO_SEED)


@pytest.fixture(scope="session")
def wallet_keys(user_root, backup_root, bitgo_root):
    """Child keys of the three wallet keys at CHAIN_PATH (user, backup, bitgo)."""
    path = CHAIN_PATH[1:]
    return [root.derive_path(path) for root in (user_root, backup_root, bitgo_root)]


@pytest.fixture(scope="session")
def multisig_script(wallet_keys):
    """2-of-3 multisig script over the wallet child keys."""
    return build_multisig(2, [key.public_key.bytes for key in wallet_keys])


@pytest.fixture(scope="session")
def destination_hash():
    """HASH160 of an unrelated key used as recovery destination."""
    destination = seed_to_master_key(bytes(range(96, 128)))
    return hash160(destination.public_key.bytes)


def _unsigned_transaction(network, destination_hash, value=1000000, input_count=1):
    """Single-output transaction spending `input_count` multisig outputs."""
    return Transaction(
        network=network,
        version=1,
        inputs=[TxInput(prev_hash=bytes([0x11 + i]) * 32, prev_index=i) for i in range(input_count)],
        outputs=[TxOutput(value=value, script=p2pkh_output_script(destination_hash))],
        locktime=0,
    )


def _user_signed(transaction, user_key, scripts, input_count=1):
    """Half-sign a transaction with the user key, as the wallet platform does."""
    builder = RecoveryTransactionBuilder(transaction)
    for index in range(input_count):
        builder.sign_input(index, user_key.private_key, scripts)
    return builder.build()


@pytest.fixture
def legacy_scripts(multisig_script):
    return InputScripts.create(multisig_script, None)


@pytest.fixture
def half_signed_btc(wallet_keys, legacy_scripts, destination_hash):
    """P2SH multisig transaction carrying the user signature."""
    transaction = _unsigned_transaction(BITCOIN, destination_hash)
    return _user_signed(transaction, wallet_keys[0], legacy_scripts)


@pytest.fixture
def write_request(tmp_path):
    """Write a recovery request document and return its path."""
    def _write(data, name="recovery.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data))
        return path
    return _write


@pytest.fixture
def btc_request(backup_xpub, multisig_script, half_signed_btc):
    """Recovery request document for the half-signed bitcoin transaction."""
    return {
        'coin': 'btc',
        'backupKey': backup_xpub,
        'transactionHex': half_signed_btc.to_hex(),
        'inputs': [{'chainPath': CHAIN_PATH, 'redeemScript': multisig_script.hex()}],
        'custom': {'message': 'recover wallet 42'},
        'recoveryAmount': '1000000',
    }


@pytest.fixture
def make_transaction(destination_hash):
    """Factory for unsigned single-output transactions on a network."""
    def _make(network, value=1000000, input_count=1):
        return _unsigned_transaction(network, destination_hash, value=value, input_count=input_count)
    return _make


@pytest.fixture
def user_sign(wallet_keys):
    """Factory adding the user signature to every input of a transaction."""
    def _sign(transaction, scripts, input_count=1):
        return _user_signed(transaction, wallet_keys[0], scripts, input_count=input_count)
    return _sign
