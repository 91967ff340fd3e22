"""
Tests for the UTXO recovery handler.
"""

import base58
import pytest

from crypto.signatures import split_signature, verify_ecdsa
from recovery.config import RecoveryConfig
from recovery.dispatcher import CoinDispatcher
from recovery.exceptions import InvalidKey, MalformedTransaction, SigningFailure
from recovery.handlers import UtxoHandler, normalize_chain_path
from recovery.request import Output, RecoveryRequest
from utxo.networks import BITCOIN_TESTNET
from utxo.scripts import parse_pushes
from utxo.sighash import signature_hash
from utxo.transaction import TxOutput


def make_handler(coin='btc', lines=None):
    dispatch = CoinDispatcher().resolve(coin)
    echo = lines.append if lines is not None else (lambda line: None)
    return UtxoHandler(dispatch, RecoveryConfig.default(), echo=echo)


class TestChainPath:
    """Test request chain path normalization."""

    @pytest.mark.parametrize("path,expected", [
        ('/0/5', '0/5'),
        ('0/5', '0/5'),
        ('//0/5', '/0/5'),
        ('', ''),
    ])
    def test_normalize(self, path, expected):
        assert normalize_chain_path(path) == expected

    def test_leading_slash_derives_same_key(self, backup_root):
        assert (backup_root.derive_path(normalize_chain_path('/0/5')).to_base58() ==
                backup_root.derive_path(normalize_chain_path('0/5')).to_base58())


class TestUtxoHandler:
    """Test decoding, output extraction and signing of UTXO recoveries."""

    def test_extract_outputs(self, btc_request, destination_hash):
        handler = make_handler()
        request = RecoveryRequest.from_dict(btc_request)

        outputs = handler.extract_outputs(handler.decode(request))

        address = base58.b58encode_check(b'\x00' + destination_hash).decode('ascii')
        assert outputs == [Output(address=address, amount='0.01')]

    def test_testnet_addresses(self, make_transaction, destination_hash):
        handler = make_handler('tbtc')
        outputs = handler.extract_outputs(make_transaction(BITCOIN_TESTNET))

        assert outputs[0].address == base58.b58encode_check(b'\x6f' + destination_hash).decode('ascii')

    def test_output_without_address(self, make_transaction):
        handler = make_handler()
        transaction = make_transaction(handler.network)
        transaction.outputs.append(TxOutput(value=0, script=b'\x6a\x04test'))

        with pytest.raises(SigningFailure):
            handler.extract_outputs(transaction)

    def test_decode_requires_hex_string(self, backup_xpub):
        request = RecoveryRequest(coin='btc', backup_key=backup_xpub, transaction={'inputs': []})
        with pytest.raises(MalformedTransaction):
            make_handler().decode(request)

    def test_decode_garbage(self, backup_xpub):
        request = RecoveryRequest(coin='btc', backup_key=backup_xpub, transaction='zz')
        with pytest.raises(SigningFailure):
            make_handler().decode(request)

    def test_acquire_key(self, btc_request, backup_xprv):
        request = RecoveryRequest.from_dict(btc_request)
        assert make_handler().acquire_key(backup_xprv, request).is_private

        with pytest.raises(InvalidKey):
            make_handler().acquire_key('not a key', request)

    def test_sign_completes_transaction(self, btc_request, backup_root, wallet_keys, legacy_scripts):
        lines = []
        handler = make_handler(lines=lines)
        request = RecoveryRequest.from_dict(btc_request)
        transaction = handler.decode(request)

        signed = handler.sign(transaction, backup_root, request)
        items = parse_pushes(signed.inputs[0].script_sig)

        # OP_0, user signature, backup signature, redeem script
        assert len(items) == 4
        der, hash_type = split_signature(items[2])
        digest = signature_hash(signed, 0, legacy_scripts.signing_script, hash_type)
        assert verify_ecdsa(wallet_keys[1].public_key, der, digest)
        assert lines == [f"Signing input 1 of 1 with {wallet_keys[1].neutered().to_base58()} (0/5)"]

    def test_serialize_round_trips(self, btc_request, backup_root):
        handler = make_handler()
        request = RecoveryRequest.from_dict(btc_request)
        signed = handler.sign(handler.decode(request), backup_root, request)

        tx_hex = handler.serialize(signed)
        assert tx_hex == signed.to_hex()
        assert tx_hex != request.transaction

    def test_unsigned_input_gets_one_signature(self, make_transaction, backup_root, backup_xpub,
                                               multisig_script):
        handler = make_handler()
        transaction = make_transaction(handler.network)
        request = RecoveryRequest.from_dict({
            'coin': 'btc',
            'backupKey': backup_xpub,
            'transactionHex': transaction.to_hex(),
            'inputs': [{'chainPath': '/0/5', 'redeemScript': multisig_script.hex()}],
        })

        signed = handler.sign(handler.decode(request), backup_root, request)
        items = parse_pushes(signed.inputs[0].script_sig)

        assert items[0] == b''
        assert len(items) == 5
        assert len([item for item in items[1:-1] if item]) == 1

    def test_signs_every_declared_input(self, make_transaction, user_sign, legacy_scripts,
                                        backup_root, backup_xpub, multisig_script):
        lines = []
        handler = make_handler(lines=lines)
        transaction = user_sign(make_transaction(handler.network, input_count=2), legacy_scripts, input_count=2)
        entry = {'chainPath': '/0/5', 'redeemScript': multisig_script.hex()}
        request = RecoveryRequest.from_dict({
            'coin': 'btc',
            'backupKey': backup_xpub,
            'transactionHex': transaction.to_hex(),
            'inputs': [entry, entry],
        })

        signed = handler.sign(handler.decode(request), backup_root, request)

        assert len(lines) == 2
        assert lines[1].startswith("Signing input 2 of 2")
        for tx_input in signed.inputs:
            assert len(parse_pushes(tx_input.script_sig)) == 4

    def test_too_many_declared_inputs(self, btc_request, backup_root):
        btc_request['inputs'] = btc_request['inputs'] * 2
        handler = make_handler()
        request = RecoveryRequest.from_dict(btc_request)

        with pytest.raises(SigningFailure):
            handler.sign(handler.decode(request), backup_root, request)

    def test_key_outside_script(self, btc_request, user_root):
        handler = make_handler()
        request = RecoveryRequest.from_dict(btc_request)

        with pytest.raises(SigningFailure):
            handler.sign(handler.decode(request), user_root.derive_path('1'), request)

    def test_invalid_redeem_script_hex(self, btc_request, backup_root):
        btc_request['inputs'][0]['redeemScript'] = 'not hex'
        handler = make_handler()
        request = RecoveryRequest.from_dict(btc_request)

        with pytest.raises(SigningFailure):
            handler.sign(handler.decode(request), backup_root, request)

    def test_invalid_chain_path(self, btc_request, backup_root):
        btc_request['inputs'][0]['chainPath'] = '/zero/five'
        handler = make_handler()
        request = RecoveryRequest.from_dict(btc_request)

        with pytest.raises(SigningFailure):
            handler.sign(handler.decode(request), backup_root, request)
