"""
Tests for multisig input signing and reassembly.
"""

import pytest

from crypto.keys import seed_to_master_key
from crypto.signatures import sign_ecdsa, split_signature, verify_ecdsa
from utxo.builder import InputScripts, RecoveryTransactionBuilder, ScriptKind, classify_input
from utxo.exceptions import InputSigningError, TransactionError
from utxo.networks import BITCOIN, BITCOIN_CASH, DASH, UTXO_NETWORKS, ZCASH_SAPLING_VERSION_GROUP_ID
from utxo.scripts import p2wsh_output_script, parse_pushes, push_data
from utxo.sighash import signature_hash


AMOUNT = 1500000


def assert_signed_by(tx, index, scripts, signature, key):
    """Check that `signature` on input `index` was made by `key`."""
    der, hash_type = split_signature(signature)
    digest = signature_hash(tx, index, scripts.signing_script, hash_type,
                            amount=scripts.amount, witness=scripts.is_witness)
    assert verify_ecdsa(key.public_key, der, digest)


class TestClassification:
    """Test script kind classification."""

    def test_kinds(self):
        assert classify_input(None, b'\x51') == ScriptKind.NATIVE_SEGWIT
        assert classify_input(b'\x00\x20' + b'\x00' * 32, b'\x51') == ScriptKind.WRAPPED_SEGWIT
        assert classify_input(b'\x51', None) == ScriptKind.LEGACY

    def test_missing_scripts(self):
        with pytest.raises(InputSigningError):
            classify_input(None, None)

    def test_wrapped_redeem_script_must_commit_to_witness_script(self, multisig_script):
        with pytest.raises(InputSigningError):
            InputScripts.create(b'\x00\x20' + b'\x00' * 32, multisig_script, AMOUNT)

    def test_native_segwit_previous_output(self, multisig_script):
        scripts = InputScripts.create(None, multisig_script, AMOUNT)

        assert scripts.prev_out_script == p2wsh_output_script(multisig_script)
        assert scripts.signing_script == multisig_script


class TestLegacyInputs:
    """Test P2SH multisig inputs."""

    def test_completes_half_signed_input(self, half_signed_btc, wallet_keys, legacy_scripts, multisig_script):
        user_key, backup_key, _ = wallet_keys
        builder = RecoveryTransactionBuilder(half_signed_btc)

        present = builder.sign_input(0, backup_key.private_key, legacy_scripts)
        tx = builder.build()
        items = parse_pushes(tx.inputs[0].script_sig)

        assert present == 2
        assert len(items) == 4
        assert items[0] == b''
        assert items[-1] == multisig_script
        assert_signed_by(tx, 0, legacy_scripts, items[1], user_key)
        assert_signed_by(tx, 0, legacy_scripts, items[2], backup_key)

    def test_placeholder_form_below_threshold(self, make_transaction, wallet_keys, legacy_scripts, multisig_script):
        backup_key = wallet_keys[1]
        builder = RecoveryTransactionBuilder(make_transaction(BITCOIN))

        present = builder.sign_input(0, backup_key.private_key, legacy_scripts)
        items = parse_pushes(builder.build().inputs[0].script_sig)

        assert present == 1
        assert items[0] == b''
        assert items[1] == b''
        assert items[3] == b''
        assert items[-1] == multisig_script
        assert_signed_by(builder.build(), 0, legacy_scripts, items[2], backup_key)

    def test_original_transaction_untouched(self, half_signed_btc, wallet_keys, legacy_scripts):
        script_sig = half_signed_btc.inputs[0].script_sig
        builder = RecoveryTransactionBuilder(half_signed_btc)
        builder.sign_input(0, wallet_keys[1].private_key, legacy_scripts)

        assert half_signed_btc.inputs[0].script_sig == script_sig

    def test_key_not_in_script(self, half_signed_btc, legacy_scripts):
        stranger = seed_to_master_key(bytes(range(200, 232)))
        builder = RecoveryTransactionBuilder(half_signed_btc)

        with pytest.raises(InputSigningError):
            builder.sign_input(0, stranger.private_key, legacy_scripts)

    def test_foreign_existing_signature(self, make_transaction, wallet_keys, legacy_scripts, multisig_script):
        tx = make_transaction(BITCOIN)
        stranger = seed_to_master_key(bytes(range(200, 232)))
        foreign = sign_ecdsa(stranger.private_key, b'\x01' * 32, 0x01)
        tx.inputs[0].script_sig = (
            push_data(b'') + push_data(foreign) + push_data(b'') + push_data(b'') + push_data(multisig_script)
        )

        with pytest.raises(InputSigningError):
            RecoveryTransactionBuilder(tx).sign_input(0, wallet_keys[1].private_key, legacy_scripts)

    def test_script_sig_for_another_script(self, half_signed_btc, wallet_keys):
        bitgo_public_key = wallet_keys[2].public_key.bytes
        scripts = InputScripts.create(
            bytes([0x51]) + push_data(wallet_keys[1].public_key.bytes) + push_data(bitgo_public_key) + bytes([0x52, 0xae]),
            None,
        )
        with pytest.raises(InputSigningError):
            RecoveryTransactionBuilder(half_signed_btc).sign_input(0, wallet_keys[1].private_key, scripts)

    def test_missing_input(self, half_signed_btc, wallet_keys, legacy_scripts):
        with pytest.raises(InputSigningError):
            RecoveryTransactionBuilder(half_signed_btc).sign_input(3, wallet_keys[1].private_key, legacy_scripts)


class TestWitnessInputs:
    """Test P2WSH and P2SH-P2WSH multisig inputs."""

    def test_native_segwit(self, make_transaction, user_sign, wallet_keys, multisig_script):
        scripts = InputScripts.create(None, multisig_script, AMOUNT)
        half_signed = user_sign(make_transaction(BITCOIN), scripts)

        builder = RecoveryTransactionBuilder(half_signed)
        assert builder.sign_input(0, wallet_keys[1].private_key, scripts) == 2
        tx_input = builder.build().inputs[0]

        assert tx_input.script_sig == b''
        assert len(tx_input.witness) == 4
        assert tx_input.witness[0] == b''
        assert tx_input.witness[-1] == multisig_script
        assert_signed_by(builder.build(), 0, scripts, tx_input.witness[1], wallet_keys[0])
        assert_signed_by(builder.build(), 0, scripts, tx_input.witness[2], wallet_keys[1])

    def test_wrapped_segwit(self, make_transaction, user_sign, wallet_keys, multisig_script):
        redeem_script = p2wsh_output_script(multisig_script)
        scripts = InputScripts.create(redeem_script, multisig_script, AMOUNT)
        half_signed = user_sign(make_transaction(UTXO_NETWORKS['ltc']), scripts)

        builder = RecoveryTransactionBuilder(half_signed)
        builder.sign_input(0, wallet_keys[1].private_key, scripts)
        tx_input = builder.build().inputs[0]

        assert tx_input.script_sig == push_data(redeem_script)
        assert len(tx_input.witness) == 4
        assert_signed_by(builder.build(), 0, scripts, tx_input.witness[2], wallet_keys[1])

    def test_witness_placeholders(self, make_transaction, wallet_keys, multisig_script):
        scripts = InputScripts.create(None, multisig_script, AMOUNT)
        builder = RecoveryTransactionBuilder(make_transaction(BITCOIN))
        builder.sign_input(0, wallet_keys[1].private_key, scripts)
        witness = builder.build().inputs[0].witness

        assert len(witness) == 5
        assert witness[1] == b''
        assert witness[2]
        assert witness[3] == b''

    def test_witness_requires_amount(self, make_transaction, wallet_keys, multisig_script):
        scripts = InputScripts.create(None, multisig_script)
        with pytest.raises(TransactionError):
            RecoveryTransactionBuilder(make_transaction(BITCOIN)).sign_input(0, wallet_keys[1].private_key, scripts)

    @pytest.mark.parametrize("network", [BITCOIN_CASH, DASH])
    def test_witness_on_non_segwit_chain(self, make_transaction, wallet_keys, multisig_script, network):
        scripts = InputScripts.create(None, multisig_script, AMOUNT)
        with pytest.raises(InputSigningError):
            RecoveryTransactionBuilder(make_transaction(network)).sign_input(0, wallet_keys[1].private_key, scripts)


class TestForkNetworks:
    """Test chains with their own signature hash rules."""

    def test_bitcoin_cash_forkid(self, make_transaction, user_sign, wallet_keys, multisig_script):
        scripts = InputScripts.create(multisig_script, None, AMOUNT)
        half_signed = user_sign(make_transaction(BITCOIN_CASH), scripts)

        builder = RecoveryTransactionBuilder(half_signed)
        builder.sign_input(0, wallet_keys[1].private_key, scripts)
        items = parse_pushes(builder.build().inputs[0].script_sig)

        assert items[1][-1] == 0x41
        assert items[2][-1] == 0x41
        assert_signed_by(builder.build(), 0, scripts, items[2], wallet_keys[1])

    def test_zcash(self, make_transaction, user_sign, wallet_keys, multisig_script):
        tx = make_transaction(UTXO_NETWORKS['zec'])
        tx.version = 4
        tx.version_group_id = ZCASH_SAPLING_VERSION_GROUP_ID
        scripts = InputScripts.create(multisig_script, None, AMOUNT)
        half_signed = user_sign(tx, scripts)

        builder = RecoveryTransactionBuilder(half_signed)
        assert builder.sign_input(0, wallet_keys[1].private_key, scripts) == 2
        items = parse_pushes(builder.build().inputs[0].script_sig)

        assert items[2][-1] == 0x01
        assert_signed_by(builder.build(), 0, scripts, items[2], wallet_keys[1])

    def test_resigning_replaces_own_signature(self, half_signed_btc, wallet_keys, legacy_scripts):
        builder = RecoveryTransactionBuilder(half_signed_btc)
        builder.sign_input(0, wallet_keys[0].private_key, legacy_scripts)
        items = parse_pushes(builder.build().inputs[0].script_sig)

        assert len(items) == 5
        assert items[1]
        assert items[2] == b''
        assert_signed_by(builder.build(), 0, legacy_scripts, items[1], wallet_keys[0])
