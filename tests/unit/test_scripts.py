"""
Tests for UTXO script utilities: pushes, multisig scripts and output
script to address encoding.
"""

import base58
import pytest

from utxo.exceptions import InvalidScriptError, UnsupportedScriptTypeError
from utxo.networks import BITCOIN, BITCOIN_CASH, BITCOIN_TESTNET, LITECOIN, UTXO_NETWORKS
from utxo.scripts import (
    OP_CHECKMULTISIG,
    build_multisig,
    decode_script,
    output_script_to_address,
    p2pkh_output_script,
    p2sh_output_script,
    p2wsh_output_script,
    parse_multisig,
    parse_pushes,
    push_data,
)


BIP173_PROGRAM = bytes.fromhex("751e76e8199196d454941c45d1b3a323f1433bd6")


class TestPushes:
    """Test data push encoding and decoding."""

    @pytest.mark.parametrize("length,prefix", [
        (0, b'\x00'),
        (1, b'\x01'),
        (75, b'\x4b'),
        (76, b'\x4c\x4c'),
        (255, b'\x4c\xff'),
        (256, b'\x4d\x00\x01'),
    ])
    def test_push_prefix(self, length, prefix):
        data = b'\x07' * length
        assert push_data(data) == prefix + data

    def test_decode_push_only_script(self):
        script = push_data(b'') + push_data(b'\x01' * 72) + push_data(b'\x02' * 300)
        assert parse_pushes(script) == [b'', b'\x01' * 72, b'\x02' * 300]

    def test_non_push_opcode_rejected(self):
        with pytest.raises(InvalidScriptError):
            parse_pushes(bytes([0x76]))

    def test_truncated_push(self):
        with pytest.raises(InvalidScriptError):
            decode_script(b'\x05\x01\x02')


class TestMultisig:
    """Test multisig script building and parsing."""

    def test_build_and_parse(self, wallet_keys):
        keys = [key.public_key.bytes for key in wallet_keys]
        script = build_multisig(2, keys)
        multisig = parse_multisig(script)

        assert script[0] == 0x52
        assert script[-2:] == bytes([0x53, OP_CHECKMULTISIG])
        assert multisig.threshold == 2
        assert multisig.total == 3
        assert multisig.public_keys == keys

    def test_not_multisig(self):
        with pytest.raises(UnsupportedScriptTypeError):
            parse_multisig(p2pkh_output_script(b'\x00' * 20))

    def test_key_count_mismatch(self, wallet_keys):
        script = build_multisig(2, [key.public_key.bytes for key in wallet_keys])
        # Claim four keys
        tampered = script[:-2] + bytes([0x54, OP_CHECKMULTISIG])
        with pytest.raises(UnsupportedScriptTypeError):
            parse_multisig(tampered)

    def test_invalid_threshold(self):
        with pytest.raises(InvalidScriptError):
            build_multisig(3, [b'\x02' * 33, b'\x03' * 33])


class TestAddresses:
    """Test output script to address mapping."""

    def test_p2pkh(self):
        pubkey_hash = b'\x01' * 20
        expected = base58.b58encode_check(b'\x00' + pubkey_hash).decode()

        assert output_script_to_address(p2pkh_output_script(pubkey_hash), BITCOIN) == expected

    def test_p2sh_uses_network_version(self):
        script_hash = b'\x02' * 20
        script = p2sh_output_script(script_hash)

        assert output_script_to_address(script, BITCOIN) == base58.b58encode_check(b'\x05' + script_hash).decode()
        assert output_script_to_address(script, LITECOIN) == base58.b58encode_check(b'\x32' + script_hash).decode()

    def test_zcash_two_byte_versions(self):
        pubkey_hash = b'\x03' * 20
        address = output_script_to_address(p2pkh_output_script(pubkey_hash), UTXO_NETWORKS['zec'])

        assert address == base58.b58encode_check(b'\x1c\xb8' + pubkey_hash).decode()
        assert address.startswith('t1')

    def test_p2wpkh_bech32(self):
        script = b'\x00\x14' + BIP173_PROGRAM

        assert output_script_to_address(script, BITCOIN) == "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"
        assert output_script_to_address(script, BITCOIN_TESTNET) == "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"

    def test_p2wsh_bech32(self, multisig_script):
        address = output_script_to_address(p2wsh_output_script(multisig_script), BITCOIN)

        assert address.startswith('bc1q')
        assert len(address) == 62

    def test_witness_output_on_non_segwit_chain(self):
        with pytest.raises(UnsupportedScriptTypeError):
            output_script_to_address(b'\x00\x14' + BIP173_PROGRAM, BITCOIN_CASH)

    def test_unsupported_output(self):
        with pytest.raises(UnsupportedScriptTypeError):
            output_script_to_address(b'\x6a\x04test', BITCOIN)
