"""
Recovery Signer - UTXO Recovery Handler

Signs every declared input of a half-signed multisig transaction with a
child of the verified backup key, for Bitcoin and the Bitcoin-derived chains
(Litecoin, Bitcoin Cash, Zcash, Dash).
"""

import logging
from typing import Callable, List, Optional

import click

from crypto.exceptions import CryptoError
from crypto.keys import ExtendedKey
from utxo.builder import InputScripts, RecoveryTransactionBuilder
from utxo.exceptions import TransactionError
from utxo.scripts import output_script_to_address
from utxo.transaction import Transaction

from ..exceptions import MalformedTransaction, SigningFailure
from ..request import InputSpec, Output, RecoveryRequest
from ..verifier import KeyVerifier, XPRV_PROMPT


def normalize_chain_path(chain_path: str) -> str:
    """Strip one leading '/' from a request chain path."""
    if chain_path.startswith('/'):
        return chain_path[1:]
    return chain_path


def _script_bytes(value: Optional[str], name: str, index: int) -> Optional[bytes]:
    if not value:
        return None
    try:
        return bytes.fromhex(value)
    except (TypeError, ValueError):
        raise SigningFailure(f"Input {index} has an invalid {name}")


class UtxoHandler:
    """Recovery handler for raw multisig UTXO transactions."""

    key_prompt = XPRV_PROMPT

    def __init__(self, dispatch, config, verifier: Optional[KeyVerifier] = None,
                 echo: Callable[[str], None] = click.echo):
        """
        Args:
            dispatch: Resolved coin routing (carries the network parameters)
            config: RecoveryConfig of the run
            verifier: Backup key verifier
            echo: Operator line printer for per-input progress
        """
        self.coin = dispatch.coin
        self.network = dispatch.network
        self.decimals = config.decimals
        self.verifier = verifier or KeyVerifier()
        self.echo = echo
        self.logger = logging.getLogger(__name__)

    def decode(self, request: RecoveryRequest) -> Transaction:
        if not isinstance(request.transaction, str):
            raise MalformedTransaction("UTXO recovery requires a raw transaction hex")
        try:
            return Transaction.from_hex(request.transaction, self.network)
        except TransactionError as e:
            raise SigningFailure(f"Cannot decode {self.coin} transaction: {e}")

    def extract_outputs(self, transaction: Transaction) -> List[Output]:
        """Map every output to its address and display amount."""
        outputs = []
        for index, tx_output in enumerate(transaction.outputs):
            try:
                address = output_script_to_address(tx_output.script, self.network)
            except TransactionError as e:
                raise SigningFailure(f"Output {index}: {e}")
            outputs.append(Output(address=address, amount=self.decimals.format(self.coin, tx_output.value)))
        return outputs

    def acquire_key(self, secret: str, request: RecoveryRequest) -> ExtendedKey:
        return self.verifier.verify(secret, request.backup_key)

    def sign(self, transaction: Transaction, root: ExtendedKey,
             request: RecoveryRequest) -> Transaction:
        """
        Sign each declared input with the child key at its chain path.

        Args:
            transaction: Decoded half-signed transaction
            root: Verified backup root node
            request: Recovery request with per-input material

        Returns:
            Transaction with the backup signatures applied

        Raises:
            SigningFailure: On derivation, script or signing errors
        """
        total = len(request.inputs)
        if total > len(transaction.inputs):
            raise SigningFailure(
                f"Request declares {total} inputs but the transaction has {len(transaction.inputs)}"
            )
        if total < len(transaction.inputs):
            self.logger.warning(f"Only {total} of {len(transaction.inputs)} inputs will be signed")

        builder = RecoveryTransactionBuilder(transaction)
        for index, input_spec in enumerate(request.inputs):
            path = normalize_chain_path(input_spec.chain_path)
            try:
                child = root.derive_path(path)
            except CryptoError as e:
                raise SigningFailure(f"Cannot derive key for input {index} at {path!r}: {e}")

            message = f"Signing input {index + 1} of {total} with {child.neutered().to_base58()} ({path})"
            self.logger.info(message)
            self.echo(message)

            scripts = self._input_scripts(index, input_spec)
            try:
                present = builder.sign_input(index, child.private_key, scripts)
            except TransactionError as e:
                raise SigningFailure(str(e))
            self.logger.debug(f"Input {index} now carries {present} signature(s)")

        return builder.build()

    def serialize(self, transaction: Transaction) -> str:
        return transaction.to_hex()

    def _input_scripts(self, index: int, input_spec: InputSpec) -> InputScripts:
        redeem_script = _script_bytes(input_spec.redeem_script, 'redeem script', index)
        witness_script = _script_bytes(input_spec.witness_script, 'witness script', index)
        try:
            return InputScripts.create(redeem_script, witness_script, input_spec.amount)
        except TransactionError as e:
            raise SigningFailure(f"Input {index}: {e}")
