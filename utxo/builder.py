"""
Recovery Signer - Multisig Input Signing and Reassembly

Adds one signature to each input of a half-signed multisig transaction.
For every input the builder recovers the signatures already present in the
signature script or witness, attributes each one to a public key of the
multisig script by verification, inserts the new signature at the signing
key's position and writes the input back in complete form (threshold met)
or placeholder form (one OP_0 / empty item per missing signature).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from crypto.keys import PrivateKey, PublicKey
from crypto.signatures import sign_ecdsa, split_signature, verify_ecdsa
from crypto.exceptions import CryptoError

from .exceptions import InputSigningError, TransactionError
from .scripts import (
    MultisigScript,
    parse_multisig,
    parse_pushes,
    push_data,
    p2wsh_output_script,
)
from .sighash import default_hash_type, signature_hash
from .transaction import Transaction


class ScriptKind(str, Enum):
    """Spending condition category of a recovery input."""
    NATIVE_SEGWIT = "native_segwit"      # P2WSH
    WRAPPED_SEGWIT = "wrapped_segwit"    # P2SH-P2WSH
    LEGACY = "legacy"                    # P2SH


def classify_input(redeem_script: Optional[bytes], witness_script: Optional[bytes]) -> ScriptKind:
    """
    Classify an input by which scripts accompany it.

    Args:
        redeem_script: P2SH redeem script, if any
        witness_script: Witness script, if any

    Returns:
        The input's script kind

    Raises:
        InputSigningError: If neither script is present
    """
    if redeem_script is None:
        if witness_script is None:
            raise InputSigningError("Input has neither a redeem script nor a witness script")
        return ScriptKind.NATIVE_SEGWIT
    if witness_script is not None:
        return ScriptKind.WRAPPED_SEGWIT
    return ScriptKind.LEGACY


@dataclass(frozen=True)
class InputScripts:
    """Script material for one input, validated against its kind."""
    kind: ScriptKind
    redeem_script: Optional[bytes] = None
    witness_script: Optional[bytes] = None
    amount: Optional[int] = None

    @property
    def is_witness(self) -> bool:
        return self.kind != ScriptKind.LEGACY

    @property
    def signing_script(self) -> bytes:
        """The multisig script the signature commits to."""
        if self.is_witness:
            return self.witness_script
        return self.redeem_script

    @property
    def prev_out_script(self) -> Optional[bytes]:
        """Output script of the spent output for native segwit inputs."""
        if self.kind == ScriptKind.NATIVE_SEGWIT:
            return p2wsh_output_script(self.witness_script)
        return None

    @classmethod
    def create(cls, redeem_script: Optional[bytes], witness_script: Optional[bytes],
               amount: Optional[int] = None) -> 'InputScripts':
        """
        Classify and validate script material.

        Raises:
            InputSigningError: If the scripts are inconsistent with each other
        """
        kind = classify_input(redeem_script, witness_script)

        if kind == ScriptKind.WRAPPED_SEGWIT and redeem_script != p2wsh_output_script(witness_script):
            raise InputSigningError("Redeem script does not commit to the witness script")

        return cls(kind=kind, redeem_script=redeem_script,
                   witness_script=witness_script, amount=amount)


class RecoveryTransactionBuilder:
    """
    Adds backup signatures to a half-signed multisig transaction.
    """

    def __init__(self, transaction: Transaction):
        """
        Initialize builder.

        Args:
            transaction: Decoded transaction; it is copied, not mutated
        """
        self.transaction = transaction.copy()
        self.logger = logging.getLogger(__name__)

    def sign_input(self, index: int, private_key: PrivateKey, scripts: InputScripts) -> int:
        """
        Sign input `index` and rewrite its signature script / witness.

        Args:
            index: Input index
            private_key: Derived child key for this input
            scripts: Validated script material

        Returns:
            Number of signatures now present on the input
        """
        if not 0 <= index < len(self.transaction.inputs):
            raise InputSigningError(f"Transaction has no input {index}")

        network = self.transaction.network
        if scripts.is_witness and not network.supports_segwit:
            raise InputSigningError(f"{network.name} does not support witness inputs")

        multisig = self._parse_multisig(scripts)
        public_keys = [PublicKey(key) for key in multisig.public_keys]

        signer_public_key = private_key.public_key()
        try:
            signer_slot = public_keys.index(signer_public_key)
        except ValueError:
            raise InputSigningError(f"Signing key is not part of the script for input {index}")

        slots: List[Optional[bytes]] = [None] * multisig.total
        for signature in self._existing_signatures(index, scripts):
            slot = self._match_signature(index, scripts, signature, public_keys)
            slots[slot] = signature

        if slots[signer_slot] is not None:
            self.logger.info(f"Input {index} already carries a signature from this key, replacing it")

        hash_type = default_hash_type(self.transaction)
        digest = self._digest(index, scripts, hash_type)
        try:
            slots[signer_slot] = sign_ecdsa(private_key, digest, hash_type)
        except CryptoError as e:
            raise InputSigningError(f"Failed to sign input {index}: {e}")

        present = [signature for signature in slots if signature is not None]
        if len(present) >= multisig.threshold:
            signatures = present[:multisig.threshold]
        else:
            signatures = [signature or b'' for signature in slots]

        self._write_input(index, scripts, signatures)
        return len(present)

    def build(self) -> Transaction:
        """Return the transaction with all signatures applied."""
        return self.transaction

    def _parse_multisig(self, scripts: InputScripts) -> MultisigScript:
        try:
            return parse_multisig(scripts.signing_script)
        except TransactionError as e:
            raise InputSigningError(f"Unsupported signing script: {e}")

    def _digest(self, index: int, scripts: InputScripts, hash_type: int) -> bytes:
        return signature_hash(
            self.transaction,
            index,
            scripts.signing_script,
            hash_type,
            amount=scripts.amount,
            witness=scripts.is_witness,
        )

    def _existing_signatures(self, index: int, scripts: InputScripts) -> List[bytes]:
        """Recover the non-empty signatures already attached to an input."""
        tx_input = self.transaction.inputs[index]

        if scripts.kind == ScriptKind.LEGACY:
            if not tx_input.script_sig:
                return []
            items = parse_pushes(tx_input.script_sig)
            trailing_script = scripts.redeem_script
        else:
            expected_script_sig = b'' if scripts.kind == ScriptKind.NATIVE_SEGWIT else push_data(scripts.redeem_script)
            if tx_input.script_sig not in (b'', expected_script_sig):
                raise InputSigningError(f"Unexpected signature script on witness input {index}")
            if not tx_input.witness:
                return []
            items = list(tx_input.witness)
            trailing_script = scripts.witness_script

        if len(items) < 2 or items[0] != b'' or items[-1] != trailing_script:
            raise InputSigningError(f"Input {index} is not a partially signed multisig spend of the declared script")

        return [item for item in items[1:-1] if item]

    def _match_signature(self, index: int, scripts: InputScripts,
                         signature: bytes, public_keys: List[PublicKey]) -> int:
        """Find which public key produced an existing signature."""
        try:
            der, hash_type = split_signature(signature)
            digest = self._digest(index, scripts, hash_type)
        except Exception as e:
            raise InputSigningError(f"Unreadable signature on input {index}: {e}")

        for slot, public_key in enumerate(public_keys):
            if verify_ecdsa(public_key, der, digest):
                return slot

        raise InputSigningError(f"Existing signature on input {index} matches no key of the script")

    def _write_input(self, index: int, scripts: InputScripts, signatures: List[bytes]):
        tx_input = self.transaction.inputs[index]

        if scripts.kind == ScriptKind.LEGACY:
            tx_input.script_sig = (
                push_data(b'') +
                b''.join(push_data(signature) for signature in signatures) +
                push_data(scripts.redeem_script)
            )
            tx_input.witness = []
            return

        tx_input.witness = [b''] + list(signatures) + [scripts.witness_script]
        if scripts.kind == ScriptKind.WRAPPED_SEGWIT:
            tx_input.script_sig = push_data(scripts.redeem_script)
        else:
            tx_input.script_sig = b''
