"""
Recovery Signer - Ledger Recovery Handler

Adds the backup key's multisignature to an XRP Ledger transaction that the
user key has already multisigned, and merges both signer entries into one
submittable blob.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from xrpl.core import addresscodec, binarycodec, keypairs

from crypto.keys import ExtendedKey

from ..decimals import format_amount
from ..exceptions import MalformedTransaction, SigningFailure
from ..request import Output, RecoveryRequest
from ..verifier import KeyVerifier, XPRV_PROMPT


# Fields that differ between multisigned copies of the same transaction
SIGNATURE_FIELDS = ('Signers', 'TxnSignature')


@dataclass(frozen=True)
class LedgerTransaction:
    """Decoded XRPL transaction with the blob it came from."""
    blob: str
    fields: Dict[str, Any]


def format_ledger_amount(amount: Any, decimals: int) -> str:
    """Display an XRP drops string, or an issued-currency amount object."""
    if isinstance(amount, dict):
        return f"{amount.get('value')} {amount.get('currency')}"
    return format_amount(amount, decimals)


def transaction_body(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in fields.items() if key not in SIGNATURE_FIELDS}


def sign_as(fields: Dict[str, Any], private_key_hex: str, public_key_hex: str) -> str:
    """
    Multisign a transaction as the account controlled by a key.

    Args:
        fields: Decoded transaction (existing signatures are discarded)
        private_key_hex: XRPL private key hex (with 00 prefix)
        public_key_hex: Compressed public key hex

    Returns:
        Encoded blob whose Signers contains only this signer
    """
    signer_address = keypairs.derive_classic_address(public_key_hex)
    tx = transaction_body(fields)
    tx['SigningPubKey'] = ''

    message = bytes.fromhex(binarycodec.encode_for_multisigning(tx, signer_address))
    signature = keypairs.sign(message, private_key_hex)

    tx['Signers'] = [{
        'Signer': {
            'Account': signer_address,
            'SigningPubKey': public_key_hex,
            'TxnSignature': signature,
        }
    }]
    return binarycodec.encode(tx)


def _account_id(signer: Dict[str, Any]) -> int:
    return int.from_bytes(addresscodec.decode_classic_address(signer['Signer']['Account']), 'big')


def combine_signed_transactions(blobs: Sequence[str]) -> str:
    """
    Merge multisigned copies of one transaction.

    Args:
        blobs: Encoded transactions each carrying one or more Signers

    Returns:
        Encoded transaction with all signers, ordered by account id

    Raises:
        SigningFailure: If the copies differ or an account signed twice
    """
    if not blobs:
        raise SigningFailure("Nothing to combine")

    decoded = [binarycodec.decode(blob) for blob in blobs]
    body = transaction_body(decoded[0])

    signers = []
    for fields in decoded:
        if transaction_body(fields) != body:
            raise SigningFailure("Multisigned transactions are not the same transaction")
        signers.extend(fields.get('Signers') or [])

    accounts = [signer['Signer']['Account'] for signer in signers]
    if len(set(accounts)) != len(accounts):
        raise SigningFailure("Transaction carries more than one signature from the same account")

    combined = dict(body)
    combined['Signers'] = sorted(signers, key=_account_id)
    return binarycodec.encode(combined)


class LedgerHandler:
    """Recovery handler for XRP Ledger multisig accounts."""

    key_prompt = XPRV_PROMPT

    def __init__(self, dispatch, config, verifier: Optional[KeyVerifier] = None):
        self.coin = dispatch.coin
        self.decimals = config.decimals.for_coin(dispatch.coin)
        self.verifier = verifier or KeyVerifier()
        self.logger = logging.getLogger(__name__)

    def decode(self, request: RecoveryRequest) -> LedgerTransaction:
        if not isinstance(request.transaction, str):
            raise MalformedTransaction("Ledger recovery requires a transaction blob")
        try:
            fields = binarycodec.decode(request.transaction)
        except Exception as e:
            raise SigningFailure(f"Cannot decode {self.coin} transaction: {e}")
        return LedgerTransaction(blob=request.transaction, fields=fields)

    def extract_outputs(self, tx: LedgerTransaction) -> List[Output]:
        if 'Destination' not in tx.fields or 'Amount' not in tx.fields:
            raise MalformedTransaction("Recovery transaction is not a payment transaction - aborting")
        return [Output(
            address=tx.fields['Destination'],
            amount=format_ledger_amount(tx.fields['Amount'], self.decimals),
        )]

    def acquire_key(self, secret: str, request: RecoveryRequest) -> ExtendedKey:
        return self.verifier.verify(secret, request.backup_key)

    def sign(self, tx: LedgerTransaction, root: ExtendedKey, request: RecoveryRequest) -> str:
        """
        Multisign with the verified root node and merge with the user's
        signature.

        Returns:
            Combined transaction blob
        """
        public_key_hex = root.public_key.hex.upper()
        private_key_hex = '00' + root.private_key.hex.upper()
        signer_address = keypairs.derive_classic_address(public_key_hex)
        self.logger.info(f"Signing {self.coin} transaction as {signer_address}")

        try:
            cosigned = sign_as(tx.fields, private_key_hex, public_key_hex)
            return combine_signed_transactions([tx.blob, cosigned])
        except SigningFailure:
            raise
        except Exception as e:
            raise SigningFailure(f"Failed to sign {self.coin} transaction: {e}")

    def serialize(self, blob: str) -> str:
        return blob
