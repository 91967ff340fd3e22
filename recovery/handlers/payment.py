"""
Recovery Signer - Payment Network Recovery Handler

Signs Stellar transaction envelopes. The backup signer here is a flat
ed25519 secret seed, not an extended key, and the envelope must contain a
single payment operation.
"""

import logging
from typing import List, Optional

from stellar_sdk import Keypair, Network, TransactionEnvelope
from stellar_sdk.operation import Payment

from ..exceptions import InvalidKey, KeyMismatch, MalformedTransaction, SigningFailure
from ..request import Output, RecoveryRequest


SECRET_PROMPT = "Please enter the private key of the wallet for signing: "

NETWORK_PASSPHRASES = {
    'xlm': Network.PUBLIC_NETWORK_PASSPHRASE,
    'txlm': Network.TESTNET_NETWORK_PASSPHRASE,
}


class PaymentHandler:
    """Recovery handler for Stellar accounts."""

    key_prompt = SECRET_PROMPT

    def __init__(self, dispatch, config, verifier=None):
        self.coin = dispatch.coin
        self.network_passphrase = NETWORK_PASSPHRASES[dispatch.coin]
        self.logger = logging.getLogger(__name__)

    def decode(self, request: RecoveryRequest) -> TransactionEnvelope:
        """
        Parse the envelope and check it performs exactly one payment.

        Raises:
            MalformedTransaction: For any other operation shape
        """
        if not isinstance(request.transaction, str):
            raise MalformedTransaction("Payment recovery requires a base64 XDR envelope")
        try:
            envelope = TransactionEnvelope.from_xdr(request.transaction, self.network_passphrase)
        except Exception as e:
            raise SigningFailure(f"Cannot decode {self.coin} transaction: {e}")

        operations = envelope.transaction.operations
        if len(operations) != 1:
            raise MalformedTransaction("Recovery transaction is trying to perform multiple operations - aborting")
        if not isinstance(operations[0], Payment):
            raise MalformedTransaction("Recovery transaction is not a payment transaction - aborting")
        return envelope

    def extract_outputs(self, envelope: TransactionEnvelope) -> List[Output]:
        payment = envelope.transaction.operations[0]
        return [Output(address=payment.destination.universal_account_id, amount=str(payment.amount))]

    def acquire_key(self, secret: str, request: RecoveryRequest) -> Keypair:
        """
        Parse the secret seed and check it controls the backup account.

        Raises:
            InvalidKey: If the secret is not a valid seed
            KeyMismatch: If it is the seed of another account
        """
        try:
            keypair = Keypair.from_secret(secret.strip())
        except Exception:
            raise InvalidKey()

        if keypair.public_key != request.backup_key:
            raise KeyMismatch()

        self.logger.info(f"Verified backup key {keypair.public_key}")
        return keypair

    def sign(self, envelope: TransactionEnvelope, keypair: Keypair,
             request: RecoveryRequest) -> TransactionEnvelope:
        try:
            envelope.sign(keypair)
        except Exception as e:
            raise SigningFailure(f"Failed to sign {self.coin} transaction: {e}")
        return envelope

    def serialize(self, envelope: TransactionEnvelope) -> str:
        return envelope.to_xdr()
