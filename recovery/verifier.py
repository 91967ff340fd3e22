"""
Recovery Signer - Backup Key Verification

Authorizes an operator-supplied extended private key against the public key
recorded in a recovery request. Only the neutered encoding of the key is
ever logged.
"""

import logging

from crypto.exceptions import CryptoError
from crypto.keys import ExtendedKey

from .exceptions import InvalidKey, KeyMismatch, NotPrivateKey


XPRV_PROMPT = "Please enter the xprv of the wallet for signing: "


class KeyVerifier:
    """Checks that a secret is the private half of an expected xpub."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def verify(self, secret: str, expected_public_key: str) -> ExtendedKey:
        """
        Parse and authorize an extended private key.

        Args:
            secret: Base58check xprv supplied by the operator
            expected_public_key: Base58check xpub from the recovery request

        Returns:
            The verified root node

        Raises:
            InvalidKey: If the secret is not an extended key
            NotPrivateKey: If the secret is a public extended key
            KeyMismatch: If the key does not neuter to the expected xpub
        """
        if not isinstance(secret, str):
            raise InvalidKey()

        try:
            node = ExtendedKey.from_base58(secret.strip())
        except CryptoError:
            raise InvalidKey()

        neutered = node.neutered().to_base58()
        if node.to_base58() == neutered:
            raise NotPrivateKey()

        if neutered != expected_public_key:
            self.logger.warning(f"Supplied key neuters to {neutered}, expected {expected_public_key}")
            raise KeyMismatch()

        self.logger.info(f"Verified backup key {neutered}")
        return node
