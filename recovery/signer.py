"""
Recovery Signer - Recovery Orchestration

Runs one recovery request through its stages in a fixed order:

    load -> dispatch -> decode -> extract outputs -> confirm ->
    acquire key -> verify key -> sign -> serialize -> persist

Stages never repeat or go back. Any failure aborts the run and nothing is
written.
"""

import logging
from enum import IntEnum
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

import click

from .config import RecoveryConfig
from .confirmer import RecoveryConfirmer
from .dispatcher import CoinDispatcher
from .exceptions import RecoveryError
from .providers import (
    ConfirmationProvider,
    PromptConfirmationProvider,
    PromptSecretProvider,
    SecretProvider,
)
from .request import RecoveryRequest, SignedRecovery
from .storage import ResultWriter, load_request


class RecoveryState(IntEnum):
    """Progress of a recovery run."""
    LOADED = 1
    OUTPUTS_EXTRACTED = 2
    CONFIRMED = 3
    KEY_ACQUIRED = 4
    KEY_VERIFIED = 5
    SIGNED = 6
    SERIALIZED = 7
    PERSISTED = 8


class RecoverySigner:
    """
    Signs recovery requests with an operator supplied backup key.
    """

    def __init__(self, config: Optional[RecoveryConfig] = None,
                 secret_provider: Optional[SecretProvider] = None,
                 confirmation_provider: Optional[ConfirmationProvider] = None,
                 writer: Optional[ResultWriter] = None,
                 echo: Callable[[str], None] = click.echo):
        """
        Initialize signer.

        Args:
            config: Run configuration
            secret_provider: Source of the backup secret
            confirmation_provider: Source of the operator confirmation
            writer: Result writer (defaults to the configured suffix)
            echo: Operator line printer
        """
        self.config = config or RecoveryConfig.default()
        self.secret_provider = secret_provider or PromptSecretProvider()
        self.confirmer = RecoveryConfirmer(confirmation_provider or PromptConfirmationProvider(), echo=echo)
        self.writer = writer or ResultWriter(self.config.result_suffix)
        self.dispatcher = CoinDispatcher(self.config)
        self.echo = echo
        self.state: Optional[RecoveryState] = None
        self.logger = logging.getLogger(__name__)

    def _advance(self, state: RecoveryState):
        if self.state is not None and state <= self.state:
            raise RecoveryError(f"Cannot move from {self.state.name} to {state.name}")
        self.logger.debug(f"Recovery state: {state.name}")
        self.state = state

    def sign_request(self, request: RecoveryRequest,
                     skip_confirmation: bool = False) -> SignedRecovery:
        """
        Confirm, authorize and sign a loaded request.

        Args:
            request: Recovery request
            skip_confirmation: Print the summary without waiting for `go`

        Returns:
            SignedRecovery ready to persist
        """
        self.state = None
        self._advance(RecoveryState.LOADED)

        dispatch = self.dispatcher.resolve(request.coin)
        handler = self.dispatcher.handler_for(dispatch)
        self.logger.info(f"Recovering {request.coin} ({dispatch.family.value})")

        decoded = handler.decode(request)
        outputs = handler.extract_outputs(decoded)
        self._advance(RecoveryState.OUTPUTS_EXTRACTED)

        self.confirmer.confirm(request.backup_key, outputs, request.custom_message, skip=skip_confirmation)
        self._advance(RecoveryState.CONFIRMED)

        secret = self.secret_provider.get_secret(handler.key_prompt)
        self._advance(RecoveryState.KEY_ACQUIRED)

        key = handler.acquire_key(secret, request)
        del secret
        self._advance(RecoveryState.KEY_VERIFIED)

        signed = handler.sign(decoded, key, request)
        self._advance(RecoveryState.SIGNED)

        tx_hex = handler.serialize(signed)
        self._advance(RecoveryState.SERIALIZED)

        return SignedRecovery(
            backup_key=request.backup_key,
            coin=request.coin,
            recovery_amount=request.recovery_amount,
            tx_hex=tx_hex,
        )

    def run(self, request_path: Union[str, Path], skip_confirmation: bool = False,
            output_path: Optional[Union[str, Path]] = None) -> Tuple[SignedRecovery, Path]:
        """
        Load, sign and persist one recovery request file.

        Args:
            request_path: Path of the request JSON
            skip_confirmation: See `sign_request`
            output_path: Result path; defaults to the request path with the
                configured suffix

        Returns:
            Tuple of (signed recovery, path written)
        """
        request = load_request(request_path)
        signed = self.sign_request(request, skip_confirmation=skip_confirmation)

        self.echo(f"Signed transaction hex: {signed.tx_hex}")
        destination = Path(output_path) if output_path else self.writer.path_for(request_path)
        self.echo(f"Writing signed transaction to file: {destination}")
        written = self.writer.write(signed, destination)
        self._advance(RecoveryState.PERSISTED)
        self.echo("Done")

        return signed, written
