"""
Recovery Signer - Operator Confirmation

Shows the operator what is about to be signed and blocks until they type the
confirmation token. This is the only human checkpoint of a run; it happens
before any key is requested.
"""

import logging
from typing import Callable, List, Optional, Sequence

import click

from .exceptions import RecoveryAborted
from .providers import ConfirmationProvider, PromptConfirmationProvider
from .request import Output


CONFIRMATION_TOKEN = 'go'
CONFIRMATION_PROMPT = 'Type "go" to confirm: '
SEPARATOR = '========================='


class RecoveryConfirmer:
    """Renders the recovery summary and waits for an exact `go`."""

    def __init__(self, confirmation_provider: Optional[ConfirmationProvider] = None,
                 echo: Callable[[str], None] = click.echo):
        """
        Args:
            confirmation_provider: Source of the operator's answer
            echo: Line printer for the summary
        """
        self.confirmation_provider = confirmation_provider or PromptConfirmationProvider()
        self.echo = echo
        self.logger = logging.getLogger(__name__)

    def render(self, expected_key: str, outputs: Sequence[Output],
               message: Optional[str]) -> List[str]:
        """Build the summary lines in display order."""
        lines = [
            'Sign Recovery Transaction',
            SEPARATOR,
            f'Backup Key: {expected_key}',
        ]
        for output in outputs:
            lines.append(f'Output Address: {output.address}')
            lines.append(f'Output Amount: {output.amount}')
        lines.append(f'Custom Message: {message if message is not None else "None"}')
        lines.append(SEPARATOR)
        return lines

    def confirm(self, expected_key: str, outputs: Sequence[Output],
                message: Optional[str], skip: bool = False):
        """
        Print the summary and require confirmation.

        Args:
            expected_key: Backup public key of the request
            outputs: Decoded transaction outputs
            message: Custom message of the request, if any
            skip: Print only, do not wait for the operator

        Raises:
            RecoveryAborted: If the operator answers anything but `go`
        """
        for line in self.render(expected_key, outputs, message):
            self.echo(line)

        if skip:
            self.logger.info("Confirmation skipped")
            return

        answer = self.confirmation_provider.get_confirmation(CONFIRMATION_PROMPT)
        if answer != CONFIRMATION_TOKEN:
            self.logger.info("Operator did not confirm the recovery")
            raise RecoveryAborted()

        self.logger.info("Operator confirmed the recovery")
