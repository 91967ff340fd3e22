"""
Recovery Signer - Operator Input Providers

The signer never reads the terminal directly. Secrets and confirmation
tokens come from providers so that the CLI can prompt interactively while
tests and scripted runs hand in fixed values.
"""

from abc import ABC, abstractmethod

import click


class SecretProvider(ABC):
    """Source of the operator's backup secret."""

    @abstractmethod
    def get_secret(self, prompt: str) -> str:
        """Return the secret; `prompt` describes what is being asked for."""
        pass


class ConfirmationProvider(ABC):
    """Source of the operator's confirmation line."""

    @abstractmethod
    def get_confirmation(self, prompt: str) -> str:
        """Return one line of operator input, unmodified."""
        pass


class StaticSecretProvider(SecretProvider):
    """Returns a secret supplied up front (e.g. with --key)."""

    def __init__(self, secret: str):
        self._secret = secret

    def get_secret(self, prompt: str) -> str:
        return self._secret

    def __repr__(self) -> str:
        return "StaticSecretProvider(<redacted>)"


class PromptSecretProvider(SecretProvider):
    """Asks for the secret on the terminal with echo disabled."""

    def get_secret(self, prompt: str) -> str:
        return click.prompt(prompt, default='', hide_input=True,
                            show_default=False, prompt_suffix='')


class StaticConfirmationProvider(ConfirmationProvider):
    """Returns a fixed confirmation line."""

    def __init__(self, response: str):
        self.response = response

    def get_confirmation(self, prompt: str) -> str:
        return self.response


class PromptConfirmationProvider(ConfirmationProvider):
    """Reads the confirmation line from the terminal."""

    def get_confirmation(self, prompt: str) -> str:
        return click.prompt(prompt, default='', show_default=False, prompt_suffix='')
