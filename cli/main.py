#!/usr/bin/env python3
"""
Recovery Signer - Command Line Interface

Offline cosigning of wallet recovery transactions with a backup key.
"""

import sys
import logging
import functools
from typing import Optional, Dict, Any

import click

from cli import __version__
from cli.config import ConfigurationManager
from recovery import (
    RecoveryConfig,
    RecoverySigner,
    StaticSecretProvider,
)


# Loggers that receive the CLI log handler
LOGGER_NAMES = ('recovery-cli', 'recovery', 'utxo', 'crypto')
HANDLER_NAME = 'recovery-cli'


# Global CLI context
class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.verbose: int = 0
        self.config: Dict[str, Any] = {}
        self.manager: Optional[ConfigurationManager] = None
        self.logger: Optional[logging.Logger] = None

    def setup_logging(self, configured_level: Optional[str] = None):
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }

        if self.verbose:
            level = log_levels.get(min(self.verbose, 2), logging.DEBUG)
        else:
            level = getattr(logging, str(configured_level or 'WARNING').upper(), logging.WARNING)

        # Configure logging format
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        # Configure handler
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        handler.set_name(HANDLER_NAME)

        for name in LOGGER_NAMES:
            logger = logging.getLogger(name)
            logger.setLevel(level)
            for existing in list(logger.handlers):
                if existing.get_name() == HANDLER_NAME:
                    logger.removeHandler(existing)
            logger.addHandler(handler)

        self.logger = logging.getLogger('recovery-cli')

    def load_config(self):
        """Load merged configuration and refuse to run on invalid settings."""
        manager = ConfigurationManager(self.config_file)
        self.config = manager.load()
        self.manager = manager

        errors = manager.validate()
        if errors:
            for error in errors:
                click.echo(f"Error: {error}", err=True)
            sys.exit(1)

        self.logger.debug(f"Configuration sources: {', '.join(manager.get_sources())}")

    def get_config(self, key_path: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation path with fallback to default."""
        if self.manager is None:
            return default
        return self.manager.get(key_path, default)


# Global context instance
pass_context = click.make_pass_decorator(CLIContext, ensure=True)


# Error handling wrapper
def handle_cli_error(func):
    """Decorator to handle CLI errors gracefully."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (KeyboardInterrupt, click.Abort):
            click.echo("\nOperation cancelled by user.", err=True)
            sys.exit(130)
        except Exception as e:
            ctx = click.get_current_context().find_object(CLIContext)

            click.echo(f"Error: {e}", err=True)
            if ctx and ctx.verbose >= 2:
                # Show full traceback in debug mode
                import traceback
                click.echo(traceback.format_exc(), err=True)

            sys.exit(1)

    return wrapper


@click.group(invoke_without_command=True,
             context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c',
              help='Path to configuration file')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.option('--version',
              is_flag=True,
              help='Show version information')
@pass_context
@click.pass_context
def cli(click_ctx: click.Context, ctx: CLIContext, config_file: Optional[str],
        verbose: int, version: bool):
    """
    Recovery Signer Command Line Interface

    Adds the backup key signature to a wallet recovery transaction.

    Examples:
        recovery-signer sign recovery.json
        recovery-signer sign recovery.json --key xprv... --skip-confirm
    """

    if version:
        click.echo(f"Recovery Signer v{__version__}")
        sys.exit(0)

    if click_ctx.invoked_subcommand is None:
        click.echo(click_ctx.get_help())
        return

    # Setup context
    ctx.config_file = config_file
    ctx.verbose = verbose

    # Initialize logging, then configuration
    ctx.setup_logging()
    handle_cli_error(ctx.load_config)()
    ctx.setup_logging(ctx.get_config('logging.level'))

    ctx.logger.debug("CLI initialized with context")


@cli.command()
@click.argument('request_file')
@click.option('--key', '-k',
              help='Backup key (xprv, or secret seed for xlm); prompted for when omitted')
@click.option('--skip-confirm',
              is_flag=True,
              help='Do not wait for the "go" confirmation')
@click.option('--output', '-o',
              help='Path of the signed result (default: REQUEST_FILE with .signed.json)')
@pass_context
@handle_cli_error
def sign(ctx: CLIContext, request_file: str, key: Optional[str],
         skip_confirm: bool, output: Optional[str]):
    """
    Sign the recovery request in REQUEST_FILE.

    Prints the outputs of the transaction, waits for "go", asks for the
    backup key, signs, and writes the result next to the request.
    """
    config = RecoveryConfig.from_mapping(ctx.config)

    signer = RecoverySigner(
        config=config,
        secret_provider=StaticSecretProvider(key) if key is not None else None,
    )
    signer.run(
        request_file,
        skip_confirmation=skip_confirm,
        output_path=output,
    )


def main():
    """Console script entry point."""
    cli(prog_name='recovery-signer')


# Main entry point
if __name__ == '__main__':
    main()
