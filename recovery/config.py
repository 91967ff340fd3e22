"""
Recovery Signer - Run Configuration

`RecoveryConfig` is the immutable configuration value handed to the signer
and its handlers. It is built once per run from the merged configuration
dictionary of the CLI.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from utxo.networks import NetworkParams, TxFormat, UTXO_NETWORKS

from .decimals import DecimalTable


DEFAULT_RESULT_SUFFIX = '.signed.json'

# Chain ids used when an account transaction does not carry one
DEFAULT_CHAIN_IDS: Mapping[str, int] = MappingProxyType({
    'eth': 1,
    'erc20': 1,
    'teth': 11155111,
    'terc20': 11155111,
})


@dataclass(frozen=True)
class RecoveryConfig:
    """Settings that influence how a recovery is decoded, signed and stored."""
    networks: Mapping[str, NetworkParams] = field(default_factory=lambda: UTXO_NETWORKS)
    decimals: DecimalTable = field(default_factory=DecimalTable)
    chain_ids: Mapping[str, int] = field(default_factory=lambda: DEFAULT_CHAIN_IDS)
    result_suffix: str = DEFAULT_RESULT_SUFFIX

    @classmethod
    def default(cls) -> 'RecoveryConfig':
        return cls()

    @classmethod
    def from_mapping(cls, config: Optional[Dict[str, Any]]) -> 'RecoveryConfig':
        """
        Build a configuration from a merged settings dictionary.

        Recognized keys: recovery.result_suffix, account.chain_ids.<coin>,
        utxo.zcash_branch_id. The confirmation step cannot be configured.

        Args:
            config: Settings dictionary (e.g. from ConfigurationManager)

        Returns:
            RecoveryConfig instance
        """
        config = config or {}
        recovery = config.get('recovery') or {}
        account = config.get('account') or {}
        utxo = config.get('utxo') or {}

        chain_ids = dict(DEFAULT_CHAIN_IDS)
        for coin, chain_id in (account.get('chain_ids') or {}).items():
            chain_ids[coin] = _as_int(chain_id, f"account.chain_ids.{coin}")

        networks = dict(UTXO_NETWORKS)
        branch_id = utxo.get('zcash_branch_id')
        if branch_id is not None:
            branch_id = _as_int(branch_id, "utxo.zcash_branch_id")
            for coin, params in networks.items():
                if params.tx_format == TxFormat.ZCASH:
                    networks[coin] = replace(params, consensus_branch_id=branch_id)

        return cls(
            networks=MappingProxyType(networks),
            chain_ids=MappingProxyType(chain_ids),
            result_suffix=recovery.get('result_suffix') or DEFAULT_RESULT_SUFFIX,
        )


def _as_int(value: Any, name: str) -> int:
    """Accept integers and decimal or 0x-prefixed strings."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid integer for {name}: {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value), 0)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {value!r}")
