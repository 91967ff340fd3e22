"""
Recovery Signer - Request and Result Models

A recovery request is the JSON document produced by the wallet platform for a
stranded wallet; the signed result is what the operator hands back for
broadcast. Both are immutable once loaded.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .exceptions import RequestError


# Fields a request may carry its transaction in, by precedence
TRANSACTION_FIELDS = ('transactionHex', 'txHex', 'tx')


@dataclass(frozen=True)
class InputSpec:
    """Per-input signing material of a UTXO recovery."""
    chain_path: str
    redeem_script: Optional[str] = None
    witness_script: Optional[str] = None
    amount: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: int = 0) -> 'InputSpec':
        if not isinstance(data, Mapping):
            raise RequestError(f"Input {index} must be an object")

        chain_path = data.get('chainPath')
        if not isinstance(chain_path, str):
            raise RequestError(f"Input {index} is missing chainPath")

        amount = data.get('amount')
        if amount is not None:
            if isinstance(amount, bool):
                raise RequestError(f"Input {index} has an invalid amount: {amount!r}")
            try:
                amount = int(str(amount))
            except ValueError:
                raise RequestError(f"Input {index} has an invalid amount: {amount!r}")
            if amount < 0:
                raise RequestError(f"Input {index} has a negative amount")

        return cls(
            chain_path=chain_path,
            redeem_script=data.get('redeemScript') or None,
            witness_script=data.get('witnessScript') or None,
            amount=amount,
        )


@dataclass(frozen=True)
class RecoveryRequest:
    """A loaded recovery request."""
    coin: str
    backup_key: str
    transaction: Union[str, Mapping[str, Any]]
    inputs: Tuple[InputSpec, ...] = ()
    custom_message: Optional[str] = None
    recovery_amount: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'RecoveryRequest':
        """
        Build a request from its JSON form.

        Args:
            data: Parsed request document

        Returns:
            RecoveryRequest instance

        Raises:
            RequestError: If a required field is missing or has the wrong type
        """
        if not isinstance(data, Mapping):
            raise RequestError("Recovery request must be a JSON object")

        coin = data.get('coin')
        if not isinstance(coin, str) or not coin:
            raise RequestError("Recovery request is missing coin")

        backup_key = data.get('backupKey')
        if not isinstance(backup_key, str) or not backup_key:
            raise RequestError("Recovery request is missing backupKey")

        transaction = None
        for field_name in TRANSACTION_FIELDS:
            if data.get(field_name):
                transaction = data[field_name]
                break
        if transaction is None:
            raise RequestError("Recovery request carries no transaction")

        raw_inputs = data.get('inputs') or []
        if not isinstance(raw_inputs, list):
            raise RequestError("Recovery request inputs must be a list")
        inputs = tuple(InputSpec.from_dict(item, i) for i, item in enumerate(raw_inputs))

        custom = data.get('custom')
        custom_message = None
        if isinstance(custom, Mapping) and custom.get('message') is not None:
            custom_message = str(custom['message'])

        recovery_amount = data.get('recoveryAmount')
        if recovery_amount is not None:
            recovery_amount = str(recovery_amount)

        return cls(
            coin=coin,
            backup_key=backup_key,
            transaction=transaction,
            inputs=inputs,
            custom_message=custom_message,
            recovery_amount=recovery_amount,
        )


@dataclass(frozen=True)
class Output:
    """A transaction output as shown to the operator."""
    address: str
    amount: str


@dataclass(frozen=True)
class SignedRecovery:
    """Result of a successful recovery run."""
    backup_key: str
    coin: str
    recovery_amount: Optional[str]
    tx_hex: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'backupKey': self.backup_key,
            'coin': self.coin,
            'recoveryAmount': self.recovery_amount,
            'txHex': self.tx_hex,
        }
