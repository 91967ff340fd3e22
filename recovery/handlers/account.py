"""
Recovery Signer - Account Recovery Handler

Signs legacy Ethereum transactions that move funds out of a multisig wallet
contract. The transaction calls the wallet contract; the real destination and
amount live in the call payload, which is what the operator is shown.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

import rlp
from eth_account import Account
from web3 import Web3

from crypto.keys import ExtendedKey

from ..exceptions import MalformedTransaction, SigningFailure
from ..request import Output, RecoveryRequest
from ..verifier import KeyVerifier, XPRV_PROMPT


# Call payload layout: 4-byte selector, 32-byte address word, 32-byte amount word
DESTINATION_OFFSET = 16
AMOUNT_OFFSET = 36
PAYLOAD_MIN_LENGTH = 68


@dataclass(frozen=True)
class AccountTransaction:
    """Unsigned legacy account transaction."""
    nonce: int
    gas_price: int
    gas: int
    to: str
    value: int
    data: bytes
    chain_id: int

    def to_dict(self) -> Dict[str, Any]:
        """Transaction dictionary in the form eth_account signs."""
        return {
            'nonce': self.nonce,
            'gasPrice': self.gas_price,
            'gas': self.gas,
            'to': self.to,
            'value': self.value,
            'data': '0x' + self.data.hex(),
            'chainId': self.chain_id,
        }


def _int_field(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise MalformedTransaction(f"Invalid {name}: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, bytes):
        return int.from_bytes(value, 'big')
    if isinstance(value, str):
        try:
            if value.lower().startswith('0x'):
                return int(value, 16) if len(value) > 2 else 0
            return int(value)
        except ValueError:
            pass
    raise MalformedTransaction(f"Invalid {name}: {value!r}")


def _address_field(value: Any) -> str:
    if isinstance(value, bytes):
        value = '0x' + value.hex() if value else None
    if not value:
        raise MalformedTransaction("Transaction has no destination contract")
    try:
        return Web3.to_checksum_address(value)
    except (TypeError, ValueError):
        raise MalformedTransaction(f"Invalid destination contract: {value!r}")


def parse_account_transaction(tx: Union[str, Mapping[str, Any]],
                              default_chain_id: Optional[int]) -> AccountTransaction:
    """
    Decode an unsigned account transaction.

    Args:
        tx: RLP hex string or transaction mapping
        default_chain_id: Chain id used when the transaction carries none

    Returns:
        AccountTransaction instance

    Raises:
        MalformedTransaction: If the transaction cannot be decoded
    """
    if isinstance(tx, Mapping):
        fields = {
            'nonce': tx.get('nonce', 0),
            'gas_price': tx.get('gasPrice', 0),
            'gas': tx.get('gasLimit', tx.get('gas', 0)),
            'to': tx.get('to'),
            'value': tx.get('value', 0),
            'data': tx.get('data') or '',
            'chain_id': tx.get('chainId'),
        }
        try:
            data = Web3.to_bytes(hexstr=fields['data']) if isinstance(fields['data'], str) else bytes(fields['data'])
        except (TypeError, ValueError):
            raise MalformedTransaction("Transaction data is not hex")
        chain_id = fields['chain_id']
        return AccountTransaction(
            nonce=_int_field(fields['nonce'], 'nonce'),
            gas_price=_int_field(fields['gas_price'], 'gasPrice'),
            gas=_int_field(fields['gas'], 'gasLimit'),
            to=_address_field(fields['to']),
            value=_int_field(fields['value'], 'value'),
            data=data,
            chain_id=_int_field(chain_id, 'chainId') if chain_id is not None else default_chain_id,
        )

    if not isinstance(tx, str):
        raise MalformedTransaction("Account transaction must be RLP hex or an object")

    try:
        raw = Web3.to_bytes(hexstr=tx.strip())
        items = rlp.decode(raw)
    except Exception as e:
        raise MalformedTransaction(f"Cannot decode account transaction: {e}")

    if not isinstance(items, list) or len(items) not in (6, 9) or not all(isinstance(i, bytes) for i in items):
        raise MalformedTransaction("Account transaction must be a legacy RLP list of 6 or 9 fields")

    chain_id = default_chain_id
    if len(items) == 9:
        v, r, s = (int.from_bytes(item, 'big') for item in items[6:])
        if r == 0 and s == 0:
            chain_id = v
        elif v >= 35:
            chain_id = (v - 35) // 2

    nonce, gas_price, gas, to, value, data = items[:6]
    return AccountTransaction(
        nonce=int.from_bytes(nonce, 'big'),
        gas_price=int.from_bytes(gas_price, 'big'),
        gas=int.from_bytes(gas, 'big'),
        to=_address_field(to),
        value=int.from_bytes(value, 'big'),
        data=data,
        chain_id=chain_id,
    )


class AccountHandler:
    """Recovery handler for Ethereum and ERC-20 wallet contracts."""

    key_prompt = XPRV_PROMPT

    def __init__(self, dispatch, config, verifier: Optional[KeyVerifier] = None):
        self.coin = dispatch.coin
        self.token = dispatch.token
        self.decimals = config.decimals
        self.default_chain_id = config.chain_ids.get(dispatch.coin)
        self.verifier = verifier or KeyVerifier()
        self.logger = logging.getLogger(__name__)

    def decode(self, request: RecoveryRequest) -> AccountTransaction:
        tx = parse_account_transaction(request.transaction, self.default_chain_id)
        if tx.chain_id is None:
            raise MalformedTransaction(f"No chain id known for {self.coin}")
        return tx

    def extract_outputs(self, tx: AccountTransaction) -> List[Output]:
        """
        Read destination and amount from the wallet contract call.

        The selector is not checked; the payload is assumed to be a
        selector followed by an address word and an amount word.
        """
        payload = tx.data
        if len(payload) < PAYLOAD_MIN_LENGTH:
            raise MalformedTransaction(
                f"Call payload is {len(payload)} bytes, expected at least {PAYLOAD_MIN_LENGTH}"
            )

        destination = '0x' + payload[DESTINATION_OFFSET:AMOUNT_OFFSET].hex()
        amount = int.from_bytes(payload[AMOUNT_OFFSET:PAYLOAD_MIN_LENGTH], 'big')
        if self.token:
            display = str(amount)
        else:
            display = self.decimals.format(self.coin, amount)
        return [Output(address=destination, amount=display)]

    def acquire_key(self, secret: str, request: RecoveryRequest) -> ExtendedKey:
        return self.verifier.verify(secret, request.backup_key)

    def sign(self, tx: AccountTransaction, root: ExtendedKey, request: RecoveryRequest):
        """
        Sign with the private key of the verified root node.

        Returns:
            eth_account signed transaction
        """
        signer = Account.from_key(root.private_key.bytes)
        self.logger.info(f"Signing {self.coin} transaction from {signer.address} on chain {tx.chain_id}")
        try:
            return signer.sign_transaction(tx.to_dict())
        except Exception as e:
            raise SigningFailure(f"Failed to sign {self.coin} transaction: {e}")

    def serialize(self, signed) -> str:
        return bytes(signed.raw_transaction).hex()
