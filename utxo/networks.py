"""
Recovery Signer - UTXO Network Parameters

Address version bytes, segwit HRPs, replay protection and serialization
format for every supported UTXO chain. The table is immutable; callers that
need different values (e.g. a newer Zcash consensus branch) derive a copy
with `dataclasses.replace`.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class TxFormat(str, Enum):
    """Raw transaction serialization families."""
    BITCOIN = "bitcoin"    # Bitcoin, Litecoin, Bitcoin Cash (+ BIP144 witness)
    DASH = "dash"          # Special transactions: 16-bit type + extra payload
    ZCASH = "zcash"        # Overwinter/Sapling v4 transparent transactions


# Sapling transaction version group id
ZCASH_SAPLING_VERSION_GROUP_ID = 0x892F2085

# Consensus branch id committed to by ZIP-243 signatures (NU6)
ZCASH_DEFAULT_BRANCH_ID = 0xC8E71055


@dataclass(frozen=True)
class NetworkParams:
    """Chain-specific parameters for a UTXO coin."""
    name: str
    pub_key_hash: bytes
    script_hash: bytes
    bech32_hrp: Optional[str] = None
    fork_id: Optional[int] = None
    tx_format: TxFormat = TxFormat.BITCOIN
    consensus_branch_id: Optional[int] = None
    # bitcoinlib network definition used for decoding, encoding and digests
    bitcoinlib_network: Optional[str] = None

    @property
    def supports_segwit(self) -> bool:
        """Whether witness inputs and bech32 outputs exist on this chain."""
        return self.bech32_hrp is not None


BITCOIN = NetworkParams(
    name="bitcoin",
    pub_key_hash=b'\x00',
    script_hash=b'\x05',
    bech32_hrp="bc",
    bitcoinlib_network="bitcoin",
)

BITCOIN_TESTNET = NetworkParams(
    name="testnet",
    pub_key_hash=b'\x6f',
    script_hash=b'\xc4',
    bech32_hrp="tb",
    bitcoinlib_network="testnet",
)

LITECOIN = NetworkParams(
    name="litecoin",
    pub_key_hash=b'\x30',
    script_hash=b'\x32',
    bech32_hrp="ltc",
    bitcoinlib_network="litecoin",
)

LITECOIN_TESTNET = NetworkParams(
    name="litecoin-testnet",
    pub_key_hash=b'\x6f',
    script_hash=b'\x3a',
    bech32_hrp="tltc",
    bitcoinlib_network="litecoin_testnet",
)

BITCOIN_CASH = NetworkParams(
    name="bitcoincash",
    pub_key_hash=b'\x00',
    script_hash=b'\x05',
    fork_id=0x00,
)

BITCOIN_CASH_TESTNET = NetworkParams(
    name="bitcoincash-testnet",
    pub_key_hash=b'\x6f',
    script_hash=b'\xc4',
    fork_id=0x00,
)

ZCASH = NetworkParams(
    name="zcash",
    pub_key_hash=b'\x1c\xb8',
    script_hash=b'\x1c\xbd',
    tx_format=TxFormat.ZCASH,
    consensus_branch_id=ZCASH_DEFAULT_BRANCH_ID,
)

ZCASH_TESTNET = NetworkParams(
    name="zcash-testnet",
    pub_key_hash=b'\x1d\x25',
    script_hash=b'\x1c\xba',
    tx_format=TxFormat.ZCASH,
    consensus_branch_id=ZCASH_DEFAULT_BRANCH_ID,
)

DASH = NetworkParams(
    name="dash",
    pub_key_hash=b'\x4c',
    script_hash=b'\x10',
    tx_format=TxFormat.DASH,
)

DASH_TESTNET = NetworkParams(
    name="dash-testnet",
    pub_key_hash=b'\x8c',
    script_hash=b'\x13',
    tx_format=TxFormat.DASH,
)


UTXO_NETWORKS: Mapping[str, NetworkParams] = MappingProxyType({
    'btc': BITCOIN,
    'tbtc': BITCOIN_TESTNET,
    'ltc': LITECOIN,
    'tltc': LITECOIN_TESTNET,
    'bch': BITCOIN_CASH,
    'tbch': BITCOIN_CASH_TESTNET,
    'zec': ZCASH,
    'tzec': ZCASH_TESTNET,
    'dash': DASH,
    'tdash': DASH_TESTNET,
})
