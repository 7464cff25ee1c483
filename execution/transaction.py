from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List

import rlp
from eth_utils import keccak

from errors import ConfigurationError, ProviderError, SigningError

from .assets import NATIVE_ASSET_ADDRESS

EIP1559_TX_TYPE = 2


def _rlp_int(i: int) -> bytes:
    if i == 0:
        return b""
    return int(i).to_bytes((int(i).bit_length() + 7) // 8, "big")


def _to_address_bytes(v: str) -> bytes:
    s = v.strip()
    if s.startswith("0x"):
        s = s[2:]
    b = bytes.fromhex(s)
    if len(b) != 20:
        raise ConfigurationError("to must be 20 bytes", {"to": v})
    return b


def unsupported_fee_asset(fee_token: str) -> ProviderError:
    return ProviderError(
        "provider cannot pay fees in a non-native asset",
        {"fee_asset": fee_token},
        code="unsupported_fee_asset",
    )


@dataclass(frozen=True)
class SignedTransaction:
    raw: bytes
    hash: str


@dataclass(frozen=True)
class UnsignedTransaction:
    """
    Canonical unsigned transaction. ``fee_token`` is the L2 address of the fee asset.
    """

    chain_id: int
    nonce: int
    to: str
    value: int
    gas_limit: int
    data: bytes
    max_fee_per_gas: int
    max_priority_fee_per_gas: int = 0
    fee_token: str = NATIVE_ASSET_ADDRESS


class TransactionEncoder(ABC):
    """
    Wire envelope of a rollup transaction.

    Providers hand one out through ``Provider.transaction_encoder``; the digest the
    account signs and the raw bytes that get broadcast both come from it.
    """

    def supports_fee_token(self, fee_token: str) -> bool:
        return fee_token.lower() == NATIVE_ASSET_ADDRESS

    @abstractmethod
    def signing_digest(self, tx: UnsignedTransaction) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def encode_signed(self, tx: UnsignedTransaction, signature: bytes) -> bytes:
        raise NotImplementedError

    def sign(self, tx: UnsignedTransaction, signature: bytes) -> SignedTransaction:
        if len(signature) != 65:
            raise SigningError("expected a 65-byte signature", {"length": len(signature)})
        raw = self.encode_signed(tx, signature)
        return SignedTransaction(raw=raw, hash="0x" + keccak(raw).hex())


class Eip1559Encoder(TransactionEncoder):
    """Type 0x02 envelope. Fees are always paid in the native asset."""

    def _fields(self, tx: UnsignedTransaction) -> List[Any]:
        if not self.supports_fee_token(tx.fee_token):
            raise unsupported_fee_asset(tx.fee_token)
        return [
            _rlp_int(tx.chain_id),
            _rlp_int(tx.nonce),
            _rlp_int(tx.max_priority_fee_per_gas),
            _rlp_int(tx.max_fee_per_gas),
            _rlp_int(tx.gas_limit),
            _to_address_bytes(tx.to),
            _rlp_int(tx.value),
            bytes(tx.data),
            [],
        ]

    def signing_payload(self, tx: UnsignedTransaction) -> bytes:
        return bytes([EIP1559_TX_TYPE]) + rlp.encode(self._fields(tx))

    def signing_digest(self, tx: UnsignedTransaction) -> bytes:
        return keccak(self.signing_payload(tx))

    def encode_signed(self, tx: UnsignedTransaction, signature: bytes) -> bytes:
        r = int.from_bytes(signature[0:32], "big")
        s = int.from_bytes(signature[32:64], "big")
        y_parity = signature[64]
        return bytes([EIP1559_TX_TYPE]) + rlp.encode(
            self._fields(tx) + [_rlp_int(y_parity), _rlp_int(r), _rlp_int(s)]
        )


EIP1559_ENCODER = Eip1559Encoder()
