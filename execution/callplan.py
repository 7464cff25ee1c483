from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from errors import ConfigurationError, EncodingError

from .assets import ETH, Asset, checksum, is_native

ERC20_TRANSFER_SIGNATURE = "transfer(address,uint256)"
ERC20_TRANSFER_SELECTOR = function_signature_to_4byte_selector(ERC20_TRANSFER_SIGNATURE)


@dataclass(frozen=True)
class TransferRequest:
    recipient: str
    amount: int
    asset: Optional[Asset] = None
    fee_asset: Optional[Asset] = None
    nonce: Optional[int] = None


@dataclass(frozen=True)
class CallPlan:
    """
    Canonical on-chain call shape of a transfer.

    Native transfers carry the value directly; token transfers call the token
    contract with zero value.
    """

    to: str
    value: int
    data: bytes
    fee_asset_address: str


def encode_erc20_transfer(recipient: str, amount: int) -> bytes:
    try:
        return ERC20_TRANSFER_SELECTOR + encode(["address", "uint256"], [recipient, amount])
    except Exception as e:
        raise EncodingError(
            f"failed to pack transfer function: {e}",
            {"recipient": str(recipient), "amount": str(amount)},
        ) from e


def decode_erc20_transfer(data: bytes) -> Tuple[str, str, int]:
    if bytes(data[:4]) != ERC20_TRANSFER_SELECTOR:
        raise EncodingError("call data is not an ERC-20 transfer", {"selector": bytes(data[:4]).hex()})
    recipient, amount = decode(["address", "uint256"], bytes(data[4:]))
    return "transfer", to_checksum_address(recipient), int(amount)


def _require_uint(value: object, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{field} must be an integer", {field: repr(value)})
    if value < 0:
        raise ConfigurationError(f"{field} must be >= 0", {field: value})
    return value


def validate_transfer(request: TransferRequest) -> None:
    """Amount, nonce and asset descriptor checks; no address parsing or encoding."""
    _require_uint(request.amount, field="amount")
    if request.nonce is not None:
        _require_uint(request.nonce, field="nonce")
    is_native(request.asset)
    if request.fee_asset is not None:
        is_native(request.fee_asset)


def compile_transfer(request: TransferRequest) -> CallPlan:
    validate_transfer(request)
    amount = request.amount
    fee_asset = request.fee_asset if request.fee_asset is not None else ETH

    if is_native(request.asset):
        return CallPlan(
            to=checksum(request.recipient, field="recipient"),
            value=amount,
            data=b"",
            fee_asset_address=fee_asset.l2_address,
        )

    return CallPlan(
        to=request.asset.l2_address,
        value=0,
        data=encode_erc20_transfer(request.recipient, amount),
        fee_asset_address=fee_asset.l2_address,
    )
