from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from eth_utils import is_address, to_checksum_address

from errors import ConfigurationError

# Pseudo-address the rollup uses for its native asset; it is not a contract.
NATIVE_ASSET_ADDRESS = "0x0000000000000000000000000000000000000000"


def checksum(address: str, *, field: str) -> str:
    if not isinstance(address, str) or not is_address(address):
        raise ConfigurationError(f"malformed {field} address", {field: address})
    return to_checksum_address(address)


@dataclass(frozen=True)
class Native:
    symbol: str = "ETH"
    decimals: int = 18

    @property
    def l2_address(self) -> str:
        return NATIVE_ASSET_ADDRESS

    @property
    def l1_address(self) -> str:
        return NATIVE_ASSET_ADDRESS


@dataclass(frozen=True)
class Token:
    l2_address: str
    l1_address: Optional[str] = None
    symbol: str = ""
    decimals: int = 18

    def __post_init__(self) -> None:
        l2 = checksum(self.l2_address, field="token l2")
        if l2 == NATIVE_ASSET_ADDRESS:
            raise ConfigurationError("token l2 address is the native asset sentinel; use Native()", {"l2_address": l2})
        object.__setattr__(self, "l2_address", l2)
        if self.l1_address is not None:
            object.__setattr__(self, "l1_address", checksum(self.l1_address, field="token l1"))
        if self.decimals < 0 or self.decimals > 255:
            raise ConfigurationError("decimals out of range", {"decimals": self.decimals})


Asset = Union[Native, Token]

ETH = Native()


def is_native(asset: Optional[Asset]) -> bool:
    if asset is None or isinstance(asset, Native):
        return True
    if isinstance(asset, Token):
        return False
    raise ConfigurationError(f"unknown asset descriptor: {type(asset).__name__}")
