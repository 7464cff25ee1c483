from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector
from web3 import Web3
from web3.providers.rpc import HTTPProvider

from errors import ConfigurationError, ProviderError, classify_exception

from .assets import ETH, Asset, is_native
from .bridge import BridgeContracts
from .transaction import EIP1559_ENCODER, TransactionEncoder

DEFAULT_HTTP_TIMEOUT_SEC = 10.0


class BlockTag:
    COMMITTED = "committed"
    LATEST = "latest"
    PENDING = "pending"
    FINALIZED = "finalized"


BALANCE_OF_SELECTOR = function_signature_to_4byte_selector("balanceOf(address)")


def _hex_int(v: Any, *, name: str) -> int:
    if isinstance(v, int) and not isinstance(v, bool):
        return v
    if isinstance(v, str):
        s = v.strip().lower()
        if s in ("0x", ""):
            return 0
        return int(s, 16) if s.startswith("0x") else int(s, 10)
    raise ProviderError(f"invalid integer in {name} response", {"value": repr(v)})


def to_rpc_call(tx: Dict[str, Any]) -> Dict[str, Any]:
    """Hex-encode a python call dict for JSON-RPC."""
    out: Dict[str, Any] = {}
    for k, v in tx.items():
        if v is None:
            continue
        if isinstance(v, (bytes, bytearray)):
            out[k] = "0x" + bytes(v).hex()
        elif isinstance(v, int) and not isinstance(v, bool):
            out[k] = hex(v)
        else:
            out[k] = v
    return out


class Provider(ABC):
    """
    Rollup RPC collaborator. Every method raises ProviderError on transport/RPC failure.
    """

    @abstractmethod
    def get_balance(self, address: str, block_tag: str = BlockTag.COMMITTED, token: Asset = ETH) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_transaction_count(self, address: str, block_tag: str = BlockTag.COMMITTED) -> int:
        raise NotImplementedError

    @abstractmethod
    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_gas_price(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_chain_id(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_bridge_contracts(self) -> BridgeContracts:
        raise NotImplementedError

    @abstractmethod
    def send_raw_transaction(self, raw_tx: bytes) -> str:
        raise NotImplementedError

    def transaction_encoder(self) -> TransactionEncoder:
        """Envelope this rollup accepts. Providers that can pay fees in tokens override it."""
        return EIP1559_ENCODER


class Web3Provider(Provider):
    """
    JSON-RPC provider for a zkSync-style rollup, speaking through web3's HTTPProvider.

    Raw requests are used instead of ``w3.eth`` helpers because the rollup accepts
    block tags (``committed``) that web3 does not validate as identifiers.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        w3: Optional[Web3] = None,
        timeout_sec: float = DEFAULT_HTTP_TIMEOUT_SEC,
    ) -> None:
        if w3 is None:
            if not url:
                raise ConfigurationError(
                    "Web3Provider needs an RPC url or a Web3 instance", code="missing_rpc_url"
                )
            w3 = Web3(HTTPProvider(url, request_kwargs={"timeout": timeout_sec}))
        self._w3 = w3

    @property
    def web3(self) -> Web3:
        return self._w3

    def _rpc(self, method: str, params: List[Any]) -> Any:
        try:
            resp = self._w3.provider.make_request(method, params)
        except Exception as e:
            raise classify_exception(e, operation=method) from e
        err = resp.get("error") if isinstance(resp, dict) else None
        if err:
            message = err.get("message") if isinstance(err, dict) else str(err)
            raise ProviderError(
                f"failed to {method}: {message}",
                {"operation": method, "rpc_error": err},
                code="provider_rpc_error",
            )
        if not isinstance(resp, dict) or "result" not in resp:
            raise ProviderError(f"failed to {method}: malformed response", {"operation": method})
        return resp["result"]

    def get_balance(self, address: str, block_tag: str = BlockTag.COMMITTED, token: Asset = ETH) -> int:
        if is_native(token):
            return _hex_int(self._rpc("eth_getBalance", [address, block_tag]), name="eth_getBalance")
        data = BALANCE_OF_SELECTOR + encode(["address"], [address])
        call = {"to": token.l2_address, "data": "0x" + data.hex()}
        return _hex_int(self._rpc("eth_call", [call, block_tag]), name="eth_call")

    def get_transaction_count(self, address: str, block_tag: str = BlockTag.COMMITTED) -> int:
        return _hex_int(
            self._rpc("eth_getTransactionCount", [address, block_tag]), name="eth_getTransactionCount"
        )

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return _hex_int(self._rpc("eth_estimateGas", [to_rpc_call(tx)]), name="eth_estimateGas")

    def get_gas_price(self) -> int:
        return _hex_int(self._rpc("eth_gasPrice", []), name="eth_gasPrice")

    def get_chain_id(self) -> int:
        return _hex_int(self._rpc("eth_chainId", []), name="eth_chainId")

    def get_bridge_contracts(self) -> BridgeContracts:
        result = self._rpc("zks_getBridgeContracts", [])
        if not isinstance(result, dict):
            raise ProviderError("failed to zks_getBridgeContracts: malformed response", {"result": repr(result)})
        return BridgeContracts.from_rpc(result)

    def send_raw_transaction(self, raw_tx: bytes) -> str:
        return str(self._rpc("eth_sendRawTransaction", ["0x" + bytes(raw_tx).hex()]))


class BaseChainClient(ABC):
    """Base-chain (L1) client, used during bridge provider setup."""

    @abstractmethod
    def chain_id(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def contract(self, address: str, abi: List[Dict[str, Any]]) -> Any:
        raise NotImplementedError


class Web3BaseChainClient(BaseChainClient):
    def __init__(self, url: str, *, timeout_sec: float = DEFAULT_HTTP_TIMEOUT_SEC) -> None:
        self._url = url
        self._w3 = Web3(HTTPProvider(url, request_kwargs={"timeout": timeout_sec}))

    @property
    def web3(self) -> Web3:
        return self._w3

    def chain_id(self) -> int:
        return int(self._w3.eth.chain_id)

    def contract(self, address: str, abi: List[Dict[str, Any]]) -> Any:
        return self._w3.eth.contract(address=self._w3.to_checksum_address(address), abi=abi)
