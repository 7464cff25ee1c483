from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from errors import ProviderError, classify_exception
from observability import build_log_context, log_event

if TYPE_CHECKING:
    from signing.transactor import TransactOpts

    from .provider import BaseChainClient, Provider

BRIDGE_CTX = build_log_context(component="bridge")

L1_ETH_BRIDGE_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [
            {"name": "_l2Receiver", "type": "address"},
            {"name": "_l1Token", "type": "address"},
            {"name": "_amount", "type": "uint256"},
            {"name": "_l2TxGasLimit", "type": "uint256"},
            {"name": "_l2TxGasPerPubdataByte", "type": "uint256"},
        ],
        "name": "deposit",
        "outputs": [{"name": "txHash", "type": "bytes32"}],
        "stateMutability": "payable",
        "type": "function",
    },
]

L1_ERC20_BRIDGE_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [
            {"name": "_l2Receiver", "type": "address"},
            {"name": "_l1Token", "type": "address"},
            {"name": "_amount", "type": "uint256"},
            {"name": "_l2TxGasLimit", "type": "uint256"},
            {"name": "_l2TxGasPerPubdataByte", "type": "uint256"},
            {"name": "_refundRecipient", "type": "address"},
        ],
        "name": "deposit",
        "outputs": [{"name": "l2TxHash", "type": "bytes32"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [{"name": "_l1Token", "type": "address"}],
        "name": "l2TokenAddress",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]


@dataclass(frozen=True)
class BridgeContracts:
    l1_eth_bridge: str
    l1_erc20_bridge: str
    l2_eth_bridge: Optional[str] = None
    l2_erc20_bridge: Optional[str] = None

    @property
    def native_bridge(self) -> str:
        return self.l1_eth_bridge

    @property
    def token_bridge(self) -> str:
        return self.l1_erc20_bridge

    @classmethod
    def from_rpc(cls, result: Dict[str, Any]) -> "BridgeContracts":
        """
        Parse a ``zks_getBridgeContracts`` result.

        Newer rollup nodes report a single shared bridge instead of a dedicated
        ETH bridge; the ETH entries then fall back to it.
        """
        l1_erc20 = result.get("l1Erc20DefaultBridge") or result.get("l1SharedDefaultBridge")
        if not l1_erc20:
            raise ProviderError(
                "zks_getBridgeContracts returned no L1 ERC20 bridge",
                {"result": result},
                code="provider_malformed_response",
            )
        l2_erc20 = result.get("l2Erc20DefaultBridge") or result.get("l2SharedDefaultBridge")
        return cls(
            l1_eth_bridge=result.get("l1EthDefaultBridge") or result.get("l1SharedDefaultBridge") or l1_erc20,
            l1_erc20_bridge=l1_erc20,
            l2_eth_bridge=result.get("l2EthDefaultBridge") or result.get("l2SharedDefaultBridge") or l2_erc20,
            l2_erc20_bridge=l2_erc20,
        )


class BridgeContractResolver:
    """
    Fetch-once cache of the bridge contract addresses.

    The first successful lookup is kept for the lifetime of the resolver; a failed
    lookup is not cached. There is no invalidation.
    """

    def __init__(self, provider: "Provider") -> None:
        self._provider = provider
        self._lock = threading.Lock()
        self._contracts: Optional[BridgeContracts] = None

    def resolve(self) -> BridgeContracts:
        cached = self._contracts
        if cached is not None:
            return cached
        with self._lock:
            if self._contracts is None:
                try:
                    contracts = self._provider.get_bridge_contracts()
                except Exception as e:
                    err = classify_exception(e, operation="get bridge contracts")
                    log_event("bridge_contracts_failed", ctx=BRIDGE_CTX, data={"code": err.code}, level="warning")
                    if err is e:
                        raise
                    raise err from e
                self._contracts = contracts
                log_event(
                    "bridge_contracts_resolved",
                    ctx=BRIDGE_CTX,
                    data={"native_bridge": contracts.native_bridge, "token_bridge": contracts.token_bridge},
                )
            return self._contracts


class BridgeProvider:
    """
    Base-chain handle binding the L1 bridge contracts to a signing authorization.
    """

    def __init__(
        self,
        *,
        client: "BaseChainClient",
        transactor: "TransactOpts",
        contracts: BridgeContracts,
    ) -> None:
        self.client = client
        self.transactor = transactor
        self.contracts = contracts
        self.eth_bridge = client.contract(contracts.native_bridge, L1_ETH_BRIDGE_ABI)
        self.erc20_bridge = client.contract(contracts.token_bridge, L1_ERC20_BRIDGE_ABI)

    @property
    def chain_id(self) -> int:
        return self.transactor.chain_id

    def l2_token_address(self, l1_token: str) -> str:
        try:
            return str(self.erc20_bridge.functions.l2TokenAddress(l1_token).call())
        except Exception as e:
            raise classify_exception(e, operation="get l2 token address") from e
