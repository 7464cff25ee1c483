from __future__ import annotations

import threading
from typing import Callable, Optional

from errors import ConfigurationError, raise_classified
from execution.assets import ETH, Asset
from execution.bridge import BridgeContractResolver, BridgeContracts, BridgeProvider
from execution.callplan import TransferRequest, compile_transfer, validate_transfer
from execution.pipeline import TransactionPipeline
from execution.provider import BaseChainClient, BlockTag, Provider, Web3BaseChainClient
from observability import AuditLog, build_log_context, log_event
from signing.base import Signer
from signing.transactor import TransactOpts, new_transactor_with_signer

WALLET_CTX = build_log_context(component="wallet")


class Wallet:
    """
    Rollup account facade: balance and nonce reads, transfers, bridge setup.

    The signer and provider are borrowed, not owned. Concurrent ``transfer`` calls
    that both rely on the on-chain nonce can collide; callers that need parallel
    sends should pass explicit nonces.
    """

    def __init__(
        self,
        signer: Signer,
        provider: Provider,
        *,
        chain_id: Optional[int] = None,
        base_client_factory: Callable[[str], BaseChainClient] = Web3BaseChainClient,
        base_chain_rpc_url: Optional[str] = None,
        priority_fee_wei: int = 0,
        gas_limit_multiplier: float = 1.0,
        audit_log: Optional[AuditLog] = None,
    ) -> None:
        self._signer = signer
        self._provider = provider
        self._base_client_factory = base_client_factory
        self._base_chain_rpc_url = base_chain_rpc_url
        self._priority_fee_wei = priority_fee_wei
        self._gas_limit_multiplier = gas_limit_multiplier
        self._audit_log = audit_log
        self._bridges = BridgeContractResolver(provider)
        self._chain_id = chain_id
        self._chain_id_lock = threading.Lock()

    @property
    def address(self) -> str:
        return self._signer.get_address()

    def chain_id(self) -> int:
        if self._chain_id is not None:
            return self._chain_id
        with self._chain_id_lock:
            if self._chain_id is None:
                try:
                    self._chain_id = int(self._provider.get_chain_id())
                except Exception as e:
                    raise_classified(e, operation="get chain id")
            return self._chain_id

    def get_balance(self, token: Asset = ETH) -> int:
        try:
            return self._provider.get_balance(self.address, BlockTag.COMMITTED, token)
        except Exception as e:
            raise_classified(e, operation="get balance")

    def get_nonce(self) -> int:
        try:
            return self._provider.get_transaction_count(self.address, BlockTag.COMMITTED)
        except Exception as e:
            raise_classified(e, operation="get nonce")

    def get_bridge_contracts(self) -> BridgeContracts:
        return self._bridges.resolve()

    def transfer(
        self,
        to: str,
        amount: int,
        token: Optional[Asset] = None,
        nonce: Optional[int] = None,
        fee_token: Optional[Asset] = None,
    ) -> str:
        return self.transfer_request(
            TransferRequest(recipient=to, amount=amount, asset=token, fee_asset=fee_token, nonce=nonce)
        )

    def transfer_request(self, request: TransferRequest) -> str:
        validate_transfer(request)
        nonce = request.nonce
        if nonce is None:
            nonce = self.get_nonce()
        plan = compile_transfer(request)
        log_event(
            "transfer_compiled",
            ctx=WALLET_CTX,
            data={"to": plan.to, "value": plan.value, "data_bytes": len(plan.data), "nonce": nonce},
        )
        return self._pipeline().estimate_and_send(plan, nonce)

    def _transactor(self, chain_id: Optional[int]) -> TransactOpts:
        try:
            return new_transactor_with_signer(self._signer, chain_id)
        except Exception as e:
            raise_classified(e, operation="get signer address")

    def _pipeline(self) -> TransactionPipeline:
        return TransactionPipeline(
            self._provider,
            self._transactor(self.chain_id()),
            priority_fee_wei=self._priority_fee_wei,
            gas_limit_multiplier=self._gas_limit_multiplier,
            audit_log=self._audit_log,
        )

    def create_bridge_provider(self, rpc_url: Optional[str] = None) -> BridgeProvider:
        rpc_url = rpc_url or self._base_chain_rpc_url
        if not rpc_url:
            raise ConfigurationError("no base chain rpc url configured", code="missing_rpc_url")
        client = self._base_client_factory(rpc_url)
        try:
            chain_id = client.chain_id()
        except Exception as e:
            raise_classified(e, operation="get chain id")
        transactor = self._transactor(chain_id)
        contracts = self.get_bridge_contracts()
        try:
            provider = BridgeProvider(client=client, transactor=transactor, contracts=contracts)
        except Exception as e:
            raise_classified(e, operation="load bridge contracts")
        log_event("bridge_provider_created", ctx=WALLET_CTX, data={"chain_id": chain_id})
        return provider
