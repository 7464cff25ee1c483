from __future__ import annotations

import math
from typing import Any, Dict, Optional

from errors import AppError, ConfigurationError, EstimationError, classify_exception, raise_classified
from observability import AuditLog, build_log_context, log_event, now_ms
from signing.transactor import TransactOpts

from .assets import NATIVE_ASSET_ADDRESS
from .callplan import CallPlan
from .provider import Provider
from .transaction import SignedTransaction, UnsignedTransaction, unsupported_fee_asset

PIPELINE_CTX = build_log_context(component="pipeline")


class TransactionPipeline:
    """
    estimate -> finalize -> submit, strictly in that order.

    Nothing is broadcast unless estimation and signing both succeeded, and
    nothing is ever retried here.
    """

    def __init__(
        self,
        provider: Provider,
        transactor: TransactOpts,
        *,
        priority_fee_wei: int = 0,
        gas_limit_multiplier: float = 1.0,
        audit_log: Optional[AuditLog] = None,
    ) -> None:
        if priority_fee_wei < 0:
            raise ConfigurationError("priority_fee_wei must be >= 0", {"priority_fee_wei": priority_fee_wei})
        if gas_limit_multiplier < 1.0:
            raise ConfigurationError(
                "gas_limit_multiplier must be >= 1.0", {"gas_limit_multiplier": gas_limit_multiplier}
            )
        self._provider = provider
        self._encoder = provider.transaction_encoder()
        self._transactor = transactor
        self._priority_fee_wei = int(priority_fee_wei)
        self._gas_limit_multiplier = float(gas_limit_multiplier)
        self._audit_log = audit_log

    @property
    def from_address(self) -> str:
        return self._transactor.from_address

    def _call_dict(self, plan: CallPlan, nonce: int) -> Dict[str, Any]:
        call: Dict[str, Any] = {
            "from": self.from_address,
            "to": plan.to,
            "value": plan.value,
            "data": plan.data,
            "nonce": nonce,
        }
        if plan.fee_asset_address.lower() != NATIVE_ASSET_ADDRESS:
            call["eip712Meta"] = {"feeToken": plan.fee_asset_address}
        return call

    def estimate(self, plan: CallPlan, nonce: int) -> int:
        try:
            gas = int(self._provider.estimate_gas(self._call_dict(plan, nonce)))
        except Exception as e:
            cause = classify_exception(e, operation="estimate gas")
            raise EstimationError(
                f"failed to estimate gas: {cause.message}",
                {"operation": "estimate gas", "cause": cause.code},
            ) from e
        gas_limit = max(gas, int(math.ceil(gas * self._gas_limit_multiplier)))
        log_event("gas_estimated", ctx=PIPELINE_CTX, data={"nonce": nonce, "gas": gas, "gas_limit": gas_limit})
        return gas_limit

    def finalize(self, plan: CallPlan, nonce: int, gas_limit: int) -> SignedTransaction:
        try:
            gas_price = int(self._provider.get_gas_price())
        except Exception as e:
            raise_classified(e, operation="get gas price")
        tx = UnsignedTransaction(
            chain_id=self._transactor.chain_id,
            nonce=nonce,
            to=plan.to,
            value=plan.value,
            gas_limit=gas_limit,
            data=plan.data,
            max_fee_per_gas=gas_price + self._priority_fee_wei,
            max_priority_fee_per_gas=self._priority_fee_wei,
            fee_token=plan.fee_asset_address,
        )
        signed = self._transactor.sign(self.from_address, tx, self._encoder)
        log_event("transaction_signed", ctx=PIPELINE_CTX, data={"nonce": nonce, "tx_hash": signed.hash})
        return signed

    def submit(self, signed: SignedTransaction) -> str:
        try:
            tx_hash = self._provider.send_raw_transaction(signed.raw)
        except Exception as e:
            raise_classified(e, operation="send transaction")
        log_event("transaction_submitted", ctx=PIPELINE_CTX, data={"tx_hash": tx_hash})
        return tx_hash

    def estimate_and_send(self, plan: CallPlan, nonce: int) -> str:
        try:
            if not self._encoder.supports_fee_token(plan.fee_asset_address):
                raise unsupported_fee_asset(plan.fee_asset_address)
            gas_limit = self.estimate(plan, nonce)
            signed = self.finalize(plan, nonce, gas_limit)
            tx_hash = self.submit(signed)
        except AppError as e:
            log_event("transfer_failed", ctx=PIPELINE_CTX, data={"nonce": nonce, "code": e.code}, level="warning")
            self._audit(plan, nonce, ok=False, error_code=e.code)
            raise
        self._audit(plan, nonce, ok=True, tx_hash=tx_hash)
        return tx_hash

    def _audit(self, plan: CallPlan, nonce: int, *, ok: bool, tx_hash: str | None = None, error_code: str | None = None) -> None:
        if self._audit_log is None:
            return
        self._audit_log.append(
            ts_ms=now_ms(),
            operation="transfer",
            ok=ok,
            address=self.from_address,
            nonce=nonce,
            tx_hash=tx_hash,
            error_code=error_code,
            summary={"to": plan.to, "value": plan.value, "data_bytes": len(plan.data)},
        )
