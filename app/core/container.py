from __future__ import annotations

from functools import partial
from typing import Optional

from app.core.settings import Settings, load_settings
from errors import ConfigurationError
from execution.provider import Web3BaseChainClient, Web3Provider
from observability import AuditLog, setup_logging
from signing import get_signer
from wallet import Wallet


def build_wallet(settings: Optional[Settings] = None) -> Wallet:
    """
    Wire a Wallet from settings: logging, signer (SIGNER_TYPE), rollup provider,
    base-chain client, audit log.
    """
    settings = settings or load_settings()
    setup_logging(level=settings.WALLET_LOG_LEVEL, service=settings.WALLET_SERVICE_NAME)
    if not settings.ROLLUP_RPC_URL:
        raise ConfigurationError("ROLLUP_RPC_URL is not set", code="missing_rpc_url")
    return Wallet(
        get_signer(),
        Web3Provider(settings.ROLLUP_RPC_URL, timeout_sec=settings.HTTP_TIMEOUT_SEC),
        chain_id=settings.ROLLUP_CHAIN_ID,
        base_client_factory=partial(Web3BaseChainClient, timeout_sec=settings.HTTP_TIMEOUT_SEC),
        base_chain_rpc_url=settings.BASE_CHAIN_RPC_URL,
        priority_fee_wei=settings.MAX_PRIORITY_FEE_PER_GAS_WEI,
        gas_limit_multiplier=settings.GAS_LIMIT_MULTIPLIER,
        audit_log=AuditLog(settings.AUDIT_DB_PATH) if settings.AUDIT_DB_PATH else None,
    )
