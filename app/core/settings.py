"""
rollup-wallet Unified Settings System

This module provides a validated, typed settings layer that serves as the single
source of truth for wallet configuration. Environment variables are validated
when ``Settings`` is instantiated to catch misconfigurations early.

Usage:
    from app.core.settings import load_settings

    settings = load_settings()
    wallet = build_wallet(settings)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class SignerType(Enum):
    """Signer backend types."""

    ENV_PRIVATE_KEY = "env_private_key"
    KEYSTORE = "keystore"
    REMOTE = "remote"
    CB_MPC_2PC = "cb_mpc_2pc"


class SettingsValidationError(Exception):
    """Raised when settings validation fails."""

    def __init__(self, field: str, value: Any, message: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid configuration for {field}={value!r}: {message}")


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean from environment variable."""
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_int(value: str | None, default: int | None = None) -> int | None:
    """Parse an integer from environment variable."""
    if value is None or value.strip() == "":
        return default
    try:
        return int(value.strip(), 0)  # Support hex with 0x prefix
    except ValueError:
        return default


def _parse_float(value: str | None, default: float | None = None) -> float | None:
    """Parse a float from environment variable."""
    if value is None or value.strip() == "":
        return default
    try:
        return float(value.strip())
    except ValueError:
        return default


def _parse_signer_type(value: str | None) -> SignerType:
    raw = (value or "env_private_key").strip().lower()
    if raw in [e.value for e in SignerType]:
        return SignerType(raw)
    return SignerType.ENV_PRIVATE_KEY


def _env_str(name: str) -> str | None:
    v = os.getenv(name)
    if v is None:
        return None
    v = v.strip()
    return v or None


@dataclass
class Settings:
    """
    Unified settings class with validation.

    All configuration is loaded and validated at instantiation time.
    """

    PROJECT_NAME: str = "rollup-wallet"

    # Endpoints
    ROLLUP_RPC_URL: str | None = field(default_factory=lambda: _env_str("ROLLUP_RPC_URL"))
    BASE_CHAIN_RPC_URL: str | None = field(default_factory=lambda: _env_str("BASE_CHAIN_RPC_URL"))
    ROLLUP_CHAIN_ID: int | None = field(default_factory=lambda: _parse_int(os.getenv("ROLLUP_CHAIN_ID")))
    HTTP_TIMEOUT_SEC: float = field(default_factory=lambda: _parse_float(os.getenv("HTTP_TIMEOUT_SEC"), 10.0) or 10.0)

    # Signer settings
    SIGNER_TYPE: SignerType = field(default_factory=lambda: _parse_signer_type(os.getenv("SIGNER_TYPE")))
    PRIVATE_KEY: str | None = field(default_factory=lambda: os.getenv("PRIVATE_KEY"))
    KEYSTORE_PATH: str | None = field(default_factory=lambda: os.getenv("KEYSTORE_PATH"))
    KEYSTORE_PASSWORD: str | None = field(default_factory=lambda: os.getenv("KEYSTORE_PASSWORD"))
    SIGNER_REMOTE_URL: str | None = field(default_factory=lambda: os.getenv("SIGNER_REMOTE_URL"))
    MPC_SIGNER_URL: str | None = field(default_factory=lambda: os.getenv("MPC_SIGNER_URL"))

    # Fees
    MAX_PRIORITY_FEE_PER_GAS_WEI: int = field(
        default_factory=lambda: _parse_int(os.getenv("MAX_PRIORITY_FEE_PER_GAS_WEI"), 0) or 0
    )
    GAS_LIMIT_MULTIPLIER: float = field(
        default_factory=lambda: _parse_float(os.getenv("GAS_LIMIT_MULTIPLIER"), 1.0) or 1.0
    )

    # Observability
    AUDIT_DB_PATH: str | None = field(default_factory=lambda: _env_str("AUDIT_DB_PATH"))
    WALLET_LOG_LEVEL: str = field(default_factory=lambda: os.getenv("WALLET_LOG_LEVEL", "info").strip().lower())
    WALLET_SERVICE_NAME: str = field(default_factory=lambda: os.getenv("WALLET_SERVICE_NAME", "rollup-wallet").strip())

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        self._validate()

    def _validate(self) -> None:
        errors: list[str] = []

        if self.SIGNER_TYPE == SignerType.ENV_PRIVATE_KEY and not self.PRIVATE_KEY:
            errors.append("PRIVATE_KEY required when SIGNER_TYPE=env_private_key")
        elif self.SIGNER_TYPE == SignerType.KEYSTORE and (not self.KEYSTORE_PATH or not self.KEYSTORE_PASSWORD):
            errors.append("KEYSTORE_PATH and KEYSTORE_PASSWORD required when SIGNER_TYPE=keystore")
        elif self.SIGNER_TYPE == SignerType.REMOTE and not self.SIGNER_REMOTE_URL:
            errors.append("SIGNER_REMOTE_URL required when SIGNER_TYPE=remote")
        elif self.SIGNER_TYPE == SignerType.CB_MPC_2PC and not self.MPC_SIGNER_URL:
            errors.append("MPC_SIGNER_URL required when SIGNER_TYPE=cb_mpc_2pc")

        if self.ROLLUP_CHAIN_ID is not None and self.ROLLUP_CHAIN_ID <= 0:
            errors.append(f"ROLLUP_CHAIN_ID must be positive, got {self.ROLLUP_CHAIN_ID}")

        if self.MAX_PRIORITY_FEE_PER_GAS_WEI < 0:
            errors.append("MAX_PRIORITY_FEE_PER_GAS_WEI must be >= 0")

        if self.GAS_LIMIT_MULTIPLIER < 1.0:
            errors.append(f"GAS_LIMIT_MULTIPLIER must be >= 1.0, got {self.GAS_LIMIT_MULTIPLIER}")

        if self.HTTP_TIMEOUT_SEC <= 0:
            errors.append("HTTP_TIMEOUT_SEC must be positive")

        if errors:
            raise SettingsValidationError("MULTIPLE", None, "; ".join(errors))

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary (redacting secrets)."""
        result: dict[str, Any] = {}
        for key in dir(self):
            if key.startswith("_") or key.isupper() is False:
                continue
            value = getattr(self, key)
            # Redact sensitive values
            if any(s in key.upper() for s in ["SECRET", "PASSWORD", "PRIVATE_KEY", "TOKEN"]):
                result[key] = "***REDACTED***" if value else None
            elif isinstance(value, Enum):
                result[key] = value.value
            else:
                result[key] = value
        return result


def load_settings() -> Settings:
    return Settings()
