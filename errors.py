from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, NoReturn

import requests
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception


@dataclass(eq=False)
class AppError(Exception):
    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ConfigurationError(AppError):
    """Missing chain identity or malformed descriptors. Raised before any network call."""

    def __init__(self, message: str, data: Dict[str, Any] | None = None, code: str = "configuration_error") -> None:
        super().__init__(code, message, data or {})


class ProviderError(AppError):
    """RPC/transport failure from the rollup provider or the base-chain client."""

    def __init__(self, message: str, data: Dict[str, Any] | None = None, code: str = "provider_error") -> None:
        super().__init__(code, message, data or {})


class EstimationError(ProviderError):
    def __init__(self, message: str, data: Dict[str, Any] | None = None, code: str = "estimation_failed") -> None:
        super().__init__(message, data, code)


class EncodingError(AppError):
    def __init__(self, message: str, data: Dict[str, Any] | None = None, code: str = "encoding_error") -> None:
        super().__init__(code, message, data or {})


class SigningError(AppError):
    def __init__(self, message: str, data: Dict[str, Any] | None = None, code: str = "signing_error") -> None:
        super().__init__(code, message, data or {})


class UnauthorizedSignerError(SigningError):
    """The address asking for a signature is not the signer's own address."""

    def __init__(self, message: str, data: Dict[str, Any] | None = None, code: str = "unauthorized_signer") -> None:
        super().__init__(message, data, code)


def classify_exception(e: Exception, *, operation: str) -> AppError:
    """
    Map common requests / web3 issues into stable error codes.

    AppError instances pass through untouched so the innermost classification wins.
    """
    if isinstance(e, AppError):
        return e
    data = {"operation": operation}
    message = f"failed to {operation}: {e}"
    if isinstance(e, requests.Timeout):
        return ProviderError(message, data, code="provider_timeout")
    if isinstance(e, requests.ConnectionError):
        return ProviderError(message, data, code="provider_unreachable")
    if isinstance(e, requests.HTTPError):
        return ProviderError(message, data, code="provider_http_error")
    if isinstance(e, ContractLogicError):
        return ProviderError(message, data, code="provider_execution_reverted")
    if isinstance(e, TimeExhausted):
        return ProviderError(message, data, code="provider_timeout")
    if isinstance(e, Web3Exception):
        return ProviderError(message, data, code="provider_rpc_error")

    return ProviderError(message, data)


def raise_classified(e: Exception, *, operation: str) -> NoReturn:
    """Re-raise ``e`` as its classified AppError, chaining the original."""
    err = classify_exception(e, operation=operation)
    if err is e:
        raise e
    raise err from e
