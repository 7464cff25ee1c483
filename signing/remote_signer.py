from __future__ import annotations

import os
from typing import Optional

import requests

from errors import SigningError

from .base import Signer, require_digest, require_signature


class RemoteSigner(Signer):
    """
    Remote digest signer (enterprise-friendly).

    This enables using:
    - a local sidecar signer
    - an internal signing service
    - a KMS/HSM-backed signing proxy

    Protocol (HTTP JSON):
    GET  {SIGNER_REMOTE_URL}/address      -> {"address": "0x..."}
    POST {SIGNER_REMOTE_URL}/sign_digest  body: {"digest_hex": "0x..."}
                                          response: {"signature_hex": "0x..."}  (65 bytes, r || s || v)
    """

    def __init__(self, url_env: str = "SIGNER_REMOTE_URL") -> None:
        url = (os.getenv(url_env) or "").strip()
        if not url:
            raise ValueError(f"{url_env} environment variable not set")
        self._base_url = url.rstrip("/")
        self._cached_address: Optional[str] = None

    def get_address(self) -> str:
        if self._cached_address:
            return self._cached_address
        timeout = float(os.getenv("HTTP_TIMEOUT_SEC", "10"))
        r = requests.get(f"{self._base_url}/address", timeout=timeout)
        r.raise_for_status()
        data = r.json()
        addr = str(data.get("address") or "").strip()
        if not addr:
            raise ValueError("Remote signer returned empty address")
        self._cached_address = addr
        return addr

    def sign_digest(self, digest: bytes) -> bytes:
        digest = require_digest(digest)
        timeout = float(os.getenv("HTTP_TIMEOUT_SEC", "10"))
        r = requests.post(
            f"{self._base_url}/sign_digest",
            json={"digest_hex": "0x" + digest.hex()},
            timeout=timeout,
        )
        r.raise_for_status()
        data = r.json()
        sig_hex: Optional[str] = data.get("signature_hex") or data.get("signatureHex")
        if not sig_hex:
            raise SigningError("Remote signer did not return signature_hex")
        sig_hex = str(sig_hex).strip()
        if sig_hex.startswith("0x"):
            sig_hex = sig_hex[2:]
        sig = bytearray(bytes.fromhex(sig_hex))
        # Some signers report v as 27/28.
        if len(sig) == 65 and sig[64] >= 27:
            sig[64] -= 27
        return require_signature(bytes(sig))
