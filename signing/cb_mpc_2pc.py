from __future__ import annotations

import os
import secrets
from typing import Optional, Tuple

import requests
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature
from eth_keys import keys

from errors import SigningError

from .base import Signer, require_digest

SECP256K1_N = int(
    "0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141",
    16,
)
SECP256K1_HALF_N = SECP256K1_N // 2


def _env(name: str) -> str:
    v = (os.getenv(name) or "").strip()
    if not v:
        raise ValueError(f"{name} environment variable not set")
    return v


def _http_timeout() -> float:
    return float((os.getenv("HTTP_TIMEOUT_SEC") or "10").strip())


def _normalize_sig(r: int, s: int) -> Tuple[int, int]:
    if r <= 0 or r >= SECP256K1_N:
        raise SigningError("invalid r")
    if s <= 0 or s >= SECP256K1_N:
        raise SigningError("invalid s")
    if s > SECP256K1_HALF_N:
        s = SECP256K1_N - s
    return r, s


def _find_recovery_id(msg_hash_32: bytes, r: int, s: int, expected_address: str) -> int:
    exp = expected_address.strip().lower()
    if not exp.startswith("0x"):
        exp = "0x" + exp
    for recid in (0, 1):
        sig = keys.Signature(vrs=(recid, r, s))
        pub = sig.recover_public_key_from_msg_hash(msg_hash_32)
        if pub.to_checksum_address().lower() == exp:
            return recid
    raise SigningError("could not determine recovery id (address mismatch)")


class Mpc2pcSigner(Signer):
    """
    MPC-backed digest signer using Coinbase cb-mpc (2-party ECDSA).

    This signer does NOT hold a private key. It delegates ECDSA signing of the
    digest to a 2-party MPC service, then normalizes the DER signature to low-s
    and recovers the parity bit locally.

    Env:
    - MPC_SIGNER_URL: base URL of the MPC leader service (mpc_signer), e.g. http://mpc0:8787
    - HTTP_TIMEOUT_SEC: request timeout (default 10)
    """

    def __init__(self, url_env: str = "MPC_SIGNER_URL") -> None:
        self._base_url = _env(url_env).rstrip("/")
        self._cached_address: Optional[str] = None

    def _get_address(self) -> str:
        timeout = _http_timeout()
        r = requests.get(f"{self._base_url}/address", timeout=timeout)
        r.raise_for_status()
        data = r.json()
        addr = str(data.get("address") or "").strip()
        if not addr:
            raise ValueError("MPC signer returned empty address")
        return addr

    def get_address(self) -> str:
        if self._cached_address:
            return self._cached_address
        self._cached_address = self._get_address()
        return self._cached_address

    def _mpc_sign_digest(self, digest32: bytes, *, session_id: str) -> bytes:
        timeout = _http_timeout()
        payload = {"session_id": session_id, "digest_hex": "0x" + digest32.hex()}
        r = requests.post(f"{self._base_url}/sign_digest", json=payload, timeout=timeout)
        r.raise_for_status()
        data = r.json()
        if not data.get("ok"):
            raise SigningError("MPC signing failed", {"response": data})
        sig_hex = str(data.get("signature_der_hex") or "").strip()
        if sig_hex.startswith("0x"):
            sig_hex = sig_hex[2:]
        sig = bytes.fromhex(sig_hex)
        if not sig:
            raise SigningError("MPC signer returned empty signature")
        return sig

    def sign_digest(self, digest: bytes) -> bytes:
        digest32 = require_digest(digest)
        sig_der = self._mpc_sign_digest(digest32, session_id=secrets.token_hex(12))
        r, s = decode_dss_signature(sig_der)
        r, s = _normalize_sig(int(r), int(s))
        recid = _find_recovery_id(digest32, r, s, self.get_address())
        return keys.Signature(vrs=(recid, r, s)).to_bytes()
