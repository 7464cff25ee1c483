from __future__ import annotations

from abc import ABC, abstractmethod

from errors import SigningError

DIGEST_LENGTH = 32
SIGNATURE_LENGTH = 65


class Signer(ABC):
    """
    A minimal digest-signing capability.

    Implementations own their key material; callers only ever see the account
    address and a 65-byte ``r || s || v`` signature (``v`` in {0, 1}).
    """

    @abstractmethod
    def get_address(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def sign_digest(self, digest: bytes) -> bytes:
        raise NotImplementedError


def require_digest(digest: bytes) -> bytes:
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != DIGEST_LENGTH:
        raise SigningError(
            f"expected a {DIGEST_LENGTH}-byte digest",
            {"length": len(digest) if isinstance(digest, (bytes, bytearray)) else None},
        )
    return bytes(digest)


def require_signature(sig: bytes) -> bytes:
    if len(sig) != SIGNATURE_LENGTH:
        raise SigningError(f"expected a {SIGNATURE_LENGTH}-byte signature", {"length": len(sig)})
    if sig[64] not in (0, 1):
        raise SigningError("signature recovery id must be 0 or 1", {"v": sig[64]})
    return sig
