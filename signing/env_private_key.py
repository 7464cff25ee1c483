from __future__ import annotations

import os

from eth_account import Account
from eth_keys import keys

from .base import Signer, require_digest


class EnvPrivateKeySigner(Signer):
    """
    Development signer that reads a raw hex private key from PRIVATE_KEY env var.
    """

    def __init__(self, env_var: str = "PRIVATE_KEY") -> None:
        pk = os.getenv(env_var)
        if not pk:
            raise ValueError(f"{env_var} environment variable not set")
        account = Account.from_key(pk)
        self._address = account.address
        self._key = keys.PrivateKey(bytes(account.key))

    def get_address(self) -> str:
        return self._address

    def sign_digest(self, digest: bytes) -> bytes:
        # eth_keys signs deterministically (RFC 6979) and returns v in {0, 1}.
        return self._key.sign_msg_hash(require_digest(digest)).to_bytes()
