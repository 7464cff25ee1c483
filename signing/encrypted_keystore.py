from __future__ import annotations

import json
import os
from pathlib import Path

from eth_account import Account
from eth_keys import keys

from .base import Signer, require_digest


class EncryptedKeystoreSigner(Signer):
    """
    Baseline production signer: decrypts an Ethereum keystore JSON using a passphrase.

    Env vars:
    - KEYSTORE_PATH: path to keystore json file
    - KEYSTORE_PASSWORD: passphrase
    """

    def __init__(self, keystore_path_env: str = "KEYSTORE_PATH", password_env: str = "KEYSTORE_PASSWORD") -> None:  # nosec B107
        path_raw = os.getenv(keystore_path_env)
        password = os.getenv(password_env)
        if not path_raw:
            raise ValueError(f"{keystore_path_env} environment variable not set")
        if not password:
            raise ValueError(f"{password_env} environment variable not set")

        path = Path(path_raw).expanduser()
        if not path.exists():
            raise ValueError(f"Keystore file not found: {path}")

        keystore = json.loads(path.read_text())
        pk_bytes = Account.decrypt(keystore, password)
        self._address = Account.from_key(pk_bytes).address
        self._key = keys.PrivateKey(bytes(pk_bytes))

    def get_address(self) -> str:
        return self._address

    def sign_digest(self, digest: bytes) -> bytes:
        return self._key.sign_msg_hash(require_digest(digest)).to_bytes()
