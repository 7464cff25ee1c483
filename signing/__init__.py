from .base import Signer
from .cb_mpc_2pc import Mpc2pcSigner
from .encrypted_keystore import EncryptedKeystoreSigner
from .env_private_key import EnvPrivateKeySigner
from .factory import get_signer
from .remote_signer import RemoteSigner
from .transactor import TransactOpts, new_transactor_with_signer

__all__ = [
    "Signer",
    "EnvPrivateKeySigner",
    "EncryptedKeystoreSigner",
    "RemoteSigner",
    "Mpc2pcSigner",
    "get_signer",
    "TransactOpts",
    "new_transactor_with_signer",
]
