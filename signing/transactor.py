from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from errors import ConfigurationError, SigningError, UnauthorizedSignerError
from execution.transaction import EIP1559_ENCODER, SignedTransaction, TransactionEncoder, UnsignedTransaction

from .base import Signer, require_signature

SignerFn = Callable[..., SignedTransaction]


@dataclass(frozen=True)
class TransactOpts:
    """
    Transaction-signing authorization for one account on one chain.

    ``sign(address, tx, encoder=EIP1559_ENCODER)`` refuses to sign for any address
    other than ``from_address``.
    """

    from_address: str
    chain_id: int
    sign: SignerFn


def _same_address(a: str, b: str) -> bool:
    return str(a).strip().lower() == str(b).strip().lower()


def new_transactor_with_signer(signer: Signer, chain_id: Optional[int]) -> TransactOpts:
    if chain_id is None:
        raise ConfigurationError("no chain id specified", code="no_chain_id")
    key_addr = signer.get_address()

    def sign(
        address: str, tx: UnsignedTransaction, encoder: TransactionEncoder = EIP1559_ENCODER
    ) -> SignedTransaction:
        if not _same_address(address, key_addr):
            raise UnauthorizedSignerError(
                "not authorized to sign this account",
                {"address": str(address), "signer": key_addr},
            )
        if tx.chain_id != chain_id:
            raise ConfigurationError(
                "transaction chain id does not match transactor",
                {"tx_chain_id": tx.chain_id, "chain_id": chain_id},
            )
        digest = encoder.signing_digest(tx)
        try:
            signature = signer.sign_digest(digest)
        except SigningError:
            raise
        except Exception as e:
            raise SigningError(f"failed to sign digest: {e}", {"operation": "sign digest"}) from e
        return encoder.sign(tx, require_signature(signature))

    return TransactOpts(from_address=key_addr, chain_id=int(chain_id), sign=sign)
