import threading
import time
from unittest.mock import MagicMock

import pytest
import requests
from eth_utils import keccak, to_checksum_address

from conftest import RECIPIENT, TEST_ADDRESS, TOKEN_ADDRESS
from errors import ConfigurationError, EncodingError, ProviderError, UnauthorizedSignerError
from execution.assets import ETH, Token
from execution.bridge import L1_ERC20_BRIDGE_ABI, L1_ETH_BRIDGE_ABI, BridgeContracts
from execution.callplan import decode_erc20_transfer
from execution.transaction import TransactionEncoder
from wallet import Wallet

BRIDGES = BridgeContracts(
    l1_eth_bridge="0x" + "e1" * 20,
    l1_erc20_bridge="0x" + "e2" * 20,
    l2_eth_bridge="0x" + "f1" * 20,
    l2_erc20_bridge="0x" + "f2" * 20,
)


def test_balance_and_nonce_read_committed_state(provider, key_signer):
    w = Wallet(key_signer, provider)
    assert w.get_balance() == 10**18
    provider.get_balance.assert_called_once_with(TEST_ADDRESS, "committed", ETH)
    assert w.get_nonce() == 5
    provider.get_transaction_count.assert_called_once_with(TEST_ADDRESS, "committed")


def test_nonce_failure_names_operation(provider, key_signer):
    provider.get_transaction_count.side_effect = requests.ConnectionError("refused")
    w = Wallet(key_signer, provider)
    with pytest.raises(ProviderError) as e:
        w.get_nonce()
    assert e.value.code == "provider_unreachable"
    assert e.value.data["operation"] == "get nonce"


def test_native_transfer_resolves_nonce_from_chain(provider, key_signer):
    w = Wallet(key_signer, provider)
    tx_hash = w.transfer(RECIPIENT, 100)

    assert tx_hash == "0x" + "cd" * 32
    provider.get_transaction_count.assert_called_once_with(TEST_ADDRESS, "committed")
    call = provider.estimate_gas.call_args.args[0]
    assert call["nonce"] == 5
    assert call["to"] == to_checksum_address(RECIPIENT)
    assert call["value"] == 100
    assert call["data"] == b""
    provider.send_raw_transaction.assert_called_once()


def test_token_transfer_with_explicit_nonce(provider, key_signer):
    w = Wallet(key_signer, provider)
    w.transfer(RECIPIENT, 50, token=Token(TOKEN_ADDRESS), nonce=3)

    provider.get_transaction_count.assert_not_called()
    call = provider.estimate_gas.call_args.args[0]
    assert call["nonce"] == 3
    assert call["to"] == to_checksum_address(TOKEN_ADDRESS)
    assert call["value"] == 0
    assert decode_erc20_transfer(call["data"]) == ("transfer", to_checksum_address(RECIPIENT), 50)


def test_invalid_transfer_fails_before_any_network_call(provider, key_signer):
    w = Wallet(key_signer, provider)
    with pytest.raises(ConfigurationError):
        w.transfer(RECIPIENT, -1)
    provider.get_transaction_count.assert_not_called()
    provider.estimate_gas.assert_not_called()


def test_chain_id_is_resolved_once(provider, key_signer):
    w = Wallet(key_signer, provider)
    w.transfer(RECIPIENT, 1, nonce=0)
    w.transfer(RECIPIENT, 1, nonce=1)
    assert provider.get_chain_id.call_count == 1
    assert w.chain_id() == 324


def test_configured_chain_id_skips_provider(provider, key_signer):
    w = Wallet(key_signer, provider, chain_id=300)
    assert w.chain_id() == 300
    provider.get_chain_id.assert_not_called()


def test_bridge_contracts_are_fetched_once(provider, key_signer):
    provider.get_bridge_contracts.return_value = BRIDGES
    w = Wallet(key_signer, provider)
    assert w.get_bridge_contracts() is BRIDGES
    assert w.get_bridge_contracts() is BRIDGES
    assert provider.get_bridge_contracts.call_count == 1


def test_failed_bridge_lookup_is_not_cached(provider, key_signer):
    provider.get_bridge_contracts.side_effect = [requests.Timeout("slow"), BRIDGES]
    w = Wallet(key_signer, provider)
    with pytest.raises(ProviderError) as e:
        w.get_bridge_contracts()
    assert e.value.data["operation"] == "get bridge contracts"
    assert w.get_bridge_contracts() is BRIDGES
    assert w.get_bridge_contracts() is BRIDGES
    assert provider.get_bridge_contracts.call_count == 2


def test_concurrent_first_lookup_queries_provider_once(provider, key_signer):
    def slow_lookup():
        time.sleep(0.05)
        return BRIDGES

    provider.get_bridge_contracts.side_effect = slow_lookup
    w = Wallet(key_signer, provider)
    results = []
    threads = [threading.Thread(target=lambda: results.append(w.get_bridge_contracts())) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 8
    assert all(r is BRIDGES for r in results)
    assert provider.get_bridge_contracts.call_count == 1


def _base_client(chain_id=1):
    client = MagicMock()
    client.chain_id.return_value = chain_id
    client.contract.side_effect = lambda address, abi: MagicMock(address=address, abi=abi)
    return client


def test_create_bridge_provider_binds_contracts_and_transactor(provider, key_signer):
    provider.get_bridge_contracts.return_value = BRIDGES
    client = _base_client(chain_id=5)
    factory = MagicMock(return_value=client)
    w = Wallet(key_signer, provider, base_client_factory=factory)

    bp = w.create_bridge_provider("http://l1:8545")

    factory.assert_called_once_with("http://l1:8545")
    assert bp.chain_id == 5
    assert bp.transactor.from_address == TEST_ADDRESS
    assert bp.eth_bridge.address == BRIDGES.native_bridge
    assert bp.eth_bridge.abi == L1_ETH_BRIDGE_ABI
    assert bp.erc20_bridge.address == BRIDGES.token_bridge
    assert bp.erc20_bridge.abi == L1_ERC20_BRIDGE_ABI
    with pytest.raises(UnauthorizedSignerError):
        bp.transactor.sign("0x" + "22" * 20, MagicMock())


def test_create_bridge_provider_without_chain_id(provider, key_signer):
    client = _base_client(chain_id=None)
    w = Wallet(key_signer, provider, base_client_factory=lambda url: client)
    with pytest.raises(ConfigurationError):
        w.create_bridge_provider("http://l1:8545")
    provider.get_bridge_contracts.assert_not_called()


def test_create_bridge_provider_chain_id_failure(provider, key_signer):
    client = _base_client()
    client.chain_id.side_effect = requests.ConnectionError("l1 down")
    w = Wallet(key_signer, provider, base_client_factory=lambda url: client)
    with pytest.raises(ProviderError) as e:
        w.create_bridge_provider("http://l1:8545")
    assert e.value.data["operation"] == "get chain id"
    provider.get_bridge_contracts.assert_not_called()


def test_bridge_provider_reads_l2_token_address(provider, key_signer):
    provider.get_bridge_contracts.return_value = BRIDGES
    w = Wallet(key_signer, provider, base_client_factory=lambda url: _base_client())
    bp = w.create_bridge_provider("http://l1:8545")

    lookup = bp.erc20_bridge.functions.l2TokenAddress
    lookup.return_value.call.return_value = TOKEN_ADDRESS
    assert bp.l2_token_address("0x" + "dd" * 20) == TOKEN_ADDRESS
    lookup.assert_called_once_with("0x" + "dd" * 20)

    lookup.return_value.call.side_effect = requests.ConnectionError("l1 down")
    with pytest.raises(ProviderError) as e:
        bp.l2_token_address("0x" + "dd" * 20)
    assert e.value.data["operation"] == "get l2 token address"


def test_nonce_is_read_before_the_transfer_is_compiled(provider, key_signer):
    provider.get_transaction_count.side_effect = requests.ConnectionError("refused")
    w = Wallet(key_signer, provider)
    with pytest.raises(ProviderError) as e:
        w.transfer("not-an-address", 1, token=Token(TOKEN_ADDRESS))
    assert e.value.data["operation"] == "get nonce"
    provider.get_transaction_count.assert_called_once()
    provider.estimate_gas.assert_not_called()


def test_unencodable_recipient_fails_after_nonce_before_estimate(provider, key_signer):
    w = Wallet(key_signer, provider)
    with pytest.raises(EncodingError):
        w.transfer("not-an-address", 1, token=Token(TOKEN_ADDRESS))
    provider.get_transaction_count.assert_called_once()
    provider.estimate_gas.assert_not_called()


class _FeeTokenEnvelope(TransactionEncoder):
    def supports_fee_token(self, fee_token):
        return True

    def signing_digest(self, tx):
        return keccak(b"\x71" + bytes.fromhex(tx.fee_token[2:]) + tx.nonce.to_bytes(32, "big"))

    def encode_signed(self, tx, signature):
        return b"\x71" + bytes.fromhex(tx.fee_token[2:]) + signature


def test_token_fee_transfer_through_provider_envelope(provider, key_signer):
    fee = Token("0x" + "cc" * 20)
    provider.transaction_encoder.return_value = _FeeTokenEnvelope()
    w = Wallet(key_signer, provider)

    assert w.transfer(RECIPIENT, 1, fee_token=fee) == "0x" + "cd" * 32

    call = provider.estimate_gas.call_args.args[0]
    assert call["eip712Meta"] == {"feeToken": fee.l2_address}
    raw = provider.send_raw_transaction.call_args.args[0]
    assert raw[:21] == b"\x71" + b"\xcc" * 20


def test_token_fee_rejected_by_eip1559_provider(provider, key_signer):
    w = Wallet(key_signer, provider)
    with pytest.raises(ProviderError) as e:
        w.transfer(RECIPIENT, 1, fee_token=Token("0x" + "cc" * 20))
    assert e.value.code == "unsupported_fee_asset"
    provider.estimate_gas.assert_not_called()
    provider.send_raw_transaction.assert_not_called()


def test_signer_address_failure_names_operation(provider):
    signer = MagicMock()
    signer.get_address.side_effect = [TEST_ADDRESS, requests.ConnectionError("signer down")]
    w = Wallet(signer, provider, chain_id=324)
    with pytest.raises(ProviderError) as e:
        w.transfer(RECIPIENT, 1)
    assert e.value.code == "provider_unreachable"
    assert e.value.data["operation"] == "get signer address"
    provider.estimate_gas.assert_not_called()


def test_bridge_provider_uses_configured_base_chain_url(provider, key_signer):
    provider.get_bridge_contracts.return_value = BRIDGES
    factory = MagicMock(return_value=_base_client())
    w = Wallet(key_signer, provider, base_client_factory=factory, base_chain_rpc_url="http://l1:8545")
    w.create_bridge_provider()
    factory.assert_called_once_with("http://l1:8545")


def test_bridge_provider_without_any_url(provider, key_signer):
    factory = MagicMock()
    w = Wallet(key_signer, provider, base_client_factory=factory)
    with pytest.raises(ConfigurationError) as e:
        w.create_bridge_provider()
    assert e.value.code == "missing_rpc_url"
    factory.assert_not_called()
