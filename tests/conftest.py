import os
import sys
from unittest.mock import MagicMock

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from execution.provider import Provider
from execution.transaction import EIP1559_ENCODER
from signing.env_private_key import EnvPrivateKeySigner

# Well-known development key (hardhat/anvil account #0). Never holds real funds.
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

RECIPIENT = "0x" + "aa" * 20
TOKEN_ADDRESS = "0x" + "bb" * 20


@pytest.fixture
def key_signer(monkeypatch):
    monkeypatch.setenv("PRIVATE_KEY", TEST_PRIVATE_KEY)
    return EnvPrivateKeySigner()


@pytest.fixture
def provider():
    p = MagicMock(spec=Provider)
    p.get_transaction_count.return_value = 5
    p.get_balance.return_value = 10**18
    p.estimate_gas.return_value = 21000
    p.get_gas_price.return_value = 250_000_000
    p.get_chain_id.return_value = 324
    p.send_raw_transaction.return_value = "0x" + "cd" * 32
    p.transaction_encoder.return_value = EIP1559_ENCODER
    return p
