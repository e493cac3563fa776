from unittest.mock import MagicMock

import pytest
from eth_utils import keccak
from web3 import Web3

from avs_operator.abis import HELLO_WORLD_ABI
from avs_operator.chain_client import ChainClient
from avs_operator.contract_manager import ContractManager
from avs_operator.errors import SigningError, SubmissionError, SubscriptionError
from avs_operator.models import OperatorRegistration, Task, TransactionOptions
from conftest import TEST_ADDRESS

SERVICE = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
DELEGATION = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
OPTIONS = TransactionOptions(TEST_ADDRESS, nonce=4, gas_limit=1_000_000, gas_price=20, chain_id=17000)


def selector(signature):
    return "0x" + keccak(text=signature)[:4].hex()


@pytest.fixture
def manager():
    return ContractManager(ChainClient(Web3()), SERVICE.lower(), DELEGATION)


def test_respond_to_task_tx(manager):
    tx = manager.respond_to_task_tx(Task("Foo", 1000), 5, b"\x01" * 64, OPTIONS)

    assert tx["to"] == SERVICE
    assert tx["data"].startswith(selector("respondToTask((string,uint32),uint32,bytes)"))
    assert (tx["nonce"], tx["gas"], tx["gasPrice"], tx["value"], tx["chainId"]) == (
        4,
        1_000_000,
        20,
        0,
        17000,
    )


def test_create_new_task_tx(manager):
    tx = manager.create_new_task_tx("QuickFox7", OPTIONS)
    assert tx["data"].startswith(selector("createNewTask(string)"))


def test_register_as_operator_tx(manager):
    tx = manager.register_as_operator_tx(OperatorRegistration(), OPTIONS)

    assert tx["to"] == DELEGATION
    assert tx["data"].startswith(
        selector("registerAsOperator((address,address,uint32),string)")
    )


def test_register_without_delegation_manager():
    manager = ContractManager(ChainClient(Web3()), SERVICE)
    with pytest.raises(SubmissionError):
        manager.register_as_operator_tx(OperatorRegistration(), OPTIONS)


def test_unencodable_arguments_are_submission_errors(manager):
    with pytest.raises(SubmissionError):
        manager.respond_to_task_tx(Task("Foo", -1), 5, b"", OPTIONS)


def test_unknown_event_is_subscription_error(manager):
    with pytest.raises(SubscriptionError):
        manager.event_filter("NoSuchEvent")


def test_sign_then_submit_once(manager, account):
    manager.chain_client = MagicMock()
    manager.chain_client.submit.return_value = "0xabc"
    tx = manager.create_new_task_tx("QuickFox7", OPTIONS)

    signed = manager.sign(tx, account)
    assert signed.raw_transaction
    manager.chain_client.submit.assert_not_called()

    assert manager.submit(signed) == "0xabc"
    manager.chain_client.submit.assert_called_once_with(signed)


def test_unsignable_tx_is_signing_error(manager, account):
    with pytest.raises(SigningError):
        manager.sign({"nonce": "not a number"}, account)


def test_delegation_address_defaults_to_none():
    manager = ContractManager(ChainClient(Web3()), SERVICE)
    assert manager.delegation is None
    assert manager.delegation_address is None


def test_service_manager_abi_lists_only_watched_events():
    events = {entry["name"] for entry in HELLO_WORLD_ABI if entry["type"] == "event"}
    assert events == {"NewTaskCreated"}
