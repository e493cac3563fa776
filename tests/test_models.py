import pytest

from avs_operator.models import Task, TaskEvent, TransactionOptions
from conftest import TEST_ADDRESS, log_entry


def test_task_from_mapping_and_tuple():
    assert Task.from_abi({"name": "Foo", "taskCreatedBlock": 9}) == Task("Foo", 9)
    assert Task.from_abi(("Foo", 9)) == Task("Foo", 9)
    assert Task("Foo", 9).to_abi() == ("Foo", 9)


def test_task_event_from_log():
    event = TaskEvent.from_log(log_entry(3, "Foo", 100, block_number=101, log_index=2, tx_byte=0xAB))

    assert event.index == 3
    assert event.task == Task("Foo", 100)
    assert event.position == (101, 2)
    assert event.transaction_hash == "0x" + "ab" * 32


def test_task_event_from_log_with_tuple_task():
    entry = {"args": {"taskIndex": 0, "task": ("Bar", 5)}, "blockNumber": 6}
    event = TaskEvent.from_log(entry)

    assert event.task == Task("Bar", 5)
    assert event.log_index == 0
    assert event.transaction_hash is None


def test_task_event_missing_task_field():
    with pytest.raises(KeyError):
        TaskEvent.from_log({"args": {"taskIndex": 1}})


def test_transaction_options_to_tx_params():
    options = TransactionOptions(TEST_ADDRESS, 3, 21000, 5, 17000)
    assert options.to_tx_params() == {
        "from": TEST_ADDRESS,
        "nonce": 3,
        "gas": 21000,
        "gasPrice": 5,
        "value": 0,
        "chainId": 17000,
    }
