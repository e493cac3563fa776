import sys
from pathlib import Path

import pytest
from eth_account import Account

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from avs_operator.errors import SubmissionError  # noqa: E402

# Well-known local devnet key (hardhat/anvil account #0).
TEST_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
OTHER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"


def log_entry(index, name, created_at_block, block_number=None, log_index=0, tx_byte=None, removed=False):
    block_number = created_at_block + 1 if block_number is None else block_number
    tx_byte = index if tx_byte is None else tx_byte
    return {
        "args": {
            "taskIndex": index,
            "task": {"name": name, "taskCreatedBlock": created_at_block},
        },
        "blockNumber": block_number,
        "logIndex": log_index,
        "transactionHash": bytes([tx_byte % 256]) * 32,
        "removed": removed,
    }


class FakeChainClient:
    def __init__(self, chain_id=17000, pending=0):
        self.chain_id = chain_id
        self.pending = pending
        self.nonce_error = None
        self.nonce_calls = []
        self.receipt_error = None
        self.receipts = []

    def network_id(self):
        return self.chain_id

    def pending_nonce(self, address):
        self.nonce_calls.append(address)
        if self.nonce_error is not None:
            raise self.nonce_error
        return self.pending

    def wait_for_receipt(self, tx_hash, timeout=180):
        self.receipts.append(tx_hash)
        if self.receipt_error is not None:
            raise self.receipt_error
        return {"status": 1, "transactionHash": tx_hash}


class FakeLogFilter:
    """Hands out one batch per poll; an exception in the batch list is raised."""

    def __init__(self, batches, on_exhausted=None):
        self.batches = list(batches)
        self.on_exhausted = on_exhausted
        self.polls = 0
        self.uninstalled = False

    def get_new_entries(self):
        self.polls += 1
        if not self.batches:
            if self.on_exhausted is not None:
                self.on_exhausted()
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, BaseException):
            raise batch
        return batch

    def uninstall(self):
        self.uninstalled = True
        return True


class FakeContractManager:
    def __init__(self, chain_client=None, log_filter=None):
        self.chain_client = chain_client or FakeChainClient()
        self.log_filter = log_filter
        self.sent = []
        self.submitted = []
        self.sign_errors = []
        self.submit_errors = []
        self.filter_calls = []
        self.latest = 0

    def respond_to_task_tx(self, task, task_index, signature, options):
        return {
            "fn": "respondToTask",
            "args": (task, task_index, signature),
            **options.to_tx_params(),
        }

    def create_new_task_tx(self, name, options):
        return {"fn": "createNewTask", "args": (name,), **options.to_tx_params()}

    def register_as_operator_tx(self, registration, options):
        return {"fn": "registerAsOperator", "args": (registration,), **options.to_tx_params()}

    def latest_task_num(self):
        return self.latest

    def event_filter(self, event_name, argument_filters=None):
        self.filter_calls.append((event_name, argument_filters))
        return self.log_filter

    def sign(self, tx, account):
        if self.sign_errors:
            raise self.sign_errors.pop(0)
        return tx

    def submit(self, signed_tx):
        self.submitted.append(signed_tx)
        if self.submit_errors:
            raise self.submit_errors.pop(0)
        self.sent.append(signed_tx)
        return "0x" + format(len(self.sent), "064x")


@pytest.fixture
def account():
    return Account.from_key(TEST_KEY)


@pytest.fixture
def chain_client():
    return FakeChainClient()


@pytest.fixture
def rejecting():
    return SubmissionError("nonce too low")
