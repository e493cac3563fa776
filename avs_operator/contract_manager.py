import logging
from typing import Any, Dict, Optional

from web3 import Web3
from web3.exceptions import Web3Exception

from avs_operator.abis import DELEGATION_MANAGER_ABI, HELLO_WORLD_ABI
from avs_operator.chain_client import ChainClient
from avs_operator.errors import SigningError, SubmissionError, SubscriptionError
from avs_operator.models import OperatorRegistration, Task, TransactionOptions

logger = logging.getLogger(__name__)


class ContractManager:
    """Encodes calls against the service-manager and delegation contracts, signs
    the resulting transactions and submits them through the chain client."""

    def __init__(
        self,
        chain_client: ChainClient,
        hello_world_address: str,
        delegation_manager_address: Optional[str] = None,
        hello_world_abi=None,
        delegation_manager_abi=None,
    ):
        self.chain_client = chain_client
        self.hello_world_address = Web3.to_checksum_address(hello_world_address)
        self.service_manager = chain_client.contract(
            self.hello_world_address, hello_world_abi or HELLO_WORLD_ABI
        )
        self.delegation = None
        self.delegation_address = None
        if delegation_manager_address:
            self.delegation_address = Web3.to_checksum_address(delegation_manager_address)
            self.delegation = chain_client.contract(
                self.delegation_address, delegation_manager_abi or DELEGATION_MANAGER_ABI
            )

    def _build(self, contract, fn_name: str, args: tuple, options: TransactionOptions) -> Dict[str, Any]:
        try:
            fn = getattr(contract.functions, fn_name)(*args)
            return fn.build_transaction(options.to_tx_params())
        except (Web3Exception, TypeError, ValueError) as e:
            raise SubmissionError(f"Error while encoding {fn_name}: {e}") from e

    def respond_to_task_tx(
        self, task: Task, task_index: int, signature: bytes, options: TransactionOptions
    ) -> Dict[str, Any]:
        args = (task.to_abi(), int(task_index), bytes(signature))
        return self._build(self.service_manager, "respondToTask", args, options)

    def create_new_task_tx(self, name: str, options: TransactionOptions) -> Dict[str, Any]:
        return self._build(self.service_manager, "createNewTask", (name,), options)

    def register_as_operator_tx(
        self, registration: OperatorRegistration, options: TransactionOptions
    ) -> Dict[str, Any]:
        if self.delegation is None:
            raise SubmissionError("Delegation manager address not configured")
        args = (registration.operator_details.to_abi(), registration.metadata_uri)
        return self._build(self.delegation, "registerAsOperator", args, options)

    def latest_task_num(self) -> int:
        return int(self.service_manager.functions.latestTaskNum().call())

    def event_filter(self, event_name: str, argument_filters: Optional[dict] = None):
        """Install a log filter for ``event_name`` starting at the latest block."""
        try:
            event = getattr(self.service_manager.events, event_name)
        except (AttributeError, Web3Exception) as e:
            raise SubscriptionError(f"Unknown event {event_name}") from e
        try:
            return event().create_filter(
                from_block="latest", argument_filters=argument_filters or None
            )
        except Exception as e:
            raise SubscriptionError(f"Error while subscribing for logs: {e}") from e

    def sign(self, tx: Dict[str, Any], account):
        try:
            return account.sign_transaction(tx)
        except (TypeError, ValueError) as e:
            raise SigningError(f"Error while signing transaction: {e}") from e

    def submit(self, signed_tx) -> str:
        """Submit once. After a ``SubmissionError`` the node may still hold the tx."""
        return self.chain_client.submit(signed_tx)
