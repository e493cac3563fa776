import logging
from typing import Optional

from avs_operator.chain_client import ChainClient
from avs_operator.contract_manager import ContractManager
from avs_operator.event_subscriber import EventSubscriber
from avs_operator.metrics_logger import OperatorMetricsLogger
from avs_operator.operator_config import OperatorConfig
from avs_operator.registrar import OperatorRegistrar
from avs_operator.task_responder import ResponderContext, TaskResponder
from avs_operator.transaction_builder import TransactionBuilder, load_account

logger = logging.getLogger(__name__)


class OperatorService:
    """Registration followed by the task-response loop."""

    def __init__(
        self,
        registrar: OperatorRegistrar,
        responder: TaskResponder,
        skip_registration: bool = False,
        metrics_logger: Optional[OperatorMetricsLogger] = None,
    ):
        self.registrar = registrar
        self.responder = responder
        self.skip_registration = skip_registration
        self.metrics_logger = metrics_logger

    @classmethod
    def from_config(cls, config: OperatorConfig, chain_client: Optional[ChainClient] = None):
        chain_client = chain_client or ChainClient.connect(
            config.rpc_url, timeout=config.request_timeout
        )
        account = load_account(config.wallet_key)
        contract_manager = ContractManager(
            chain_client,
            hello_world_address=config.hello_world_address,
            delegation_manager_address=config.delegation_manager_address,
        )
        builder = TransactionBuilder(chain_client, config.gas_limit, config.gas_price)
        registrar = OperatorRegistrar(
            contract_manager, builder.with_gas_price(config.registration_gas_price)
        )
        metrics_logger = (
            OperatorMetricsLogger(config.metrics_log) if config.metrics_log else None
        )
        responder = TaskResponder(
            ResponderContext(account=account, builder=builder),
            contract_manager,
            EventSubscriber(contract_manager, poll_interval=config.poll_interval_seconds),
            retry_policy=config.retry_policy,
            metrics_logger=metrics_logger,
            wait_for_receipt=config.wait_for_receipt,
            receipt_timeout=config.receipt_timeout,
        )
        return cls(
            registrar,
            responder,
            skip_registration=config.skip_registration,
            metrics_logger=metrics_logger,
        )

    @property
    def account(self):
        return self.responder.context.account

    def start(self):
        """Register (unless skipped) and then respond to tasks until stopped.

        A registration failure raises before the responder subscribes.
        """
        if self.metrics_logger:
            self.metrics_logger.log_session_start(
                self.account.address, self.responder.context.builder.chain_id
            )
        if self.skip_registration:
            logger.info("Skipping operator registration")
        else:
            tx_hash = self.registrar.register(self.account)
            if self.metrics_logger:
                self.metrics_logger.log_registration(tx_hash)
        self.responder.run()

    def stop(self):
        self.responder.stop()
