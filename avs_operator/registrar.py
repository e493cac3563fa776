import logging
from typing import Optional

from avs_operator.errors import OperatorError, RegistrationError
from avs_operator.models import OperatorRegistration
from avs_operator.transaction_builder import load_account

logger = logging.getLogger(__name__)

DEFAULT_REGISTRATION_GAS_PRICE = 21000


class OperatorRegistrar:
    """Registers the operator with the delegation manager, once per process."""

    def __init__(self, contract_manager, builder):
        self.contract_manager = contract_manager
        self.builder = builder
        self.tx_hash: Optional[str] = None

    @property
    def registered(self) -> bool:
        return self.tx_hash is not None

    def register(self, key, registration: Optional[OperatorRegistration] = None) -> str:
        if self.registered:
            raise RegistrationError(
                f"Operator already registered in this process (tx {self.tx_hash})"
            )
        registration = registration or OperatorRegistration()
        options = signed = None
        try:
            account = load_account(key)
            options = self.builder.build(account)
            tx = self.contract_manager.register_as_operator_tx(registration, options)
            signed = self.contract_manager.sign(tx, account)
            tx_hash = self.contract_manager.submit(signed)
        except OperatorError as e:
            if signed is not None:
                self.builder.forget(options)
            elif options is not None:
                self.builder.release(options)
            raise RegistrationError(f"Error registering as operator: {e}") from e

        self.tx_hash = tx_hash
        logger.info("Registered as operator, tx hash: %s", tx_hash)
        return tx_hash
