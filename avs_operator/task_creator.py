import logging
import random
from typing import Optional

from avs_operator.errors import PER_EVENT_ERRORS
from avs_operator.transaction_builder import load_account

logger = logging.getLogger(__name__)

ADJECTIVES = ["Quick", "Lazy", "Sleepy", "Noisy", "Hungry"]
NOUNS = ["Fox", "Dog", "Cat", "Mouse", "Bear"]


def random_task_name(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return f"{rng.choice(ADJECTIVES)}{rng.choice(NOUNS)}{rng.randrange(1000)}"


class TaskCreator:
    """Creates tasks on the service manager; used to drive a devnet."""

    def __init__(self, contract_manager, builder):
        self.contract_manager = contract_manager
        self.builder = builder

    def create_task(self, key, name: str) -> str:
        account = load_account(key)
        options = self.builder.build(account)
        signed = None
        try:
            tx = self.contract_manager.create_new_task_tx(name, options)
            signed = self.contract_manager.sign(tx, account)
            tx_hash = self.contract_manager.submit(signed)
        except PER_EVENT_ERRORS:
            if signed is None:
                self.builder.release(options)
            else:
                self.builder.forget(options)
            raise
        logger.info("New task %s created, tx hash: %s", name, tx_hash)
        return tx_hash
