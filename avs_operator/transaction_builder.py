import logging
import threading
from typing import Dict

from eth_account import Account
from eth_account.signers.local import LocalAccount

from avs_operator.errors import SigningKeyError
from avs_operator.models import TransactionOptions

logger = logging.getLogger(__name__)


def load_account(key) -> LocalAccount:
    """Return an eth_account ``LocalAccount`` for ``key`` (account, bytes or hex)."""
    if isinstance(key, LocalAccount):
        return key
    if isinstance(key, str):
        key = key.strip()
        if not key.startswith("0x"):
            key = "0x" + key
    try:
        return Account.from_key(key)
    except Exception as e:
        # eth_account raises a mix of ValueError / ValidationError here
        raise SigningKeyError("Could not create public key from private key") from e


class NonceTracker:
    """Issues strictly increasing nonces per sender.

    The node's pending nonce is always consulted first; the tracker only bumps
    it when the node has not yet seen a transaction we already sent.
    """

    def __init__(self):
        self._last: Dict[str, int] = {}
        self._lock = threading.Lock()

    def next(self, address: str, pending_nonce: int) -> int:
        with self._lock:
            last = self._last.get(address)
            nonce = pending_nonce if last is None else max(pending_nonce, last + 1)
            if last is not None and pending_nonce <= last:
                logger.debug(
                    "Pending nonce %d for %s is stale, using %d", pending_nonce, address, nonce
                )
            self._last[address] = nonce
            return nonce

    def release(self, address: str, nonce: int) -> bool:
        """Hand back ``nonce`` if it is the latest one issued and never reached the node."""
        with self._lock:
            if self._last.get(address) != nonce:
                return False
            if nonce == 0:
                del self._last[address]
            else:
                self._last[address] = nonce - 1
            return True

    def forget(self, address: str, nonce: int) -> bool:
        """Drop local state after an uncertain submit of ``nonce``.

        The next nonce then comes from the node alone: ``nonce + 1`` if it holds
        the transaction, ``nonce`` again if it never saw it.
        """
        with self._lock:
            if self._last.get(address) != nonce:
                return False
            del self._last[address]
            return True

    def last_issued(self, address: str):
        with self._lock:
            return self._last.get(address)


class TransactionBuilder:
    def __init__(self, chain_client, gas_limit: int, gas_price: int, nonce_tracker=None):
        self.chain_client = chain_client
        self.gas_limit = int(gas_limit)
        self.gas_price = int(gas_price)
        self.nonce_tracker = nonce_tracker or NonceTracker()
        self.chain_id = chain_client.network_id()

    def with_gas_price(self, gas_price: int) -> "TransactionBuilder":
        """Builder sharing this one's nonce sequence but using another gas price."""
        return TransactionBuilder(
            self.chain_client, self.gas_limit, gas_price, nonce_tracker=self.nonce_tracker
        )

    def build(self, key) -> TransactionOptions:
        account = load_account(key)
        pending = self.chain_client.pending_nonce(account.address)
        nonce = self.nonce_tracker.next(account.address, pending)
        return TransactionOptions(
            sender_address=account.address,
            nonce=nonce,
            gas_limit=self.gas_limit,
            gas_price=self.gas_price,
            chain_id=self.chain_id,
            value=0,
        )

    def release(self, options: TransactionOptions) -> None:
        if self.nonce_tracker.release(options.sender_address, options.nonce):
            logger.debug("Released nonce %d for %s", options.nonce, options.sender_address)

    def forget(self, options: TransactionOptions) -> None:
        if self.nonce_tracker.forget(options.sender_address, options.nonce):
            logger.debug(
                "Nonce %d for %s left to the node after a failed submit",
                options.nonce,
                options.sender_address,
            )
