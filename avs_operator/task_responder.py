import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from avs_operator.errors import (
    PER_EVENT_ERRORS,
    RETRYABLE_ERRORS,
    OperatorError,
    SubscriptionError,
)
from avs_operator.models import TaskEvent
from avs_operator.response_signer import ResponseSigner

logger = logging.getLogger(__name__)

NEW_TASK_EVENT = "NewTaskCreated"


class ResponderState(str, Enum):
    IDLE = "idle"
    WAITING_FOR_EVENT = "waiting_for_event"
    PROCESSING = "processing"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class RetryPolicy:
    """How often a single task is retried before it is dropped.

    With ``fail_fast`` the first per-task failure stops the responder.
    """

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0
    fail_fast: bool = False

    def delay(self, failures: int) -> float:
        return min(self.backoff_seconds * (2 ** (failures - 1)), self.max_backoff_seconds)


@dataclass
class ResponderContext:
    """Long-lived state owned by one responder: key, nonce sequence, live feed."""

    account: Any
    builder: Any
    subscription: Optional[Any] = None
    responses: int = 0

    @property
    def address(self) -> str:
        return self.account.address


class TaskResponder:
    def __init__(
        self,
        context: ResponderContext,
        contract_manager,
        subscriber,
        signer: Optional[ResponseSigner] = None,
        retry_policy: Optional[RetryPolicy] = None,
        metrics_logger=None,
        wait_for_receipt: bool = False,
        receipt_timeout: float = 180,
    ):
        self.context = context
        self.contract_manager = contract_manager
        self.subscriber = subscriber
        self.signer = signer or ResponseSigner()
        self.retry_policy = retry_policy or RetryPolicy()
        self.metrics_logger = metrics_logger
        self.wait_for_receipt = wait_for_receipt
        self.receipt_timeout = receipt_timeout
        self.state = ResponderState.IDLE
        self.last_error: Optional[BaseException] = None
        self._stopping = threading.Event()

    def _set_state(self, state: ResponderState):
        if state != self.state:
            logger.debug("Responder %s -> %s", self.state.value, state.value)
        self.state = state

    def stop(self):
        """Stop after the current task; safe to call from another thread."""
        self._stopping.set()
        if self.context.subscription is not None:
            self.context.subscription.cancel()

    def run(self):
        """Respond to tasks until stopped. Raises on any fatal error."""
        try:
            subscription = self.subscriber.watch(NEW_TASK_EVENT)
        except SubscriptionError as e:
            self.last_error = e
            self._set_state(ResponderState.FAILED)
            raise
        self.context.subscription = subscription
        events = iter(subscription)
        logger.info("Listening for %s events as %s", NEW_TASK_EVENT, self.context.address)
        try:
            while not self._stopping.is_set():
                self._set_state(ResponderState.WAITING_FOR_EVENT)
                try:
                    event = next(events)
                except StopIteration:
                    break
                except SubscriptionError as e:
                    self.last_error = e
                    self._set_state(ResponderState.FAILED)
                    raise

                self._set_state(ResponderState.PROCESSING)
                try:
                    self.handle_event(event)
                except Exception as e:
                    self.last_error = e
                    self._set_state(ResponderState.FAILED)
                    logger.error(
                        "Fatal error while responding to task %d (%s): %s",
                        event.index,
                        event.task.name,
                        e,
                    )
                    raise
                self._set_state(ResponderState.IDLE)
        finally:
            subscription.cancel()

        self._set_state(ResponderState.STOPPED)
        logger.info("Responder stopped")

    def respond(self, event: TaskEvent) -> str:
        """One build/sign/submit cycle for ``event``. Returns the tx hash."""
        account = self.context.account
        builder = self.context.builder
        options = builder.build(account)
        signed = None
        try:
            signature = self.signer.sign(account, event.task)
            tx = self.contract_manager.respond_to_task_tx(
                event.task, event.index, signature, options
            )
            signed = self.contract_manager.sign(tx, account)
            tx_hash = self.contract_manager.submit(signed)
        except PER_EVENT_ERRORS:
            if signed is None:
                builder.release(options)
            else:
                builder.forget(options)
            raise
        logger.info(
            "Responded to task %d (%s), nonce %d, tx hash: %s",
            event.index,
            event.task.name,
            options.nonce,
            tx_hash,
        )
        return tx_hash

    def handle_event(self, event: TaskEvent) -> Optional[str]:
        """Respond to ``event`` under the retry policy.

        Returns the tx hash, or ``None`` if the task was dropped. Only failures
        raised before the transaction was submitted are retried; a failed submit
        drops the task, since the node may already hold the transaction.
        """
        logger.info(
            "Received task %d: %s (created at block %d)",
            event.index,
            event.task.name,
            event.task.created_at_block,
        )
        started = time.time()
        policy = self.retry_policy
        attempts = 0
        tx_hash = None
        while True:
            attempts += 1
            try:
                tx_hash = self.respond(event)
                break
            except PER_EVENT_ERRORS as e:
                self.last_error = e
                if policy.fail_fast:
                    self._record(event, "failed", attempts, started, error=str(e))
                    raise
                if (
                    not isinstance(e, RETRYABLE_ERRORS)
                    or attempts >= max(1, policy.max_attempts)
                    or self._stopping.is_set()
                ):
                    logger.error(
                        "Dropping task %d (%s) after %d attempt(s): %s",
                        event.index,
                        event.task.name,
                        attempts,
                        e,
                    )
                    self._record(event, "dropped", attempts, started, error=str(e))
                    return None
                delay = policy.delay(attempts)
                logger.warning(
                    "Task %d (%s) attempt %d failed: %s; retrying in %.1fs",
                    event.index,
                    event.task.name,
                    attempts,
                    e,
                    delay,
                )
                if self._stopping.wait(delay):
                    self._record(event, "dropped", attempts, started, error=str(e))
                    return None

        self.context.responses += 1
        if self.wait_for_receipt:
            try:
                self.contract_manager.chain_client.wait_for_receipt(
                    tx_hash, timeout=self.receipt_timeout
                )
            except OperatorError as e:
                self.last_error = e
                logger.error(
                    "Response to task %d (%s) not confirmed: %s", event.index, event.task.name, e
                )
                self._record(event, "failed", attempts, started, tx_hash=tx_hash, error=str(e))
                if policy.fail_fast:
                    raise
                return None

        self._record(event, "responded", attempts, started, tx_hash=tx_hash)
        return tx_hash

    def _record(self, event, status, attempts, started, tx_hash=None, error=None):
        if self.metrics_logger is None:
            return
        self.metrics_logger.log_task_response(
            task_index=event.index,
            task_name=event.task.name,
            status=status,
            attempts=attempts,
            elapsed=time.time() - started,
            tx_hash=tx_hash,
            error=error,
        )
