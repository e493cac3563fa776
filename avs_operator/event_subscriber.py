import logging
import threading
from typing import Callable, Iterator, Optional, Set, Tuple

from avs_operator.errors import SubscriptionError
from avs_operator.models import TaskEvent

logger = logging.getLogger(__name__)


class Subscription:
    """Lazy, ordered stream of ``TaskEvent``s backed by a polled log filter.

    Iterating yields events in emission order and never yields the same log
    twice. If the underlying feed breaks, iteration raises
    ``SubscriptionError`` once and the stream is closed. ``cancel()`` can be
    called from any thread; the iterator then stops without yielding more.
    """

    def __init__(
        self,
        log_filter,
        poll_interval: float = 2.0,
        decode: Callable = TaskEvent.from_log,
        event_name: str = "NewTaskCreated",
    ):
        self.log_filter = log_filter
        self.poll_interval = poll_interval
        self.decode = decode
        self.event_name = event_name
        self._cancelled = threading.Event()
        self._closed = False
        self._lock = threading.Lock()
        self._cursor: Optional[Tuple[int, int]] = None
        self._seen: Set[Tuple[Optional[str], int]] = set()
        self.delivered = 0
        self.error: Optional[SubscriptionError] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        self._cancelled.set()
        self._close()

    def _close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
        uninstall = getattr(self.log_filter, "uninstall", None)
        if uninstall is None:
            return
        try:
            uninstall()
        except Exception as e:
            logger.warning("Failed to uninstall %s filter: %s", self.event_name, e)

    def _poll(self):
        try:
            entries = self.log_filter.get_new_entries()
        except Exception as e:
            raise SubscriptionError(f"Subscription error: {e}") from e
        events = []
        for entry in entries or []:
            if entry.get("removed"):
                logger.debug("Skipping removed log %s", entry)
                continue
            try:
                events.append(self.decode(entry))
            except (KeyError, TypeError, ValueError) as e:
                raise SubscriptionError(f"Undecodable {self.event_name} log: {e}") from e
        events.sort(key=lambda ev: ev.position)
        return events

    def _is_new(self, event: TaskEvent) -> bool:
        key = (event.transaction_hash, event.log_index)
        if event.transaction_hash is not None and key in self._seen:
            return False
        if self._cursor is not None and event.position <= self._cursor and event.block_number:
            return False
        return True

    def __iter__(self) -> Iterator[TaskEvent]:
        try:
            while not self.cancelled:
                try:
                    events = self._poll()
                except SubscriptionError as e:
                    self.error = e
                    logger.error("%s subscription failed: %s", self.event_name, e)
                    raise
                for event in events:
                    if self.cancelled:
                        return
                    if not self._is_new(event):
                        logger.debug("Skipping already delivered task %d", event.index)
                        continue
                    self._cursor = max(self._cursor or event.position, event.position)
                    if event.transaction_hash is not None:
                        self._seen.add((event.transaction_hash, event.log_index))
                    self.delivered += 1
                    yield event
                if self._cancelled.wait(self.poll_interval):
                    return
        finally:
            self._close()


class EventSubscriber:
    """Opens subscriptions on a contract manager's event filters."""

    def __init__(self, contract_manager, poll_interval: float = 2.0):
        self.contract_manager = contract_manager
        self.poll_interval = poll_interval

    def watch(self, event_name: str = "NewTaskCreated", index_filter=None) -> Subscription:
        argument_filters = None
        if index_filter is not None:
            indexes = index_filter if isinstance(index_filter, (list, tuple)) else [index_filter]
            argument_filters = {"taskIndex": [int(i) for i in indexes]}
        log_filter = self.contract_manager.event_filter(event_name, argument_filters)
        logger.info("Subscribed to %s logs", event_name)
        return Subscription(
            log_filter, poll_interval=self.poll_interval, event_name=event_name
        )
