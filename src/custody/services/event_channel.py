"""Typed transaction event channel with at-least-once delivery."""

import logging
import threading
from collections import deque
from typing import Callable

from custody.domain.events import (
    TransactionEvent,
    TransactionBroadcasted,
    TransactionConfirmed,
    TransactionFailed,
)

logger = logging.getLogger(__name__)

EventHandler = Callable[[TransactionEvent], None]


class TransactionEventChannel:
    """
    Fan-out channel with one queue per subscriber.

    An event stays at the head of a subscriber's queue until its handler
    returns; a handler that raises leaves it there for the next drain.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._queues: dict[str, deque] = {}

    def subscribe(self, name: str) -> None:
        """Register a subscriber queue. Events published before this are not seen."""
        with self._lock:
            self._queues.setdefault(name, deque())

    def publish(self, event: TransactionEvent) -> None:
        with self._lock:
            queues = list(self._queues.values())
            for q in queues:
                q.append(event)
        logger.debug(f"Published {type(event).__name__} to {len(queues)} subscribers")

    def pending(self, name: str) -> int:
        with self._lock:
            return len(self._queues.get(name, ()))

    def drain(self, name: str, handler: EventHandler, max_events: int = 100) -> int:
        """
        Deliver queued events to handler, oldest first.

        Stops at the first handler failure. Returns the number of events
        acknowledged.
        """
        handled = 0
        while handled < max_events:
            with self._lock:
                q = self._queues.get(name)
                if not q:
                    break
                event = q[0]
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler {name} failed on {type(event).__name__}: {e}")
                break
            with self._lock:
                q.popleft()
            handled += 1
        return handled


class TransactionNotificationHandler:
    """Turns transaction events into user notifications (currently log lines)."""

    def __call__(self, event: TransactionEvent) -> None:
        if isinstance(event, TransactionBroadcasted):
            logger.info(
                f"Transaction {event.transaction_id} broadcasted as {event.chain_tx_id} "
                f"for account {event.account_id}; notifying: pending confirmation"
            )
        elif isinstance(event, TransactionConfirmed):
            logger.info(
                f"Transaction {event.transaction_id} confirmed as {event.chain_tx_id} "
                f"for account {event.account_id}; notifying: confirmed"
            )
        elif isinstance(event, TransactionFailed):
            logger.warning(
                f"Transaction {event.transaction_id} failed for account "
                f"{event.account_id}: {event.error}; notifying: failed"
            )


class NotificationDispatcher:
    """Drains the channel into registered handlers; run periodically."""

    def __init__(self, channel: TransactionEventChannel):
        self._channel = channel
        self._handlers: dict[str, EventHandler] = {}

    def register(self, name: str, handler: EventHandler) -> None:
        self._channel.subscribe(name)
        self._handlers[name] = handler

    def dispatch_once(self) -> int:
        """Deliver pending events to every handler; returns total delivered."""
        delivered = 0
        for name, handler in self._handlers.items():
            delivered += self._channel.drain(name, handler)
        return delivered
