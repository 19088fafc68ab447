"""
Unit tests for the transaction event channel.

Tests cover:
- Fan-out to every subscriber
- Ordered, at-least-once delivery (failed handlers see the event again)
- Dispatcher draining and the notification handler
"""

import logging

from custody.domain.events import (
    TransactionBroadcasted,
    TransactionConfirmed,
    TransactionFailed,
)
from custody.services import (
    NotificationDispatcher,
    TransactionEventChannel,
    TransactionNotificationHandler,
)


def _confirmed(n: int) -> TransactionConfirmed:
    return TransactionConfirmed(transaction_id=f"t-{n}", account_id="a-1", chain_tx_id=f"c-{n}")


# =============================================================================
# CHANNEL TESTS
# =============================================================================


class TestEventChannel:
    """Tests for publish / drain."""

    def test_every_subscriber_receives_event(self, events: TransactionEventChannel):
        events.subscribe("first")
        events.subscribe("second")

        events.publish(_confirmed(1))

        assert events.pending("first") == 1
        assert events.pending("second") == 1

    def test_drain_in_publish_order(self, events: TransactionEventChannel):
        events.subscribe("log")
        for n in range(3):
            events.publish(_confirmed(n))
        seen = []

        handled = events.drain("log", seen.append)

        assert handled == 3
        assert [e.transaction_id for e in seen] == ["t-0", "t-1", "t-2"]
        assert events.pending("log") == 0

    def test_failed_handler_keeps_event(self, events: TransactionEventChannel):
        """
        GIVEN two queued events and a handler that fails on the first
        WHEN I drain, then drain again with a working handler
        THEN nothing is lost and delivery resumes at the failed event
        """
        events.subscribe("log")
        events.publish(_confirmed(1))
        events.publish(_confirmed(2))

        def _broken(event):
            raise RuntimeError("mail server down")

        assert events.drain("log", _broken) == 0
        assert events.pending("log") == 2

        seen = []
        events.drain("log", seen.append)
        assert [e.transaction_id for e in seen] == ["t-1", "t-2"]

    def test_max_events(self, events: TransactionEventChannel):
        events.subscribe("log")
        for n in range(5):
            events.publish(_confirmed(n))

        assert events.drain("log", lambda e: None, max_events=2) == 2
        assert events.pending("log") == 3

    def test_late_subscriber_misses_earlier_events(self, events: TransactionEventChannel):
        events.publish(_confirmed(1))
        events.subscribe("late")

        assert events.pending("late") == 0

    def test_unknown_subscriber(self, events: TransactionEventChannel):
        assert events.drain("nobody", lambda e: None) == 0


# =============================================================================
# DISPATCHER TESTS
# =============================================================================


class TestNotificationDispatcher:
    """Tests for the periodic dispatcher."""

    def test_dispatch_once_delivers_to_all_handlers(self, events: TransactionEventChannel):
        first, second = [], []
        dispatcher = NotificationDispatcher(events)
        dispatcher.register("first", first.append)
        dispatcher.register("second", second.append)
        events.publish(_confirmed(1))

        delivered = dispatcher.dispatch_once()

        assert delivered == 2
        assert len(first) == len(second) == 1

    def test_notification_handler_logs(self, caplog):
        handler = TransactionNotificationHandler()

        with caplog.at_level(logging.INFO, logger="custody.services.event_channel"):
            handler(TransactionBroadcasted(transaction_id="t-1", account_id="a-1", chain_tx_id="c-1"))
            handler(_confirmed(2))
            handler(TransactionFailed(transaction_id="t-3", account_id="a-1", error="REVERT"))

        messages = [r.getMessage() for r in caplog.records]
        assert any("t-1" in m and "pending confirmation" in m for m in messages)
        assert any("t-2" in m and "confirmed" in m for m in messages)
        failed = [r for r in caplog.records if "t-3" in r.getMessage()]
        assert failed[0].levelno == logging.WARNING
        assert "REVERT" in failed[0].getMessage()
