"""Tests for the publish/subscribe event manager."""

import pytest

from diskcrawl.crawler.events import EventManager


class TestEventManager:
    """Tests for subscription handling and delivery order."""

    def test_handlers_called_in_subscription_order(self):
        events = EventManager("test")
        calls = []
        events.subscribe(lambda value: calls.append(("first", value)))
        events.subscribe(lambda value: calls.append(("second", value)))

        events.publish("x")

        assert calls == [("first", "x"), ("second", "x")]

    def test_multiple_arguments(self):
        events = EventManager()
        received = []
        events.subscribe(lambda url, body: received.append((url, body)))

        events.publish("https://ex.com/", "<html></html>")

        assert received == [("https://ex.com/", "<html></html>")]

    def test_cancel_subscription(self):
        events = EventManager()
        calls = []
        handle = events.subscribe(calls.append)
        assert len(events) == 1

        handle.cancel()
        events.publish("ignored")

        assert calls == []
        assert len(events) == 0

    def test_unsubscribe_twice_is_harmless(self):
        events = EventManager()
        handle = events.subscribe(print)
        events.unsubscribe(handle)
        events.unsubscribe(handle)
        assert len(events) == 0

    def test_handler_failure_propagates_and_stops_delivery(self):
        events = EventManager()
        calls = []

        def failing(value):
            raise RuntimeError("handler failed")

        events.subscribe(failing)
        events.subscribe(calls.append)

        with pytest.raises(RuntimeError):
            events.publish("x")
        assert calls == []

    def test_handler_may_unsubscribe_during_publish(self):
        events = EventManager()
        calls = []
        handles = []

        def once(value):
            calls.append(value)
            handles[0].cancel()

        handles.append(events.subscribe(once))
        events.publish(1)
        events.publish(2)

        assert calls == [1]
