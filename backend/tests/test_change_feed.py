"""
Unit tests for the in-process change feed
"""

from student_registry.services.change_feed import ChangeFeed


class TestChangeFeed:
    """Test listener registration and delivery."""

    def test_publish_reaches_owner_only(self):
        feed = ChangeFeed()
        received_a, received_b = [], []
        feed.subscribe("a", received_a.append)
        feed.subscribe("b", received_b.append)

        feed.publish("a", [{"id": "1"}])

        assert received_a == [[{"id": "1"}]]
        assert received_b == []

    def test_unsubscribe_is_idempotent(self):
        feed = ChangeFeed()
        subscription = feed.subscribe("a", lambda snapshot: None)
        assert feed.listener_count("a") == 1

        subscription.unsubscribe()
        subscription.unsubscribe()

        assert not subscription.active
        assert not feed.has_listeners("a")
        assert feed.listener_count("a") == 0

    def test_failing_listener_does_not_stop_others(self):
        feed = ChangeFeed()
        received = []

        def broken(snapshot):
            raise RuntimeError("view is gone")

        feed.subscribe("a", broken)
        feed.subscribe("a", received.append)
        feed.publish("a", [])

        assert received == [[]]

    def test_listener_may_unsubscribe_while_notified(self):
        feed = ChangeFeed()
        calls = []
        subscription = None

        def once(snapshot):
            calls.append(snapshot)
            subscription.unsubscribe()

        subscription = feed.subscribe("a", once)
        feed.publish("a", [1])
        feed.publish("a", [2])

        assert calls == [[1]]
