"""Unit tests for the push-based EventSource."""

from __future__ import annotations

import threading

import pytest

from buildtrace.core.events import BuildFinished, BuildStarted


class TestSubscription:
    """Handlers are called once each, in subscription order."""

    def test_order(self, source):
        seen = []
        source.subscribe(lambda e: seen.append(("first", e.kind)))
        source.subscribe(lambda e: seen.append(("second", e.kind)))
        source.raise_event(BuildStarted())
        assert [name for name, _ in seen] == ["first", "second"]

    def test_duplicate_subscription_is_ignored(self, source):
        seen = []
        handler = seen.append
        source.subscribe(handler)
        source.subscribe(handler)
        source.raise_event(BuildStarted())
        assert len(seen) == 1
        assert source.handler_count == 1

    def test_unsubscribe_unknown_handler_is_noop(self, source):
        source.unsubscribe(print)
        assert source.handler_count == 0

    def test_handler_may_unsubscribe_itself(self, source):
        seen = []

        def once(event):
            seen.append(event)
            source.unsubscribe(once)

        source.subscribe(once)
        source.raise_event(BuildStarted())
        source.raise_event(BuildStarted())
        assert len(seen) == 1

    def test_handler_errors_propagate(self, source):
        def broken(event):
            raise RuntimeError("handler failed")

        source.subscribe(broken)
        with pytest.raises(RuntimeError, match="handler failed"):
            source.raise_event(BuildStarted())


class TestReplay:
    """replay() delivers a recorded stream in order."""

    def test_replay_counts_events(self, source):
        seen = []
        source.subscribe(seen.append)
        events = [BuildStarted(), BuildFinished(success=True)]
        assert source.replay(events) == 2
        assert seen == events

    def test_replay_accepts_generators(self, source):
        seen = []
        source.subscribe(seen.append)
        assert source.replay(BuildStarted() for _ in range(3)) == 3


class TestThreadSafety:
    """Concurrent subscribe and raise do not corrupt the handler list."""

    def test_concurrent_subscribers(self, source):
        counts = []
        lock = threading.Lock()

        def make_handler():
            def handler(event):
                with lock:
                    counts.append(1)

            return handler

        handlers = [make_handler() for _ in range(20)]
        threads = [threading.Thread(target=source.subscribe, args=(h,)) for h in handlers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert source.handler_count == 20
        source.raise_event(BuildStarted())
        assert len(counts) == 20
