"""
Tests for subcollection/events.py: the Events mixin and event decoding.
"""
from unittest.mock import MagicMock

import pytest

from subcollection.events import CollectionEvent, EventKind, Events, decode_event


class Emitter(Events):
    """Bare emitter for testing."""
    pass


class TestDecodeEvent:
    """Tests for decode_event."""

    def test_property_change(self):
        """change:<field> carries the field and the record."""
        record = object()
        event = decode_event("change:awesomeness", (record, 5))

        assert event.kind is EventKind.CHANGE
        assert event.field == "awesomeness"
        assert event.record is record
        assert event.is_property_change

    def test_bare_change(self):
        event = decode_event("change", ("r",))
        assert event.kind is EventKind.CHANGE
        assert event.field is None
        assert not event.is_property_change

    def test_change_with_colon_in_field(self):
        event = decode_event("change:a:b", ("r", 1))
        assert event.field == "a:b"

    @pytest.mark.parametrize("name,kind", [
        ("add", EventKind.ADD),
        ("remove", EventKind.REMOVE),
        ("reset", EventKind.RESET),
        ("sort", EventKind.SORT),
        ("highlight", EventKind.OTHER),
    ])
    def test_kinds(self, name, kind):
        assert decode_event(name, ("x",)).kind is kind

    def test_reset_and_sort_have_no_record(self):
        """Collection-level events do not name a record."""
        assert decode_event("reset", ("collection",)).record is None
        assert decode_event("sort", ("collection",)).record is None

    def test_no_args(self):
        event = decode_event("add")
        assert event.record is None
        assert event.args == ()

    def test_events_are_frozen(self):
        event = CollectionEvent(EventKind.ADD, "add")
        with pytest.raises(Exception):
            event.name = "remove"


class TestEvents:
    """Tests for the Events mixin."""

    def test_on_and_trigger(self):
        """Test handlers receive the trigger arguments."""
        emitter = Emitter()
        handler = MagicMock()

        emitter.on("ping", handler)
        emitter.trigger("ping", 1, 2)

        handler.assert_called_once_with(1, 2)

    def test_all_receives_name(self):
        """'all' handlers get the event name first."""
        emitter = Emitter()
        handler = MagicMock()

        emitter.on("all", handler)
        emitter.trigger("ping", 1)

        handler.assert_called_once_with("ping", 1)

    def test_named_before_all(self):
        emitter = Emitter()
        calls = []
        emitter.on("all", lambda name, *args: calls.append("all"))
        emitter.on("ping", lambda *args: calls.append("ping"))

        emitter.trigger("ping")

        assert calls == ["ping", "all"]

    def test_registration_order(self):
        emitter = Emitter()
        calls = []
        emitter.on("ping", lambda: calls.append(1))
        emitter.on("ping", lambda: calls.append(2))

        emitter.trigger("ping")

        assert calls == [1, 2]

    def test_on_requires_callable(self):
        with pytest.raises(TypeError):
            Emitter().on("ping", "not callable")

    def test_off_by_callback(self):
        emitter = Emitter()
        handler = MagicMock()
        emitter.on("ping", handler)
        emitter.on("pong", handler)

        emitter.off(callback=handler)
        emitter.trigger("ping")
        emitter.trigger("pong")

        handler.assert_not_called()

    def test_off_by_name(self):
        emitter = Emitter()
        handler = MagicMock()
        other = MagicMock()
        emitter.on("ping", handler)
        emitter.on("pong", other)

        emitter.off("ping")
        emitter.trigger("ping")
        emitter.trigger("pong")

        handler.assert_not_called()
        other.assert_called_once_with()

    def test_off_everything(self):
        emitter = Emitter()
        emitter.on("ping", MagicMock())
        emitter.off()
        assert not emitter.has_listeners()

    def test_off_bound_method(self):
        """Bound methods are removed by equality, not identity."""
        class Listener:
            def __init__(self):
                self.calls = 0

            def handle(self):
                self.calls += 1

        emitter = Emitter()
        listener = Listener()
        emitter.on("ping", listener.handle)
        emitter.off("ping", listener.handle)
        emitter.trigger("ping")

        assert listener.calls == 0

    def test_once(self):
        emitter = Emitter()
        handler = MagicMock()
        emitter.once("ping", handler)

        emitter.trigger("ping", 1)
        emitter.trigger("ping", 2)

        handler.assert_called_once_with(1)

    def test_once_can_be_removed_before_firing(self):
        emitter = Emitter()
        handler = MagicMock()
        emitter.once("ping", handler)
        emitter.off("ping", handler)

        emitter.trigger("ping")

        handler.assert_not_called()

    def test_unsubscribe_during_trigger(self):
        """Handlers removed mid-dispatch still finish the current round."""
        emitter = Emitter()
        second = MagicMock()

        def first():
            emitter.off("ping", second)

        emitter.on("ping", first)
        emitter.on("ping", second)
        emitter.trigger("ping")
        emitter.trigger("ping")

        assert second.call_count == 1

    def test_handler_errors_propagate(self):
        emitter = Emitter()
        emitter.on("ping", MagicMock(side_effect=RuntimeError("boom")))
        with pytest.raises(RuntimeError, match="boom"):
            emitter.trigger("ping")

    def test_has_listeners(self):
        emitter = Emitter()
        assert not emitter.has_listeners("ping")

        emitter.on("all", MagicMock())
        assert emitter.has_listeners("ping")

    def test_emitters_do_not_share_handlers(self):
        a, b = Emitter(), Emitter()
        handler = MagicMock()
        a.on("ping", handler)

        b.trigger("ping")

        handler.assert_not_called()


class TestListenTo:
    """Tests for listen_to / stop_listening."""

    def test_listen_and_stop(self):
        source = Emitter()
        listener = Emitter()
        handler = MagicMock()

        listener.listen_to(source, "ping", handler)
        source.trigger("ping", 1)
        listener.stop_listening(source)
        source.trigger("ping", 2)

        handler.assert_called_once_with(1)
        assert not source.has_listeners()

    def test_stop_listening_filters(self):
        a, b = Emitter(), Emitter()
        listener = Emitter()
        on_a, on_b = MagicMock(), MagicMock()

        listener.listen_to(a, "ping", on_a)
        listener.listen_to(b, "ping", on_b)
        listener.stop_listening(a)

        a.trigger("ping")
        b.trigger("ping")

        on_a.assert_not_called()
        on_b.assert_called_once_with()

    def test_stop_listening_by_name(self):
        source = Emitter()
        listener = Emitter()
        handler = MagicMock()

        listener.listen_to(source, "ping", handler)
        listener.listen_to(source, "pong", handler)
        listener.stop_listening(name="ping")

        source.trigger("ping")
        source.trigger("pong")

        handler.assert_called_once_with()
