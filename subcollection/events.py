"""
Synchronous publish/subscribe for records, collections and views.

Handlers are kept per event name, like the hook table of a plugin
registry. The special event name ``"all"`` receives every event with
the event name prepended to its arguments.

Example:
    class Thing(Events):
        pass

    thing = Thing()
    thing.on("ping", lambda value: print(value))
    thing.trigger("ping", 42)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

ALL_EVENTS = "all"


class EventKind(Enum):
    """Kinds of notification a view distinguishes."""
    ADD = "add"
    REMOVE = "remove"
    RESET = "reset"
    SORT = "sort"
    CHANGE = "change"
    OTHER = "other"


@dataclass(frozen=True)
class CollectionEvent:
    """
    A decoded base-collection notification.

    ``record`` is the first positional argument when the event concerns a
    single record, ``field`` is set for ``change:<field>`` notifications.
    """
    kind: EventKind
    name: str
    args: Tuple[Any, ...] = ()
    record: Any = None
    field: Optional[str] = None

    @property
    def is_property_change(self) -> bool:
        return self.kind is EventKind.CHANGE and self.field is not None


def decode_event(name: str, args: Tuple[Any, ...] = ()) -> CollectionEvent:
    """
    Decode an event name and its arguments into a CollectionEvent.

    ``"change:awesomeness"`` becomes kind CHANGE with field ``awesomeness``;
    a bare ``"change"`` is CHANGE without a field.
    """
    record = args[0] if args else None

    if name == "add":
        return CollectionEvent(EventKind.ADD, name, args, record)
    if name == "remove":
        return CollectionEvent(EventKind.REMOVE, name, args, record)
    if name == "reset":
        return CollectionEvent(EventKind.RESET, name, args)
    if name == "sort":
        return CollectionEvent(EventKind.SORT, name, args)
    if name == "change":
        return CollectionEvent(EventKind.CHANGE, name, args, record)
    if name.startswith("change:"):
        field_name = name.split(":", 1)[1]
        return CollectionEvent(EventKind.CHANGE, name, args, record, field_name or None)

    return CollectionEvent(EventKind.OTHER, name, args, record)


class Events:
    """
    Mixin adding named-event subscription and dispatch.

    Dispatch is synchronous and runs handlers in registration order over a
    snapshot, so handlers may subscribe or unsubscribe while running.
    Handler exceptions propagate to whoever called ``trigger``.
    """

    def _handlers(self) -> Dict[str, List[Callable]]:
        # Created lazily so subclasses need not call a mixin __init__
        try:
            return self.__dict__["_event_handlers"]
        except KeyError:
            handlers: Dict[str, List[Callable]] = {}
            self.__dict__["_event_handlers"] = handlers
            return handlers

    def _listening(self) -> List[Tuple["Events", str, Callable]]:
        try:
            return self.__dict__["_event_listening"]
        except KeyError:
            listening: List[Tuple["Events", str, Callable]] = []
            self.__dict__["_event_listening"] = listening
            return listening

    def on(self, name: str, callback: Callable) -> Callable:
        """Register a callback for an event. Returns the callback."""
        if not callable(callback):
            raise TypeError(f"Event handler for {name!r} must be callable")
        self._handlers().setdefault(name, []).append(callback)
        return callback

    def once(self, name: str, callback: Callable) -> Callable:
        """Register a callback that is removed after its first call."""
        def wrapper(*args):
            self.off(name, wrapper)
            return callback(*args)

        wrapper.__wrapped__ = callback
        return self.on(name, wrapper)

    def off(self, name: Optional[str] = None, callback: Optional[Callable] = None) -> None:
        """
        Unregister callbacks.

        With no arguments every handler is removed; with only a name every
        handler for that name; with only a callback that callback for
        every name.
        """
        handlers = self._handlers()
        names = [name] if name is not None else list(handlers)

        for event_name in names:
            if event_name not in handlers:
                continue
            if callback is None:
                del handlers[event_name]
                continue
            remaining = [
                h for h in handlers[event_name]
                if h != callback and getattr(h, "__wrapped__", None) != callback
            ]
            if remaining:
                handlers[event_name] = remaining
            else:
                del handlers[event_name]

    def trigger(self, name: str, *args: Any) -> None:
        """Fire an event: named handlers first, then ``all`` handlers."""
        handlers = self._handlers()

        for callback in list(handlers.get(name, [])):
            callback(*args)

        if name != ALL_EVENTS:
            for callback in list(handlers.get(ALL_EVENTS, [])):
                callback(name, *args)

    def has_listeners(self, name: Optional[str] = None) -> bool:
        handlers = self._handlers()
        if name is None:
            return any(handlers.values())
        return bool(handlers.get(name)) or bool(handlers.get(ALL_EVENTS))

    def listen_to(self, other: "Events", name: str, callback: Callable) -> None:
        """Subscribe to another emitter, remembering it for stop_listening."""
        other.on(name, callback)
        self._listening().append((other, name, callback))
        logger.debug(f"{type(self).__name__} listening to {name!r} on {type(other).__name__}")

    def stop_listening(
        self,
        other: Optional["Events"] = None,
        name: Optional[str] = None,
        callback: Optional[Callable] = None,
    ) -> None:
        """Undo listen_to subscriptions, optionally filtered."""
        kept = []
        for target, event_name, handler in self._listening():
            matches = (
                (other is None or target is other)
                and (name is None or event_name == name)
                and (callback is None or handler == callback)
            )
            if matches:
                target.off(event_name, handler)
            else:
                kept.append((target, event_name, handler))
        self.__dict__["_event_listening"] = kept
