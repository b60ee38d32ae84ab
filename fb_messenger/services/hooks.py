"""Hook registry and dispatcher for classified webhook events.

The registry maps each EventKind to at most one handler. Registration swaps
in a new immutable snapshot under a lock, so a dispatch running in another
thread always sees either the old table or the new one, never a table in
the middle of an update.

``receive`` is fail-fast: the first classification or handler error stops
the envelope and propagates to the caller; later entries are not dispatched.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from threading import Lock
from types import MappingProxyType
from typing import Any

import logfire

from fb_messenger.errors import (
    EnvelopeEntryError,
    InvalidEventKind,
    UnrecognizedEventError,
)
from fb_messenger.models.events import EventKind, IncomingEvent
from fb_messenger.models.messenger import WebhookEnvelope
from fb_messenger.services.classifier import classify

Handler = Callable[[IncomingEvent], Any]


def coerce_event_kind(kind: EventKind | str) -> EventKind:
    """Return ``kind`` as an EventKind, rejecting anything outside the set."""
    if isinstance(kind, EventKind):
        return kind
    try:
        return EventKind(kind)
    except ValueError:
        available = ", ".join(k.value for k in EventKind)
        raise InvalidEventKind(
            f"{kind!r} is not a valid event; available events are {available}"
        ) from None


class HookRegistry:
    """Thread-safe table of event handlers, owned by the hosting app.

    Example:
        >>> registry = HookRegistry()
        >>> @registry.on(EventKind.MESSAGE)
        ... def on_message(event):
        ...     return event.text
        >>> registry.receive({"entry": [{"messaging": [...]}]})
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._hooks: Mapping[EventKind, Handler] = MappingProxyType({})

    @property
    def hooks(self) -> Mapping[EventKind, Handler]:
        """Read-only snapshot of the current table."""
        return self._hooks

    def register(self, kind: EventKind | str, handler: Handler) -> None:
        """Register ``handler`` for ``kind``, replacing any previous handler.

        Raises:
            InvalidEventKind: if ``kind`` is not an EventKind (nothing changes).
            TypeError: if ``handler`` is not callable.
        """
        event_kind = coerce_event_kind(kind)
        if not callable(handler):
            raise TypeError(f"Hook for {event_kind.value} must be callable")

        with self._lock:
            hooks = dict(self._hooks)
            replaced = event_kind in hooks
            hooks[event_kind] = handler
            self._hooks = MappingProxyType(hooks)

        logfire.info(
            "Hook registered",
            kind=event_kind.value,
            replaced=replaced,
        )

    def on(self, kind: EventKind | str) -> Callable[[Handler], Handler]:
        """Decorator form of ``register``."""
        event_kind = coerce_event_kind(kind)

        def decorator(handler: Handler) -> Handler:
            self.register(event_kind, handler)
            return handler

        return decorator

    def clear(self) -> None:
        """Remove every handler. Dispatches already running are unaffected."""
        with self._lock:
            self._hooks = MappingProxyType({})

    def handler_for(self, kind: EventKind | str) -> Handler | None:
        return self._hooks.get(coerce_event_kind(kind))

    def dispatch(self, kind: EventKind | str, event: IncomingEvent) -> Any:
        """Call the handler for ``kind`` with ``event`` and return its result.

        A kind with no handler is a logged no-op returning None. Errors
        raised by the handler propagate unchanged.
        """
        event_kind = coerce_event_kind(kind)
        handler = self._hooks.get(event_kind)
        if handler is None:
            logfire.warn(
                "Ignoring event (no hook registered)",
                kind=event_kind.value,
            )
            return None
        return handler(event)

    def receive(
        self, envelope: WebhookEnvelope | Mapping[str, Any]
    ) -> list[EventKind]:
        """Classify and dispatch every messaging entry of ``envelope``.

        Entries are processed in arrival order. Processing stops at the first
        error. A classification failure is raised as EnvelopeEntryError;
        handler errors propagate unchanged.

        Returns:
            The kinds of the entries processed, in order.
        """
        if not isinstance(envelope, WebhookEnvelope):
            envelope = WebhookEnvelope.model_validate(envelope)

        entries = envelope.messaging_entries()
        kinds: list[EventKind] = []
        for index, entry in enumerate(entries):
            try:
                kind, event = classify(entry)
            except UnrecognizedEventError as e:
                logfire.error(
                    "Unrecognized messaging entry",
                    index=index,
                    entry_count=len(entries),
                    error=str(e),
                )
                raise EnvelopeEntryError(
                    f"Entry {index}: {e}", entry=entry, index=index
                ) from e
            self.dispatch(kind, event)
            kinds.append(kind)

        logfire.info(
            "Webhook envelope dispatched",
            entry_count=len(entries),
            kinds=[k.value for k in kinds],
        )
        return kinds
