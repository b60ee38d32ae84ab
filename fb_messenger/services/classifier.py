"""Classify raw Messenger webhook entries into typed events.

Classification is a pure function of which discriminator keys an entry
carries. Precedence, highest first:

1. ``message`` with ``is_echo`` set -> MessageEcho
2. top-level ``reaction``, or ``message`` with a nested ``reaction`` -> MessageReaction
3. ``message`` -> Message
4. the first of ``postback``, ``delivery``, ``optin``, ``read``,
   ``account_linking``, ``referral``, ``payment``, ``policy-enforcement``

Anything else raises UnrecognizedEventError; there is no default kind.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from fb_messenger.errors import UnrecognizedEventError
from fb_messenger.models.events import (
    EVENT_TYPES,
    EventKind,
    IncomingEvent,
)

# Top-level discriminators checked after the message family, in order
_TOP_LEVEL_KINDS: tuple[tuple[str, EventKind], ...] = (
    ("postback", EventKind.POSTBACK),
    ("delivery", EventKind.DELIVERY),
    ("optin", EventKind.OPTIN),
    ("read", EventKind.READ),
    ("account_linking", EventKind.ACCOUNT_LINKING),
    ("referral", EventKind.REFERRAL),
    ("payment", EventKind.PAYMENT),
    ("policy-enforcement", EventKind.POLICY_ENFORCEMENT),
    ("policy_enforcement", EventKind.POLICY_ENFORCEMENT),
)


def _section(entry: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = entry[key]
    if not isinstance(value, Mapping):
        raise UnrecognizedEventError(
            f"'{key}' must be an object, got {type(value).__name__}", entry=entry
        )
    return value


def _check_nested(
    entry: Mapping[str, Any], parent: Mapping[str, Any], keys: tuple[str, ...]
) -> None:
    """Nested shapes read by the event views must be objects when present."""
    for key in keys:
        if key in parent and parent[key] is not None:
            if not isinstance(parent[key], Mapping):
                raise UnrecognizedEventError(
                    f"'{key}' must be an object, got {type(parent[key]).__name__}",
                    entry=entry,
                )


def detect_kind(entry: Mapping[str, Any]) -> EventKind:
    """Return the event kind of a raw messaging entry.

    Raises:
        UnrecognizedEventError: if no discriminator matches, or a matching
            discriminator (or a nested shape it carries) is not an object.
    """
    if not isinstance(entry, Mapping):
        raise UnrecognizedEventError(
            f"Messaging entry must be an object, got {type(entry).__name__}",
            entry=entry,
        )
    _check_nested(entry, entry, ("sender", "recipient"))

    if "message" in entry:
        message = _section(entry, "message")
        _check_nested(entry, message, ("quick_reply", "reaction"))
        if message.get("is_echo"):
            return EventKind.MESSAGE_ECHO
        if "reaction" in entry:
            _section(entry, "reaction")
            return EventKind.MESSAGE_REACTION
        if "reaction" in message:
            return EventKind.MESSAGE_REACTION
        return EventKind.MESSAGE

    if "reaction" in entry:
        _section(entry, "reaction")
        return EventKind.MESSAGE_REACTION

    for key, kind in _TOP_LEVEL_KINDS:
        if key in entry:
            _section(entry, key)
            return kind

    raise UnrecognizedEventError(
        f"No known event in messaging entry (keys: {sorted(map(str, entry))})",
        entry=entry,
    )


def classify(entry: Mapping[str, Any]) -> tuple[EventKind, IncomingEvent]:
    """Classify one messaging entry and build its typed view.

    The returned event wraps a deep copy of ``entry``; the caller's mapping
    is never modified and later changes to it do not leak into the event.

    Raises:
        UnrecognizedEventError: if the entry has no known discriminator or
            the matching section is missing required fields.
    """
    kind = detect_kind(entry)
    event_type = EVENT_TYPES[kind]
    try:
        event = event_type.from_entry(copy.deepcopy(dict(entry)))
    except ValidationError as e:
        raise UnrecognizedEventError(
            f"Invalid {kind.value} entry: {e.error_count()} validation error(s)",
            entry=entry,
        ) from e
    return kind, event
