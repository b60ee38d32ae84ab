"""Facebook Messenger webhook ingestion and Graph API pagination."""

from fb_messenger.errors import (
    EnvelopeEntryError,
    FacebookError,
    InvalidEventKind,
    MalformedPageError,
    MessengerError,
    PaginationLoopError,
    UnrecognizedEventError,
    VendorError,
)
from fb_messenger.models.events import EventKind, IncomingEvent
from fb_messenger.services.classifier import classify
from fb_messenger.services.graph_client import GraphAPIClient
from fb_messenger.services.hooks import HookRegistry

__all__ = [
    "EnvelopeEntryError",
    "EventKind",
    "FacebookError",
    "GraphAPIClient",
    "HookRegistry",
    "IncomingEvent",
    "InvalidEventKind",
    "MalformedPageError",
    "MessengerError",
    "PaginationLoopError",
    "UnrecognizedEventError",
    "VendorError",
    "classify",
]
