"""Typed views over incoming Messenger webhook entries.

Each variant is validated once, when the classifier builds it, and is frozen
afterwards. ``raw`` keeps a private copy of the source entry so callers can
reach fields this module does not model.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class EventKind(str, Enum):
    """Closed set of webhook event kinds; also the hook registry keys."""

    MESSAGE = "message"
    MESSAGE_ECHO = "message_echo"
    MESSAGE_REACTION = "reaction"
    DELIVERY = "delivery"
    POSTBACK = "postback"
    OPTIN = "optin"
    READ = "read"
    ACCOUNT_LINKING = "account_linking"
    REFERRAL = "referral"
    PAYMENT = "payment"
    POLICY_ENFORCEMENT = "policy_enforcement"


class IncomingEvent(BaseModel):
    """Fields shared by every messaging entry."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    kind: ClassVar[EventKind]
    # Key of the entry section that feeds the variant fields
    section: ClassVar[str]

    sender_id: str | None = None
    recipient_id: str | None = None
    timestamp: int | None = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def sent_at(self) -> datetime | None:
        """Entry timestamp (milliseconds since epoch) as an aware datetime."""
        if self.timestamp is None:
            return None
        return _EPOCH + timedelta(milliseconds=self.timestamp)

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        """Map the raw section onto model fields. Overridden per variant."""
        return {}

    @classmethod
    def from_entry(cls, entry: dict[str, Any]) -> "IncomingEvent":
        section = entry.get(cls.section) or {}
        return cls(
            sender_id=(entry.get("sender") or {}).get("id"),
            recipient_id=(entry.get("recipient") or {}).get("id"),
            timestamp=entry.get("timestamp"),
            raw=entry,
            **cls.section_fields(section),
        )


class Message(IncomingEvent):
    """A message sent by a user to the page."""

    kind = EventKind.MESSAGE
    section = "message"

    mid: str | None = None
    seq: int | None = None
    text: str | None = None
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    quick_reply_payload: str | None = None

    @property
    def is_echo(self) -> bool:
        return False

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        quick_reply = section.get("quick_reply") or {}
        return {
            "mid": section.get("mid"),
            "seq": section.get("seq"),
            "text": section.get("text"),
            "attachments": section.get("attachments") or [],
            "quick_reply_payload": quick_reply.get("payload"),
        }


class MessageEcho(Message):
    """A message sent by the page, echoed back to the webhook."""

    kind = EventKind.MESSAGE_ECHO

    app_id: str | None = None
    metadata: str | None = None

    @property
    def is_echo(self) -> bool:
        return True

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        fields = super().section_fields(section)
        fields["app_id"] = section.get("app_id")
        fields["metadata"] = section.get("metadata")
        return fields


class MessageReaction(IncomingEvent):
    """A user reacted to (or un-reacted from) a message."""

    kind = EventKind.MESSAGE_REACTION
    section = "reaction"

    reaction: str | None = None
    emoji: str | None = None
    action: str
    mid: str | None = None

    @property
    def message_id(self) -> str | None:
        """Id of the message that was reacted to."""
        return self.mid

    @property
    def payload(self) -> dict[str, Any]:
        """The raw reaction section."""
        if "reaction" in self.raw:
            return self.raw["reaction"] or {}
        return (self.raw.get("message") or {}).get("reaction") or {}

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        return {
            "reaction": section.get("reaction"),
            "emoji": section.get("emoji"),
            "action": section.get("action"),
            "mid": section.get("mid"),
        }

    @classmethod
    def from_entry(cls, entry: dict[str, Any]) -> "MessageReaction":
        # Reactions arrive top-level; older payloads nest them under message
        if "reaction" in entry:
            section = entry.get("reaction") or {}
        else:
            section = (entry.get("message") or {}).get("reaction") or {}
        return cls(
            sender_id=(entry.get("sender") or {}).get("id"),
            recipient_id=(entry.get("recipient") or {}).get("id"),
            timestamp=entry.get("timestamp"),
            raw=entry,
            **cls.section_fields(section),
        )


class Delivery(IncomingEvent):
    """Messages up to ``watermark`` were delivered."""

    kind = EventKind.DELIVERY
    section = "delivery"

    mids: list[str] = Field(default_factory=list)
    watermark: int
    seq: int | None = None

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        return {
            "mids": section.get("mids") or [],
            "watermark": section.get("watermark"),
            "seq": section.get("seq"),
        }


class Read(IncomingEvent):
    """Messages up to ``watermark`` were read."""

    kind = EventKind.READ
    section = "read"

    watermark: int
    seq: int | None = None

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        return {"watermark": section.get("watermark"), "seq": section.get("seq")}


class Postback(IncomingEvent):
    kind = EventKind.POSTBACK
    section = "postback"

    title: str | None = None
    payload: str | None = None
    referral: dict[str, Any] | None = None

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        return {
            "title": section.get("title"),
            "payload": section.get("payload"),
            "referral": section.get("referral"),
        }


class Optin(IncomingEvent):
    kind = EventKind.OPTIN
    section = "optin"

    ref: str | None = None
    user_ref: str | None = None

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        return {"ref": section.get("ref"), "user_ref": section.get("user_ref")}


class AccountLinking(IncomingEvent):
    kind = EventKind.ACCOUNT_LINKING
    section = "account_linking"

    status: str
    authorization_code: str | None = None

    @property
    def linked(self) -> bool:
        return self.status == "linked"

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        return {
            "status": section.get("status"),
            "authorization_code": section.get("authorization_code"),
        }


class Referral(IncomingEvent):
    kind = EventKind.REFERRAL
    section = "referral"

    ref: str | None = None
    source: str | None = None
    type: str | None = None

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        return {
            "ref": section.get("ref"),
            "source": section.get("source"),
            "type": section.get("type"),
        }


class Payment(IncomingEvent):
    kind = EventKind.PAYMENT
    section = "payment"

    payload: str | None = None
    requested_user_info: dict[str, Any] = Field(default_factory=dict)
    payment_credential: dict[str, Any] = Field(default_factory=dict)
    amount: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def section_fields(cls, section: dict[str, Any]) -> dict[str, Any]:
        return {
            "payload": section.get("payload"),
            "requested_user_info": section.get("requested_user_info") or {},
            "payment_credential": section.get("payment_credential") or {},
            "amount": section.get("amount") or {},
        }


class PolicyEnforcement(IncomingEvent):
    """The platform took action against the page for a policy violation."""

    kind = EventKind.POLICY_ENFORCEMENT
    section = "policy-enforcement"

    action: str | None = None
    reason: str | None = None

    @classmethod
    def from_entry(cls, entry: dict[str, Any]) -> "PolicyEnforcement":
        section = entry.get("policy-enforcement") or entry.get("policy_enforcement") or {}
        return cls(
            sender_id=(entry.get("sender") or {}).get("id"),
            recipient_id=(entry.get("recipient") or {}).get("id"),
            timestamp=entry.get("timestamp"),
            raw=entry,
            action=section.get("action"),
            reason=section.get("reason"),
        )


EVENT_TYPES: dict[EventKind, type[IncomingEvent]] = {
    cls.kind: cls
    for cls in (
        Message,
        MessageEcho,
        MessageReaction,
        Delivery,
        Read,
        Postback,
        Optin,
        AccountLinking,
        Referral,
        Payment,
        PolicyEnforcement,
    )
}
