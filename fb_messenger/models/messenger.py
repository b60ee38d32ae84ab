"""Facebook webhook envelope and Graph API list page models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WebhookEntry(BaseModel):
    """One ``entry`` item of a webhook delivery."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str | None = None
    time: int | None = None
    # Messaging entries stay raw; the classifier validates and types them
    messaging: list[Any] = Field(default_factory=list)


class WebhookEnvelope(BaseModel):
    """Facebook webhook payload."""

    model_config = ConfigDict(extra="allow")

    object: str | None = None
    entry: list[WebhookEntry] = Field(default_factory=list)

    def messaging_entries(self) -> list[Any]:
        """All messaging entries, in arrival order across entries."""
        return [item for entry in self.entry for item in entry.messaging]


class Paging(BaseModel):
    """``paging`` block of a Graph API list response."""

    model_config = ConfigDict(extra="allow")

    next: str | None = None
    previous: str | None = None
    cursors: dict[str, Any] | None = None


class Page(BaseModel):
    """One page of a Graph API list endpoint."""

    model_config = ConfigDict(extra="allow")

    data: list[Any]
    paging: Paging | None = None

    @property
    def next_url(self) -> str | None:
        if self.paging is None or not self.paging.next:
            return None
        return self.paging.next
