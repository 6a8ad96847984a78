from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


AGENT_ROLES = frozenset({"admin", "agent"})
PLACEHOLDER_ROLE = "end-user"


class AuthorRole(str, Enum):
    """Role of a comment author relative to the ticket."""

    REQUESTER = "requester"
    AGENT = "agent"
    COLLABORATOR = "collaborator"


@dataclass(frozen=True)
class ActorProfile:
    id: int
    display_name: str
    role: str
    is_placeholder: bool = False

    @classmethod
    def placeholder(cls, actor_id: int) -> "ActorProfile":
        return cls(id=actor_id, display_name=f"User {actor_id}", role=PLACEHOLDER_ROLE, is_placeholder=True)


@dataclass(frozen=True)
class Attachment:
    file_name: str
    content_url: str
    size_bytes: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Attachment":
        return cls(
            file_name=data.get("file_name") or "",
            content_url=data.get("content_url") or "",
            size_bytes=int(data.get("size") or 0),
        )


@dataclass(frozen=True)
class RawComment:
    id: int
    author_id: int
    body: str
    plain_body: str
    is_public: bool
    created_at: str
    attachments: tuple[Attachment, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RawComment":
        """Build a comment from a Zendesk ``comments`` entry.

        ``id`` and ``author_id`` are required; a missing key raises KeyError.
        """
        return cls(
            id=int(data["id"]),
            author_id=int(data["author_id"]),
            body=data.get("body") or "",
            plain_body=data.get("plain_body") or "",
            is_public=bool(data.get("public", True)),
            created_at=data.get("created_at") or "",
            attachments=tuple(Attachment.from_api(a) for a in data.get("attachments") or []),
        )


@dataclass(frozen=True)
class EnrichedComment:
    id: int
    author_id: int
    author_name: str
    author_role: AuthorRole
    body: str
    is_public: bool
    created_at: str
    attachments: tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class CustomField:
    id: int
    value: Any = None

    @property
    def has_value(self) -> bool:
        return self.value is not None and self.value != "" and self.value != []


@dataclass(frozen=True)
class RawTicket:
    id: int
    subject: str
    status: str
    created_at: str
    updated_at: str
    requester_id: int
    assignee_id: Optional[int] = None
    priority: Optional[str] = None
    type: Optional[str] = None
    description: str = ""
    tags: tuple[str, ...] = ()
    custom_fields: tuple[CustomField, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RawTicket":
        """Build a ticket from a Zendesk ticket (or search result) payload."""
        assignee_id = data.get("assignee_id")
        return cls(
            id=int(data["id"]),
            subject=data.get("subject") or "",
            status=data.get("status") or "",
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
            requester_id=int(data["requester_id"]),
            assignee_id=int(assignee_id) if assignee_id else None,
            priority=data.get("priority") or None,
            type=data.get("type") or None,
            description=data.get("description") or "",
            tags=tuple(data.get("tags") or ()),
            custom_fields=tuple(
                CustomField(id=int(f["id"]), value=f.get("value"))
                for f in data.get("custom_fields") or []
            ),
        )


@dataclass(frozen=True)
class NormalizedTicket:
    """Fully resolved, render-ready ticket."""

    id: int
    subject: str
    status: str
    created_at: str
    updated_at: str
    requester_name: str
    assignee_name: Optional[str] = None
    priority: Optional[str] = None
    type: Optional[str] = None
    description: str = ""
    tags: tuple[str, ...] = ()
    comments: tuple[EnrichedComment, ...] = field(default_factory=tuple)
    custom_fields: tuple[CustomField, ...] = field(default_factory=tuple)


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 timestamp as returned by Zendesk.

    Accepts a trailing ``Z``. Returns ``None`` when the value cannot be parsed.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def timestamp_sort_key(value: str) -> tuple[int, float]:
    # Unparsable values sort after parsable ones; naive values are read as UTC.
    parsed = parse_timestamp(value)
    if parsed is None:
        return (1, 0.0)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (0, parsed.timestamp())
