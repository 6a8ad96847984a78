from __future__ import annotations

import json
import logging
import re
import warnings
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Sequence

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from .models import AuthorRole, EnrichedComment, NormalizedTicket, parse_timestamp

# Plain-text comment bodies often look like a URL or a file name.
warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)

# Logger setup
logger = logging.getLogger("zendoc.exporter.markdown")

ROLE_SUFFIXES = {
    AuthorRole.REQUESTER: " (Requester)",
    AuthorRole.AGENT: " (Agent)",
    AuthorRole.COLLABORATOR: " (Collaborator)",
}

SIZE_UNITS = ("Bytes", "KB", "MB", "GB")
NOT_AVAILABLE = "N/A"


class ExportWriteError(RuntimeError):
    """The rendered document could not be written."""


def format_date(value: str) -> str:
    """Format an ISO-8601 timestamp for display, or return it unchanged."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return value
    text = parsed.strftime("%Y-%m-%d %H:%M:%S")
    if parsed.tzinfo is not None:
        text = f"{text} {parsed.strftime('%Z')}"
    return text


def format_content(content: str) -> str:
    """Strip HTML tags and decode entities."""
    if not content:
        return ""
    text = BeautifulSoup(content, "html.parser").get_text()
    return text.strip()


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    # the rounded mantissa must stay below 1024
    while round(value, 2) >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    number = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{number} {SIZE_UNITS[unit]}"


def slugify(text: str) -> str:
    """Build a table-of-contents anchor fragment from a heading text."""
    slug = text.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


def ticket_anchor(ticket: NormalizedTicket) -> str:
    return slugify(f"Ticket {ticket.id} {ticket.subject}")


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _cell(value: object) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def _field_value(value: object) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


class MarkdownRenderer:
    """Render normalized tickets as a Markdown document."""

    title = "Zendesk Ticket Export"

    def render_ticket(self, ticket: NormalizedTicket) -> str:
        lines: list[str] = []
        lines.extend(self._front_matter(ticket))
        lines.append(f"# Ticket #{ticket.id}: {ticket.subject}")
        lines.append("")
        lines.extend(self._basic_info(ticket))
        lines.append("## Description")
        lines.append("")
        lines.append(format_content(ticket.description))
        lines.append("")
        lines.extend(self._custom_fields(ticket))
        lines.extend(self._comment_history(ticket.comments))
        return "\n".join(lines)

    def render_batch(self, tickets: Sequence[NormalizedTicket], exported_at: Optional[datetime] = None) -> str:
        """Render a full export document.

        ``exported_at`` defaults to the current local time.
        """
        exported_at = exported_at or datetime.now()
        lines = [
            f"# {self.title}",
            "",
            f"Exported at: {exported_at.strftime('%Y-%m-%d %H:%M:%S')}",
            f"Tickets: {len(tickets)}",
            "",
            "---",
            "",
        ]

        if len(tickets) > 1:
            lines.append("## Table of Contents")
            lines.append("")
            for ticket in tickets:
                lines.append(f"- [Ticket #{ticket.id}: {ticket.subject}](#{ticket_anchor(ticket)})")
            lines.extend(["", "---", ""])

        for index, ticket in enumerate(tickets):
            if index > 0:
                lines.extend(["", "---", ""])
            lines.append(self.render_ticket(ticket))

        return "\n".join(lines)

    def _front_matter(self, ticket: NormalizedTicket) -> list[str]:
        lines = [
            "---",
            f"id: {ticket.id}",
            f"subject: {_quote(ticket.subject)}",
            f"status: {ticket.status}",
            f"priority: {ticket.priority or NOT_AVAILABLE}",
            f"type: {ticket.type or NOT_AVAILABLE}",
            f"created_at: {ticket.created_at}",
            f"updated_at: {ticket.updated_at}",
            f"requester: {_quote(ticket.requester_name)}",
        ]
        if ticket.assignee_name:
            lines.append(f"assignee: {_quote(ticket.assignee_name)}")
        if ticket.tags:
            lines.append(f"tags: [{', '.join(_quote(tag) for tag in ticket.tags)}]")
        lines.extend(["---", ""])
        return lines

    def _basic_info(self, ticket: NormalizedTicket) -> list[str]:
        rows = [
            ("Ticket ID", ticket.id),
            ("Status", ticket.status),
            ("Priority", ticket.priority or NOT_AVAILABLE),
            ("Type", ticket.type or NOT_AVAILABLE),
            ("Created", format_date(ticket.created_at)),
            ("Updated", format_date(ticket.updated_at)),
            ("Requester", ticket.requester_name),
        ]
        if ticket.assignee_name:
            rows.append(("Assignee", ticket.assignee_name))
        if ticket.tags:
            rows.append(("Tags", ", ".join(ticket.tags)))

        lines = ["## Basic Information", "", "| Field | Value |", "|-------|-------|"]
        lines.extend(f"| {name} | {_cell(value)} |" for name, value in rows)
        lines.append("")
        return lines

    def _custom_fields(self, ticket: NormalizedTicket) -> list[str]:
        fields = [f for f in ticket.custom_fields if f.has_value]
        if not fields:
            return []
        lines = ["## Custom Fields", ""]
        lines.extend(f"- **Field {f.id}**: {_field_value(f.value)}" for f in fields)
        lines.append("")
        return lines

    def _comment_history(self, comments: Sequence[EnrichedComment]) -> list[str]:
        if not comments:
            return []
        lines = ["## Comment History", ""]
        for comment in comments:
            suffix = ROLE_SUFFIXES[comment.author_role]
            lines.append(f"### {comment.author_name}{suffix} - {format_date(comment.created_at)}")
            lines.append("")
            if not comment.is_public:
                lines.append("**[Internal note]**")
                lines.append("")
            lines.append(format_content(comment.body))

            if comment.attachments:
                lines.append("")
                lines.append("**Attachments:**")
                for attachment in comment.attachments:
                    lines.append(
                        f"- [{attachment.file_name}]({attachment.content_url}) "
                        f"({format_file_size(attachment.size_bytes)})"
                    )

            lines.extend(["", "---", ""])
        return lines


def save_to_file(content: str, file_path: str | Path) -> Path:
    path = Path(file_path)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to write {path}: {e}")
        raise ExportWriteError(f"Failed to save {path}: {e}") from e
    logger.info(f"Saved Markdown export: {path}")
    return path


def export_tickets(
    tickets: Iterable[NormalizedTicket],
    file_path: str | Path,
    renderer: Optional[MarkdownRenderer] = None,
) -> Path:
    """Render tickets and write them to ``file_path``."""
    renderer = renderer or MarkdownRenderer()
    return save_to_file(renderer.render_batch(list(tickets)), file_path)
