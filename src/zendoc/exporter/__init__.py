"""Exporter subpackage public API."""

from .actors import ActorResolver
from .aggregator import CommentEnricher, PacingPolicy, TicketAggregator, TicketConversionError
from .cli import main as export_main
from .config import ZendeskConfig, resolve_config
from .markdown import MarkdownRenderer, export_tickets
from .models import NormalizedTicket, RawComment, RawTicket
from .zendesk_client import ZendeskAPI

__all__ = [
    "export_main",
    "ActorResolver",
    "CommentEnricher",
    "PacingPolicy",
    "TicketAggregator",
    "TicketConversionError",
    "ZendeskConfig",
    "resolve_config",
    "MarkdownRenderer",
    "export_tickets",
    "NormalizedTicket",
    "RawComment",
    "RawTicket",
    "ZendeskAPI",
]
