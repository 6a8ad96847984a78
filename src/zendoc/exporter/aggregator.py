from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence

from .actors import ActorResolver
from .models import (
    AGENT_ROLES,
    ActorProfile,
    AuthorRole,
    EnrichedComment,
    NormalizedTicket,
    RawComment,
    RawTicket,
    timestamp_sort_key,
)

# Logger setup
logger = logging.getLogger("zendoc.exporter.aggregator")


class TicketConversionError(RuntimeError):
    """A ticket could not be turned into a NormalizedTicket."""

    def __init__(self, ticket_id: int, cause: BaseException):
        super().__init__(f"Failed to convert ticket {ticket_id}: {cause}")
        self.ticket_id = ticket_id
        self.cause = cause


@dataclass(frozen=True)
class PacingPolicy:
    """Delay applied between tickets of a batch."""

    delay: float = 0.1
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def disabled(cls) -> "PacingPolicy":
        return cls(delay=0.0)

    def wait(self) -> None:
        if self.delay > 0:
            self.sleep(self.delay)


@dataclass(frozen=True)
class BatchProgress:
    processed: int
    total: int
    succeeded: int
    skipped: int


def classify_role(author_id: int, requester_id: int, author: ActorProfile) -> AuthorRole:
    if author_id == requester_id:
        return AuthorRole.REQUESTER
    if author.role in AGENT_ROLES:
        return AuthorRole.AGENT
    return AuthorRole.COLLABORATOR


class CommentEnricher:
    """Attach author name and role to raw comments."""

    def __init__(self, resolver: ActorResolver):
        self.resolver = resolver

    def enrich(self, comment: RawComment, requester_id: int) -> EnrichedComment:
        author = self.resolver.resolve(comment.author_id)
        return EnrichedComment(
            id=comment.id,
            author_id=comment.author_id,
            author_name=author.display_name,
            author_role=classify_role(comment.author_id, requester_id, author),
            body=comment.plain_body or comment.body,
            is_public=comment.is_public,
            created_at=comment.created_at,
            attachments=comment.attachments,
        )


class TicketAggregator:
    """Turn raw tickets into NormalizedTickets.

    ``client`` must provide ``lookup_actor(actor_id)`` and
    ``list_comments(ticket_id)``. One aggregator covers one export run: its
    resolver cache is shared by every ticket it processes.
    """

    def __init__(
        self,
        client: Any,
        resolver: Optional[ActorResolver] = None,
        pacing: Optional[PacingPolicy] = None,
        progress: Optional[Callable[[BatchProgress], None]] = None,
        max_workers: int = 2,
    ):
        self.client = client
        self.resolver = resolver or ActorResolver(client.lookup_actor)
        self.enricher = CommentEnricher(self.resolver)
        self.pacing = pacing or PacingPolicy()
        self.progress = progress
        self.max_workers = max_workers
        self.failures: list[TicketConversionError] = []

    def _resolve_people(self, ticket: RawTicket) -> tuple[ActorProfile, Optional[ActorProfile]]:
        if ticket.assignee_id is None:
            return self.resolver.resolve(ticket.requester_id), None

        with ThreadPoolExecutor(max_workers=self.max_workers) as ex:
            requester = ex.submit(self.resolver.resolve, ticket.requester_id)
            assignee = ex.submit(self.resolver.resolve, ticket.assignee_id)
            return requester.result(), assignee.result()

    def _fetch_comments(self, ticket: RawTicket) -> list[EnrichedComment]:
        try:
            raw_comments: Sequence[RawComment] = self.client.list_comments(ticket.id)
            ordered = sorted(raw_comments, key=lambda c: timestamp_sort_key(c.created_at))
            return [self.enricher.enrich(c, ticket.requester_id) for c in ordered]
        except Exception as e:
            raise TicketConversionError(ticket.id, e) from e

    def aggregate(self, ticket: RawTicket) -> NormalizedTicket:
        """Resolve people and comments for one ticket.

        Raises TicketConversionError when comments cannot be fetched or
        enriched.
        """
        requester, assignee = self._resolve_people(ticket)
        comments = self._fetch_comments(ticket)

        return NormalizedTicket(
            id=ticket.id,
            subject=ticket.subject,
            status=ticket.status,
            priority=ticket.priority,
            type=ticket.type,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            requester_name=requester.display_name,
            assignee_name=assignee.display_name if assignee else None,
            tags=tuple(ticket.tags),
            description=ticket.description,
            comments=tuple(comments),
            custom_fields=tuple(ticket.custom_fields),
        )

    def aggregate_batch(self, tickets: Iterable[RawTicket]) -> list[NormalizedTicket]:
        """Convert tickets one after another, skipping the ones that fail.

        Failures are kept in ``self.failures``; progress is reported after
        every ticket.
        """
        tickets = list(tickets)
        total = len(tickets)
        results: list[NormalizedTicket] = []
        self.failures = []

        for index, ticket in enumerate(tickets):
            if index > 0:
                self.pacing.wait()
            try:
                results.append(self.aggregate(ticket))
            except TicketConversionError as e:
                logger.error(f"Skipping ticket {e.ticket_id}: {e.cause}")
                self.failures.append(e)

            progress = BatchProgress(
                processed=index + 1,
                total=total,
                succeeded=len(results),
                skipped=len(self.failures),
            )
            logger.debug(f"Processed {progress.processed}/{progress.total} tickets")
            if self.progress is not None:
                self.progress(progress)

        if self.failures:
            logger.warning(f"Converted {len(results)}/{total} tickets, skipped {len(self.failures)}")
        else:
            logger.info(f"Converted {len(results)}/{total} tickets")
        return results
