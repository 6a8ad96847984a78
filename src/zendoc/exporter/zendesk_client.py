from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .config import TicketFilter, ZendeskConfig
from .models import RawComment, RawTicket

# Logger setup
logger = logging.getLogger("zendoc.exporter.zendesk")


class ZendeskAPIError(RuntimeError):
    """A Zendesk API request failed or returned an unexpected payload."""


def build_search_query(filter: TicketFilter) -> str:
    """Build a Zendesk search query for tickets matching ``filter``."""
    parts: list[str] = []
    if filter.tags:
        parts.append(" ".join(f"tags:{tag}" for tag in filter.tags))
    if filter.form_id:
        parts.append(f"ticket_form_id:{filter.form_id}")
    if filter.status:
        parts.append("(" + " OR ".join(f"status:{s}" for s in filter.status) + ")")
    return "type:ticket " + " AND ".join(parts)


class ZendeskAPI:
    """Client for Zendesk API interactions."""

    def __init__(self, config: ZendeskConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = config.base_url
        self.timeout = config.timeout
        self.session = session or requests.Session()
        self.session.auth = (f"{config.email}/token", config.token)
        self.session.headers.update({"Accept": "application/json"})

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise ZendeskAPIError(f"GET {url} failed: {e}") from e

    def _get_all(self, path: str, key: str, params: Optional[Dict[str, Any]] = None) -> list[Dict[str, Any]]:
        """Collect ``key`` items across every page of a list endpoint."""
        items: list[Dict[str, Any]] = []
        url: Optional[str] = f"{self.base_url}{path}"
        while url:
            data = self._get(url, params=params)
            items.extend(data.get(key) or [])
            url = data.get("next_page")
            # next_page already carries the query string
            params = None
        return items

    def lookup_actor(self, actor_id: int) -> Dict[str, str]:
        """Fetch a user's display name and role."""
        user = self._get(f"{self.base_url}/users/{actor_id}.json").get("user")
        if not user:
            raise ZendeskAPIError(f"User {actor_id} missing from response")
        return {"name": user.get("name") or f"User {actor_id}", "role": user.get("role") or ""}

    def list_comments(self, ticket_id: int) -> list[RawComment]:
        """Fetch every comment of a ticket, oldest first."""
        comments = self._get_all(f"/tickets/{ticket_id}/comments.json", "comments", {"sort_order": "asc"})
        return [RawComment.from_api(c) for c in comments]

    def get_tickets(self, filter: Optional[TicketFilter] = None) -> list[RawTicket]:
        """Fetch tickets matching ``filter``, or every ticket when it is empty."""
        filter = filter or TicketFilter()
        if filter.is_empty:
            tickets = self._get_all("/tickets.json", "tickets")
        else:
            query = build_search_query(filter)
            logger.info(f"Searching tickets: {query}")
            tickets = self._get_all("/search.json", "results", {"query": query})

        logger.info(f"Fetched {len(tickets)} tickets")
        try:
            return [RawTicket.from_api(t) for t in tickets]
        except (KeyError, TypeError, ValueError) as e:
            raise ZendeskAPIError(f"Unexpected ticket payload: {e}") from e

    def test_connection(self) -> bool:
        try:
            self._get(f"{self.base_url}/users/me.json")
            return True
        except ZendeskAPIError as e:
            logger.error(f"Zendesk connection test failed: {e}")
            return False
