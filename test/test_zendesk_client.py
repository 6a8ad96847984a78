#!/usr/bin/env python3
"""Tests for the Zendesk API client, with the HTTP session mocked out."""

from unittest.mock import Mock, call

import pytest
import requests

from zendoc.exporter.config import TicketFilter, ZendeskConfig
from zendoc.exporter.zendesk_client import ZendeskAPI, ZendeskAPIError, build_search_query

BASE = "https://acme.zendesk.com/api/v2"


def make_response(payload):
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def make_api(*payloads):
    session = Mock()
    session.headers = {}
    session.get.side_effect = [make_response(p) for p in payloads]
    config = ZendeskConfig(subdomain="acme", email="me@example.com", token="secret", timeout=12)
    return ZendeskAPI(config, session=session), session


def test_session_uses_token_auth():
    api, session = make_api()
    assert session.auth == ("me@example.com/token", "secret")
    assert api.base_url == BASE


def test_lookup_actor():
    api, session = make_api({"user": {"id": 5, "name": "Bob", "role": "agent"}})

    assert api.lookup_actor(5) == {"name": "Bob", "role": "agent"}
    session.get.assert_called_once_with(f"{BASE}/users/5.json", params=None, timeout=12)


def test_lookup_actor_failure_raises():
    api, session = make_api()
    session.get.side_effect = requests.ConnectionError("down")

    with pytest.raises(ZendeskAPIError):
        api.lookup_actor(5)


def test_list_comments_follows_pages():
    page_two = f"{BASE}/tickets/9/comments.json?page=2&sort_order=asc"
    api, session = make_api(
        {
            "comments": [
                {
                    "id": 1,
                    "author_id": 10,
                    "body": "<p>Hi</p>",
                    "plain_body": "Hi",
                    "public": True,
                    "created_at": "2023-01-01T10:00:00Z",
                    "attachments": [
                        {"file_name": "a.log", "content_url": "https://x/a.log", "size": 2048}
                    ],
                }
            ],
            "next_page": page_two,
        },
        {
            "comments": [
                {"id": 2, "author_id": 11, "body": "Later", "public": False, "created_at": "2023-01-02T10:00:00Z"}
            ],
            "next_page": None,
        },
    )

    comments = api.list_comments(9)

    assert [c.id for c in comments] == [1, 2]
    assert comments[0].plain_body == "Hi"
    assert comments[0].attachments[0].size_bytes == 2048
    assert comments[1].is_public is False
    assert comments[1].plain_body == ""
    assert session.get.call_args_list == [
        call(f"{BASE}/tickets/9/comments.json", params={"sort_order": "asc"}, timeout=12),
        call(page_two, params=None, timeout=12),
    ]


def test_list_comments_http_error_raises():
    api, session = make_api({})
    session.get.side_effect = None
    response = make_response({})
    response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
    session.get.return_value = response

    with pytest.raises(ZendeskAPIError):
        api.list_comments(9)


def test_build_search_query():
    query = build_search_query(
        TicketFilter(tags=("bug", "urgent"), form_id="123", status=("open", "pending"))
    )
    assert query == "type:ticket tags:bug tags:urgent AND ticket_form_id:123 AND (status:open OR status:pending)"
    assert build_search_query(TicketFilter(form_id="7")) == "type:ticket ticket_form_id:7"


def test_get_tickets_without_filter_lists_all():
    ticket = {
        "id": 1,
        "subject": "Hello",
        "status": "open",
        "created_at": "2023-01-01T10:00:00Z",
        "updated_at": "2023-01-01T10:00:00Z",
        "requester_id": 100,
        "assignee_id": None,
        "tags": ["bug"],
        "custom_fields": [{"id": 3, "value": "x"}],
    }
    api, session = make_api({"tickets": [ticket], "next_page": None})

    tickets = api.get_tickets()

    assert len(tickets) == 1
    assert tickets[0].assignee_id is None
    assert tickets[0].tags == ("bug",)
    assert tickets[0].custom_fields[0].value == "x"
    session.get.assert_called_once_with(f"{BASE}/tickets.json", params=None, timeout=12)


def test_get_tickets_with_filter_uses_search():
    api, session = make_api({"results": [], "next_page": None})

    assert api.get_tickets(TicketFilter(tags=("bug",))) == []
    session.get.assert_called_once_with(
        f"{BASE}/search.json", params={"query": "type:ticket tags:bug"}, timeout=12
    )


def test_test_connection():
    api, session = make_api({"user": {"id": 1}})
    assert api.test_connection() is True

    session.get.side_effect = requests.Timeout("slow")
    assert api.test_connection() is False
