#!/usr/bin/env python3
"""Tests for actor resolution and caching."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

from zendoc.exporter.actors import ActorResolver


def test_resolve_caches_successful_lookup():
    """Resolving the same id twice only hits the lookup once."""
    lookup = Mock(return_value={"name": "Alice", "role": "end-user"})
    resolver = ActorResolver(lookup)

    first = resolver.resolve(1001)
    second = resolver.resolve(1001)

    lookup.assert_called_once_with(1001)
    assert first is second
    assert first.display_name == "Alice"
    assert first.role == "end-user"
    assert not first.is_placeholder
    assert 1001 in resolver
    assert resolver.cache_size == 1


def test_failed_lookup_returns_placeholder():
    lookup = Mock(side_effect=RuntimeError("404 Not Found"))
    resolver = ActorResolver(lookup)

    profile = resolver.resolve(1002)

    assert profile.is_placeholder
    assert profile.display_name == "User 1002"
    assert profile.role == "end-user"
    assert profile.id == 1002


def test_placeholder_is_not_replaced_within_run():
    """A later lookup that would succeed is never attempted."""
    lookup = Mock(side_effect=[RuntimeError("timeout"), {"name": "Bob", "role": "agent"}])
    resolver = ActorResolver(lookup)

    first = resolver.resolve(7)
    second = resolver.resolve(7)

    assert lookup.call_count == 1
    assert second is first
    assert second.display_name == "User 7"


def test_concurrent_resolution_of_same_id_looks_up_once():
    calls = []
    lock = threading.Lock()

    def slow_lookup(actor_id):
        with lock:
            calls.append(actor_id)
        time.sleep(0.05)
        return {"name": f"Agent {actor_id}", "role": "agent"}

    resolver = ActorResolver(slow_lookup)
    with ThreadPoolExecutor(max_workers=4) as ex:
        profiles = list(ex.map(resolver.resolve, [5, 5, 5, 5]))

    assert calls == [5]
    assert all(p is profiles[0] for p in profiles)


def test_different_ids_are_cached_separately():
    lookup = Mock(side_effect=lambda actor_id: {"name": f"User #{actor_id}", "role": "agent"})
    resolver = ActorResolver(lookup)

    assert resolver.resolve(1).display_name == "User #1"
    assert resolver.resolve(2).display_name == "User #2"
    assert resolver.resolve(1).display_name == "User #1"
    assert lookup.call_count == 2
