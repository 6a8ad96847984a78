from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict

from .models import ActorProfile

# Logger setup
logger = logging.getLogger("zendoc.exporter.actors")


class ActorResolver:
    """Resolve actor ids to display profiles, memoized for one export run.

    ``lookup`` is called with an actor id and returns a mapping with ``name``
    and ``role``; it may raise. A failed lookup is replaced by a placeholder
    profile which stays cached for the lifetime of the resolver.

    Create one resolver per run and pass it to whatever needs it. Calls for
    the same id are serialized so the lookup runs at most once per id, while
    different ids resolve in parallel.
    """

    def __init__(self, lookup: Callable[[int], Dict[str, Any]]):
        self._lookup = lookup
        self._cache: Dict[int, ActorProfile] = {}
        self._key_locks: Dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def __contains__(self, actor_id: int) -> bool:
        return actor_id in self._cache

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def _lock_for(self, actor_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._key_locks.get(actor_id)
            if lock is None:
                lock = self._key_locks[actor_id] = threading.Lock()
            return lock

    def resolve(self, actor_id: int) -> ActorProfile:
        """Return the profile for ``actor_id``, looking it up on first use."""
        cached = self._cache.get(actor_id)
        if cached is not None:
            return cached

        with self._lock_for(actor_id):
            cached = self._cache.get(actor_id)
            if cached is not None:
                return cached

            try:
                data = self._lookup(actor_id)
                profile = ActorProfile(
                    id=actor_id,
                    display_name=data["name"],
                    role=data["role"],
                )
            except Exception as e:
                logger.warning(f"Failed to look up user {actor_id}, using placeholder: {e}")
                profile = ActorProfile.placeholder(actor_id)

            self._cache[actor_id] = profile
            return profile
