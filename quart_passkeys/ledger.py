"""Outstanding ceremony challenges, one slot per user and relying party."""

from __future__ import annotations

import asyncio
import enum
import time


class CeremonyScope(str, enum.Enum):
    REGISTRATION = "registration"
    AUTHENTICATION = "authentication"


class ChallengeLedger:
    """Single-use challenge slots keyed by (user id, rp id, scope)."""

    async def put(self, user_id: str, rp_id: str, scope: CeremonyScope, challenge: str):
        raise NotImplementedError

    async def take(self, user_id: str, rp_id: str, scope: CeremonyScope) -> str | None:
        raise NotImplementedError


class InMemoryChallengeLedger(ChallengeLedger):
    """Process-local ledger. Entries older than ``ttl`` seconds are dropped."""

    def __init__(self, ttl: float | None = None, clock=time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[tuple[str, str, CeremonyScope], tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    def _expired(self, issued_at: float, now: float) -> bool:
        return self.ttl is not None and now - issued_at > self.ttl

    def _prune(self, now: float):
        stale = [
            key
            for key, (_challenge, issued_at) in self._entries.items()
            if self._expired(issued_at, now)
        ]
        for key in stale:
            del self._entries[key]

    async def put(self, user_id, rp_id, scope, challenge):
        async with self._lock:
            now = self.clock()
            self._prune(now)
            self._entries[(user_id, rp_id, CeremonyScope(scope))] = (challenge, now)

    async def take(self, user_id, rp_id, scope):
        async with self._lock:
            entry = self._entries.pop((user_id, rp_id, CeremonyScope(scope)), None)
        if entry is None:
            return None
        challenge, issued_at = entry
        if self._expired(issued_at, self.clock()):
            return None
        return challenge

    def keys(self, scope: CeremonyScope | None = None) -> list[tuple[str, str]]:
        return [
            (user_id, rp_id)
            for user_id, rp_id, entry_scope in self._entries
            if scope is None or entry_scope == scope
        ]

    def __len__(self):
        return len(self._entries)
