"""CSRF token lifecycle.

CSRFGuard owns the token -> expiry map. It is an ordinary object owned by
the application, so tests build isolated guards with their own clock.
CSRFSweeper evicts expired tokens (and expired sessions) on a fixed
interval from an asyncio task.
"""

from __future__ import annotations

import asyncio
import contextlib
import secrets
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from laundry.utils.time import Clock, utc_now

if TYPE_CHECKING:
    from laundry.security.sessions import SessionStore

log = structlog.get_logger()

TOKEN_BYTES = 32
DEFAULT_TTL = timedelta(hours=24)


class CSRFGuard:
    """Issues, validates and expires anti-forgery tokens.

    All methods are synchronous and run on the event loop, so the map is
    never mutated concurrently.
    """

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Clock = utc_now) -> None:
        self._ttl = ttl
        self._clock = clock
        self._tokens: dict[str, datetime] = {}

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, token: object) -> bool:
        return token in self._tokens

    def issue(self) -> str:
        """Create a 64-hex-char token valid for the configured TTL."""
        token = secrets.token_hex(TOKEN_BYTES)
        self._tokens[token] = self._clock() + self._ttl
        return token

    def expires_at(self, token: str) -> datetime | None:
        return self._tokens.get(token)

    def validate(self, token: str | None) -> bool:
        """True only for a known, unexpired token. Expired tokens are evicted."""
        if not token:
            return False
        expiry = self._tokens.get(token)
        if expiry is None:
            return False
        if self._clock() > expiry:
            del self._tokens[token]
            return False
        return True

    def revoke(self, token: str | None) -> bool:
        """Forget a token. Returns whether it was known."""
        if not token:
            return False
        return self._tokens.pop(token, None) is not None

    def sweep(self) -> int:
        """Evict every expired token and return how many were removed."""
        now = self._clock()
        expired = [t for t, expiry in list(self._tokens.items()) if now > expiry]
        for token in expired:
            self._tokens.pop(token, None)
        return len(expired)


class CSRFSweeper:
    """Background task that periodically sweeps tokens and sessions."""

    def __init__(
        self,
        csrf: CSRFGuard,
        sessions: SessionStore | None = None,
        interval_seconds: float = 3600,
    ) -> None:
        self._csrf = csrf
        self._sessions = sessions
        self._interval = interval_seconds
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="csrf-sweeper")
        log.info("csrf_sweeper_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop.set()
        await self._task
        self._task = None
        log.info("csrf_sweeper_stopped")

    def sweep_once(self) -> tuple[int, int]:
        """Run one sweep. Returns (tokens evicted, sessions evicted)."""
        tokens = self._csrf.sweep()
        sessions = self._sessions.sweep() if self._sessions is not None else 0
        if tokens or sessions:
            log.info("csrf_sweep", tokens_evicted=tokens, sessions_evicted=sessions)
        return tokens, sessions

    async def _run(self) -> None:
        while not self._stop.is_set():
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            if self._stop.is_set():
                break
            self.sweep_once()
