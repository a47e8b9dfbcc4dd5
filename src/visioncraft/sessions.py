from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from visioncraft.controller import PosterStudio
from visioncraft.providers.base import PosterProvider


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    session_id: str
    studio: PosterStudio
    last_seen: datetime = field(default_factory=_now)


class SessionStore:
    """In-memory sessions, one controller per browser. Nothing survives a restart."""

    def __init__(self, provider_factory: Callable[[], PosterProvider]) -> None:
        self._provider_factory = provider_factory
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create_session(self) -> Session:
        session_id = uuid.uuid4().hex
        session = Session(session_id=session_id, studio=PosterStudio(self._provider_factory()))
        self._sessions[session_id] = session
        return session

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_seen = _now()
        return session

    def prune(self, max_idle: timedelta) -> int:
        """Drop sessions idle longer than max_idle; busy ones are kept."""
        cutoff = _now() - max_idle
        stale = [
            sid
            for sid, s in self._sessions.items()
            if s.last_seen < cutoff and not s.studio.state.busy
        ]
        for sid in stale:
            del self._sessions[sid]
        return len(stale)
