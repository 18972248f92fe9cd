"""
Chat Session Store

Per-user conversational state (last analyzed match, last report, pending
team correction), keyed by Telegram id. Entries expire after a fixed idle
time and the least recently used entry is evicted once the store is full.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional

from app.config.settings import settings
from app.domain.match import MatchReport


@dataclass
class LastMatch:
    home: str
    away: str
    competition: Optional[str] = None


@dataclass
class ChatSession:
    last_match: Optional[LastMatch] = None
    last_report: Optional[MatchReport] = None
    awaiting_correction: bool = False
    touched_at: float = field(default=0.0, compare=False)


class SessionStore:
    """Bounded, idle-expiring map of telegram_id -> ChatSession."""

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_minutes * 60
        self.max_entries = max_entries if max_entries is not None else settings.session_max_entries
        self._clock = clock
        self._sessions: "OrderedDict[int, ChatSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, telegram_id: int) -> bool:
        return self.peek(telegram_id) is not None

    def _expired(self, session: ChatSession, now: float) -> bool:
        return now - session.touched_at >= self.ttl_seconds

    def peek(self, telegram_id: int) -> Optional[ChatSession]:
        """Live session without creating or refreshing it."""
        session = self._sessions.get(telegram_id)
        if session is None:
            return None
        if self._expired(session, self._clock()):
            del self._sessions[telegram_id]
            return None
        return session

    def get(self, telegram_id: int) -> ChatSession:
        """Live session for a user, created on demand; refreshes its idle timer."""
        now = self._clock()
        session = self._sessions.get(telegram_id)

        if session is not None and self._expired(session, now):
            del self._sessions[telegram_id]
            session = None

        if session is None:
            session = ChatSession(touched_at=now)
            self._sessions[telegram_id] = session
            self._evict()
        else:
            self._sessions.move_to_end(telegram_id)

        session.touched_at = now
        return session

    def remember_analysis(
        self,
        telegram_id: int,
        report: MatchReport,
    ) -> ChatSession:
        session = self.get(telegram_id)
        session.last_match = LastMatch(
            home=report.match.team_home,
            away=report.match.team_away,
            competition=report.match.competition,
        )
        session.last_report = report
        return session

    def discard(self, telegram_id: int) -> None:
        self._sessions.pop(telegram_id, None)

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [tid for tid, s in self._sessions.items() if self._expired(s, now)]
        for telegram_id in expired:
            del self._sessions[telegram_id]
        return len(expired)

    def _evict(self) -> None:
        if len(self._sessions) <= self.max_entries:
            return
        self.purge_expired()
        while len(self._sessions) > self.max_entries:
            self._sessions.popitem(last=False)
