"""In-memory registry of dashboard views keyed by browser session."""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from .views import UserListView


@dataclass
class _SessionRecord:
    view: UserListView
    expires_at: datetime


class DashboardSessions:
    """Create, resolve, and expire the list view owned by each browser session."""

    def __init__(self, *, ttl: timedelta = timedelta(hours=8)) -> None:
        self._ttl = ttl
        self._sessions: Dict[str, _SessionRecord] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, view: UserListView) -> str:
        token = secrets.token_urlsafe(32)
        now = self._now()
        record = _SessionRecord(view=view, expires_at=now + self._ttl)
        with self._lock:
            expired = self._pop_expired(now)
            self._sessions[token] = record
        for stale in expired:
            stale.view.unmount()
        return token

    def resolve(self, token: Optional[str]) -> Optional[UserListView]:
        if not token:
            return None
        now = self._now()
        with self._lock:
            record = self._sessions.get(token)
            if record is None:
                return None
            if record.expires_at <= now:
                self._sessions.pop(token, None)
                record.view.unmount()
                return None
            record.expires_at = now + self._ttl
            return record.view

    def destroy(self, token: str) -> None:
        with self._lock:
            record = self._sessions.pop(token, None)
        if record is not None:
            record.view.unmount()

    def clear(self) -> None:
        with self._lock:
            records = list(self._sessions.values())
            self._sessions.clear()
        for record in records:
            record.view.unmount()

    def _pop_expired(self, now: datetime) -> List[_SessionRecord]:
        # Caller holds the lock.
        expired = [token for token, record in self._sessions.items() if record.expires_at <= now]
        return [self._sessions.pop(token) for token in expired]

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["DashboardSessions"]
