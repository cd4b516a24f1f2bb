"""Registry of active tailing sessions keyed by container identity."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from podtail.models.pods import ContainerKey
from podtail.tailer.base import Tailer


@dataclass
class Session:
    """A registered tailer and the task running it."""

    key: ContainerKey
    tailer: Tailer
    task: asyncio.Task[None] | None = None


class SessionRegistry:
    """Mapping of ContainerKey to Session guarded by a single lock.

    A key is present exactly while its tailer is registered. Callers hold
    ``lock`` across check, insert and remove so that each start or stop is
    one atomic step. Entries are never overwritten in place.
    """

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self._sessions: dict[ContainerKey, Session] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, key: ContainerKey) -> Session | None:
        return self._sessions.get(key)

    def insert(self, session: Session) -> bool:
        """Register *session*; returns False and changes nothing if the key exists."""
        if session.key in self._sessions:
            return False
        self._sessions[session.key] = session
        return True

    def remove(self, key: ContainerKey) -> Session | None:
        return self._sessions.pop(key, None)

    def keys(self) -> list[ContainerKey]:
        return list(self._sessions)

    def sessions(self) -> list[Session]:
        """Snapshot of the registered sessions."""
        return list(self._sessions.values())
