"""In-process chat memory keyed by session id.

Sessions are opaque client-chosen tokens, not authenticated identities.
History lives only in this process: a restart loses every session.
"""

from __future__ import annotations

import logging
import threading

from plan_ai.models.chat import ChatTurn

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 10


class SessionMemoryStore:
    """Bounded, ordered chat history per session.

    Each session holds at most ``max_len`` turns; appending beyond the
    bound evicts the oldest turns first.  Every operation runs under a
    single lock, so a read-modify-truncate-write is never observed
    half-done.  Two concurrent submissions for the same session can still
    interleave their appends in either order.

    Args:
        max_turns: Default bound used by :meth:`append` when the caller
            does not pass one.
    """

    def __init__(self, max_turns: int = DEFAULT_MAX_TURNS) -> None:
        if max_turns < 1:
            raise ValueError(f"max_turns must be at least 1, got {max_turns}")
        self.max_turns = max_turns
        self._sessions: dict[str, list[ChatTurn]] = {}
        self._lock = threading.Lock()

    def append(
        self,
        session_id: str,
        turn: ChatTurn,
        max_len: int | None = None,
    ) -> list[ChatTurn]:
        """Append *turn* to the session and truncate to the last *max_len*.

        Args:
            session_id: Opaque session token; unknown ids start empty.
            turn: The turn to record.
            max_len: Bound for this session; defaults to ``max_turns``.

        Returns:
            A copy of the session history after truncation.
        """
        limit = self.max_turns if max_len is None else max_len
        if limit < 1:
            raise ValueError(f"max_len must be at least 1, got {limit}")

        with self._lock:
            history = self._sessions.get(session_id, [])
            history = [*history, turn][-limit:]
            self._sessions[session_id] = history
            logger.debug(
                "Session %s: appended %s turn (%d stored)",
                session_id,
                turn.role,
                len(history),
            )
            return list(history)

    def last_n(self, session_id: str, n: int) -> list[ChatTurn]:
        """Return up to the last *n* turns, oldest first.

        Unknown sessions (and ``n <= 0``) yield an empty list.
        """
        if n <= 0:
            return []
        with self._lock:
            return list(self._sessions.get(session_id, [])[-n:])

    def clear(self, session_id: str) -> None:
        """Forget all history for *session_id*.  Safe to call repeatedly."""
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info("Session %s cleared (%d turns dropped)", session_id, len(removed))

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
