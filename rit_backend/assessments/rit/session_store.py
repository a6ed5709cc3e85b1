"""
Session Store for adaptive RIT assessments.

Holds the in-progress state of every live assessment, keyed by
(student, subject, period), and serializes mutations per key: at most one
mutation per key is in flight, while different keys proceed in parallel.
The store performs no durable I/O.
"""

import asyncio
import datetime
import enum
import inspect
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from rit_backend.assessments.base.exceptions import SessionConflictError, SessionNotFoundError
from rit_backend.assessments.base.models import AssessmentSession, SessionKey
from rit_backend.common.logger import app_logger

logger = app_logger.getChild("rit.session_store")

Clock = Callable[[], datetime.datetime]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class SessionConflictPolicy(enum.Enum):
    """What ``create`` does when a live session already uses the key."""
    REPLACE = "replace"
    REJECT = "reject"


class SessionStore:
    """
    In-process keyed store of live assessment sessions.

    Args:
        conflict_policy: Handling of a second ``create`` for a live key
        clock: Source of the current time, used for activity tracking
    """

    def __init__(
        self,
        conflict_policy: SessionConflictPolicy = SessionConflictPolicy.REPLACE,
        clock: Optional[Clock] = None
    ):
        self.conflict_policy = conflict_policy
        self._clock = clock or utcnow
        self._sessions: Dict[SessionKey, AssessmentSession] = {}
        self._by_assessment: Dict[int, SessionKey] = {}
        self._locks: Dict[SessionKey, asyncio.Lock] = {}
        # Tasks holding or waiting for each key's lock
        self._holders: Dict[SessionKey, int] = {}

    @asynccontextmanager
    async def _hold(self, key: SessionKey) -> AsyncIterator[None]:
        """Acquire the key's lock, dropping it once no task uses a dead key."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                if key not in self._sessions:
                    self._locks.pop(key, None)

    @asynccontextmanager
    async def reserve(
        self,
        key: SessionKey
    ) -> AsyncIterator[Callable[[AssessmentSession], AssessmentSession]]:
        """
        Hold the key's lock while a new session for it is prepared.

        Yields a function that registers the prepared session. Work done inside
        the block, such as creating the durable record, cannot race another
        ``create`` or ``reserve`` for the same key.

        Raises:
            SessionConflictError: If the key is live and the policy is REJECT
        """
        async with self._hold(key):
            self._check_conflict(key)
            yield self._register

    async def create(self, session: AssessmentSession) -> AssessmentSession:
        """
        Register a new live session.

        Raises:
            SessionConflictError: If the key is live and the policy is REJECT
        """
        async with self.reserve(session.key) as register:
            return register(session)

    def _check_conflict(self, key: SessionKey) -> None:
        if key in self._sessions and self.conflict_policy is SessionConflictPolicy.REJECT:
            raise SessionConflictError(str(key))

    def _register(self, session: AssessmentSession) -> AssessmentSession:
        key = session.key
        self._check_conflict(key)
        existing = self._sessions.get(key)
        if existing is not None:
            logger.warning(
                f"Replacing live session {key} (assessment {existing.assessment_id}) "
                f"with assessment {session.assessment_id}"
            )
            self._by_assessment.pop(existing.assessment_id, None)

        self._sessions[key] = session
        self._by_assessment[session.assessment_id] = key
        logger.debug(f"Created session {key} for assessment {session.assessment_id}")
        return session

    async def get(self, key: SessionKey) -> AssessmentSession:
        """
        Get the live session for a key.

        Raises:
            SessionNotFoundError: If no session is live for the key
        """
        session = self._sessions.get(key)
        if session is None:
            raise SessionNotFoundError(str(key))
        return session

    async def find(self, student_id: str, assessment_id: int) -> AssessmentSession:
        """
        Get the live session of an assessment owned by ``student_id``.

        Raises:
            SessionNotFoundError: If none matches
        """
        key = self._by_assessment.get(assessment_id)
        if key is None or key.student_id != student_id:
            raise SessionNotFoundError(assessment_id)
        return await self.get(key)

    @asynccontextmanager
    async def locked(self, key: SessionKey) -> AsyncIterator[AssessmentSession]:
        """
        Hold the key's lock and yield its live session.

        The session is looked up after the lock is acquired, so a caller that
        waited behind a finalizing mutation gets SessionNotFoundError rather
        than a stale session.
        """
        async with self._hold(key):
            session = await self.get(key)
            try:
                yield session
            finally:
                if key in self._sessions:
                    session.last_activity_at = self._clock()

    async def mutate(self, key: SessionKey, fn: Callable[[AssessmentSession], Any]) -> Any:
        """
        Apply ``fn`` to the live session while holding the key's lock.

        ``fn`` may be a plain function or a coroutine function.

        Returns:
            Whatever ``fn`` returns
        """
        async with self.locked(key) as session:
            result = fn(session)
            if inspect.isawaitable(result):
                result = await result
            return result

    async def delete(self, key: SessionKey) -> Optional[AssessmentSession]:
        """
        Remove the live session for a key, if any.

        Does not take the key's lock, so it may be called from inside
        ``locked``/``mutate``.
        """
        session = self._sessions.pop(key, None)
        if session is not None:
            self._by_assessment.pop(session.assessment_id, None)
            logger.debug(f"Deleted session {key} (assessment {session.assessment_id})")
        if key not in self._holders:
            self._locks.pop(key, None)
        return session

    async def purge_idle(self, max_idle: datetime.timedelta) -> List[AssessmentSession]:
        """
        Drop sessions with no activity for longer than ``max_idle``.

        Sessions with a mutation in flight are never purged.

        Returns:
            The sessions that were dropped
        """
        cutoff = self._clock() - max_idle
        purged = []
        for key, session in list(self._sessions.items()):
            if key in self._holders:
                continue
            if session.last_activity_at < cutoff:
                await self.delete(key)
                purged.append(session)
        if purged:
            logger.info(f"Purged {len(purged)} idle sessions")
        return purged

    def active_count(self) -> int:
        return len(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: SessionKey) -> bool:
        return key in self._sessions
