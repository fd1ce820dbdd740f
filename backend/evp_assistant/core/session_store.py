"""
Thread Session Store - maps client session ids to provider thread ids.

Mappings live for the lifetime of the process. Thread creation is
serialised per session id, so two concurrent first questions for the same
session end up on one thread instead of leaking a second.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

ThreadFactory = Callable[[], Awaitable[str]]


class ThreadSessionStore:
    """In-memory session -> thread map with single-flight creation."""

    def __init__(self):
        self._threads: Dict[str, str] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._threads)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._threads

    def get(self, session_id: str) -> Optional[str]:
        """Return the mapped thread id, or None."""
        return self._threads.get(session_id)

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        # No await between lookup and insert, so this is atomic on the event loop.
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    async def get_or_create_thread(self, session_id: str, create_thread: ThreadFactory) -> str:
        """
        Resolve the thread for ``session_id``, creating it on first use.

        Args:
            session_id: Client-chosen session identifier
            create_thread: Coroutine factory asking the provider for a new thread

        Returns:
            The thread id mapped to the session
        """
        thread_id = self._threads.get(session_id)
        if thread_id:
            return thread_id

        lock = self._lock_for(session_id)
        async with lock:
            # Another request may have created it while we waited.
            thread_id = self._threads.get(session_id)
            if thread_id:
                return thread_id

            thread_id = await create_thread()
            self._threads[session_id] = thread_id
            # Later callers take the fast path; waiters already hold the lock object.
            if self._locks.get(session_id) is lock:
                del self._locks[session_id]
            logger.info(
                f"Created thread {thread_id} for session {session_id}",
                extra={"extra_fields": {"session_id": session_id, "thread_id": thread_id}}
            )
            return thread_id

    def reset(self, session_id: str) -> bool:
        """
        Forget the mapping for ``session_id``. The provider thread is kept.

        Returns:
            True if a mapping was removed, False if none existed
        """
        thread_id = self._threads.pop(session_id, None)
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]
        if thread_id is not None:
            logger.info(f"Reset session {session_id} (thread {thread_id} released)")
        return thread_id is not None
