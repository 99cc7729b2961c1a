# src/http_builder/core/session_manager.py
"""
Thread-local requests.Session storage for RequestsTransport.

Each thread gets its own Session (requests.Session is not safe for
concurrent use); all of them share the transport's cookie jar.
"""
import threading
import weakref
from typing import Callable, Set

import requests


class ThreadSafeSessionManager:
    """
    Manages thread-local requests.Session instances.

    Sessions are created lazily on first access per thread and tracked
    through weak references so that ``close_all`` can reach sessions
    created by other threads.

    Example:
        >>> manager = ThreadSafeSessionManager(session_factory)
        >>> session = manager.get_session()
        >>> manager.close_all()
    """

    def __init__(self, session_factory: Callable[[], requests.Session]):
        self._session_factory = session_factory
        self._local = threading.local()
        self._all_sessions: Set[weakref.ref] = set()
        self._sessions_lock = threading.Lock()
        self._generation = 0

    def get_session(self) -> requests.Session:
        """Return the session for the current thread, creating it if needed."""
        session = getattr(self._local, 'session', None)
        generation = getattr(self._local, 'generation', -1)
        if session is None or generation != self._generation:
            session = self._session_factory()
            self._local.session = session
            self._local.generation = self._generation
            with self._sessions_lock:
                self._all_sessions.add(weakref.ref(session, self._discard))
        return session

    def _discard(self, ref: weakref.ref) -> None:
        with self._sessions_lock:
            self._all_sessions.discard(ref)

    def reset(self) -> None:
        """
        Close every session; threads get fresh sessions on next access.

        Used when the transport configuration changes.
        """
        self.close_all()
        with self._sessions_lock:
            self._generation += 1

    def close_all(self) -> None:
        """Close sessions from all threads. Safe to call multiple times."""
        self._local.session = None
        with self._sessions_lock:
            refs = list(self._all_sessions)
            self._all_sessions.clear()
        for ref in refs:
            session = ref()
            if session is not None:
                session.close()

    def get_active_sessions_count(self) -> int:
        """Number of live sessions across all threads."""
        with self._sessions_lock:
            return sum(1 for ref in self._all_sessions if ref() is not None)
