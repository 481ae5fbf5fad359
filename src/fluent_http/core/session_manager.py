# src/fluent_http/core/session_manager.py
"""
Thread-safe session management for HTTPClient.

Each thread gets its own requests.Session, while all sessions of one
client share a single cookie jar, so cookies set by the server in one
thread are visible to requests sent from another.
"""
import threading
from typing import Callable, Set
import weakref

import requests
from requests.cookies import RequestsCookieJar


class ThreadSafeSessionManager:
    """
    Manages thread-local requests.Session instances.

    Sessions are lazily created on first access per thread by the
    factory, then get the shared cookie jar attached.

    Example:
        >>> manager = ThreadSafeSessionManager(session_factory)
        >>> session = manager.get_session()  # Gets thread-local session
        >>> manager.close_all()  # Closes all sessions from all threads
    """

    def __init__(
        self,
        session_factory: Callable[[], requests.Session],
        cookie_jar: RequestsCookieJar = None,
    ):
        """
        Args:
            session_factory: Callable that creates and configures a new Session
            cookie_jar: Jar shared by all sessions (new empty jar if None)
        """
        self._session_factory = session_factory
        self.cookie_jar = cookie_jar if cookie_jar is not None else RequestsCookieJar()
        self._local = threading.local()

        # Weak references: a thread's session may be GC'd with its thread
        self._all_sessions: Set[weakref.ref] = set()
        self._sessions_lock = threading.Lock()

    def get_session(self) -> requests.Session:
        """
        Get thread-local session, creating it lazily if needed.

        Returns:
            requests.Session instance for current thread
        """
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self._session_factory()
            session.cookies = self.cookie_jar
            self._local.session = session

            with self._sessions_lock:
                ref = weakref.ref(session, self._cleanup_weak_ref)
                self._all_sessions.add(ref)

        return session

    def _cleanup_weak_ref(self, ref: weakref.ref):
        with self._sessions_lock:
            self._all_sessions.discard(ref)

    def reset(self):
        """
        Drop all sessions; the next request builds fresh ones.

        Called after transport settings change (TLS, proxy, adapter).
        The cookie jar is kept.
        """
        self.close_all()
        self._local = threading.local()

    def close_current_session(self):
        """Close session for current thread only."""
        session = getattr(self._local, 'session', None)
        if session is not None:
            self._local.session = None
            session.close()

    def close_all(self):
        """
        Close all sessions from all threads.

        Safe to call multiple times.
        """
        self.close_current_session()

        with self._sessions_lock:
            sessions_copy = list(self._all_sessions)
            self._all_sessions.clear()

        for session_ref in sessions_copy:
            session = session_ref()
            if session is not None:
                session.close()

    def get_active_sessions_count(self) -> int:
        """
        Get number of active sessions across all threads.

        Returns:
            Count of active (not garbage collected) sessions
        """
        with self._sessions_lock:
            return sum(1 for ref in self._all_sessions if ref() is not None)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_all()
        return False
