"""Tests for ThreadSafeSessionManager."""

import threading

import requests

from http_builder.core.session_manager import ThreadSafeSessionManager


def test_same_session_per_thread():
    manager = ThreadSafeSessionManager(requests.Session)

    assert manager.get_session() is manager.get_session()
    manager.close_all()


def test_threads_get_own_sessions():
    manager = ThreadSafeSessionManager(requests.Session)
    main_session = manager.get_session()
    seen = []

    def worker():
        seen.append(manager.get_session())

    threads = [threading.Thread(target=worker) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(s) for s in seen}) == 3
    assert all(s is not main_session for s in seen)
    manager.close_all()


def test_reset_invalidates_other_threads():
    manager = ThreadSafeSessionManager(requests.Session)
    first = manager.get_session()

    manager.reset()

    assert manager.get_session() is not first


def test_close_all_counts():
    manager = ThreadSafeSessionManager(requests.Session)
    session = manager.get_session()
    assert manager.get_active_sessions_count() == 1

    manager.close_all()
    manager.close_all()

    assert manager.get_active_sessions_count() == 0
    assert manager.get_session() is not session
