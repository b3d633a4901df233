# Overview: Fire-and-forget runner for post-commit bookkeeping tasks.

"""
Deferred task runner.

LIFECYCLE:
- An engine commits its atomic phase, then submits zero or more tasks.
- submit() returns immediately; the caller never waits on a task.
- Each task runs in its own application context, so it gets its own
  SQLAlchemy session and never shares the caller's transaction.
- A failing task is rolled back and logged with logger.exception. It is
  never retried and never re-raised to the caller.

DEFERRED_TASKS_EAGER runs every task inline at submit time with the same
isolation and catch-and-log behaviour. The test suite and the CLI use it so
results are observable as soon as the engine call returns.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from flask import Flask, current_app

logger = logging.getLogger(__name__)


class DeferredTaskRunner:
    def __init__(self, app: Flask | None = None):
        self._app: Flask | None = None
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        app.config.setdefault("DEFERRED_TASKS_EAGER", False)
        app.config.setdefault("DEFERRED_TASK_JOIN_TIMEOUT", 10.0)
        app.extensions["deferred_tasks"] = self
        self._app = app

    def _get_app(self) -> Flask:
        try:
            return current_app._get_current_object()
        except RuntimeError:
            if self._app is None:
                raise
            return self._app

    def submit(self, name: str, func: Callable, *args, **kwargs) -> None:
        app = self._get_app()
        if app.config.get("DEFERRED_TASKS_EAGER"):
            self._run(app, name, func, args, kwargs)
            return

        thread = threading.Thread(
            target=self._run,
            args=(app, name, func, args, kwargs),
            daemon=True,
            name=f"deferred-{name}",
        )
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()

    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for t in self._threads if t.is_alive())

    def wait(self, timeout: float | None = None) -> int:
        """Join pending tasks. Returns how many are still running afterwards."""
        if timeout is None:
            timeout = self._get_app().config.get("DEFERRED_TASK_JOIN_TIMEOUT", 10.0)
        with self._lock:
            pending = list(self._threads)
        for thread in pending:
            thread.join(timeout)
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            return len(self._threads)

    @staticmethod
    def _run(app: Flask, name: str, func: Callable, args: tuple, kwargs: dict) -> None:
        from .extensions import db

        with app.app_context():
            try:
                func(*args, **kwargs)
            except Exception:
                db.session.rollback()
                app.logger.exception("Deferred task %s failed", name)
