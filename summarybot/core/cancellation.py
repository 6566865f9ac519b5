"""
Cancellation scopes for the worker and everything it calls.

A scope is a threading.Event with an optional deadline. Child scopes are
cancelled together with their parent, so stopping the run also stops the
job in flight, its backoff waits and its subprocess.
"""

import threading
import time
from typing import Optional


class CancelScope:
    """Cancellable signal with an optional timeout and parent propagation."""

    def __init__(self, timeout: float | None = None,
                 parent: Optional["CancelScope"] = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: list[CancelScope] = []
        self._parent = parent
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._timed_out = False
        if parent is not None:
            parent._attach(self)

    # ── Tree management ───────────────────────────────────────────────

    def _attach(self, child: "CancelScope"):
        with self._lock:
            already = self._event.is_set()
            if not already:
                self._children.append(child)
        if already:
            child.cancel()

    def _detach(self, child: "CancelScope"):
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def child(self, timeout: float | None = None) -> "CancelScope":
        return CancelScope(timeout=timeout, parent=self)

    def close(self):
        """Detach from the parent so it stops tracking this scope."""
        if self._parent is not None:
            self._parent._detach(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ── State ─────────────────────────────────────────────────────────

    def cancel(self):
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._timed_out = True
            self.cancel()
            return True
        if self._parent is not None and self._parent.cancelled:
            self.cancel()
            return True
        return False

    @property
    def timed_out(self) -> bool:
        return self._timed_out

    def remaining(self) -> float | None:
        """Seconds until the nearest deadline in the chain, or None."""
        candidates = []
        scope = self
        while scope is not None:
            if scope._deadline is not None:
                candidates.append(scope._deadline - time.monotonic())
            scope = scope._parent
        if not candidates:
            return None
        return max(0.0, min(candidates))

    def wait(self, seconds: float) -> bool:
        """
        Block for up to `seconds`, returning early on cancellation.
        Returns True if the scope is cancelled.
        """
        if self.cancelled:
            return True
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
        else:
            self._event.wait(max(0.0, seconds))
        return self.cancelled
