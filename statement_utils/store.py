"""
statement_utils/store.py

JSON-file persistence for the reconciled context.

The context is stored as a single JSON document and always replaced as a
whole: writes go to a temporary file in the same directory and are moved
into place with ``os.replace``.  ``transaction()`` serialises the
read -> merge -> write cycle of concurrent ingestions within one process.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from .errors import ContextStoreError
from .logging_utils import _audit, get_logger
from .models import ReconciledContext, utc_now_iso

logger = get_logger(__name__)

DEFAULT_STORE_PATH = os.path.join("data", "context.json")

# One lock per resolved store path, shared by every ContextStore instance.
_LOCKS: Dict[str, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: str) -> threading.RLock:
    with _LOCKS_GUARD:
        lock = _LOCKS.get(path)
        if lock is None:
            lock = _LOCKS[path] = threading.RLock()
        return lock


class ContextStore:
    """Load, save and clear the reconciled context at ``path``.

    ``path`` defaults to ``$CONTEXT_STORE`` or ``data/context.json``.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = os.path.abspath(os.path.expanduser(path or os.getenv("CONTEXT_STORE") or DEFAULT_STORE_PATH))
        self._lock = _lock_for(self.path)

    def load(self) -> ReconciledContext:
        """Return the stored context, or an empty one if none is readable."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return ReconciledContext.initial()
        except (OSError, ValueError) as exc:
            logger.error(f"Failed to read context from {self.path}: {exc}")
            return ReconciledContext.initial()
        if not isinstance(raw, dict):
            logger.error(f"Context file {self.path} does not hold a JSON object; starting empty")
            return ReconciledContext.initial()
        try:
            return ReconciledContext.from_dict(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.error(f"Context file {self.path} is malformed: {exc}")
            return ReconciledContext.initial()

    def save(self, context: ReconciledContext) -> ReconciledContext:
        """Stamp and atomically write ``context``; returns the stamped context."""
        context.timestamp = utc_now_iso()
        parent = os.path.dirname(self.path)
        with self._lock:
            try:
                os.makedirs(parent, exist_ok=True)
                fd, tmp = tempfile.mkstemp(dir=parent, suffix=".tmp")
            except OSError as exc:
                raise ContextStoreError(f"Cannot write context to {self.path}: {exc}") from exc
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(context.to_dict(), f, indent=2)
                os.replace(tmp, self.path)
            except BaseException:
                try:
                    os.unlink(tmp)
                except OSError:
                    pass
                raise
        _audit(f"Saved context with {len(context.holdings)} holding(s) to {self.path}")
        return context

    def clear(self) -> None:
        with self._lock:
            try:
                os.remove(self.path)
            except FileNotFoundError:
                pass
        _audit(f"Cleared context at {self.path}")

    @contextmanager
    def transaction(self) -> Iterator[ReconciledContext]:
        """Hold the store lock around a read -> merge -> write cycle.

        Yields the current context; callers save the new one before the
        block exits.
        """
        with self._lock:
            yield self.load()


__all__ = ["ContextStore", "DEFAULT_STORE_PATH"]
