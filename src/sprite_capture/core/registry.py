"""SessionRegistry — singleton that tracks which frame directories are owned by a running session."""

from __future__ import annotations

import logging
import threading

from sprite_capture.core.exceptions import SessionConflictError

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Singleton set of claimed ``(subject, animation)`` pairs.

    A capture session claims its pair on ``start()`` and releases it when it
    returns to idle.  A second claim on the same pair is rejected, never
    queued.
    """

    _instance: SessionRegistry | None = None
    _claims: set[tuple[str, str]]
    _lock: threading.Lock

    def __new__(cls) -> SessionRegistry:
        """Return the singleton instance, creating it on first call."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._claims = set()
            cls._instance._lock = threading.Lock()
        return cls._instance

    def claim(self, subject_name: str, animation_name: str) -> None:
        """Mark the pair as owned by the caller.

        Raises:
            SessionConflictError: If the pair is already claimed.
        """
        key = (subject_name, animation_name)
        with self._lock:
            if key in self._claims:
                msg = f"An export of '{subject_name}/{animation_name}' is already running"
                raise SessionConflictError(msg)
            self._claims.add(key)
        logger.debug("Claimed %s/%s", subject_name, animation_name)

    def release(self, subject_name: str, animation_name: str) -> None:
        """Drop a claim; releasing an unclaimed pair is a no-op."""
        with self._lock:
            self._claims.discard((subject_name, animation_name))
        logger.debug("Released %s/%s", subject_name, animation_name)

    def is_claimed(self, subject_name: str, animation_name: str) -> bool:
        """Return ``True`` if a running session owns the pair."""
        with self._lock:
            return (subject_name, animation_name) in self._claims

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton — intended for testing only."""
        cls._instance = None
