"""In-memory registry of live checkout sessions."""

from __future__ import annotations

import logging
import time
from threading import RLock

from storefront.config import settings
from storefront.services.checkout.state_machine import CheckoutStateMachine

logger = logging.getLogger(__name__)


class CheckoutSessionRegistry:
    """Keeps checkout state machines between requests, expiring idle ones."""

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self._lock = RLock()
        if ttl_seconds is None:
            ttl_seconds = settings.CHECKOUT_SESSION_TTL_SECONDS
        self._ttl = ttl_seconds
        self._sessions: dict[str, tuple[CheckoutStateMachine, float]] = {}

    def add(self, machine: CheckoutStateMachine) -> CheckoutStateMachine:
        session_id = machine.session.session_id
        with self._lock:
            self._purge_expired()
            self._sessions[session_id] = (machine, time.monotonic())
        logger.info("Opened checkout session %s", session_id)
        return machine

    def get(self, session_id: str) -> CheckoutStateMachine | None:
        """Return the session and refresh its idle timer, or None when gone."""
        with self._lock:
            self._purge_expired()
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            machine, _ = entry
            self._sessions[session_id] = (machine, time.monotonic())
            return machine

    def discard(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is not None:
                logger.info("Closed checkout session %s", session_id)

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._sessions)

    def _purge_expired(self) -> None:
        if self._ttl <= 0:
            return
        cutoff = time.monotonic() - self._ttl
        expired = [key for key, (_, seen) in self._sessions.items() if seen < cutoff]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.debug("Expired %d idle checkout sessions", len(expired))


_registry = CheckoutSessionRegistry()


def get_checkout_registry() -> CheckoutSessionRegistry:
    """FastAPI dependency factory."""

    return _registry
