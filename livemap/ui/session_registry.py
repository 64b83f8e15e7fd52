"""SessionRegistry - Process-wide bookkeeping of mounted widget controllers.

Streamlit has no callback for a closed browser tab, so a controller kept in
st.session_state would keep its polling thread alive for the life of the
server. The host registers each controller under its session id, and every
script run reaps the controllers whose sessions the runtime no longer knows.

Usage:
    registry = SessionRegistry()          # one per process (st.cache_resource)
    registry.register(session_id, controller)
    registry.reap(is_active=runtime.is_active_session)
"""

import logging
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class Unmountable(Protocol):
    def unmount(self) -> None: ...


class SessionRegistry:
    """Controllers keyed by session id, unmounted once their session is gone."""

    def __init__(self) -> None:
        self._controllers: dict[str, Unmountable] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._controllers)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._controllers

    def register(self, session_id: str, controller: Unmountable) -> None:
        """Track a controller. A controller already registered for the session is unmounted."""
        with self._lock:
            previous = self._controllers.get(session_id)
            self._controllers[session_id] = controller
        if previous is not None and previous is not controller:
            logger.info(f"[SESSION] Replacing controller for session {session_id}")
            previous.unmount()

    def release(self, session_id: str) -> None:
        """Unmount and forget the controller of one session."""
        with self._lock:
            controller = self._controllers.pop(session_id, None)
        if controller is not None:
            controller.unmount()

    def reap(self, is_active: Callable[[str], bool]) -> int:
        """Unmount controllers whose session is no longer active. Returns how many."""
        with self._lock:
            closed = [session_id for session_id in self._controllers if not is_active(session_id)]
            controllers = [self._controllers.pop(session_id) for session_id in closed]
        for session_id, controller in zip(closed, controllers):
            logger.info(f"[SESSION] Session {session_id} closed, unmounting its map")
            controller.unmount()
        return len(closed)
