"""Lifecycle state machine for the map rendering surface.

Uses python-statemachine for the surface lifecycle:

States:
    UNINITIALIZED: Surface object exists, no map instance yet
    READY: Map instance created, reconciliations allowed
    DISPOSED: Map detached and layers released (final)

Transitions:
    UNINITIALIZED -> READY: mount
    UNINITIALIZED -> DISPOSED: teardown (unmounted before first render)
    READY -> DISPOSED: teardown

DISPOSED is terminal. Re-initialization (tile provider, shape clip or design
mode change) builds a new surface with a fresh machine instead of reviving
the old one.
"""

from __future__ import annotations

import logging
from typing import Any

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

logger = logging.getLogger(__name__)


class SurfaceLoggingListener:
    """Logs every lifecycle transition.

    Usage:
        sm = SurfaceStateMachine(surface_name="map-1")
        sm.add_listener(SurfaceLoggingListener())
    """

    def after_transition(self, event: str, source: State, target: State) -> None:
        logger.info(f"[STATE] {source.name} --({event})--> {target.name}")


class SurfaceStateMachine(StateMachine):
    """Uninitialized → Ready → Disposed."""

    uninitialized = State("Uninitialized", initial=True)
    ready = State("Ready")
    disposed = State("Disposed", final=True)

    mount = uninitialized.to(ready)
    teardown = uninitialized.to(disposed) | ready.to(disposed)

    def __init__(self, surface_name: str = "map", add_logging_listener: bool = True) -> None:
        self.surface_name = surface_name
        super().__init__()
        if add_logging_listener:
            self.add_listener(SurfaceLoggingListener())

    @property
    def is_uninitialized(self) -> bool:
        return self.uninitialized.is_active

    @property
    def is_ready(self) -> bool:
        return self.ready.is_active

    @property
    def is_disposed(self) -> bool:
        return self.disposed.is_active

    def get_state_name(self) -> str:
        return self.current_state.name

    def try_transition(self, event: str, **kwargs: Any) -> bool:
        """Attempt a transition, returning success/failure."""
        try:
            self.send(event, **kwargs)
            return True
        except TransitionNotAllowed:
            logger.warning(f"[STATE] Transition '{event}' not allowed from {self.get_state_name()} ({self.surface_name})")
            return False

    def __repr__(self) -> str:
        return f"SurfaceStateMachine(surface={self.surface_name!r}, state={self.get_state_name()})"
