"""Error boundary for one map widget.

Rendering failures are logged with their full traceback and turned into a
MapRenderErrorMessage, so one broken widget never takes down the page that
hosts it.
"""

import logging
import traceback
from collections.abc import Callable
from typing import TypeVar

from livemap.model.message import MapRenderErrorMessage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorBoundary:
    """Runs render steps and keeps the last contained failure.

    Example:
        boundary = ErrorBoundary(widget_name="map-1")
        deck = boundary.run(backend.to_deck)
        if boundary.error:
            boundary.error.display()
    """

    def __init__(self, widget_name: str = "map") -> None:
        self.widget_name = widget_name
        self.error: MapRenderErrorMessage | None = None

    def run(self, render: Callable[[], T], tag: str = "RENDER") -> T | None:
        """Call render(). Returns its result, or None if it raised."""
        try:
            return render()
        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            full_traceback = traceback.format_exc()
            logger.error(f"[{tag}] {self.widget_name} error caught: {error_msg}\n{full_traceback}")
            self.error = MapRenderErrorMessage(reason=error_msg)
            return None

    def reset(self) -> None:
        self.error = None

    @property
    def has_error(self) -> bool:
        return self.error is not None
