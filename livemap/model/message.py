"""Message - User-facing inline messages for the map widget.

Design Principles:
- Maximum ONE inline message per widget at any time
- Expected failures become messages, not exceptions
- Messages know their own display level; the host decides when to show them
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class MessageLevel(Enum):
    """Display level for UI messages."""

    INFO = "info"  # Blue - status/loading
    WARNING = "warning"  # Yellow - degraded but usable
    ERROR = "error"  # Red - nothing to show


@dataclass(frozen=True)
class Message(ABC):
    """Abstract base class for messages displayed inline in the widget body."""

    @property
    @abstractmethod
    def message(self) -> str:
        """Formatted message for display in Streamlit."""
        raise NotImplementedError

    @property
    @abstractmethod
    def level(self) -> MessageLevel:
        """Display level."""
        raise NotImplementedError

    @property
    def is_error(self) -> bool:
        return self.level == MessageLevel.ERROR

    def display(self) -> None:
        """Render this message using the appropriate Streamlit function."""
        import streamlit as st

        render_fn = {
            MessageLevel.INFO: st.info,
            MessageLevel.WARNING: st.warning,
            MessageLevel.ERROR: st.error,
        }[self.level]
        render_fn(self.message)


@dataclass(frozen=True)
class NoDataMessage(Message):
    """Fetch succeeded but the table has no valid locations."""

    table_name: str

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.INFO

    @property
    def message(self) -> str:
        return f"📍 No location data in '{self.table_name}' yet."


@dataclass(frozen=True)
class LoadingMessage(Message):
    """First fetch still in flight, nothing rendered yet."""

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.INFO

    @property
    def message(self) -> str:
        return "🔄 Loading data..."


@dataclass(frozen=True)
class DesignModeMessage(Message):
    """Builder canvas preview, no live data."""

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.INFO

    @property
    def message(self) -> str:
        return "🗺️ Design mode — live data is shown in the running dashboard."


@dataclass(frozen=True)
class FetchFailedMessage(Message):
    """Storage backend or transport failure."""

    reason: str

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.ERROR

    @property
    def message(self) -> str:
        return f"Failed to load map data: {self.reason}"


@dataclass(frozen=True)
class MapRenderErrorMessage(Message):
    """The rendering surface could not be built or updated."""

    reason: str

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.ERROR

    @property
    def message(self) -> str:
        return f"⚠️ Map Widget Error — {self.reason or 'Failed to render map widget'}"
