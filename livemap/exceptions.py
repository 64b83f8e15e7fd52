"""Exception hierarchy for the live map widget.

Expected failures (no data, failed fetch, denied geolocation) are returned
as values; these exceptions mark the places where a collaborator broke.
"""


class LivemapError(Exception):
    """Base class for all widget errors."""


class StorageError(LivemapError):
    """The runtime data store could not be queried."""


class GeolocationError(LivemapError):
    """The device position could not be determined (denied, timeout, unsupported)."""


class RenderInitError(LivemapError):
    """The rendering surface could not be constructed."""


class SurfaceDisposedError(LivemapError):
    """A rendering call reached a surface that was already torn down."""
