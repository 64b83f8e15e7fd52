"""MarkerIconResolver - (visual type, color) → icon descriptor.

Thematic types render as a glyph; anything unknown (including "default")
falls back to a colored dot with a white border. Pure, no I/O.
"""

from dataclasses import dataclass

from livemap.constants import MarkerConfig


class IconKind:
    GLYPH = "glyph"
    DOT = "dot"


@dataclass(frozen=True)
class IconDescriptor:
    """Backend-neutral marker icon.

    Attributes:
        size: (width, height) in pixels
        anchor: Pixel offset of the geographic point inside the icon
        content: Glyph text for GLYPH icons, fill color for DOT icons
        kind: IconKind value
        popup_anchor: Popup offset relative to the anchor
    """

    size: tuple[int, int]
    anchor: tuple[int, int]
    content: str
    kind: str
    popup_anchor: tuple[int, int] = (0, 0)

    @property
    def is_dot(self) -> bool:
        return self.kind == IconKind.DOT


class MarkerIconResolver:
    """Maps marker visuals to icon descriptors."""

    @staticmethod
    def resolve(visual_type: str, color: str) -> IconDescriptor:
        size = MarkerConfig.ICON_SIZE_PX
        popup_anchor = (0, -size[1] // 2)
        glyph = MarkerConfig.GLYPHS.get(visual_type)
        if glyph is not None:
            return IconDescriptor(
                size=size,
                anchor=MarkerConfig.ICON_ANCHOR_PX,
                content=glyph,
                kind=IconKind.GLYPH,
                popup_anchor=popup_anchor,
            )
        return IconDescriptor(
            size=size,
            anchor=MarkerConfig.ICON_ANCHOR_PX,
            content=color,
            kind=IconKind.DOT,
            popup_anchor=popup_anchor,
        )

    @staticmethod
    def user_location() -> IconDescriptor:
        """Dedicated icon for the viewer's own position."""
        return IconDescriptor(
            size=MarkerConfig.USER_LOCATION_SIZE_PX,
            anchor=MarkerConfig.USER_LOCATION_ANCHOR_PX,
            content=MarkerConfig.USER_LOCATION_COLOR,
            kind=IconKind.DOT,
        )
