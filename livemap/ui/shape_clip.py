"""Shape clip → plain style descriptor for the host page.

The map itself is always rectangular; the widget frame is clipped by the
host using a CSS clip-path. Custom polygons are regular n-gons with the
first vertex at the top.
"""

from dataclasses import dataclass
from math import cos, pi, sin

from livemap.constants import ShapeConfig
from livemap.model.map_configuration import ShapeClip


@dataclass(frozen=True)
class StyleDescriptor:
    """CSS fragments for the widget frame."""

    border_radius: str = "0px"
    clip_path: str | None = None

    def to_css(self) -> str:
        rules = ["overflow: hidden", "position: relative", f"border-radius: {self.border_radius}"]
        if self.clip_path:
            rules.append(f"clip-path: {self.clip_path}")
        return "; ".join(rules) + ";"


def polygon_clip_path(sides: int) -> str:
    """CSS polygon() for a regular polygon, sides clamped to [3, 20]."""
    sides = max(ShapeConfig.MIN_SIDES, min(ShapeConfig.MAX_SIDES, sides))
    points = []
    for i in range(sides):
        angle = (i * 2 * pi) / sides - pi / 2
        x = 50 + 50 * cos(angle)
        y = 50 + 50 * sin(angle)
        points.append(f"{x:.2f}% {y:.2f}%")
    return f"polygon({', '.join(points)})"


def style_for_shape(shape: ShapeClip) -> StyleDescriptor:
    if shape.type == "circle":
        return StyleDescriptor(border_radius="50%", clip_path="circle(50% at 50% 50%)")
    if shape.type == "roundedRectangle":
        return StyleDescriptor(border_radius=f"{ShapeConfig.ROUNDED_RADIUS_PX}px")
    if shape.type == "ellipse":
        return StyleDescriptor(border_radius="50%", clip_path="ellipse(50% 40% at 50% 50%)")
    if shape.type == "customPolygon":
        return StyleDescriptor(clip_path=polygon_clip_path(shape.sides))
    return StyleDescriptor()
