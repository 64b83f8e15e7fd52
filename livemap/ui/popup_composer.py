"""PopupComposer - Popup and permanent label text for a marker.

Two popup modes:
- Custom fields (show_custom_fields): configured title / description from the
  record, coordinates always appended. Falls back to "Location Data" when the
  record has no title.
- Default: every non-geometry payload field plus timestamp and coordinates.

The permanent label is an independent toggle layered on top of the popup:
title and/or description when present, otherwise short coordinates.
"""

from dataclasses import dataclass

from livemap.model.location_record import LocationRecord
from livemap.model.map_configuration import ColumnMapping, PopupFlags

DEFAULT_TITLE = "Location Data"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
# Shown in dedicated lines, never repeated as payload fields
RESERVED_FIELDS = frozenset({"id", "created_at", "latitude", "longitude"})


@dataclass(frozen=True)
class PopupContent:
    """Composed marker texts. Lines are separated by newlines."""

    popup_text: str
    permanent_label_text: str | None = None

    @property
    def title(self) -> str:
        return self.popup_text.split("\n", 1)[0]


def _present(value: object) -> bool:
    return value is not None and value != ""


class PopupComposer:
    """Builds popup content from a record and display flags.

    Example:
        content = PopupComposer.compose(record, PopupFlags(show_custom_fields=True), ColumnMapping())
    """

    @staticmethod
    def compose(
        record: LocationRecord,
        display_flags: PopupFlags,
        column_mapping: ColumnMapping | None = None,
    ) -> PopupContent:
        columns = column_mapping or ColumnMapping()
        if display_flags.show_custom_fields:
            popup_text = PopupComposer._custom_popup(record=record, columns=columns)
        else:
            popup_text = PopupComposer._default_popup(record=record)

        label = None
        if display_flags.always_show_label:
            label = PopupComposer._label(record=record, columns=columns)
        return PopupContent(popup_text=popup_text, permanent_label_text=label)

    @staticmethod
    def _coordinate_lines(record: LocationRecord) -> list[str]:
        return [
            f"Latitude: {record.latitude:.6f}",
            f"Longitude: {record.longitude:.6f}",
        ]

    @staticmethod
    def _custom_popup(record: LocationRecord, columns: ColumnMapping) -> str:
        title = record.get(columns.title)
        description = record.get(columns.description)
        lines = [str(title) if _present(title) else DEFAULT_TITLE]
        if _present(description):
            lines.append(str(description))
        lines.extend(PopupComposer._coordinate_lines(record))
        return "\n".join(lines)

    @staticmethod
    def _default_popup(record: LocationRecord) -> str:
        lines = [
            DEFAULT_TITLE,
            f"Time: {record.created_at.strftime(TIMESTAMP_FORMAT)}",
            *PopupComposer._coordinate_lines(record),
        ]
        lines.extend(f"{key}: {value}" for key, value in record.extra.items() if key not in RESERVED_FIELDS)
        return "\n".join(lines)

    @staticmethod
    def _label(record: LocationRecord, columns: ColumnMapping) -> str:
        title = record.get(columns.title)
        description = record.get(columns.description)
        parts = [str(value) for value in (title, description) if _present(value)]
        if not parts:
            return f"Lat: {record.latitude:.4f}, Lng: {record.longitude:.4f}"
        return "\n".join(parts)
