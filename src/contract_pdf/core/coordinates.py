# SPDX-License-Identifier: Apache-2.0
"""Mapping of field geometry from viewport pixels to native page space.

Fields are captured on a raster preview whose Y axis grows downward from the
top edge. PDF page space has its origin at the bottom-left with Y growing
upward, so the vertical position is flipped against the page height.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import (
    DEFAULT_IMAGE_FIELD_SIZE,
    DEFAULT_TEXT_FIELD_SIZE,
    BBox,
    FieldGeometryError,
    FieldKind,
    TemplateField,
)
from .resolver import field_kind_for


@dataclass(frozen=True)
class MappedBox:
    """A field box in native page space.

    Attributes:
        x: Left edge
        top: Top edge (PDF units from the bottom of the page)
        width: Box width
        height: Box height
    """

    x: float
    top: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        """Bottom edge."""
        return self.top - self.height

    @property
    def right(self) -> float:
        """Right edge."""
        return self.x + self.width

    def to_bbox(self) -> BBox:
        """Convert to a BBox."""
        return BBox(x0=self.x, y0=self.bottom, x1=self.right, y1=self.top)


def field_size(field: TemplateField) -> tuple[float, float]:
    """Return the field's box size in viewport pixels.

    Legacy fields without a stored size get the default for their kind.
    """
    if field_kind_for(field.variable) is FieldKind.IMAGE:
        default_w, default_h = DEFAULT_IMAGE_FIELD_SIZE
    else:
        default_w, default_h = DEFAULT_TEXT_FIELD_SIZE
    width = field.width if field.width else default_w
    height = field.height if field.height else default_h
    return width, height


def map_field(field: TemplateField, page_width: float, page_height: float) -> MappedBox:
    """Map a field onto a destination page.

    Args:
        field: Field captured in viewport space.
        page_width: Destination page width in PDF units.
        page_height: Destination page height in PDF units.

    Returns:
        The field's box in page space.

    Raises:
        FieldGeometryError: If the field has no usable viewport size.
    """
    field.validate()
    scale_x = page_width / field.viewport_width
    scale_y = page_height / field.viewport_height

    width, height = field_size(field)
    return MappedBox(
        x=field.x * scale_x,
        top=page_height - field.y * scale_y,
        width=width * scale_x,
        height=height * scale_y,
    )


__all__ = ["FieldGeometryError", "MappedBox", "field_size", "map_field"]
