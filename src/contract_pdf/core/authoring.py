# SPDX-License-Identifier: Apache-2.0
"""Template authoring operations.

Placing, moving, resizing and removing field boxes on a rendered page
preview. These are pure transforms over the field list, so an interactive
editor only has to forward pointer positions in viewport pixels.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from .coordinates import field_size
from .models import (
    DEFAULT_IMAGE_FIELD_SIZE,
    DEFAULT_TEXT_FIELD_SIZE,
    FieldDefinition,
    FieldGeometryError,
    FieldKind,
    TemplateField,
)
from .resolver import field_kind_for

logger = logging.getLogger(__name__)

# Box size limits (viewport pixels)
MIN_FIELD_WIDTH = 40
MAX_FIELD_WIDTH = 500
MIN_FIELD_HEIGHT = 16
MAX_FIELD_HEIGHT = 300

# Nudge factors for one grow / shrink step
GROW_FACTOR = 1.15
SHRINK_FACTOR = 0.85

# (token, label) pairs offered for placement
STANDARD_VARIABLES: tuple[tuple[str, str], ...] = (
    ("{اسم_الطالب}", "اسم الطالب"),
    ("{اسم_ولي_الامر}", "اسم ولي الأمر"),
    ("{المسار}", "المسار"),
    ("{الصف}", "الصف"),
    ("{المرحلة_الدراسية}", "المرحلة"),
    ("{السنة_الدراسية}", "السنة"),
    ("{التاريخ}", "التاريخ"),
    ("{اليوم}", "اليوم"),
    ("{رقم_هوية_الطالب}", "رقم هوية الطالب"),
    ("{رقم_هوية_ولي_الأمر}", "رقم هوية ولي الأمر"),
    ("{رقم_جوال_ولي_الأمر}", "رقم جوال ولي الأمر"),
    ("{العنوان}", "العنوان"),
    ("{الجنسية}", "الجنسية"),
    ("{توقيع}", "مكان التوقيع"),
    ("{الختم}", "مكان الختم"),
    ("{الهوية}", "مكان الهوية"),
)


@dataclass(frozen=True)
class VariableOption:
    """A placeholder offered in the variable palette."""

    token: str
    label: str
    custom: bool = False


def available_variables(
    definitions: Sequence[FieldDefinition] = (),
) -> list[VariableOption]:
    """List the placeholders that can be placed on a template.

    Args:
        definitions: Custom field definitions; each adds a ``{label}`` token.

    Returns:
        The standard palette followed by one option per custom definition.
    """
    options = [VariableOption(token, label) for token, label in STANDARD_VARIABLES]
    for definition in definitions:
        if not definition.label.strip():
            continue
        options.append(
            VariableOption(f"{{{definition.label}}}", definition.label, custom=True)
        )
    return options


class IdFactory:
    """Issue field ids from a millisecond clock.

    Ids are strictly increasing even when several are requested within the
    same millisecond or the clock steps backwards, so an id is never reused.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        issued: Iterable[str] = (),
    ) -> None:
        """Initialize IdFactory.

        Args:
            clock: Returns the current time in seconds.
            issued: Ids already in use; numeric ones raise the floor.
        """
        self._clock = clock
        self._last = 0
        for value in issued:
            if str(value).isdigit():
                self._last = max(self._last, int(value))

    def __call__(self) -> str:
        now = int(self._clock() * 1000)
        self._last = max(now, self._last + 1)
        return str(self._last)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _clamp_size(width: float, height: float) -> tuple[int, int]:
    return (
        int(_clamp(round(width), MIN_FIELD_WIDTH, MAX_FIELD_WIDTH)),
        int(_clamp(round(height), MIN_FIELD_HEIGHT, MAX_FIELD_HEIGHT)),
    )


@dataclass
class _PointerGesture:
    field_id: str
    start_x: float
    start_y: float
    origin_x: float  # field x (drag) or width (resize) at gesture start
    origin_y: float  # field y (drag) or height (resize) at gesture start


class TemplateEditor:
    """Edit the field list of a template.

    Example:
        >>> editor = TemplateEditor()
        >>> field = editor.place("{اسم_الطالب}", 100, 50, 1, 600, 800)
        >>> editor.begin_drag(field.id, 110, 60)
        >>> editor.drag_to(130, 90)
        >>> editor.end_drag()
    """

    def __init__(
        self,
        fields: Optional[Iterable[TemplateField]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        """Initialize TemplateEditor.

        Args:
            fields: Existing fields to edit.
            id_factory: Issues ids for new fields. Defaults to an IdFactory
                seeded with the existing ids.
        """
        self._fields: list[TemplateField] = list(fields or [])
        self._id_factory = id_factory or IdFactory(issued=(f.id for f in self._fields))
        self._drag: Optional[_PointerGesture] = None
        self._resize: Optional[_PointerGesture] = None

    @property
    def fields(self) -> list[TemplateField]:
        """Current fields in placement order."""
        return list(self._fields)

    def fields_on_page(self, page: int) -> list[TemplateField]:
        """Fields placed on a 1-based page."""
        return [f for f in self._fields if f.page == page]

    def get(self, field_id: str) -> TemplateField:
        """Find a field by id.

        Raises:
            KeyError: If no field has this id.
        """
        for template_field in self._fields:
            if template_field.id == field_id:
                return template_field
        raise KeyError(f"No field with id {field_id!r}")

    def place(
        self,
        variable: str,
        x: float,
        y: float,
        page: int,
        viewport_width: float,
        viewport_height: float,
    ) -> TemplateField:
        """Place a default-sized field box with its top-left corner at (x, y).

        Args:
            variable: Placeholder token.
            x: Left edge in viewport pixels.
            y: Top edge in viewport pixels.
            page: 1-based page index.
            viewport_width: Current pixel width of the rendered page.
            viewport_height: Current pixel height of the rendered page.

        Returns:
            The new field.

        Raises:
            FieldGeometryError: If the viewport size is not positive.
        """
        if not variable:
            raise FieldGeometryError("Cannot place a field without a variable")
        if field_kind_for(variable) is FieldKind.IMAGE:
            width, height = DEFAULT_IMAGE_FIELD_SIZE
        else:
            width, height = DEFAULT_TEXT_FIELD_SIZE

        template_field = TemplateField(
            id=self._id_factory(),
            page=page,
            x=x,
            y=y,
            variable=variable,
            viewport_width=viewport_width,
            viewport_height=viewport_height,
            width=width,
            height=height,
        )
        self._fields.append(template_field)
        logger.debug("Placed %s on page %d at (%.1f, %.1f)", variable, page, x, y)
        return template_field

    def remove(self, field_id: str) -> bool:
        """Remove a field. Returns False if no field had this id."""
        before = len(self._fields)
        self._fields = [f for f in self._fields if f.id != field_id]
        return len(self._fields) != before

    def begin_drag(self, field_id: str, pointer_x: float, pointer_y: float) -> None:
        """Start moving a field with the pointer at (pointer_x, pointer_y)."""
        template_field = self.get(field_id)
        self._drag = _PointerGesture(
            field_id, pointer_x, pointer_y, template_field.x, template_field.y
        )

    def drag_to(self, pointer_x: float, pointer_y: float) -> Optional[TemplateField]:
        """Move the dragged field by the pointer's travel since begin_drag.

        The box's top-left corner stays within the viewport, leaving room for
        a minimum-size box.

        Returns:
            The moved field, or None if no drag is in progress.
        """
        if self._drag is None:
            return None
        template_field = self.get(self._drag.field_id)
        x = self._drag.origin_x + (pointer_x - self._drag.start_x)
        y = self._drag.origin_y + (pointer_y - self._drag.start_y)
        template_field.x = _clamp(x, 0, max(0, template_field.viewport_width - MIN_FIELD_WIDTH))
        template_field.y = _clamp(
            y, 0, max(0, template_field.viewport_height - MIN_FIELD_HEIGHT)
        )
        return template_field

    def end_drag(self) -> None:
        """Finish the current move or resize gesture."""
        self._drag = None
        self._resize = None

    def begin_resize(self, field_id: str, pointer_x: float, pointer_y: float) -> None:
        """Start resizing a field from its corner handle."""
        template_field = self.get(field_id)
        width, height = field_size(template_field)
        self._resize = _PointerGesture(field_id, pointer_x, pointer_y, width, height)

    def resize_to(self, pointer_x: float, pointer_y: float) -> Optional[TemplateField]:
        """Resize the field by the pointer's travel since begin_resize.

        Returns:
            The resized field, or None if no resize is in progress.
        """
        if self._resize is None:
            return None
        template_field = self.get(self._resize.field_id)
        template_field.width, template_field.height = _clamp_size(
            self._resize.origin_x + (pointer_x - self._resize.start_x),
            self._resize.origin_y + (pointer_y - self._resize.start_y),
        )
        return template_field

    def nudge(self, field_id: str, grow: bool) -> TemplateField:
        """Grow or shrink a field by one step, keeping its aspect ratio."""
        template_field = self.get(field_id)
        step = GROW_FACTOR if grow else SHRINK_FACTOR
        width, height = field_size(template_field)
        template_field.width, template_field.height = _clamp_size(
            width * step, height * step
        )
        return template_field
