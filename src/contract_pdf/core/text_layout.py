# SPDX-License-Identifier: Apache-2.0
"""Single-line placement of field text inside a mapped box.

Text is drawn at a fixed reference size. It is centered horizontally when it
fits; text wider than the overflow ratio of the box is pinned to the box's
trailing edge with a small inset instead, so the end of the value stays
inside the box. Vertically the baseline sits at the box's middle, lowered by
a fixed offset.
"""

from __future__ import annotations

import ctypes
from dataclasses import dataclass

import pypdfium2 as pdfium  # type: ignore[import-untyped]

from .coordinates import MappedBox

REFERENCE_FONT_SIZE = 11.0
OVERFLOW_RATIO = 0.9
TRAILING_INSET = 5.0
BASELINE_OFFSET = 3.0


@dataclass(frozen=True)
class TextPlacement:
    """Where to draw one line of text.

    Attributes:
        x: Origin X of the text
        baseline: Baseline Y of the text
        font_size: Font size in points
        width: Measured text width in points
        overflows: Whether the text was pinned to the trailing edge
    """

    x: float
    baseline: float
    font_size: float
    width: float
    overflows: bool


class TextLayoutEngine:
    """Measure text with PDFium font metrics and place it in a box."""

    def __init__(
        self,
        font_size: float = REFERENCE_FONT_SIZE,
        overflow_ratio: float = OVERFLOW_RATIO,
        trailing_inset: float = TRAILING_INSET,
        baseline_offset: float = BASELINE_OFFSET,
    ) -> None:
        """Initialize TextLayoutEngine.

        Args:
            font_size: Reference font size in points.
            overflow_ratio: Fraction of the box width above which text is
                pinned to the trailing edge instead of centered.
            trailing_inset: Gap between pinned text and the box edge.
            baseline_offset: Distance the baseline sits below the box middle.
        """
        self._font_size = font_size
        self._overflow_ratio = overflow_ratio
        self._trailing_inset = trailing_inset
        self._baseline_offset = baseline_offset

    @property
    def font_size(self) -> float:
        """Reference font size in points."""
        return self._font_size

    def calculate_text_width(
        self,
        text: str,
        font_handle: ctypes.c_void_p,
        font_size: float,
    ) -> float:
        """Calculate the width of text using font metrics.

        Args:
            text: Text to measure.
            font_handle: PDFium font handle (FPDF_FONT).
            font_size: Font size in points.

        Returns:
            Total width in points.
        """
        if not text:
            return 0.0

        total_width = 0.0
        width_out = ctypes.c_float()

        for char in text:
            result = pdfium.raw.FPDFFont_GetGlyphWidth(
                font_handle,
                ord(char),
                ctypes.c_float(font_size),
                ctypes.byref(width_out),
            )
            if result:
                total_width += width_out.value

        return total_width

    def place(self, text_width: float, box: MappedBox) -> TextPlacement:
        """Place text of a known width inside a box.

        Args:
            text_width: Width of the text at the reference size.
            box: Destination box in page space.

        Returns:
            TextPlacement for the text.
        """
        overflows = text_width > box.width * self._overflow_ratio
        if overflows:
            x = box.x + box.width - text_width - self._trailing_inset
        else:
            x = box.x + (box.width - text_width) / 2
        baseline = box.top - box.height / 2 - self._baseline_offset
        return TextPlacement(
            x=x,
            baseline=baseline,
            font_size=self._font_size,
            width=text_width,
            overflows=overflows,
        )

    def layout(
        self, text: str, box: MappedBox, font_handle: ctypes.c_void_p
    ) -> TextPlacement:
        """Measure text with the given font and place it inside a box."""
        width = self.calculate_text_width(text, font_handle, self._font_size)
        return self.place(width, box)
