# SPDX-License-Identifier: Apache-2.0
"""Raster previews of template pages.

Template fields are placed on a rendered page image. The pixel size of that
image is the viewport size recorded on every field placed on it.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import pypdfium2 as pdfium  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Render scale used by the template editor
DEFAULT_PREVIEW_SCALE = 1.5


@dataclass
class PagePreview:
    """A rendered page.

    Attributes:
        image_bytes: PNG data
        width: Pixel width (the viewport width for fields placed on it)
        height: Pixel height (the viewport height for fields placed on it)
        page: 1-based page index that was rendered
        page_count: Number of pages in the document
        page_width: Native page width in PDF units
        page_height: Native page height in PDF units
    """

    image_bytes: bytes
    width: int
    height: int
    page: int
    page_count: int
    page_width: float = 0.0
    page_height: float = 0.0


class PageRasterizer:
    """Render template pages for field placement."""

    def __init__(self, scale: float = DEFAULT_PREVIEW_SCALE) -> None:
        """Initialize PageRasterizer.

        Args:
            scale: Pixels per PDF unit.
        """
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self._scale = scale

    def render(
        self, pdf_bytes: bytes, page: int = 1, scale: float | None = None
    ) -> PagePreview:
        """Render one page to PNG.

        Args:
            pdf_bytes: Document bytes.
            page: 1-based page index. Clamped to the document's page range.
            scale: Pixels per PDF unit, overriding the configured scale.

        Returns:
            PagePreview with the rendered image.

        Raises:
            ValueError: If the document cannot be opened or has no pages.
        """
        try:
            doc = pdfium.PdfDocument(pdf_bytes)
        except pdfium.PdfiumError as exc:
            raise ValueError(f"Cannot open PDF: {exc}") from exc

        try:
            page_count = len(doc)
            if page_count == 0:
                raise ValueError("PDF has no pages")

            page_number = min(max(page, 1), page_count)
            pdf_page = doc[page_number - 1]
            page_width, page_height = pdf_page.get_size()

            bitmap = pdf_page.render(scale=scale or self._scale)
            pil_image = bitmap.to_pil()

            buffer = io.BytesIO()
            pil_image.save(buffer, format="PNG")
            logger.debug(
                "Rendered page %d/%d at %dx%d",
                page_number,
                page_count,
                pil_image.width,
                pil_image.height,
            )
            return PagePreview(
                image_bytes=buffer.getvalue(),
                width=pil_image.width,
                height=pil_image.height,
                page=page_number,
                page_count=page_count,
                page_width=float(page_width),
                page_height=float(page_height),
            )
        finally:
            doc.close()
