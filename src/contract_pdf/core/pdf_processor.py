# SPDX-License-Identifier: Apache-2.0
"""PDF manipulation using pypdfium2.

This module opens a base document, inserts text and image objects at page
coordinates, appends pages and serializes the result. Serialization goes
through pikepdf so that the document ID is derived from content and identical
input produces identical bytes.
"""

from __future__ import annotations

import ctypes
import logging
from io import BytesIO
from pathlib import Path
from typing import Any, Optional, Union

import pikepdf  # type: ignore[import-untyped]
import pypdfium2 as pdfium  # type: ignore[import-untyped]

from .helpers import to_byte_array, to_widestring
from .images import DecodedImage, ImageDecodeError
from .models import BBox

logger = logging.getLogger(__name__)

# Font guaranteed to be available in every PDF viewer
FALLBACK_FONT_NAME = "Helvetica"


class DocumentLoadError(ValueError):
    """The base document cannot be opened as a PDF."""


class PDFProcessor:
    """PDF processor using pypdfium2.

    Example:
        >>> with PDFProcessor(pdf_bytes) as processor:
        ...     font = processor.load_standard_font("Helvetica")
        ...     processor.insert_text(0, "Hello", 72, 700, font, 11.0)
        ...     output = processor.to_bytes()
    """

    def __init__(self, pdf_source: Union[Path, str, bytes]) -> None:
        """Initialize the PDF processor.

        Args:
            pdf_source: Path to PDF file or PDF bytes

        Raises:
            TypeError: If pdf_source is not Path, str, or bytes
            FileNotFoundError: If the file path doesn't exist
            DocumentLoadError: If the PDF cannot be loaded or has no pages
        """
        self._pdf: Optional[pdfium.PdfDocument] = None
        self._loaded_fonts: dict[str, Any] = {}  # key -> font handle
        self._loaded_font_buffers: dict[str, ctypes.Array[Any]] = {}  # keep buffers alive

        if isinstance(pdf_source, (str, Path)):
            path = Path(pdf_source)
            if not path.exists():
                raise FileNotFoundError(f"PDF file not found: {path}")
            data = path.read_bytes()
        elif isinstance(pdf_source, (bytes, bytearray)):
            data = bytes(pdf_source)
        else:
            raise TypeError(
                f"pdf_source must be Path, str, or bytes, got {type(pdf_source).__name__}"
            )

        if not data:
            raise DocumentLoadError("PDF data is empty")
        try:
            self._pdf = pdfium.PdfDocument(data)
        except pdfium.PdfiumError as exc:
            raise DocumentLoadError(f"Cannot open PDF: {exc}") from exc
        if len(self._pdf) == 0:
            self.close()
            raise DocumentLoadError("PDF has no pages")

    def __enter__(self) -> PDFProcessor:
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the PDF document and release resources."""
        if self._pdf is not None:
            self._pdf.close()
            self._pdf = None
        # Font buffers must outlive the document that references them
        self._loaded_fonts.clear()
        self._loaded_font_buffers.clear()

    @property
    def page_count(self) -> int:
        """Get the number of pages in the document."""
        return len(self._ensure_open())

    def _ensure_open(self) -> pdfium.PdfDocument:
        """Ensure PDF document is open and return it."""
        if self._pdf is None:
            raise RuntimeError("PDF document is not open")
        return self._pdf

    def _get_page(self, page_index: int) -> pdfium.PdfPage:
        pdf = self._ensure_open()
        if page_index < 0 or page_index >= len(pdf):
            raise IndexError(f"Page number {page_index} out of range")
        return pdf[page_index]

    def page_size(self, page_index: int) -> tuple[float, float]:
        """Get the native (width, height) of a page in PDF units.

        Args:
            page_index: Page number (0-indexed)

        Raises:
            IndexError: If page_index is out of range
        """
        page = self._get_page(page_index)
        width, height = page.get_size()
        return float(width), float(height)

    def load_font(self, font_data: bytes, key: str = "custom") -> Optional[Any]:
        """Load a TrueType font from bytes for text insertion.

        Always loads as CID font so that any Unicode text can be set.

        Args:
            font_data: TTF/OTF font bytes
            key: Cache key for this font within the document

        Returns:
            Font handle or None if PDFium rejected the data
        """
        if key in self._loaded_fonts:
            return self._loaded_fonts[key]
        if not font_data:
            return None

        font_arr = to_byte_array(font_data)
        pdf = self._ensure_open()
        font_handle = pdfium.raw.FPDFText_LoadFont(
            pdf.raw,
            font_arr,
            ctypes.c_uint(len(font_data)),
            ctypes.c_int(pdfium.raw.FPDF_FONT_TRUETYPE),
            ctypes.c_int(1),  # CID mode
        )

        if font_handle:
            self._loaded_font_buffers[key] = font_arr
            self._loaded_fonts[key] = font_handle
            return font_handle
        logger.warning("PDFium rejected font data for %r (%d bytes)", key, len(font_data))
        return None

    def load_standard_font(self, font_name: str = FALLBACK_FONT_NAME) -> Optional[Any]:
        """Load a standard PDF font.

        Args:
            font_name: Standard font name (e.g., "Helvetica", "Times-Roman")

        Returns:
            Font handle or None if loading failed
        """
        if font_name in self._loaded_fonts:
            return self._loaded_fonts[font_name]

        pdf = self._ensure_open()
        font_handle = pdfium.raw.FPDFText_LoadStandardFont(
            pdf.raw, font_name.encode("utf-8")
        )

        if font_handle:
            self._loaded_fonts[font_name] = font_handle
            return font_handle
        return None

    def insert_text(
        self,
        page_index: int,
        text: str,
        x: float,
        baseline: float,
        font_handle: Any,
        font_size: float,
        color: tuple[int, int, int] = (0, 0, 0),
    ) -> bool:
        """Insert a single line of text with its origin at (x, baseline).

        Args:
            page_index: Page number (0-indexed)
            text: Text content to insert
            x: Origin X in page space
            baseline: Baseline Y in page space
            font_handle: PDFium font handle
            font_size: Font size in points
            color: RGB fill color

        Returns:
            True if the text object was inserted

        Raises:
            IndexError: If page_index is out of range
        """
        page = self._get_page(page_index)
        pdf = self._ensure_open()

        text_obj = pdfium.raw.FPDFPageObj_CreateTextObj(
            pdf.raw, font_handle, ctypes.c_float(font_size)
        )
        if not text_obj:
            return False

        if not pdfium.raw.FPDFText_SetText(text_obj, to_widestring(text)):
            pdfium.raw.FPDFPageObj_Destroy(text_obj)
            return False

        r, g, b = color
        pdfium.raw.FPDFPageObj_SetFillColor(text_obj, r, g, b, 255)
        pdfium.raw.FPDFPageObj_Transform(
            text_obj,
            ctypes.c_double(1.0),
            ctypes.c_double(0.0),
            ctypes.c_double(0.0),
            ctypes.c_double(1.0),
            ctypes.c_double(x),
            ctypes.c_double(baseline),
        )

        pdfium.raw.FPDFPage_InsertObject(page.raw, text_obj)
        page.gen_content()
        return True

    def insert_image(self, page_index: int, image: DecodedImage, bbox: BBox) -> None:
        """Insert an image stretched to a rectangle.

        Args:
            page_index: Page number (0-indexed)
            image: Decoded image
            bbox: Drawing rectangle in page space

        Raises:
            IndexError: If page_index is out of range
            ImageDecodeError: If PDFium cannot embed the image
        """
        page = self._get_page(page_index)
        pdf = self._ensure_open()

        image_obj = pdfium.PdfImage.new(pdf)
        try:
            if image.passthrough:
                image_obj.load_jpeg(BytesIO(image.data), pages=[page], inline=True)
            else:
                bitmap = pdfium.PdfBitmap.from_pil(image.pil_image)
                image_obj.set_bitmap(bitmap, pages=[page])
                bitmap.close()
        except pdfium.PdfiumError as exc:
            image_obj.close()
            raise ImageDecodeError(f"Cannot embed {image.format.value} image: {exc}") from exc

        matrix = pdfium.PdfMatrix().scale(bbox.width, bbox.height).translate(bbox.x0, bbox.y0)
        image_obj.set_matrix(matrix)
        page.insert_obj(image_obj)
        page.gen_content()

    def new_page(self, width: float, height: float) -> int:
        """Append a blank page.

        Returns:
            Index of the new page
        """
        pdf = self._ensure_open()
        pdf.new_page(width, height)
        return len(pdf) - 1

    def to_bytes(self) -> bytes:
        """Export the PDF as bytes with a content-derived document ID."""
        buffer = BytesIO()
        self._ensure_open().save(buffer)

        with pikepdf.open(BytesIO(buffer.getvalue())) as pdf:
            output = BytesIO()
            pdf.save(output, deterministic_id=True)
            return output.getvalue()

    def save(self, output_path: Union[Path, str]) -> None:
        """Save the PDF to a file.

        Args:
            output_path: Output file path
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_bytes())
