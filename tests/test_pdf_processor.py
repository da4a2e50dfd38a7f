# SPDX-License-Identifier: Apache-2.0
"""Tests for PDF processor module."""

from pathlib import Path

import pypdfium2 as pdfium
import pytest

from contract_pdf.core import BBox, PDFProcessor
from contract_pdf.core.images import decode_image
from contract_pdf.core.pdf_processor import DocumentLoadError


def _page_text(pdf_bytes: bytes, page_index: int = 0) -> str:
    doc = pdfium.PdfDocument(pdf_bytes)
    try:
        page = doc[page_index]
        return page.get_textpage().get_text_range()
    finally:
        doc.close()


def _image_count(pdf_bytes: bytes, page_index: int = 0) -> int:
    doc = pdfium.PdfDocument(pdf_bytes)
    try:
        page = doc[page_index]
        return len(list(page.get_objects(filter=[pdfium.raw.FPDF_PAGEOBJ_IMAGE])))
    finally:
        doc.close()


class TestLoading:
    """Tests for opening base documents."""

    def test_open_from_bytes(self, a4_pdf: bytes) -> None:
        """Test page count and native size."""
        with PDFProcessor(a4_pdf) as processor:
            assert processor.page_count == 1
            assert processor.page_size(0) == pytest.approx((595.0, 842.0))

    def test_open_from_path(self, tmp_path: Path, make_pdf) -> None:
        path = tmp_path / "base.pdf"
        path.write_bytes(make_pdf((300.0, 400.0), (595.0, 842.0)))
        with PDFProcessor(path) as processor:
            assert processor.page_count == 2
            assert processor.page_size(0) == pytest.approx((300.0, 400.0))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            PDFProcessor(tmp_path / "missing.pdf")

    def test_empty_data(self) -> None:
        with pytest.raises(DocumentLoadError):
            PDFProcessor(b"")

    def test_corrupt_data(self) -> None:
        """Bytes that are not a PDF are rejected."""
        with pytest.raises(DocumentLoadError):
            PDFProcessor(b"this is not a pdf document at all")

    def test_wrong_type(self) -> None:
        with pytest.raises(TypeError):
            PDFProcessor(123)  # type: ignore[arg-type]

    def test_page_out_of_range(self, a4_pdf: bytes) -> None:
        with PDFProcessor(a4_pdf) as processor:
            with pytest.raises(IndexError):
                processor.page_size(1)

    def test_closed_processor(self, a4_pdf: bytes) -> None:
        processor = PDFProcessor(a4_pdf)
        processor.close()
        with pytest.raises(RuntimeError):
            _ = processor.page_count


class TestFonts:
    """Tests for font loading."""

    def test_standard_font(self, a4_pdf: bytes) -> None:
        with PDFProcessor(a4_pdf) as processor:
            handle = processor.load_standard_font("Helvetica")
            assert handle
            assert processor.load_standard_font("Helvetica") is handle

    def test_truetype_font(self, a4_pdf: bytes, font_bytes: bytes) -> None:
        with PDFProcessor(a4_pdf) as processor:
            handle = processor.load_font(font_bytes, key="box")
            assert handle
            assert processor.load_font(font_bytes, key="box") is handle

    def test_empty_font_data(self, a4_pdf: bytes) -> None:
        with PDFProcessor(a4_pdf) as processor:
            assert processor.load_font(b"", key="empty") is None


class TestEditing:
    """Tests for text, image and page insertion."""

    def test_insert_text(self, a4_pdf: bytes) -> None:
        """Inserted text is extractable from the output."""
        with PDFProcessor(a4_pdf) as processor:
            font = processor.load_standard_font()
            assert processor.insert_text(0, "Hello", 72.0, 700.0, font, 11.0)
            output = processor.to_bytes()
        assert "Hello" in _page_text(output)

    def test_insert_text_bad_page(self, a4_pdf: bytes) -> None:
        with PDFProcessor(a4_pdf) as processor:
            font = processor.load_standard_font()
            with pytest.raises(IndexError):
                processor.insert_text(3, "Hello", 72.0, 700.0, font, 11.0)

    @pytest.mark.parametrize("fixture_name", ["png_bytes", "jpeg_bytes"])
    def test_insert_image(
        self, a4_pdf: bytes, fixture_name: str, request: pytest.FixtureRequest
    ) -> None:
        image = decode_image(request.getfixturevalue(fixture_name))
        with PDFProcessor(a4_pdf) as processor:
            processor.insert_image(0, image, BBox(100.0, 100.0, 200.0, 150.0))
            output = processor.to_bytes()
        assert _image_count(output) == 1

    def test_new_page(self, a4_pdf: bytes) -> None:
        with PDFProcessor(a4_pdf) as processor:
            index = processor.new_page(595.0, 842.0)
            assert index == 1
            assert processor.page_count == 2
            output = processor.to_bytes()
        with PDFProcessor(output) as reopened:
            assert reopened.page_count == 2


class TestSerialization:
    """Tests for output bytes."""

    def test_deterministic_output(self, a4_pdf: bytes) -> None:
        """The same edits on the same input give the same bytes."""

        def render() -> bytes:
            with PDFProcessor(a4_pdf) as processor:
                font = processor.load_standard_font()
                processor.insert_text(0, "Same", 72.0, 700.0, font, 11.0)
                return processor.to_bytes()

        assert render() == render()

    def test_save(self, a4_pdf: bytes, tmp_path: Path) -> None:
        output_path = tmp_path / "nested" / "out.pdf"
        with PDFProcessor(a4_pdf) as processor:
            processor.save(output_path)
        assert output_path.read_bytes().startswith(b"%PDF")
