# SPDX-License-Identifier: Apache-2.0
"""Shared fixtures: generated PDFs, images and fonts."""

from __future__ import annotations

import io
import struct
import zlib
from typing import Callable

import pypdfium2 as pdfium
import pytest
from PIL import Image


def make_pdf_bytes(*sizes: tuple[float, float]) -> bytes:
    """Create a PDF with one blank page per (width, height)."""
    pdf = pdfium.PdfDocument.new()
    try:
        for width, height in sizes or ((595.0, 842.0),):
            pdf.new_page(width, height)
        buffer = io.BytesIO()
        pdf.save(buffer)
        return buffer.getvalue()
    finally:
        pdf.close()


def make_image_bytes(
    width: int = 40, height: int = 20, image_format: str = "PNG", color: str = "red"
) -> bytes:
    """Create an encoded solid-color image."""
    mode = "RGB" if image_format == "JPEG" else "RGBA"
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


def make_broken_png_bytes(width: int = 64, height: int = 64) -> bytes:
    """PNG whose image data is split in two with the second chunk type mangled.

    The header parses, so the file opens, and decoding fails partway through.
    """
    source = Image.effect_noise((width, height), 64).convert("RGB")
    buffer = io.BytesIO()
    source.save(buffer, format="PNG")
    data = buffer.getvalue()

    def chunk(kind: bytes, body: bytes) -> bytes:
        crc = zlib.crc32(kind + body) & 0xFFFFFFFF
        return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", crc)

    out = [data[:8]]
    pos = 8
    while pos < len(data):
        (length,) = struct.unpack(">I", data[pos : pos + 4])
        kind = data[pos + 4 : pos + 8]
        body = data[pos + 8 : pos + 8 + length]
        pos += 12 + length
        if kind == b"IDAT":
            half = len(body) // 2
            out.append(chunk(b"IDAT", body[:half]))
            out.append(chunk(b"I\x00AT", body[half:]))
        else:
            out.append(chunk(kind, body))
    return b"".join(out)


def make_font_bytes(chars: str = "abcdefghijklmnopqrstuvwxyz0123456789 ") -> bytes:
    """Build a small TrueType font with a box glyph for each character."""
    from fontTools.fontBuilder import FontBuilder
    from fontTools.pens.ttGlyphPen import TTGlyphPen

    names = [".notdef"] + [f"uni{ord(c):04X}" for c in chars]

    def box_glyph():  # type: ignore[no-untyped-def]
        pen = TTGlyphPen(None)
        pen.moveTo((100, 0))
        pen.lineTo((100, 700))
        pen.lineTo((500, 700))
        pen.lineTo((500, 0))
        pen.closePath()
        return pen.glyph()

    builder = FontBuilder(1000, isTTF=True)
    builder.setupGlyphOrder(names)
    builder.setupCharacterMap({ord(c): f"uni{ord(c):04X}" for c in chars})
    builder.setupGlyf({name: box_glyph() for name in names})
    builder.setupHorizontalMetrics({name: (600, 100) for name in names})
    builder.setupHorizontalHeader(ascent=800, descent=-200)
    builder.setupNameTable({"familyName": "BoxTest", "styleName": "Regular"})
    builder.setupOS2(sTypoAscender=800, usWinAscent=800, usWinDescent=200)
    builder.setupPost()

    buffer = io.BytesIO()
    builder.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def a4_pdf() -> bytes:
    """Single A4 page."""
    return make_pdf_bytes((595.0, 842.0))


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    """Factory for PDFs with given page sizes."""
    return make_pdf_bytes


@pytest.fixture
def png_bytes() -> bytes:
    """40x20 PNG."""
    return make_image_bytes(40, 20, "PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    """40x20 JPEG."""
    return make_image_bytes(40, 20, "JPEG")


@pytest.fixture
def font_bytes() -> bytes:
    """Small generated TrueType font."""
    return make_font_bytes()
