# SPDX-License-Identifier: Apache-2.0
"""Image payload decoding and fit calculations.

Payloads arrive as raw bytes or base64 / data URL strings. The format is
detected from the payload's magic bytes, never from a name or MIME prefix,
since stored data URLs are not reliable about their declared type.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from PIL import Image

from .coordinates import MappedBox
from .helpers import decode_payload
from .models import BBox, ImagePayload

logger = logging.getLogger(__name__)

# Share of the field box an image may occupy
FIT_RATIO = 0.9

# Minimum fit areas (points) for roles whose boxes are often drawn too small
STAMP_MIN_SIZE: tuple[float, float] = (85.0, 85.0)
IDENTITY_MIN_SIZE: tuple[float, float] = (200.0, 140.0)


class ImageDecodeError(ValueError):
    """An image payload could not be decoded."""


class ImageFormat(str, Enum):
    """Raster formats accepted for embedding."""

    PNG = "png"
    JPEG = "jpeg"
    GIF = "gif"
    WEBP = "webp"
    BMP = "bmp"


class ImageRole(str, Enum):
    """What an image field shows; decides minimum fit sizes."""

    SIGNATURE = "signature"
    STAMP = "stamp"
    IDENTITY = "identity"
    OTHER = "other"


def sniff_image_format(data: bytes) -> Optional[ImageFormat]:
    """Detect the raster format from magic bytes."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return ImageFormat.PNG
    if data.startswith(b"\xff\xd8\xff"):
        return ImageFormat.JPEG
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return ImageFormat.GIF
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ImageFormat.WEBP
    if data.startswith(b"BM"):
        return ImageFormat.BMP
    return None


@dataclass
class DecodedImage:
    """A decoded image ready for embedding.

    Attributes:
        data: Original encoded bytes
        format: Detected format
        width: Pixel width
        height: Pixel height
        pil_image: Decoded pixels (None for JPEG, which is embedded as-is)
    """

    data: bytes
    format: ImageFormat
    width: int
    height: int
    pil_image: Optional[Any] = None

    @property
    def passthrough(self) -> bool:
        """Whether the encoded bytes can be embedded without re-encoding."""
        return self.format is ImageFormat.JPEG


def _pdf_compatible(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "RGBA", "L"):
        return image
    if image.mode in ("LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    ):
        return image.convert("RGBA")
    return image.convert("RGB")


def decode_image(payload: ImagePayload) -> DecodedImage:
    """Decode an image payload.

    Args:
        payload: Raw bytes, data URL or base64 string.

    Returns:
        DecodedImage with pixel size.

    Raises:
        ImageDecodeError: If the payload is empty, not a supported format,
            or cannot be decoded.
    """
    try:
        data = decode_payload(payload)
    except (TypeError, ValueError) as exc:
        raise ImageDecodeError(f"Unreadable image payload: {exc}") from exc
    if not data:
        raise ImageDecodeError("Empty image payload")

    image_format = sniff_image_format(data)
    if image_format is None:
        raise ImageDecodeError(
            f"Unsupported image format (leading bytes {data[:8].hex()})"
        )

    try:
        with Image.open(io.BytesIO(data)) as opened:
            opened.load()
            width, height = opened.size
            pil_image = None
            if image_format is not ImageFormat.JPEG:
                pil_image = _pdf_compatible(opened.copy())
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageDecodeError(f"Cannot decode {image_format.value} image: {exc}") from exc

    if width <= 0 or height <= 0:
        raise ImageDecodeError(f"Image has no pixels ({width}x{height})")

    return DecodedImage(
        data=data,
        format=image_format,
        width=width,
        height=height,
        pil_image=pil_image,
    )


def scale_to_fit(
    width: float, height: float, max_width: float, max_height: float
) -> tuple[float, float]:
    """Scale a size to fit inside a bound, preserving aspect ratio.

    Scales up as well as down.
    """
    scale = min(max_width / width, max_height / height)
    return width * scale, height * scale


def fit_image_in_box(
    image_width: float,
    image_height: float,
    box: MappedBox,
    role: ImageRole = ImageRole.OTHER,
    fit_ratio: float = FIT_RATIO,
) -> BBox:
    """Compute where an image is drawn inside a field box.

    The image is fitted into a fraction of the box (enlarged to the role's
    minimum size for stamps and identity documents) and centered on the box
    on both axes.

    Args:
        image_width: Pixel width of the image.
        image_height: Pixel height of the image.
        box: Field box in page space.
        role: Image role.
        fit_ratio: Share of the box the image may occupy.

    Returns:
        Drawing rectangle in page space.
    """
    fit_w = box.width * fit_ratio
    fit_h = box.height * fit_ratio
    if role is ImageRole.STAMP:
        fit_w, fit_h = max(fit_w, STAMP_MIN_SIZE[0]), max(fit_h, STAMP_MIN_SIZE[1])
    elif role is ImageRole.IDENTITY:
        fit_w, fit_h = max(fit_w, IDENTITY_MIN_SIZE[0]), max(fit_h, IDENTITY_MIN_SIZE[1])

    draw_w, draw_h = scale_to_fit(image_width, image_height, fit_w, fit_h)
    x0 = box.x + (box.width - draw_w) / 2
    y0 = box.top - draw_h - (box.height - draw_h) / 2
    return BBox(x0=x0, y0=y0, x1=x0 + draw_w, y1=y0 + draw_h)


def fit_image_on_page(
    image_width: float,
    image_height: float,
    page_width: float,
    page_height: float,
    max_width: float,
    max_height: float,
) -> BBox:
    """Fit an image within a bound and center it on a page."""
    draw_w, draw_h = scale_to_fit(image_width, image_height, max_width, max_height)
    x0 = (page_width - draw_w) / 2
    y0 = (page_height - draw_h) / 2
    return BBox(x0=x0, y0=y0, x1=x0 + draw_w, y1=y0 + draw_h)
