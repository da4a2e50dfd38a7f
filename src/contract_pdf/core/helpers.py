# SPDX-License-Identifier: Apache-2.0
"""Conversion helpers for payloads and pypdfium2's raw PDFium API."""

from __future__ import annotations

import base64
import binascii
import ctypes
from typing import Union


def to_widestring(text: str) -> ctypes.Array:
    """Convert a Python string to FPDF_WIDESTRING (UTF-16LE + null terminator).

    Example:
        >>> ws = to_widestring("Hello")
        >>> # ws can now be passed to FPDFText_SetText
    """
    encoded = text.encode("utf-16-le") + b"\x00\x00"
    return (ctypes.c_ushort * (len(encoded) // 2)).from_buffer_copy(encoded)


def to_byte_array(data: bytes) -> ctypes.Array:
    """Copy bytes into a ctypes unsigned-byte array.

    PDFium keeps a pointer to font data after FPDFText_LoadFont, so the
    caller must keep the returned array alive as long as the document.
    """
    return (ctypes.c_ubyte * len(data)).from_buffer_copy(data)


def decode_payload(value: Union[bytes, bytearray, str]) -> bytes:
    """Decode a stored binary payload.

    Accepts raw bytes, a ``data:<mime>;base64,`` URL or a bare base64 string.

    Raises:
        ValueError: If a string payload is not valid base64.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise TypeError(f"Unsupported payload type: {type(value).__name__}")

    text = value.strip()
    if text.startswith("data:") and "," in text:
        text = text.split(",", 1)[1]
    try:
        return base64.b64decode(text, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Payload is not valid base64: {exc}") from exc
