# SPDX-License-Identifier: Apache-2.0
"""Contextual shaping for Arabic-script text.

Arabic letters take different joined forms depending on their neighbours.
PDF text insertion places glyphs for the code points it is given, so text is
converted to the Arabic presentation forms before layout.

The shaped text stays in logical order. It is not reversed to visual order;
output has to stay compatible with documents produced by the existing
renderer, which draws logical-order presentation forms.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

import arabic_reshaper  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Arabic, Arabic Supplement, Arabic Extended-A
ARABIC_PATTERN = re.compile(r"[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF]")

Reshape = Callable[[str], str]


def contains_arabic(text: str) -> bool:
    """Check whether text contains characters that need shaping."""
    return bool(ARABIC_PATTERN.search(text))


class ScriptShaper:
    """Prepare display text for PDF layout."""

    def __init__(self, reshape: Optional[Reshape] = arabic_reshaper.reshape) -> None:
        """Initialize ScriptShaper.

        Args:
            reshape: Reshaping function. None disables shaping, so Arabic
                text is passed through unshaped.
        """
        self._reshape = reshape

    @property
    def enabled(self) -> bool:
        """Whether a reshaping function is configured."""
        return self._reshape is not None

    def shape(self, text: str) -> str:
        """Shape text for layout.

        Args:
            text: Resolved display text.

        Returns:
            Trimmed text, reshaped when it contains Arabic characters.
            On any reshaping failure the unshaped text is returned.
        """
        if not text:
            return ""
        value = str(text).strip()
        if not contains_arabic(value):
            return value
        if self._reshape is None:
            logger.warning("Arabic shaping unavailable; drawing unshaped text")
            return value
        try:
            return self._reshape(value)
        except Exception as exc:
            logger.warning("Arabic shaping failed (%s); drawing unshaped text", exc)
            return value
