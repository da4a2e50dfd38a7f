# SPDX-License-Identifier: Apache-2.0
"""Font subsetting using fonttools.

Arabic fonts such as Cairo or Amiri carry several hundred kilobytes of
glyphs. Subsetting to the characters a document actually draws keeps the
generated contract small. Subsets are built in memory and cached by the hash
of the source font and the character set.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

# Digits and punctuation commonly typed into form values
SAFETY_MARGIN_CHARS = "0123456789\u0660\u0661\u0662\u0663\u0664\u0665\u0666\u0667\u0668\u0669/-.,:()\u060c\u061b\u061f@+\u200f "


@dataclass
class SubsetConfig:
    """Font subsetting configuration."""

    include_common_punctuation: bool = True
    max_cache_entries: int = 32


class FontSubsetter:
    """Font subsetter using fonttools.

    Example:
        subsetter = FontSubsetter()
        subset = subsetter.subset_for_texts(font_bytes, ["أحمد علي"])
        # subset is None when subsetting was not possible
    """

    def __init__(self, config: SubsetConfig | None = None) -> None:
        """Initialize the font subsetter.

        Args:
            config: Subsetting configuration. Uses defaults if None.
        """
        self._config = config or SubsetConfig()
        self._cache: dict[str, bytes] = {}

    def subset_for_texts(self, font_data: bytes, texts: Iterable[str]) -> Optional[bytes]:
        """Create a subset font containing only characters used in texts.

        Args:
            font_data: TTF/OTF font bytes.
            texts: Texts the font will draw (already shaped).

        Returns:
            Subset font bytes, or None if subsetting failed.
        """
        from fontTools.subset import Options, Subsetter  # type: ignore[import-untyped]
        from fontTools.ttLib import TTFont  # type: ignore[import-untyped]

        chars: set[str] = set()
        for text in texts:
            if text:
                chars.update(text)

        if not chars:
            return None

        if self._config.include_common_punctuation:
            chars.update(SAFETY_MARGIN_CHARS)

        cache_key = self._get_cache_key(font_data, chars)
        if cache_key in self._cache:
            return self._cache[cache_key]

        try:
            font = TTFont(BytesIO(font_data), recalcTimestamp=False)

            options = Options()
            options.layout_features = ["*"]
            options.name_IDs = ["*"]
            options.notdef_glyph = True
            options.notdef_outline = True

            subsetter = Subsetter(options=options)
            subsetter.populate(text="".join(sorted(chars)))
            subsetter.subset(font)

            output = BytesIO()
            font.save(output)
            font.close()
        except Exception as e:
            logger.warning("Font subsetting failed: %s", e)
            return None

        subset = output.getvalue()
        if len(self._cache) >= self._config.max_cache_entries:
            self._cache.pop(next(iter(self._cache)))
        self._cache[cache_key] = subset
        logger.debug(
            "Created subset font: %d chars, %d -> %d bytes",
            len(chars),
            len(font_data),
            len(subset),
        )
        return subset

    def _get_cache_key(self, font_data: bytes, chars: set[str]) -> str:
        """Generate cache key from font content and character set."""
        digest = hashlib.sha256(font_data)
        digest.update("".join(sorted(chars)).encode("utf-8"))
        return digest.hexdigest()[:16]

    def clear(self) -> None:
        """Drop cached subsets."""
        self._cache.clear()
