# SPDX-License-Identifier: Apache-2.0
"""Font acquisition.

Usage:
    from contract_pdf.fonts import FontCache, build_default_cascade
    cascade = build_default_cascade(cache=FontCache())
    font = await cascade.acquire()
"""

from contract_pdf.fonts.base import (
    AcquiredFont,
    FontAttempt,
    FontError,
    FontSource,
    FontSourceError,
    FontStore,
    FontUnavailableError,
)
from contract_pdf.fonts.cascade import (
    DEFAULT_FONT_CDN_URLS,
    FontCache,
    FontCascade,
    FontCascadeConfig,
    build_default_cascade,
)
from contract_pdf.fonts.sources import (
    EmbeddedFontSource,
    HttpFontStore,
    RemoteStoreFontSource,
    UrlFontSource,
)

__all__ = [
    # Protocols and exceptions
    "FontError",
    "FontSource",
    "FontSourceError",
    "FontStore",
    "FontUnavailableError",
    # Results
    "AcquiredFont",
    "FontAttempt",
    # Cascade
    "DEFAULT_FONT_CDN_URLS",
    "FontCache",
    "FontCascade",
    "FontCascadeConfig",
    "build_default_cascade",
    # Sources
    "EmbeddedFontSource",
    "HttpFontStore",
    "RemoteStoreFontSource",
    "UrlFontSource",
]
