# SPDX-License-Identifier: Apache-2.0
"""Ranked font acquisition with a populate-once cache.

Sources are tried strictly in order. A font is accepted only when its byte
length exceeds a threshold, since a truncated download or a placeholder in the
store still looks like a font to a quick check but fails to embed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

import aiohttp

from contract_pdf.fonts.base import (
    AcquiredFont,
    FontAttempt,
    FontSource,
    FontSourceError,
    FontStore,
    FontUnavailableError,
)
from contract_pdf.fonts.sources import (
    DEFAULT_EMBEDDED_FONT_PATH,
    EmbeddedFontSource,
    RemoteStoreFontSource,
    UrlFontSource,
)

logger = logging.getLogger(__name__)

# Minimum byte length for a font to be accepted from any source
MIN_FONT_BYTES = 100_000

# Cached fonts shorter than this are treated as corrupt and dropped
CACHE_FLOOR_BYTES = 50_000

DEFAULT_STORE_FONT_NAMES: tuple[str, ...] = ("Cairo-Regular", "Amiri-Regular")

DEFAULT_FONT_CDN_URLS: tuple[str, ...] = (
    "https://cdn.jsdelivr.net/gh/googlefonts/cairo@master/fonts/ttf/Cairo-Regular.ttf",
    "https://fonts.gstatic.com/s/amiri/v27/J7aRnpd8CGxBHqUpvrIw74NL.ttf",
    "https://cdn.jsdelivr.net/gh/aliftype/amiri@master/Amiri-Regular.ttf",
)


@dataclass
class FontCascadeConfig:
    """Configuration for the default font cascade.

    Attributes:
        min_font_bytes: A font must be longer than this to be accepted.
        cache_floor_bytes: Cached fonts shorter than this are invalidated.
        attempt_timeout: Seconds allowed for each source.
        embedded_path: Bundled font file.
        store_font_names: Names looked up in the remote store, in order.
        cdn_urls: Font URLs tried in order.
        retry_embedded: Try the bundled font again after every remote source.
    """

    min_font_bytes: int = MIN_FONT_BYTES
    cache_floor_bytes: int = CACHE_FLOOR_BYTES
    attempt_timeout: float = 15.0
    embedded_path: Optional[Path] = DEFAULT_EMBEDDED_FONT_PATH
    store_font_names: tuple[str, ...] = DEFAULT_STORE_FONT_NAMES
    cdn_urls: tuple[str, ...] = DEFAULT_FONT_CDN_URLS
    retry_embedded: bool = True


class FontCache:
    """Process-wide holder for the acquired font.

    Populated at most once at a time: concurrent callers of populate() wait
    for the acquisition already in flight instead of starting their own.
    """

    def __init__(self, floor_bytes: int = CACHE_FLOOR_BYTES) -> None:
        """Initialize FontCache.

        Args:
            floor_bytes: Cached fonts shorter than this are invalidated.
        """
        self._floor_bytes = floor_bytes
        self._font: Optional[AcquiredFont] = None
        self._lock = asyncio.Lock()

    def get(self) -> Optional[AcquiredFont]:
        """Return the cached font, or None if empty or below the floor."""
        if self._font is not None and self._font.size < self._floor_bytes:
            logger.warning(
                "Dropping cached font from %s: %d bytes is below %d",
                self._font.source,
                self._font.size,
                self._floor_bytes,
            )
            self._font = None
        return self._font

    def invalidate(self) -> None:
        """Forget the cached font."""
        self._font = None

    async def populate(
        self, factory: Callable[[], Awaitable[AcquiredFont]]
    ) -> AcquiredFont:
        """Return the cached font, acquiring it with factory if needed.

        The cache is written only after factory returns; if it raises or is
        cancelled the cache is left as it was.
        """
        cached = self.get()
        if cached is not None:
            return cached
        async with self._lock:
            cached = self.get()
            if cached is not None:
                return cached
            font = await factory()
            if font.size >= self._floor_bytes:
                self._font = font
            return font


class FontCascade:
    """Try font sources in order until one yields a complete font.

    Example:
        >>> cascade = build_default_cascade(cache=FontCache())
        >>> font = await cascade.acquire()
        >>> font.source
        'embedded'
    """

    def __init__(
        self,
        sources: Sequence[FontSource],
        min_font_bytes: int = MIN_FONT_BYTES,
        attempt_timeout: float = 15.0,
        cache: Optional[FontCache] = None,
    ) -> None:
        """Initialize FontCascade.

        Args:
            sources: Sources in priority order.
            min_font_bytes: A font must be longer than this to be accepted.
            attempt_timeout: Seconds allowed for each source.
            cache: Shared cache. Without one every call hits the sources.
        """
        self._sources = list(sources)
        self._min_font_bytes = min_font_bytes
        self._attempt_timeout = attempt_timeout
        self._cache = cache
        self._attempts: list[FontAttempt] = []

    @property
    def sources(self) -> list[FontSource]:
        """Sources in priority order."""
        return list(self._sources)

    @property
    def attempts(self) -> list[FontAttempt]:
        """Failed attempts of the most recent uncached acquisition."""
        return list(self._attempts)

    @property
    def cache(self) -> Optional[FontCache]:
        """The shared cache, if any."""
        return self._cache

    async def acquire(self) -> AcquiredFont:
        """Return a complete font.

        Raises:
            FontUnavailableError: If every source failed.
        """
        if self._cache is not None:
            return await self._cache.populate(self._acquire_uncached)
        return await self._acquire_uncached()

    async def _acquire_uncached(self) -> AcquiredFont:
        attempts: list[FontAttempt] = []
        self._attempts = attempts

        for source in self._sources:
            outcome = await self._try_source(source)
            if isinstance(outcome, bytes):
                logger.info("Font acquired from %s (%d bytes)", source.name, len(outcome))
                return AcquiredFont(data=outcome, source=source.name)
            logger.debug("Font source %s failed: %s", source.name, outcome)
            attempts.append(FontAttempt(source=source.name, reason=outcome))

        error = FontUnavailableError(attempts)
        logger.warning("%s", error)
        raise error

    async def _try_source(self, source: FontSource) -> bytes | str:
        """Return font bytes on success, or the failure reason."""
        try:
            data = await asyncio.wait_for(source.fetch(), timeout=self._attempt_timeout)
        except asyncio.TimeoutError:
            return "timeout"
        except FontSourceError as e:
            return e.reason
        except Exception as e:
            return f"error ({e})"

        if len(data) <= self._min_font_bytes:
            return f"size too small ({len(data)} bytes)"
        return data


def build_default_cascade(
    config: Optional[FontCascadeConfig] = None,
    cache: Optional[FontCache] = None,
    store: Optional[FontStore] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> FontCascade:
    """Assemble the standard cascade.

    Order: bundled font, remote store (when given), CDN URLs, bundled font
    again.

    Args:
        config: Cascade configuration.
        cache: Shared font cache.
        store: Remote font store client.
        session: Shared HTTP session for CDN downloads.

    Returns:
        Configured FontCascade.
    """
    config = config or FontCascadeConfig()
    sources: list[FontSource] = [EmbeddedFontSource(config.embedded_path, name="embedded")]
    if store is not None:
        sources.append(RemoteStoreFontSource(store, config.store_font_names))
    for url in config.cdn_urls:
        sources.append(UrlFontSource(url, session=session))
    if config.retry_embedded:
        sources.append(EmbeddedFontSource(config.embedded_path, name="embedded_retry"))

    return FontCascade(
        sources,
        min_font_bytes=config.min_font_bytes,
        attempt_timeout=config.attempt_timeout,
        cache=cache,
    )
