# SPDX-License-Identifier: Apache-2.0
"""Font source implementations.

Sources fetch raw font bytes and report failure with FontSourceError. They do
not judge whether the bytes are complete; the cascade applies the size check
so every source is held to the same threshold.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import quote

import aiohttp

from contract_pdf.core.helpers import decode_payload
from contract_pdf.fonts.base import FontSourceError, FontStore

logger = logging.getLogger(__name__)

# Conventional install location; no font file is distributed here
DEFAULT_EMBEDDED_FONT_PATH = Path(__file__).parent / "data" / "Cairo-Regular.ttf"


class EmbeddedFontSource:
    """Font bundled with the application, as a file or in-memory bytes."""

    def __init__(
        self,
        path: Optional[Path] = DEFAULT_EMBEDDED_FONT_PATH,
        data: Optional[bytes] = None,
        name: str = "embedded",
    ) -> None:
        """Initialize EmbeddedFontSource.

        Args:
            path: Font file path. Ignored when data is given.
            data: Font bytes held in memory.
            name: Source name used in diagnostics.
        """
        self._path = Path(path) if path is not None else None
        self._data = data
        self._name = name

    @property
    def name(self) -> str:
        """Return source name."""
        return self._name

    async def fetch(self) -> bytes:
        if self._data is not None:
            if not self._data:
                raise FontSourceError("not found")
            return self._data
        if self._path is None or not self._path.is_file():
            raise FontSourceError("not found")
        try:
            return await asyncio.to_thread(self._path.read_bytes)
        except OSError as e:
            raise FontSourceError(f"error ({e})") from e


class RemoteStoreFontSource:
    """Fonts kept in a remote store, tried by name in order."""

    def __init__(
        self,
        store: FontStore,
        font_names: Sequence[str] = ("Cairo-Regular", "Amiri-Regular"),
        name: str = "remote_store",
    ) -> None:
        """Initialize RemoteStoreFontSource.

        Args:
            store: Store client.
            font_names: Font names to look up; the first non-empty entry wins.
            name: Source name used in diagnostics.
        """
        self._store = store
        self._font_names = tuple(font_names)
        self._name = name

    @property
    def name(self) -> str:
        """Return source name."""
        return self._name

    async def fetch(self) -> bytes:
        for font_name in self._font_names:
            payload = await self._store.get_font(font_name)
            if not payload:
                logger.debug("Font store has no %s", font_name)
                continue
            try:
                data = decode_payload(payload)
            except (TypeError, ValueError) as e:
                raise FontSourceError(f"error ({font_name}: {e})") from e
            if data:
                logger.debug("Font store returned %s (%d bytes)", font_name, len(data))
                return data
        raise FontSourceError("not found")


class _SessionMixin:
    """Use a caller-owned aiohttp session, or a short-lived one per request."""

    _session: Optional[aiohttp.ClientSession]

    async def _request(self, url: str) -> tuple[int, bytes]:
        if self._session is not None:
            return await self._get(self._session, url)
        async with aiohttp.ClientSession() as session:
            return await self._get(session, url)

    @staticmethod
    async def _get(session: aiohttp.ClientSession, url: str) -> tuple[int, bytes]:
        try:
            async with session.get(url) as response:
                if response.status == 200:
                    return response.status, await response.read()
                return response.status, b""
        except aiohttp.ClientError as e:
            raise FontSourceError(f"error ({e})") from e


class UrlFontSource(_SessionMixin):
    """A font file downloaded from one URL (typically a CDN)."""

    def __init__(
        self,
        url: str,
        session: Optional[aiohttp.ClientSession] = None,
        name: Optional[str] = None,
    ) -> None:
        """Initialize UrlFontSource.

        Args:
            url: Font file URL.
            session: Shared session. A new session is opened per fetch if None.
            name: Source name used in diagnostics (default: the URL).
        """
        self._url = url
        self._session = session
        self._name = name or url

    @property
    def name(self) -> str:
        """Return source name."""
        return self._name

    @property
    def url(self) -> str:
        """Font file URL."""
        return self._url

    async def fetch(self) -> bytes:
        status, body = await self._request(self._url)
        if status != 200:
            raise FontSourceError(f"HTTP {status}")
        return body


class HttpFontStore(_SessionMixin):
    """FontStore reading base64 font payloads from ``<base_url>/<name>``.

    A 404 means the store has no such font. Other non-200 statuses are
    failures of the store itself.
    """

    def __init__(
        self, base_url: str, session: Optional[aiohttp.ClientSession] = None
    ) -> None:
        """Initialize HttpFontStore.

        Args:
            base_url: Store endpoint prefix.
            session: Shared session. A new session is opened per request if None.
        """
        self._base_url = base_url.rstrip("/")
        self._session = session

    async def get_font(self, name: str) -> str | bytes | None:
        status, body = await self._request(f"{self._base_url}/{quote(name)}")
        if status == 404:
            return None
        if status != 200:
            raise FontSourceError(f"HTTP {status}")
        text = body.decode("ascii", errors="ignore").strip()
        return text or None
