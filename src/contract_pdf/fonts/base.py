# SPDX-License-Identifier: Apache-2.0
"""Base classes and protocols for font sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable


class FontError(Exception):
    """Base exception for font module."""

    pass


class FontSourceError(FontError):
    """One font source could not supply a usable font.

    This error type is recoverable: the cascade moves on to the next source.

    Attributes:
        reason: Short diagnostic ("HTTP 404", "not found", "timeout", ...).
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class FontUnavailableError(FontError):
    """Every source in the cascade failed.

    Attributes:
        attempts: One entry per source tried, in order.
    """

    def __init__(self, attempts: Sequence[FontAttempt]) -> None:
        self.attempts = list(attempts)
        detail = "; ".join(str(a) for a in self.attempts) or "no sources configured"
        super().__init__(f"No font source succeeded: {detail}")


@dataclass(frozen=True)
class FontAttempt:
    """Diagnostic record of one failed source."""

    source: str
    reason: str

    def __str__(self) -> str:
        return f"{self.source}: {self.reason}"


@dataclass(frozen=True)
class AcquiredFont:
    """Font bytes and the source that supplied them."""

    data: bytes
    source: str

    @property
    def size(self) -> int:
        """Length of the font data in bytes."""
        return len(self.data)


@runtime_checkable
class FontSource(Protocol):
    """Protocol definition for font sources.

    All source implementations must conform to this protocol.
    """

    @property
    def name(self) -> str:
        """Source name used in diagnostics."""
        ...

    async def fetch(self) -> bytes:
        """Fetch font bytes.

        Returns:
            Raw TTF/OTF bytes.

        Raises:
            FontSourceError: If the source has no font to offer.
        """
        ...


@runtime_checkable
class FontStore(Protocol):
    """A remote key-value store holding fonts as base64 text or bytes."""

    async def get_font(self, name: str) -> str | bytes | None:
        """Return the stored font, or None if the store has no such font."""
        ...
