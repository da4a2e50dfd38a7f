# SPDX-License-Identifier: Apache-2.0
"""Pipeline error definitions.

BaseDocumentCorrupt, TemplateIntegrityError and FontUnavailable abort a
generation. The remaining errors describe one field or one supplementary page
and are recorded in the GenerationReport while generation continues.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    def __init__(
        self,
        message: str,
        stage: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.cause = cause

    @property
    def message(self) -> str:
        """Message without the stage prefix."""
        return str(self.args[0]) if self.args else ""

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


class BaseDocumentCorrupt(PipelineError):
    """The template's base document cannot be parsed or has no pages."""


class TemplateIntegrityError(PipelineError):
    """A template field's stored geometry is unusable."""


class FontUnavailable(PipelineError):
    """Not even the standard fallback font could be loaded."""


class FieldResolutionMiss(PipelineError):
    """No value matched a field's placeholder."""


class ImageDecodeFailure(PipelineError):
    """An image value could not be decoded or embedded."""


class SupplementaryPageFailure(PipelineError):
    """A supplementary document could not be appended."""
