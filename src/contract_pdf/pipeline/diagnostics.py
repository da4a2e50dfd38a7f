# SPDX-License-Identifier: Apache-2.0
"""Per-run diagnostics for document generation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from contract_pdf.fonts.base import FontAttempt
from contract_pdf.pipeline.errors import PipelineError


class FieldStatus(str, Enum):
    """What happened to one template field."""

    RENDERED = "rendered"
    EMPTY = "empty"  # value present but blank
    MISS = "miss"  # no value matched the placeholder
    IMAGE_FAILED = "image_failed"
    RENDER_FAILED = "render_failed"
    PAGE_OUT_OF_RANGE = "page_out_of_range"


@dataclass
class FieldOutcome:
    """Diagnostic entry for one field."""

    field_id: str
    variable: str
    page: int
    status: FieldStatus
    source: Optional[str] = None
    error: Optional[PipelineError] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "field_id": self.field_id,
            "variable": self.variable,
            "page": self.page,
            "status": self.status.value,
            "source": self.source,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class SupplementaryOutcome:
    """Diagnostic entry for one supplementary document."""

    index: int
    label: str
    page: Optional[int] = None  # 1-based page in the output, None if skipped
    error: Optional[PipelineError] = None

    @property
    def appended(self) -> bool:
        """Whether a page was added for this document."""
        return self.page is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "index": self.index,
            "label": self.label,
            "page": self.page,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class GenerationReport:
    """Everything notable about one generation.

    Attributes:
        fields: One outcome per template field, in template order
        supplementary: One outcome per supplementary document
        font_source: Source of the embedded font, or the fallback font name
        font_fallback: Whether the standard fallback font was used
        font_attempts: Failed font sources, in the order they were tried
        base_page_count: Pages in the base document
        page_count: Pages in the output
    """

    fields: list[FieldOutcome] = field(default_factory=list)
    supplementary: list[SupplementaryOutcome] = field(default_factory=list)
    font_source: Optional[str] = None
    font_fallback: bool = False
    font_attempts: list[FontAttempt] = field(default_factory=list)
    base_page_count: int = 0
    page_count: int = 0

    def _with_status(self, status: FieldStatus) -> list[FieldOutcome]:
        return [o for o in self.fields if o.status is status]

    @property
    def rendered(self) -> list[FieldOutcome]:
        return self._with_status(FieldStatus.RENDERED)

    @property
    def misses(self) -> list[FieldOutcome]:
        return self._with_status(FieldStatus.MISS)

    @property
    def empties(self) -> list[FieldOutcome]:
        return self._with_status(FieldStatus.EMPTY)

    @property
    def failures(self) -> list[FieldOutcome]:
        """Fields that had a value but could not be drawn."""
        return [
            o
            for o in self.fields
            if o.status
            in (
                FieldStatus.IMAGE_FAILED,
                FieldStatus.RENDER_FAILED,
                FieldStatus.PAGE_OUT_OF_RANGE,
            )
        ]

    def outcome_for(self, field_id: str) -> Optional[FieldOutcome]:
        """Find the outcome of a field by id."""
        for outcome in self.fields:
            if outcome.field_id == field_id:
                return outcome
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "fields": [o.to_dict() for o in self.fields],
            "supplementary": [o.to_dict() for o in self.supplementary],
            "font_source": self.font_source,
            "font_fallback": self.font_fallback,
            "font_attempts": [str(a) for a in self.font_attempts],
            "base_page_count": self.base_page_count,
            "page_count": self.page_count,
        }

    def summary(self) -> str:
        """One-line human readable summary."""
        appended = sum(1 for o in self.supplementary if o.appended)
        return (
            f"{len(self.rendered)}/{len(self.fields)} fields rendered "
            f"({len(self.empties)} empty, {len(self.misses)} unmatched, "
            f"{len(self.failures)} failed); "
            f"{appended} supplementary pages; font: {self.font_source}"
        )
