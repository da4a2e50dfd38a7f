# SPDX-License-Identifier: Apache-2.0
"""Document assembly pipeline package."""

from .assembler import (
    AssemblerConfig,
    DocumentAssembler,
    GenerationJob,
    GenerationResult,
)
from .diagnostics import FieldOutcome, FieldStatus, GenerationReport, SupplementaryOutcome
from .errors import (
    BaseDocumentCorrupt,
    FieldResolutionMiss,
    FontUnavailable,
    ImageDecodeFailure,
    PipelineError,
    SupplementaryPageFailure,
    TemplateIntegrityError,
)
from .progress import GenerationStage, ProgressCallback

__all__ = [
    "AssemblerConfig",
    "BaseDocumentCorrupt",
    "DocumentAssembler",
    "FieldOutcome",
    "FieldResolutionMiss",
    "FieldStatus",
    "FontUnavailable",
    "GenerationJob",
    "GenerationReport",
    "GenerationResult",
    "GenerationStage",
    "ImageDecodeFailure",
    "PipelineError",
    "ProgressCallback",
    "SupplementaryOutcome",
    "SupplementaryPageFailure",
    "TemplateIntegrityError",
]
