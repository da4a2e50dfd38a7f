# SPDX-License-Identifier: Apache-2.0
"""Progress callback protocol for document generation."""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable


class GenerationStage(str, Enum):
    """Stages of one generation, in execution order."""

    LOAD_BASE = "load_base"
    ACQUIRE_FONT = "acquire_font"
    FIELDS = "fields"
    SUPPLEMENTARY = "supplementary"
    SERIALIZE = "serialize"


@runtime_checkable
class ProgressCallback(Protocol):
    """Progress callback protocol."""

    def __call__(
        self,
        stage: str,
        current: int,
        total: int,
        message: str = "",
    ) -> None: ...
