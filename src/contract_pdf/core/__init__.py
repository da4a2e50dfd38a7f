# SPDX-License-Identifier: Apache-2.0
"""Core template and PDF processing modules."""

from .authoring import IdFactory, TemplateEditor, VariableOption, available_variables
from .coordinates import MappedBox, map_field
from .font_subsetter import FontSubsetter, SubsetConfig
from .images import DecodedImage, ImageDecodeError, ImageRole, decode_image
from .models import (
    BBox,
    DataRecord,
    FieldDefinition,
    FieldGeometryError,
    FieldKind,
    ResolvedValue,
    Template,
    TemplateField,
)
from .pdf_processor import DocumentLoadError, PDFProcessor
from .preview import PagePreview, PageRasterizer
from .resolver import (
    ArabicDateFormatter,
    DateFormatter,
    IsoDateFormatter,
    Resolution,
    ResolutionStatus,
    SemanticField,
    VariableResolver,
    normalize_token,
)
from .shaper import ScriptShaper
from .text_layout import TextLayoutEngine, TextPlacement

__all__ = [
    "ArabicDateFormatter",
    "BBox",
    "DataRecord",
    "DateFormatter",
    "DecodedImage",
    "DocumentLoadError",
    "FieldDefinition",
    "FieldGeometryError",
    "FieldKind",
    "FontSubsetter",
    "IdFactory",
    "ImageDecodeError",
    "ImageRole",
    "IsoDateFormatter",
    "MappedBox",
    "PagePreview",
    "PageRasterizer",
    "PDFProcessor",
    "Resolution",
    "ResolutionStatus",
    "ResolvedValue",
    "ScriptShaper",
    "SemanticField",
    "SubsetConfig",
    "Template",
    "TemplateEditor",
    "TemplateField",
    "TextLayoutEngine",
    "TextPlacement",
    "VariableOption",
    "VariableResolver",
    "available_variables",
    "decode_image",
    "map_field",
    "normalize_token",
]
