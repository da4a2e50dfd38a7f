# SPDX-License-Identifier: Apache-2.0
"""Data models for document templates and the records that fill them.

A template is a base PDF plus a list of field placements captured on a
rendered preview of that PDF. Field geometry is stored in viewport pixel
space together with the viewport size at capture time, so it can be mapped
onto the native page size of any destination page later.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

SCHEMA_VERSION = "1.0.0"

# Default box sizes (viewport pixels) for fields saved without a size
DEFAULT_TEXT_FIELD_SIZE: tuple[float, float] = (160.0, 28.0)
DEFAULT_IMAGE_FIELD_SIZE: tuple[float, float] = (120.0, 60.0)

# An image attribute is raw bytes, or a base64 string / data URL
ImagePayload = Union[bytes, str]


class FieldGeometryError(ValueError):
    """A field's stored geometry cannot be mapped onto a page."""


class FieldKind(str, Enum):
    """Kind of value a field renders."""

    TEXT = "text"
    IMAGE = "image"


@dataclass
class BBox:
    """Bounding box in PDF coordinate system (origin at bottom-left).

    Attributes:
        x0: Left X coordinate
        y0: Bottom Y coordinate
        x1: Right X coordinate
        y1: Top Y coordinate
    """

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        """Width of the bounding box."""
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        """Height of the bounding box."""
        return self.y1 - self.y0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"x0": self.x0, "y0": self.y0, "x1": self.x1, "y1": self.y1}


def _first_key(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _optional_size(value: Any) -> Optional[float]:
    # Legacy templates store 0 or nothing for boxes placed before sizes existed
    if value in (None, "", 0):
        return None
    return float(value)


@dataclass
class TemplateField:
    """One data-bound placement on a template page.

    Attributes:
        id: Identity assigned at creation, never reused
        page: 1-based page index in the base document
        x: Left edge in viewport pixels at capture time
        y: Top edge in viewport pixels at capture time (Y grows downward)
        variable: Placeholder token, e.g. "{اسم_الطالب}"
        viewport_width: Width of the rendered page when the field was placed
        viewport_height: Height of the rendered page when the field was placed
        width: Box width in viewport pixels (None for legacy fields)
        height: Box height in viewport pixels (None for legacy fields)
    """

    id: str
    page: int
    x: float
    y: float
    variable: str
    viewport_width: float
    viewport_height: float
    width: Optional[float] = None
    height: Optional[float] = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check that the field can be mapped onto a destination page.

        Raises:
            FieldGeometryError: If the capture-time viewport size is missing
                or not positive, a stored box size is not positive, or the
                page index is below 1.
        """
        for name in ("viewport_width", "viewport_height"):
            value = getattr(self, name)
            if value is None or float(value) <= 0:
                raise FieldGeometryError(
                    f"Field {self.id!r} ({self.variable}) has no valid {name}: {value!r}"
                )
        if self.page < 1:
            raise FieldGeometryError(
                f"Field {self.id!r} ({self.variable}) has invalid page {self.page}"
            )
        for name in ("width", "height"):
            value = getattr(self, name)
            if value is not None and float(value) <= 0:
                raise FieldGeometryError(
                    f"Field {self.id!r} ({self.variable}) has non-positive {name}: {value!r}"
                )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored template JSON shape."""
        data: dict[str, Any] = {
            "id": self.id,
            "page": self.page,
            "x": self.x,
            "y": self.y,
            "variable": self.variable,
            "viewportWidth": self.viewport_width,
            "viewportHeight": self.viewport_height,
        }
        if self.width is not None:
            data["width"] = self.width
        if self.height is not None:
            data["height"] = self.height
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_id: str = "") -> TemplateField:
        """Create from stored template JSON (camelCase or snake_case keys).

        Raises:
            FieldGeometryError: If the viewport size is missing or the stored
                geometry is invalid.
        """
        field_id = _first_key(data, "id")
        viewport_width = _first_key(data, "viewportWidth", "viewport_width")
        viewport_height = _first_key(data, "viewportHeight", "viewport_height")
        variable = str(data.get("variable", ""))
        if viewport_width is None or viewport_height is None:
            raise FieldGeometryError(
                f"Field {field_id or default_id!r} ({variable}) was stored "
                "without its capture-time viewport size"
            )
        return cls(
            id=str(field_id) if field_id is not None else default_id,
            page=int(data.get("page", 1)),
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            variable=variable,
            viewport_width=float(viewport_width),
            viewport_height=float(viewport_height),
            width=_optional_size(data.get("width")),
            height=_optional_size(data.get("height")),
        )


@dataclass
class Template:
    """A base document plus its field placements.

    Attributes:
        title: Descriptive title
        pdf_bytes: Base document bytes
        fields: Ordered field placements
    """

    title: str
    pdf_bytes: bytes
    fields: list[TemplateField] = field(default_factory=list)

    def validate(self) -> None:
        """Validate every field's geometry.

        Raises:
            FieldGeometryError: On the first invalid field.
        """
        for template_field in self.fields:
            template_field.validate()

    def to_dict(self, include_pdf: bool = True) -> dict[str, Any]:
        """Convert to the stored template JSON shape."""
        data: dict[str, Any] = {
            "schema_version": SCHEMA_VERSION,
            "title": self.title,
            "pdfFields": [f.to_dict() for f in self.fields],
        }
        if include_pdf:
            encoded = base64.b64encode(self.pdf_bytes).decode("ascii")
            data["pdfData"] = f"data:application/pdf;base64,{encoded}"
        return data

    def to_json(self, indent: int = 2, include_pdf: bool = True) -> str:
        """Serialize to JSON string."""
        return json.dumps(
            self.to_dict(include_pdf=include_pdf), ensure_ascii=False, indent=indent
        )

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], pdf_bytes: Optional[bytes] = None
    ) -> Template:
        """Create from stored template JSON.

        Args:
            data: Template dictionary. Fields are read from "pdfFields"
                (or "fields"); the base document from "pdfData" unless
                pdf_bytes is given.
            pdf_bytes: Base document bytes overriding "pdfData"

        Raises:
            ValueError: If no base document is available.
            FieldGeometryError: If a field lacks its viewport size.
        """
        from .helpers import decode_payload

        if pdf_bytes is None:
            raw = data.get("pdfData")
            if not raw:
                raise ValueError("Template has no base document (pdfData)")
            pdf_bytes = decode_payload(raw)

        raw_fields = _first_key(data, "pdfFields", "fields") or []
        fields = [
            TemplateField.from_dict(item, default_id=f"field-{index}")
            for index, item in enumerate(raw_fields)
        ]
        return cls(title=str(data.get("title", "")), pdf_bytes=pdf_bytes, fields=fields)

    @classmethod
    def from_json(cls, json_str: str, pdf_bytes: Optional[bytes] = None) -> Template:
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str), pdf_bytes=pdf_bytes)


@dataclass(frozen=True)
class FieldDefinition:
    """Operator-configured custom attribute: record key and display label."""

    id: str
    label: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FieldDefinition:
        """Create from dictionary."""
        return cls(id=str(data["id"]), label=str(data.get("label", "")))


# Original record keys (camelCase) and the attribute names used here
RECORD_ATTRIBUTE_KEYS: dict[str, str] = {
    "studentName": "student_name",
    "parentName": "parent_name",
    "studentTrack": "student_track",
    "studentGrade": "student_grade",
    "studentLevel": "student_level",
    "contractYear": "contract_year",
    "parentEmail": "parent_email",
    "nationalId": "national_id",
    "parentNationalId": "parent_national_id",
    "parentWhatsapp": "parent_whatsapp",
    "address": "address",
    "nationality": "nationality",
}

RECORD_IMAGE_KEYS: dict[str, str] = {
    "signature": "signature",
    "signatureData": "signature",
    "idImage": "identity",
    "idCardImage": "identity",
    "uploadedFile": "identity",
    "identity": "identity",
}


@dataclass
class DataRecord:
    """The record whose attributes fill template fields.

    Attributes:
        attributes: Flat named scalar attributes
        custom_fields: Free-form custom attributes keyed by definition id or label
        images: Named image attributes ("signature", "identity")
        supplementary_documents: Scanned documents appended as extra pages
    """

    attributes: dict[str, Any] = field(default_factory=dict)
    custom_fields: dict[str, Any] = field(default_factory=dict)
    images: dict[str, ImagePayload] = field(default_factory=dict)
    supplementary_documents: list[ImagePayload] = field(default_factory=list)

    @property
    def identity_image(self) -> Optional[ImagePayload]:
        """Primary identity document image, if any."""
        return self.images.get("identity") or None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DataRecord:
        """Create from a stored record (camelCase keys accepted)."""
        attributes: dict[str, Any] = {}
        images: dict[str, ImagePayload] = {}
        custom_fields = dict(_first_key(data, "customFields", "custom_fields") or {})
        supplementary = list(
            _first_key(data, "extraDocs", "supplementary_documents") or []
        )

        for key, value in data.items():
            if key in ("customFields", "custom_fields", "extraDocs", "supplementary_documents"):
                continue
            if key in RECORD_IMAGE_KEYS:
                # First non-empty payload wins for each image slot
                if value and RECORD_IMAGE_KEYS[key] not in images:
                    images[RECORD_IMAGE_KEYS[key]] = value
                continue
            if key == "images" and isinstance(value, dict):
                for name, payload in value.items():
                    if payload:
                        images.setdefault(name, payload)
                continue
            if key == "attributes" and isinstance(value, dict):
                attributes.update(value)
                continue
            if isinstance(value, (dict, list)):
                continue
            attributes[RECORD_ATTRIBUTE_KEYS.get(key, key)] = value

        return cls(
            attributes=attributes,
            custom_fields=custom_fields,
            images=images,
            supplementary_documents=[doc for doc in supplementary if doc],
        )


@dataclass
class ResolvedValue:
    """A value ready for rendering, tagged by field kind."""

    kind: FieldKind
    text: Optional[str] = None
    image: Optional[ImagePayload] = None

    @property
    def is_image(self) -> bool:
        """Whether this value renders as an image."""
        return self.kind is FieldKind.IMAGE

    @classmethod
    def of_text(cls, text: str) -> ResolvedValue:
        """Create a text value."""
        return cls(kind=FieldKind.TEXT, text=text)

    @classmethod
    def of_image(cls, payload: ImagePayload) -> ResolvedValue:
        """Create an image value."""
        return cls(kind=FieldKind.IMAGE, image=payload)
