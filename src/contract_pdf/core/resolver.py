# SPDX-License-Identifier: Apache-2.0
"""Placeholder resolution against data records.

A placeholder token such as ``{رقم_هوية_ولي_الأمر}`` is normalized and looked
up in an ordered alias table of built-in semantic fields. Tokens that are not
built in are matched against operator-defined custom fields, first through
their definitions' labels and then directly against the record's custom keys.

Resolution distinguishes a value that is explicitly blank (EMPTY) from a token
nothing matched (MISS). Both skip rendering, but diagnostics keep them apart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence, runtime_checkable

from .models import DataRecord, FieldDefinition, FieldKind, ImagePayload, ResolvedValue

logger = logging.getLogger(__name__)

# Characters removed from placeholder tokens before matching
TOKEN_DELIMITERS = "{}[]"
TOKEN_SEPARATORS = " _"

_STRIP_TABLE = str.maketrans("", "", TOKEN_DELIMITERS + TOKEN_SEPARATORS)


def normalize_token(token: Any) -> str:
    """Normalize a placeholder token or label for matching.

    Removes delimiters, spaces and underscores and lower-cases the rest.
    Lower-casing leaves caseless scripts such as Arabic unchanged.
    """
    if token is None:
        return ""
    return str(token).translate(_STRIP_TABLE).lower()


class SemanticField(str, Enum):
    """Built-in attributes a placeholder can refer to."""

    STUDENT_NAME = "student_name"
    PARENT_NAME = "parent_name"
    TRACK = "track"
    GRADE = "grade"
    LEVEL = "level"
    ACADEMIC_YEAR = "academic_year"
    EMAIL = "email"
    STUDENT_NATIONAL_ID = "student_national_id"
    PARENT_NATIONAL_ID = "parent_national_id"
    PARENT_PHONE = "parent_phone"
    ADDRESS = "address"
    NATIONALITY = "nationality"
    CURRENT_DATE = "current_date"
    CURRENT_WEEKDAY = "current_weekday"
    SIGNATURE = "signature"
    STAMP = "stamp"
    IDENTITY_IMAGE = "identity_image"

    @property
    def is_image(self) -> bool:
        """Whether placeholders for this field render an image."""
        return self in IMAGE_FIELDS

    @property
    def is_computed(self) -> bool:
        """Whether the value is computed rather than read from the record."""
        return self in (SemanticField.CURRENT_DATE, SemanticField.CURRENT_WEEKDAY)


IMAGE_FIELDS: frozenset[SemanticField] = frozenset(
    {SemanticField.SIGNATURE, SemanticField.STAMP, SemanticField.IDENTITY_IMAGE}
)

# Ordered alias table (normalized spellings). First match wins when a
# spelling is listed for more than one field.
ALIAS_TABLE: tuple[tuple[SemanticField, tuple[str, ...]], ...] = (
    (SemanticField.STUDENT_NAME, ("اسمالطالب", "اسمالطالبه", "studentname")),
    (SemanticField.PARENT_NAME, ("اسموليالامر", "اسموليالأمر", "الأب", "parentname")),
    (SemanticField.TRACK, ("المسار", "المسارالتعليمي", "track", "studenttrack")),
    (SemanticField.GRADE, ("الصف", "الصفالدراسي", "grade", "studentgrade")),
    (
        SemanticField.LEVEL,
        (
            "المرحلة",
            "المرحله",
            "المرحلةالدراسية",
            "المرحلهالدراسيه",
            "مرحلة",
            "level",
            "studentlevel",
        ),
    ),
    (
        SemanticField.ACADEMIC_YEAR,
        ("السنةالدراسية", "السنهالدراسيه", "academicyear", "contractyear"),
    ),
    (SemanticField.EMAIL, ("البريدالالكتروني", "الايميل", "email", "parentemail")),
    (
        SemanticField.STUDENT_NATIONAL_ID,
        (
            "هويةالطالب",
            "رقمهويةالطالب",
            "الرقمالقومي",
            "رقمهوية",
            "رقمالهوية",
            "nationalid",
            "studentnationalid",
        ),
    ),
    (
        SemanticField.PARENT_NATIONAL_ID,
        (
            "هويةوليالأمر",
            "رقمهويةوليالأمر",
            "هويةوليالامر",
            "رقمهويةوليالامر",
            "parentnationalid",
        ),
    ),
    (
        SemanticField.PARENT_PHONE,
        (
            "جوالوليالأمر",
            "رقمجوالوليالأمر",
            "رقمجوالوليالامر",
            "رقمواتساب",
            "رقمالواتساب",
            "جوال",
            "الواتساب",
            "parentwhatsapp",
            "parentphone",
            "whatsapp",
        ),
    ),
    (SemanticField.ADDRESS, ("العنوان", "address")),
    (SemanticField.NATIONALITY, ("الجنسية", "nationality")),
    (SemanticField.CURRENT_DATE, ("التاريخ", "date", "currentdate")),
    (SemanticField.CURRENT_WEEKDAY, ("اليوم", "day", "weekday")),
    (SemanticField.SIGNATURE, ("التوقيع", "توقيع", "مكانالتوقيع", "signature")),
    (SemanticField.STAMP, ("الختم", "ختمالمدرسة", "مكانالختم", "stamp")),
    (
        SemanticField.IDENTITY_IMAGE,
        ("الهوية", "مكانالهوية", "صورةالهوية", "صورهالهويه", "identityimage", "idimage"),
    ),
)


def _build_alias_index(
    table: Iterable[tuple[SemanticField, tuple[str, ...]]],
) -> dict[str, SemanticField]:
    index: dict[str, SemanticField] = {}
    for semantic, aliases in table:
        for alias in aliases:
            index.setdefault(normalize_token(alias), semantic)
    return index


_ALIAS_INDEX = _build_alias_index(ALIAS_TABLE)


def classify_token(token: Any) -> Optional[SemanticField]:
    """Return the built-in field a token refers to, or None."""
    return _ALIAS_INDEX.get(normalize_token(token))


def field_kind_for(token: Any) -> FieldKind:
    """Return whether a token renders as text or an image."""
    semantic = classify_token(token)
    if semantic is not None and semantic.is_image:
        return FieldKind.IMAGE
    return FieldKind.TEXT


@dataclass(frozen=True)
class Lookup:
    """One place in a record where a built-in field's value may live."""

    namespace: str  # "attr", "custom" or "image"
    key: str

    def read(self, record: DataRecord) -> tuple[bool, Any]:
        """Return (present, value) for this lookup."""
        if self.namespace == "attr":
            container: dict[str, Any] = record.attributes
        elif self.namespace == "custom":
            container = record.custom_fields
        else:
            container = record.images
        if self.key not in container:
            return False, None
        return True, container[self.key]


def _attr(key: str) -> Lookup:
    return Lookup("attr", key)


def _custom(key: str) -> Lookup:
    return Lookup("custom", key)


def _image(key: str) -> Lookup:
    return Lookup("image", key)


# Where each record-backed field is read from, in priority order
FIELD_LOOKUPS: dict[SemanticField, tuple[Lookup, ...]] = {
    SemanticField.STUDENT_NAME: (_attr("student_name"),),
    SemanticField.PARENT_NAME: (_attr("parent_name"), _custom("parentName")),
    SemanticField.TRACK: (_custom("studentTrack"), _attr("student_track")),
    SemanticField.GRADE: (_attr("student_grade"), _custom("studentGrade")),
    SemanticField.LEVEL: (_attr("student_level"), _custom("studentLevel")),
    SemanticField.ACADEMIC_YEAR: (_custom("contractYear"), _attr("contract_year")),
    SemanticField.EMAIL: (_attr("parent_email"),),
    SemanticField.STUDENT_NATIONAL_ID: (_attr("national_id"), _custom("nationalId")),
    SemanticField.PARENT_NATIONAL_ID: (
        _custom("parentNationalId"),
        _attr("parent_national_id"),
    ),
    SemanticField.PARENT_PHONE: (_attr("parent_whatsapp"),),
    SemanticField.ADDRESS: (_attr("address"), _custom("address")),
    SemanticField.NATIONALITY: (_attr("nationality"), _custom("nationality")),
    SemanticField.SIGNATURE: (_image("signature"),),
    SemanticField.IDENTITY_IMAGE: (_image("identity"),),
}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (bytes, bytearray)):
        return len(value) == 0
    return str(value).strip() == ""


@runtime_checkable
class DateFormatter(Protocol):
    """Locale-specific rendering of the computed date placeholders."""

    def format_date(self, value: date) -> str:
        """Render a calendar date."""
        ...

    def weekday_name(self, value: date) -> str:
        """Render the name of the date's weekday."""
        ...


ARABIC_INDIC_DIGITS = str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩")

# Sunday first
ARABIC_WEEKDAYS: tuple[str, ...] = (
    "الأحد",
    "الاثنين",
    "الثلاثاء",
    "الأربعاء",
    "الخميس",
    "الجمعة",
    "السبت",
)

_RLM = "\u200f"


class ArabicDateFormatter:
    """Egyptian Arabic rendering: Arabic-Indic digits, day/month/year."""

    def format_date(self, value: date) -> str:
        text = f"{value.day}{_RLM}/{value.month}{_RLM}/{value.year}"
        return text.translate(ARABIC_INDIC_DIGITS)

    def weekday_name(self, value: date) -> str:
        return ARABIC_WEEKDAYS[value.isoweekday() % 7]


class IsoDateFormatter:
    """ISO 8601 dates with English weekday names."""

    def format_date(self, value: date) -> str:
        return value.isoformat()

    def weekday_name(self, value: date) -> str:
        return value.strftime("%A")


class ResolutionStatus(str, Enum):
    """Outcome of resolving one placeholder."""

    RESOLVED = "resolved"
    EMPTY = "empty"  # matched, but the value is explicitly blank
    MISS = "miss"  # nothing matched the token


@dataclass
class Resolution:
    """Result of resolving a placeholder against a record.

    Attributes:
        token: Normalized token that was matched
        status: RESOLVED, EMPTY or MISS
        value: Resolved value (only when RESOLVED)
        semantic: Built-in field the token refers to, if any
        source: Step that produced the outcome ("builtin", "computed",
            "definition", "custom_key"), or None for a miss
    """

    token: str
    status: ResolutionStatus
    value: Optional[ResolvedValue] = None
    semantic: Optional[SemanticField] = None
    source: Optional[str] = None

    @property
    def is_image(self) -> bool:
        """Whether the token is image-class."""
        return self.semantic is not None and self.semantic.is_image


class VariableResolver:
    """Resolve placeholder tokens against a record and custom definitions.

    Example:
        >>> resolver = VariableResolver(definitions=[FieldDefinition("f1", "فصيلة الدم")])
        >>> resolver.resolve("{اسم_الطالب}", record).value.text
        'أحمد'
    """

    def __init__(
        self,
        definitions: Sequence[FieldDefinition] = (),
        date_formatter: Optional[DateFormatter] = None,
        today: Optional[Callable[[], date]] = None,
        stamp_image: Optional[ImagePayload] = None,
    ) -> None:
        """Initialize VariableResolver.

        Args:
            definitions: Custom field definitions, searched in order.
            date_formatter: Renders the date and weekday placeholders.
                Defaults to ArabicDateFormatter.
            today: Clock returning the current date. Defaults to date.today.
            stamp_image: Stamp image configured for the issuing organization.
        """
        self._definitions = list(definitions)
        self._date_formatter = date_formatter or ArabicDateFormatter()
        self._today = today or date.today
        self._stamp_image = stamp_image

    def resolve(self, token: Any, record: DataRecord) -> Resolution:
        """Resolve one placeholder token.

        Args:
            token: Placeholder as stored on the field (delimiters allowed).
            record: Record supplying the values.

        Returns:
            Resolution describing the value or why there is none.
        """
        target = normalize_token(token)
        semantic = _ALIAS_INDEX.get(target)
        blank_builtin = False

        if semantic is not None:
            if semantic.is_computed:
                return Resolution(
                    token=target,
                    status=ResolutionStatus.RESOLVED,
                    value=ResolvedValue.of_text(self._compute(semantic)),
                    semantic=semantic,
                    source="computed",
                )
            if semantic.is_image:
                return self._resolve_image(target, semantic, record)

            value, present = self._read_builtin(semantic, record)
            if value is not None:
                return Resolution(
                    token=target,
                    status=ResolutionStatus.RESOLVED,
                    value=ResolvedValue.of_text(str(value).strip()),
                    semantic=semantic,
                    source="builtin",
                )
            blank_builtin = present

        resolution = self._resolve_custom(target, record)
        resolution.semantic = semantic
        if resolution.status is ResolutionStatus.MISS and blank_builtin:
            # Built-in present but blank, and no custom value either
            return Resolution(
                token=target,
                status=ResolutionStatus.EMPTY,
                semantic=semantic,
                source="builtin",
            )
        if resolution.status is ResolutionStatus.MISS:

            logger.debug("No value for placeholder %r", token)
        return resolution

    def _compute(self, semantic: SemanticField) -> str:
        current = self._today()
        if semantic is SemanticField.CURRENT_DATE:
            return self._date_formatter.format_date(current)
        return self._date_formatter.weekday_name(current)

    def _read_builtin(
        self, semantic: SemanticField, record: DataRecord
    ) -> tuple[Any, bool]:
        present = False
        for lookup in FIELD_LOOKUPS.get(semantic, ()):
            found, value = lookup.read(record)
            if not found:
                continue
            present = True
            if not _is_blank(value):
                return value, True
        return None, present

    def _resolve_image(
        self, target: str, semantic: SemanticField, record: DataRecord
    ) -> Resolution:
        if semantic is SemanticField.STAMP:
            payload = self._stamp_image
            present = payload is not None
            if _is_blank(payload):
                payload = None
        else:
            payload, present = self._read_builtin(semantic, record)

        if payload is not None:
            return Resolution(
                token=target,
                status=ResolutionStatus.RESOLVED,
                value=ResolvedValue.of_image(payload),
                semantic=semantic,
                source="builtin",
            )
        return Resolution(
            token=target,
            status=ResolutionStatus.EMPTY if present else ResolutionStatus.MISS,
            semantic=semantic,
            source="builtin" if present else None,
        )

    def _resolve_custom(self, target: str, record: DataRecord) -> Resolution:
        custom = record.custom_fields

        for definition in self._definitions:
            if normalize_token(definition.label) != target:
                continue
            if definition.id not in custom:
                break
            value = custom[definition.id]
            if _is_blank(value):
                return Resolution(
                    token=target, status=ResolutionStatus.EMPTY, source="definition"
                )
            return Resolution(
                token=target,
                status=ResolutionStatus.RESOLVED,
                value=ResolvedValue.of_text(str(value).strip()),
                source="definition",
            )

        for key, value in custom.items():
            if normalize_token(key) != target:
                continue
            if _is_blank(value):
                return Resolution(
                    token=target, status=ResolutionStatus.EMPTY, source="custom_key"
                )
            return Resolution(
                token=target,
                status=ResolutionStatus.RESOLVED,
                value=ResolvedValue.of_text(str(value).strip()),
                source="custom_key",
            )

        return Resolution(token=target, status=ResolutionStatus.MISS)
