# SPDX-License-Identifier: Apache-2.0
"""Tests for placeholder resolution."""

from __future__ import annotations

from datetime import date

import pytest

from contract_pdf.core.models import DataRecord, FieldDefinition, FieldKind
from contract_pdf.core.resolver import (
    ALIAS_TABLE,
    ArabicDateFormatter,
    DateFormatter,
    IsoDateFormatter,
    ResolutionStatus,
    SemanticField,
    VariableResolver,
    classify_token,
    field_kind_for,
    normalize_token,
)

FIXED_DAY = date(2024, 3, 5)  # a Tuesday


@pytest.fixture
def resolver() -> VariableResolver:
    return VariableResolver(
        definitions=[FieldDefinition("f1", "فصيلة الدم")],
        today=lambda: FIXED_DAY,
        stamp_image=b"stamp-bytes",
    )


class TestNormalizeToken:
    """Tests for token normalization."""

    def test_strips_delimiters_spaces_and_underscores(self) -> None:
        assert normalize_token("{اسم_الطالب}") == "اسمالطالب"
        assert normalize_token("[ Student_Name ]") == "studentname"

    def test_none_is_empty(self) -> None:
        assert normalize_token(None) == ""


class TestClassification:
    """Tests for the alias table."""

    @pytest.mark.parametrize(
        "token",
        [
            "{رقم_هوية_ولي_الأمر}",
            "{رقم_هوية_ولي_الامر}",
            "{هوية_ولي_الأمر}",
            "{هوية_ولي_الامر}",
            "{parentNationalId}",
        ],
    )
    def test_parent_national_id_aliases_converge(self, token: str) -> None:
        """Every spelling reaches the same field."""
        assert classify_token(token) is SemanticField.PARENT_NATIONAL_ID

    @pytest.mark.parametrize("token", ["{رقم_الواتساب}", "{رقم_واتساب}", "{whatsapp}"])
    def test_whatsapp_aliases(self, token: str) -> None:
        assert classify_token(token) is SemanticField.PARENT_PHONE

    def test_image_fields(self) -> None:
        """Signature, stamp and identity tokens render as images."""
        assert field_kind_for("{توقيع}") is FieldKind.IMAGE
        assert field_kind_for("{الختم}") is FieldKind.IMAGE
        assert field_kind_for("{الهوية}") is FieldKind.IMAGE
        assert field_kind_for("{اسم_الطالب}") is FieldKind.TEXT
        assert field_kind_for("{غير_معروف}") is FieldKind.TEXT

    def test_every_field_has_aliases(self) -> None:
        covered = {semantic for semantic, aliases in ALIAS_TABLE if aliases}
        assert covered == set(SemanticField)


class TestBuiltinResolution:
    """Tests for record-backed fields."""

    def test_resolves_attribute(self, resolver: VariableResolver) -> None:
        record = DataRecord(attributes={"student_name": "  أحمد علي "})
        result = resolver.resolve("{اسم_الطالب}", record)
        assert result.status is ResolutionStatus.RESOLVED
        assert result.value.text == "أحمد علي"
        assert result.source == "builtin"

    def test_lookup_order(self, resolver: VariableResolver) -> None:
        """Track prefers the custom field over the attribute."""
        record = DataRecord(
            attributes={"student_track": "عام"},
            custom_fields={"studentTrack": "علمي"},
        )
        assert resolver.resolve("{المسار}", record).value.text == "علمي"

    def test_blank_lookup_falls_through_to_next(self, resolver: VariableResolver) -> None:
        """A blank first lookup does not hide a populated second one."""
        record = DataRecord(
            attributes={"parent_name": ""},
            custom_fields={"parentName": "محمد"},
        )
        assert resolver.resolve("{اسم_ولي_الامر}", record).value.text == "محمد"

    def test_present_but_blank_is_empty(self, resolver: VariableResolver) -> None:
        record = DataRecord(attributes={"parent_whatsapp": "   "})
        result = resolver.resolve("{رقم_الواتساب}", record)
        assert result.status is ResolutionStatus.EMPTY
        assert result.value is None

    def test_blank_builtin_uses_custom_key(self, resolver: VariableResolver) -> None:
        """A blank built-in value still lets a matching custom key fill the field."""
        record = DataRecord(
            attributes={"address": ""},
            custom_fields={"العنوان": "القاهرة"},
        )
        result = resolver.resolve("{العنوان}", record)
        assert result.status is ResolutionStatus.RESOLVED
        assert result.value.text == "القاهرة"
        assert result.source == "custom_key"
        assert result.semantic is SemanticField.ADDRESS

    def test_blank_builtin_and_blank_custom_is_empty(
        self, resolver: VariableResolver
    ) -> None:
        record = DataRecord(attributes={"address": " "}, custom_fields={"other": "x"})
        result = resolver.resolve("{العنوان}", record)
        assert result.status is ResolutionStatus.EMPTY
        assert result.source == "builtin"

    def test_absent_is_miss(self, resolver: VariableResolver) -> None:
        result = resolver.resolve("{رقم_الواتساب}", DataRecord())
        assert result.status is ResolutionStatus.MISS
        assert result.semantic is SemanticField.PARENT_PHONE

    def test_numbers_are_rendered_as_text(self, resolver: VariableResolver) -> None:
        record = DataRecord(attributes={"national_id": 1234567890})
        assert resolver.resolve("{الرقم_القومي}", record).value.text == "1234567890"


class TestCustomResolution:
    """Tests for custom field fallbacks."""

    def test_definition_label(self, resolver: VariableResolver) -> None:
        record = DataRecord(custom_fields={"f1": "O+"})
        result = resolver.resolve("{فصيلة_الدم}", record)
        assert result.status is ResolutionStatus.RESOLVED
        assert result.value.text == "O+"
        assert result.source == "definition"

    def test_definition_blank_value_is_empty(self, resolver: VariableResolver) -> None:
        record = DataRecord(custom_fields={"f1": ""})
        assert resolver.resolve("{فصيلة الدم}", record).status is ResolutionStatus.EMPTY

    def test_direct_custom_key(self, resolver: VariableResolver) -> None:
        record = DataRecord(custom_fields={"اسم المدرسة": "دانة"})
        result = resolver.resolve("{اسم_المدرسة}", record)
        assert result.value.text == "دانة"
        assert result.source == "custom_key"

    def test_unknown_token_is_miss(self, resolver: VariableResolver) -> None:
        result = resolver.resolve("{لا_يوجد}", DataRecord(custom_fields={"x": "y"}))
        assert result.status is ResolutionStatus.MISS
        assert result.source is None
        assert result.semantic is None


class TestImageResolution:
    """Tests for image-class fields."""

    def test_signature(self, resolver: VariableResolver) -> None:
        record = DataRecord(images={"signature": b"png"})
        result = resolver.resolve("{توقيع}", record)
        assert result.status is ResolutionStatus.RESOLVED
        assert result.value.is_image
        assert result.value.image == b"png"

    def test_stamp_comes_from_configuration(self, resolver: VariableResolver) -> None:
        assert resolver.resolve("{الختم}", DataRecord()).value.image == b"stamp-bytes"

    def test_missing_stamp_is_miss(self) -> None:
        result = VariableResolver().resolve("{الختم}", DataRecord())
        assert result.status is ResolutionStatus.MISS

    def test_images_skip_custom_fallback(self, resolver: VariableResolver) -> None:
        """A custom key named like an image field is not used."""
        record = DataRecord(custom_fields={"التوقيع": "not an image"})
        assert resolver.resolve("{التوقيع}", record).status is ResolutionStatus.MISS


class TestComputedFields:
    """Tests for date placeholders."""

    def test_arabic_date(self, resolver: VariableResolver) -> None:
        text = resolver.resolve("{التاريخ}", DataRecord()).value.text
        assert text == "\u0665\u200f/\u0663\u200f/\u0662\u0660\u0662\u0664"

    def test_arabic_weekday(self, resolver: VariableResolver) -> None:
        assert resolver.resolve("{اليوم}", DataRecord()).value.text == "الثلاثاء"

    def test_iso_formatter(self) -> None:
        resolver = VariableResolver(date_formatter=IsoDateFormatter(), today=lambda: FIXED_DAY)
        assert resolver.resolve("{date}", DataRecord()).value.text == "2024-03-05"
        assert resolver.resolve("{weekday}", DataRecord()).value.text == "Tuesday"

    def test_sunday_is_first_weekday(self) -> None:
        assert ArabicDateFormatter().weekday_name(date(2024, 3, 3)) == "الأحد"

    def test_formatters_satisfy_protocol(self) -> None:
        assert isinstance(ArabicDateFormatter(), DateFormatter)
        assert isinstance(IsoDateFormatter(), DateFormatter)
