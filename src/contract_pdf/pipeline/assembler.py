# SPDX-License-Identifier: Apache-2.0
"""Document assembly pipeline implementation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional, Sequence, Union

from contract_pdf.core.coordinates import map_field
from contract_pdf.core.font_subsetter import FontSubsetter
from contract_pdf.core.images import (
    FIT_RATIO,
    DecodedImage,
    ImageDecodeError,
    ImageRole,
    decode_image,
    fit_image_in_box,
    fit_image_on_page,
)
from contract_pdf.core.models import (
    DataRecord,
    FieldDefinition,
    FieldGeometryError,
    ImagePayload,
    Template,
    TemplateField,
)
from contract_pdf.core.pdf_processor import (
    FALLBACK_FONT_NAME,
    DocumentLoadError,
    PDFProcessor,
)
from contract_pdf.core.resolver import (
    DateFormatter,
    Resolution,
    ResolutionStatus,
    SemanticField,
    VariableResolver,
)
from contract_pdf.core.shaper import ScriptShaper
from contract_pdf.core.text_layout import (
    OVERFLOW_RATIO,
    REFERENCE_FONT_SIZE,
    TextLayoutEngine,
)
from contract_pdf.fonts.base import AcquiredFont, FontUnavailableError
from contract_pdf.fonts.cascade import FontCascade
from contract_pdf.pipeline.diagnostics import (
    FieldOutcome,
    FieldStatus,
    GenerationReport,
    SupplementaryOutcome,
)
from contract_pdf.pipeline.errors import (
    BaseDocumentCorrupt,
    FieldResolutionMiss,
    FontUnavailable,
    ImageDecodeFailure,
    PipelineError,
    SupplementaryPageFailure,
    TemplateIntegrityError,
)
from contract_pdf.pipeline.progress import GenerationStage, ProgressCallback

logger = logging.getLogger(__name__)

# A4 portrait in PDF units
A4_PAGE_SIZE: tuple[float, float] = (595.0, 842.0)

IDENTITY_CAPTION = "صورة الهوية"
SUPPLEMENTARY_CAPTION = "مستند إضافي {n}"

_IMAGE_ROLES: dict[SemanticField, ImageRole] = {
    SemanticField.SIGNATURE: ImageRole.SIGNATURE,
    SemanticField.STAMP: ImageRole.STAMP,
    SemanticField.IDENTITY_IMAGE: ImageRole.IDENTITY,
}


@dataclass
class AssemblerConfig:
    """Document assembler configuration."""

    # Field text
    font_size: float = REFERENCE_FONT_SIZE
    overflow_ratio: float = OVERFLOW_RATIO
    text_color: tuple[int, int, int] = (0, 0, 0)

    # Share of a field box an image may occupy
    image_fit_ratio: float = FIT_RATIO

    # Supplementary pages
    supplementary_page_size: tuple[float, float] = A4_PAGE_SIZE
    supplementary_fit: tuple[float, float] = (540.0, 780.0)
    captions: bool = False
    caption_font_size: float = 20.0
    caption_band: float = 60.0  # fit height given up for the caption

    # Embed only the glyphs the document uses
    subset_font: bool = False

    # generate_many() default
    concurrency: int = 4


@dataclass
class GenerationResult:
    """Document assembly result."""

    pdf_bytes: bytes
    report: GenerationReport


@dataclass
class GenerationJob:
    """One document to generate with generate_many()."""

    template: Template
    record: DataRecord
    definitions: Sequence[FieldDefinition] = field(default_factory=tuple)


@dataclass
class _PlannedField:
    field: TemplateField
    resolution: Resolution
    text: str = ""


class DocumentAssembler:
    """Fill a template with a record and append supplementary pages.

    Example:
        >>> assembler = DocumentAssembler(build_default_cascade(cache=FontCache()))
        >>> result = await assembler.generate(template, record, definitions)
        >>> Path("contract.pdf").write_bytes(result.pdf_bytes)
    """

    def __init__(
        self,
        font_cascade: Optional[FontCascade] = None,
        config: AssemblerConfig | None = None,
        progress_callback: ProgressCallback | None = None,
        date_formatter: Optional[DateFormatter] = None,
        today: Optional[Callable[[], date]] = None,
        stamp_image: Optional[ImagePayload] = None,
        shaper: Optional[ScriptShaper] = None,
    ) -> None:
        """Initialize DocumentAssembler.

        Args:
            font_cascade: Font acquisition cascade. Without one, text is drawn
                with the standard fallback font.
            config: Assembler configuration.
            progress_callback: Receives stage progress.
            date_formatter: Renders the date placeholders.
            today: Clock for the date placeholders.
            stamp_image: Organization stamp drawn into stamp fields.
            shaper: Script shaper. Defaults to Arabic reshaping.
        """
        self._font_cascade = font_cascade
        self._config = config or AssemblerConfig()
        self._progress_callback = progress_callback
        self._date_formatter = date_formatter
        self._today = today
        self._stamp_image = stamp_image
        self._shaper = shaper or ScriptShaper()
        self._layout = TextLayoutEngine(
            font_size=self._config.font_size,
            overflow_ratio=self._config.overflow_ratio,
        )
        self._subsetter = FontSubsetter()

    async def generate(
        self,
        template: Template,
        record: DataRecord,
        definitions: Sequence[FieldDefinition] = (),
    ) -> GenerationResult:
        """Generate the finished document for one record.

        Args:
            template: Base document and field placements.
            record: Values to fill in.
            definitions: Custom field definitions.

        Returns:
            GenerationResult with the PDF and its diagnostics.

        Raises:
            TemplateIntegrityError: If a field has unusable geometry.
            BaseDocumentCorrupt: If the base document cannot be opened.
            FontUnavailable: If no font at all could be loaded.
            PipelineError: If serialization fails.
        """
        report = GenerationReport()
        resolver = VariableResolver(
            definitions=definitions,
            date_formatter=self._date_formatter,
            today=self._today,
            stamp_image=self._stamp_image,
        )

        with self._stage_load_base(template) as processor:
            report.base_page_count = processor.page_count
            font = await self._stage_acquire_font(report)

            planned = [
                self._plan_field(f, resolver.resolve(f.variable, record))
                for f in template.fields
            ]
            documents = self._supplementary_documents(record)

            texts = [p.text for p in planned if p.text]
            if self._config.captions:
                texts.extend(self._shaper.shape(label) for label, _ in documents)
            font_handle = self._load_font(processor, font, texts, report)

            self._stage_fields(processor, planned, font_handle, report)
            self._stage_supplementary(processor, documents, font_handle, report)
            report.page_count = processor.page_count
            pdf_bytes = self._stage_serialize(processor)

        logger.info("Generated %s: %s", template.title or "document", report.summary())
        return GenerationResult(pdf_bytes=pdf_bytes, report=report)

    async def generate_many(
        self,
        jobs: Sequence[GenerationJob],
        concurrency: Optional[int] = None,
    ) -> list[Union[GenerationResult, BaseException]]:
        """Generate several documents concurrently.

        Jobs share the font cache and nothing else. A failing job does not
        stop the others; its exception takes its place in the result list.

        Args:
            jobs: Documents to generate.
            concurrency: Maximum jobs in flight (default: config.concurrency).

        Returns:
            One GenerationResult or exception per job, in job order.
        """
        if not jobs:
            return []

        semaphore = asyncio.Semaphore(max(1, concurrency or self._config.concurrency))

        async def run(job: GenerationJob) -> GenerationResult:
            async with semaphore:
                return await self.generate(job.template, job.record, job.definitions)

        results = await asyncio.gather(*(run(job) for job in jobs), return_exceptions=True)
        for index, result in enumerate(results):
            if isinstance(result, BaseException):
                logger.warning("Job %d failed: %s", index, result)
        return list(results)

    def _stage_load_base(self, template: Template) -> PDFProcessor:
        stage = GenerationStage.LOAD_BASE.value
        try:
            template.validate()
        except FieldGeometryError as exc:
            raise TemplateIntegrityError(str(exc), stage=stage, cause=exc) from exc

        try:
            processor = PDFProcessor(template.pdf_bytes)
        except (DocumentLoadError, TypeError) as exc:
            raise BaseDocumentCorrupt(
                f"Base document cannot be opened: {exc}", stage=stage, cause=exc
            ) from exc

        self._notify(stage, 1, 1)
        return processor

    async def _stage_acquire_font(self, report: GenerationReport) -> Optional[AcquiredFont]:
        stage = GenerationStage.ACQUIRE_FONT.value
        if self._font_cascade is None:
            self._notify(stage, 1, 1, "no font cascade configured")
            return None

        try:
            font = await self._font_cascade.acquire()
        except FontUnavailableError as exc:
            logger.warning("Font cascade exhausted, using %s: %s", FALLBACK_FONT_NAME, exc)
            report.font_attempts = list(exc.attempts)
            self._notify(stage, 1, 1, "fallback font")
            return None

        report.font_attempts = self._font_cascade.attempts
        self._notify(stage, 1, 1, font.source)
        return font

    def _load_font(
        self,
        processor: PDFProcessor,
        font: Optional[AcquiredFont],
        texts: list[str],
        report: GenerationReport,
    ) -> Any:
        if font is not None:
            data = font.data
            if self._config.subset_font:
                data = self._subsetter.subset_for_texts(font.data, texts) or font.data
            handle = processor.load_font(data, key=font.source)
            if handle:
                report.font_source = font.source
                return handle
            logger.warning("Font from %s could not be embedded", font.source)

        handle = processor.load_standard_font(FALLBACK_FONT_NAME)
        if not handle:
            raise FontUnavailable(
                f"Standard font {FALLBACK_FONT_NAME} could not be loaded",
                stage=GenerationStage.ACQUIRE_FONT.value,
            )
        logger.warning("Drawing text with %s; Arabic text will not display", FALLBACK_FONT_NAME)
        report.font_source = FALLBACK_FONT_NAME
        report.font_fallback = True
        return handle

    def _plan_field(self, template_field: TemplateField, resolution: Resolution) -> _PlannedField:
        planned = _PlannedField(field=template_field, resolution=resolution)
        value = resolution.value
        if value is not None and not value.is_image and value.text:
            planned.text = self._shaper.shape(value.text)
        return planned

    def _stage_fields(
        self,
        processor: PDFProcessor,
        planned: list[_PlannedField],
        font_handle: Any,
        report: GenerationReport,
    ) -> None:
        stage = GenerationStage.FIELDS.value
        base_pages = report.base_page_count
        total = len(planned)

        for index, item in enumerate(planned, 1):
            template_field = item.field
            resolution = item.resolution
            outcome = FieldOutcome(
                field_id=template_field.id,
                variable=template_field.variable,
                page=template_field.page,
                status=FieldStatus.RENDERED,
                source=resolution.source,
            )
            report.fields.append(outcome)

            if resolution.status is ResolutionStatus.MISS:
                outcome.status = FieldStatus.MISS
                outcome.error = FieldResolutionMiss(
                    f"No value for {template_field.variable}", stage=stage
                )
            elif resolution.status is ResolutionStatus.EMPTY or resolution.value is None:
                outcome.status = FieldStatus.EMPTY
            elif template_field.page > base_pages:
                outcome.status = FieldStatus.PAGE_OUT_OF_RANGE
                logger.warning(
                    "Field %s is on page %d but the document has %d pages",
                    template_field.variable,
                    template_field.page,
                    base_pages,
                )
            elif resolution.value.is_image:
                self._render_image(processor, item, outcome, stage)
            elif not item.text:
                outcome.status = FieldStatus.EMPTY
            else:
                self._render_text(processor, item, font_handle, outcome)

            self._notify(stage, index, total)

    def _render_text(
        self,
        processor: PDFProcessor,
        item: _PlannedField,
        font_handle: Any,
        outcome: FieldOutcome,
    ) -> None:
        page_index = item.field.page - 1
        box = map_field(item.field, *processor.page_size(page_index))
        placement = self._layout.layout(item.text, box, font_handle)
        inserted = processor.insert_text(
            page_index,
            item.text,
            placement.x,
            placement.baseline,
            font_handle,
            placement.font_size,
            color=self._config.text_color,
        )
        if not inserted:
            outcome.status = FieldStatus.RENDER_FAILED
            logger.warning("Could not draw %s", item.field.variable)
        else:
            logger.debug(
                "Drew %s at (%.1f, %.1f)%s",
                item.field.variable,
                placement.x,
                placement.baseline,
                " flush" if placement.overflows else "",
            )

    def _render_image(
        self,
        processor: PDFProcessor,
        item: _PlannedField,
        outcome: FieldOutcome,
        stage: str,
    ) -> None:
        semantic = item.resolution.semantic
        role = _IMAGE_ROLES.get(semantic, ImageRole.OTHER) if semantic else ImageRole.OTHER
        payload = item.resolution.value.image if item.resolution.value else None
        page_index = item.field.page - 1
        try:
            image = decode_image(payload if payload is not None else b"")
            box = map_field(item.field, *processor.page_size(page_index))
            bbox = fit_image_in_box(
                image.width, image.height, box, role, self._config.image_fit_ratio
            )
            processor.insert_image(page_index, image, bbox)
        except ImageDecodeError as exc:
            outcome.status = FieldStatus.IMAGE_FAILED
            outcome.error = ImageDecodeFailure(
                f"{item.field.variable}: {exc}", stage=stage, cause=exc
            )
            logger.warning("Skipping image for %s: %s", item.field.variable, exc)

    def _supplementary_documents(self, record: DataRecord) -> list[tuple[str, ImagePayload]]:
        documents: list[tuple[str, ImagePayload]] = []
        identity = record.identity_image
        if identity:
            documents.append((IDENTITY_CAPTION, identity))
        for n, payload in enumerate(record.supplementary_documents, 1):
            documents.append((SUPPLEMENTARY_CAPTION.format(n=n), payload))
        return documents

    def _stage_supplementary(
        self,
        processor: PDFProcessor,
        documents: list[tuple[str, ImagePayload]],
        font_handle: Any,
        report: GenerationReport,
    ) -> None:
        stage = GenerationStage.SUPPLEMENTARY.value
        total = len(documents)

        for index, (label, payload) in enumerate(documents, 1):
            outcome = SupplementaryOutcome(index=index, label=label)
            report.supplementary.append(outcome)
            try:
                image = decode_image(payload)
                outcome.page = self._append_image_page(processor, image, label, font_handle)
            except ImageDecodeError as exc:
                outcome.error = SupplementaryPageFailure(
                    f"{label}: {exc}", stage=stage, cause=exc
                )
                logger.warning("Skipping supplementary document %s: %s", label, exc)
            self._notify(stage, index, total)

    def _append_image_page(
        self,
        processor: PDFProcessor,
        image: DecodedImage,
        label: str,
        font_handle: Any,
    ) -> int:
        page_width, page_height = self._config.supplementary_page_size
        max_width, max_height = self._config.supplementary_fit
        if self._config.captions:
            max_height -= self._config.caption_band

        page_index = processor.new_page(page_width, page_height)
        bbox = fit_image_on_page(
            image.width, image.height, page_width, page_height, max_width, max_height
        )
        processor.insert_image(page_index, image, bbox)

        if self._config.captions:
            caption = self._shaper.shape(label)
            size = self._config.caption_font_size
            width = self._layout.calculate_text_width(caption, font_handle, size)
            processor.insert_text(
                page_index,
                caption,
                (page_width - width) / 2,
                page_height - self._config.caption_band / 2,
                font_handle,
                size,
                color=self._config.text_color,
            )
        return page_index + 1

    def _stage_serialize(self, processor: PDFProcessor) -> bytes:
        stage = GenerationStage.SERIALIZE.value
        try:
            pdf_bytes = processor.to_bytes()
        except Exception as exc:
            raise PipelineError("Serialization failed", stage=stage, cause=exc) from exc
        self._notify(stage, 1, 1)
        return pdf_bytes

    def _notify(self, stage: str, current: int, total: int, message: str = "") -> None:
        if self._progress_callback is None:
            return
        self._progress_callback(stage, current, total, message)
