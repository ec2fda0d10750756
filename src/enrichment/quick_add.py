"""Quick-add draft filling from free text and analysed attachments."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional

import pydantic

from config import Settings
from errors import ValidationError
from layout import combine_day
from models import Attachment, Category, ItineraryItem, UserRef
from .debounce import DebouncedExtractor
from .service import ExtractedItem, Extractor

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[Exception], None]


@dataclass
class DraftItem:
    """The item being composed in the add dialog, before it is saved."""

    day: date
    name: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: str = ""
    category: Category = Category.none
    attachments: list[Attachment] = field(default_factory=list)

    def merge(self, extracted: ExtractedItem) -> None:
        """Overwrite the draft with extracted fields; unparseable times are skipped."""
        if extracted.title.strip():
            self.name = extracted.title.strip()
        if extracted.description:
            self.description = extracted.description
        self.category = Category.from_label(extracted.category)
        for attr, hhmm in (("start_time", extracted.start_time), ("end_time", extracted.end_time)):
            if not hhmm:
                continue
            try:
                setattr(self, attr, combine_day(self.day, hhmm))
            except ValidationError as e:
                logger.warning(f"Ignoring extracted {attr}: {e}")

    def to_item(self, item_id: str, created_by: UserRef) -> ItineraryItem:
        """
        Build the item to save.

        Raises:
            ValidationError: If the name or times are missing or out of order
        """
        if self.start_time is None or self.end_time is None:
            raise ValidationError("Start and end time are required")
        if self.start_time.date() != self.day:
            raise ValidationError(f"Start time must fall on {self.day.isoformat()}")
        try:
            item = ItineraryItem(
                id=item_id,
                name=self.name.strip(),
                start_time=self.start_time,
                end_time=self.end_time,
                description=self.description,
                category=self.category,
                attachments=list(self.attachments),
                created_by=created_by,
            )
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid item: {e}") from e
        item.check_time_range()
        return item


@dataclass(frozen=True)
class AttachmentInput:
    data: bytes
    mime_type: str


class QuickAddController:
    """
    Fills a ``DraftItem`` from debounced quick-add text.

    Text shorter than ``Settings.quick_add_min_length`` (after stripping)
    never reaches the extractor. An analysed attachment is merged into the
    draft and passed along as context for the next text extraction.
    """

    def __init__(
        self,
        extractor: Extractor,
        draft: DraftItem,
        settings: Settings,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.extractor = extractor
        self.draft = draft
        self.file_context: Optional[str] = None
        self._on_error = on_error
        min_length = settings.quick_add_min_length

        self.text = DebouncedExtractor[str, ExtractedItem](
            extract=self._extract_text,
            apply=self._apply_text,
            delay=settings.debounce_seconds,
            accept=lambda text: len(text.strip()) > min_length,
            on_error=self._report,
        )
        self.attachment = AttachmentAnalyzer(
            extractor, on_result=self._apply_attachment, on_error=self._report
        )

    def set_text(self, text: str) -> None:
        self.text.feed(text)

    def attach(self, data: bytes, mime_type: str) -> None:
        self.attachment.analyze(AttachmentInput(data, mime_type))

    async def _extract_text(self, text: str) -> ExtractedItem:
        return await self.extractor.extract(text, file_context=self.file_context)

    def _apply_text(self, text: str, extracted: ExtractedItem) -> None:
        logger.info(f"Quick add '{text}' -> {extracted.title}")
        self.draft.merge(extracted)

    def _apply_attachment(self, analysed: str) -> None:
        self.file_context = analysed
        try:
            self.draft.merge(ExtractedItem.model_validate_json(analysed))
        except pydantic.ValidationError as e:
            logger.warning(f"Attachment analysis is not structured, keeping as context only: {e}")
        # Typed text was extracted without this context
        self.text.refresh()

    def _report(self, _value: object, error: Exception) -> None:
        if self._on_error is not None:
            self._on_error(error)

    async def wait_idle(self) -> None:
        await self.attachment.wait_idle()
        await self.text.wait_idle()

    async def aclose(self) -> None:
        await self.text.aclose()
        await self.attachment.aclose()

    async def __aenter__(self) -> "QuickAddController":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


class AttachmentAnalyzer:
    """Analyses the chosen file right away; choosing another file supersedes it."""

    def __init__(
        self,
        extractor: Extractor,
        on_result: Callable[[str], None],
        on_error: Optional[Callable[[AttachmentInput, Exception], None]] = None,
    ):
        self.extractor = extractor
        self._on_result = on_result
        self._debounced = DebouncedExtractor[AttachmentInput, str](
            extract=self._analyze,
            apply=lambda _file, text: on_result(text),
            delay=0,
            accept=lambda file: bool(file.data),
            on_error=on_error,
        )

    @property
    def state(self):
        return self._debounced.state

    def analyze(self, file: AttachmentInput) -> None:
        self._debounced.feed(file)

    async def _analyze(self, file: AttachmentInput) -> str:
        return await self.extractor.extract_from_attachment(file.data, file.mime_type)

    async def wait_idle(self) -> None:
        await self._debounced.wait_idle()

    async def aclose(self) -> None:
        await self._debounced.aclose()
