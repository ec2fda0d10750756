"""Model-backed extraction of itinerary fields from free text and images."""

import logging
from typing import Literal, Optional, Protocol

from cachetools import TTLCache
from pydantic import BaseModel, Field
from pydantic_ai import Agent, BinaryContent
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from config import Settings
from errors import TransientIOError, ValidationError

logger = logging.getLogger(__name__)

QUICK_ADD_PROMPT = """You turn a short description of a trip itinerary item into structured fields.

Return:
1. **title** - a concise title prefixed with a relevant emoji (✈️ flights, 🏨 hotels, 🎫 tickets, 🍽️ meals)
2. **start_time** / **end_time** - 24-hour HH:mm times
3. **description** - details such as confirmation numbers, flight numbers, venue names, addresses and booking references
4. **category** - exactly one of Travel, Food, Accommodation, Activity
   - Travel: flights, trains, buses, car rentals and other transportation
   - Food: restaurants, cafes, food tours
   - Accommodation: hotels, resorts, rentals
   - Activity: tours, attractions, shows and anything else

If times are not given, make reasonable assumptions: hotel check-in 15:00 and
check-out 11:00, meals last 1-1.5 hours, tourist activities 2-3 hours. When an
attached document is provided, prefer the times and details it contains."""

ATTACHMENT_PROMPT = """Analyze the attached image of a booking, ticket or reservation.

ALWAYS provide a title, even if you have to make an educated guess, for example
"Flight LAX→SFO", "Hotel in San Francisco", "Museum Visit" or "Dinner at Nobu".
Times are 24-hour HH:mm or null when unclear. The description is plain text
with confirmation numbers, locations and contact info, one detail per line.
The category is exactly one of Travel, Food, Accommodation, Activity."""

ExtractedCategory = Literal["Travel", "Food", "Accommodation", "Activity"]


class ExtractedItem(BaseModel):
    title: str = Field(
        default="", description="Concise title prefixed with a relevant emoji"
    )
    start_time: Optional[str] = Field(
        default=None, description="Start time in HH:mm 24-hour format"
    )
    end_time: Optional[str] = Field(
        default=None, description="End time in HH:mm 24-hour format"
    )
    description: str = Field(
        default="",
        description="Details such as confirmation numbers, addresses and booking references",
    )
    category: ExtractedCategory = Field(
        default="Activity", description="Travel, Food, Accommodation or Activity"
    )


class Extractor(Protocol):
    async def extract(
        self, text: str, file_context: Optional[str] = None
    ) -> ExtractedItem: ...

    async def extract_from_attachment(self, data: bytes, mime_type: str) -> str: ...


def ensure_title(item: ExtractedItem) -> ExtractedItem:
    """Fill an empty title from the first description line or the category."""
    if item.title.strip():
        return item
    first_line = item.description.split("\n", 1)[0].strip()
    title = first_line[:50] if first_line else f"{item.category} Item"
    logger.info(f"Extractor returned no title, using '{title}'")
    return item.model_copy(update={"title": title})


class ModelExtractor:
    """
    Extractor backed by pydantic-ai agents.

    Text results are cached per (text, file context) for
    ``Settings.extraction_cache_ttl_seconds``.
    """

    def __init__(
        self,
        settings: Settings,
        attempts: int = 3,
        wait: Optional[wait_base] = None,
    ):
        self.settings = settings
        self.attempts = attempts
        self.wait = wait or wait_random_exponential(min=1, max=30)
        self._cache: TTLCache = TTLCache(
            maxsize=256, ttl=settings.extraction_cache_ttl_seconds
        )

    async def _run(self, agent: Agent, prompt) -> ExtractedItem:
        try:
            async for attempt in AsyncRetrying(
                wait=self.wait,
                stop=stop_after_attempt(self.attempts),
                before_sleep=before_sleep_log(logger, logging.DEBUG),
                reraise=True,
            ):
                with attempt:
                    result = await agent.run(prompt)
        except Exception as e:
            logger.error(f"Extraction failed after {self.attempts} attempts: {e}")
            raise TransientIOError(f"Extraction failed: {e}") from e
        return result.output

    async def extract(
        self, text: str, file_context: Optional[str] = None
    ) -> ExtractedItem:
        """
        Extract itinerary fields from a quick-add description.

        Args:
            text: What the user typed, e.g. "Lunch at Nobu 1pm"
            file_context: Analysed attachment text to draw details from

        Returns:
            ExtractedItem with HH:mm times and an extractor category
        """
        key = (text, file_context or "")
        if key in self._cache:
            logger.debug(f"Extraction cache hit for '{text}'")
            return self._cache[key]

        agent = Agent(
            model=self.settings.model_name,
            system_prompt=QUICK_ADD_PROMPT,
            output_type=ExtractedItem,
        )
        prompt = f'Quick description: "{text}"'
        if file_context:
            prompt += f'\n\nAttached document content: "{file_context}"'

        extracted = ensure_title(await self._run(agent, prompt))
        logger.info(f"Extracted item from '{text}': {extracted.title}")
        self._cache[key] = extracted
        return extracted

    async def extract_from_attachment(self, data: bytes, mime_type: str) -> str:
        """
        Analyse an image attachment and return the extracted fields as JSON text.

        Raises:
            ValidationError: If the file is empty or not an image
            TransientIOError: If the model call keeps failing
        """
        if not mime_type.startswith("image/"):
            raise ValidationError(f"Unsupported file type for analysis: {mime_type}")
        if not data:
            raise ValidationError("Cannot analyse an empty file")

        agent = Agent(
            model=self.settings.model_name,
            system_prompt=ATTACHMENT_PROMPT,
            output_type=ExtractedItem,
        )
        extracted = ensure_title(
            await self._run(
                agent, [BinaryContent(data=data, media_type=mime_type), "Extract the item."]
            )
        )
        logger.info(f"Analysed {mime_type} attachment: {extracted.title}")
        return extracted.model_dump_json()
