from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from deck_synthesis.setup_logging_optimized import get_logger

logger = get_logger(__name__)


class LayoutSuggestion(str, Enum):
    """Layout hint the content model attaches to every slide."""
    INTRO = "intro"
    SPLIT_LEFT = "split-left"
    SPLIT_RIGHT = "split-right"
    CENTERED = "centered"
    QUOTE = "quote"
    FULL_IMAGE = "full-image"
    # Older prompts emitted these directly
    TIMELINE = "timeline"
    GRID = "grid"
    BIG_NUMBER = "big-number"


def scalar_to_str(value: Any) -> Any:
    """Stringify numbers and booleans sent where text is expected."""
    if isinstance(value, (bool, int, float)):
        return str(value)
    return value


def coerce_layout_suggestion(value: Any) -> LayoutSuggestion:
    """Map a producer string onto the enum; unknown hints become centered."""
    if value is None or value == "":
        return LayoutSuggestion.CENTERED
    if isinstance(value, LayoutSuggestion):
        return value
    try:
        return LayoutSuggestion(str(value).strip().lower())
    except ValueError:
        logger.debug(f"Unknown layout_suggestion {value!r}, using centered")
        return LayoutSuggestion.CENTERED


class ActionMarker(str, Enum):
    """Action that last touched a slide, for transient highlighting only."""
    CREATE = "create"
    UPDATE = "update"
    APPEND = "append"
    DELETE = "delete"
    BATCH = "batch"


class Slide(BaseModel):
    """
    One slide of a deck as produced by the content model.

    Slides are immutable: every reconciliation step returns new objects for
    the slides it touches and shares the rest with the previous snapshot.

    Attributes:
        slide_number: 1-based ordinal, dense once the stream is finalized
        content: markdown-lite body (**bold** markers, "- " list lines)
        action_marker: transient tag set by preview reconciliation, never persisted
    """
    model_config = {
        "frozen": True,
        "extra": "ignore",
        "populate_by_name": True,
    }

    slide_number: int = Field(..., description="1-based slide ordinal")
    id: Optional[str] = Field(None, description="Identifier used for lazy loading")
    title: str = ""
    content: str = ""
    visual_needs_image: bool = False
    visual_description: str = ""
    layout_suggestion: LayoutSuggestion = LayoutSuggestion.CENTERED
    speaker_notes: str = ""
    estimated_duration: str = ""
    action_marker: Optional[ActionMarker] = Field(None, alias="_actionMarker", exclude=True)

    @field_validator("layout_suggestion", mode="before")
    @classmethod
    def normalize_layout_suggestion(cls, v):
        return coerce_layout_suggestion(v)

    @field_validator("title", "content", "visual_description", "speaker_notes", "estimated_duration", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        # Partial stream objects often carry explicit nulls or bare numbers
        return "" if v is None else scalar_to_str(v)

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return scalar_to_str(v)

    def persisted(self) -> Dict[str, Any]:
        """Dump without transient UI state."""
        return self.model_dump(mode="json", exclude_none=True)

    def with_marker(self, marker: Optional[ActionMarker]) -> "Slide":
        if self.action_marker == marker:
            return self
        return self.model_copy(update={"action_marker": marker})

    def renumbered(self, slide_number: int) -> "Slide":
        if self.slide_number == slide_number:
            return self
        return self.model_copy(update={"slide_number": slide_number})


def coerce_slides(raw: Iterable[Any]) -> List[Slide]:
    """Validate raw slide payloads, skipping the ones that are not slides yet.

    Mid-stream objects may be missing `slide_number` or carry half-written
    values; they are dropped here and picked up again on the next pass.
    """
    slides: List[Slide] = []
    for item in raw or []:
        if isinstance(item, Slide):
            slides.append(item)
            continue
        if not isinstance(item, dict):
            continue
        try:
            slides.append(Slide.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Skipping incomplete slide payload: {e.error_count()} error(s)")
    return slides
