from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from deck_synthesis.models.slide import LayoutSuggestion, Slide, coerce_layout_suggestion, coerce_slides, scalar_to_str


class DeltaAction(str, Enum):
    """Edit semantics a delta can declare."""
    CREATE = "create"
    UPDATE = "update"
    APPEND = "append"
    DELETE = "delete"
    BATCH = "batch"
    ASK = "ask"
    RESPONSE = "response"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["DeltaAction"]:
        """Return the matching action, or None when absent or unknown."""
        if not raw:
            return None
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


# Slide fields a batch update may overwrite
BATCH_UPDATABLE_FIELDS = (
    "title",
    "content",
    "visual_needs_image",
    "visual_description",
    "layout_suggestion",
    "speaker_notes",
    "estimated_duration",
)


class BatchOperation(BaseModel):
    """One sub-operation of a batch delta, addressed by slide_number."""
    model_config = {"extra": "ignore"}

    type: str = Field(..., description="update | delete")
    slide_number: int
    title: Optional[str] = None
    content: Optional[str] = None
    visual_needs_image: Optional[bool] = None
    visual_description: Optional[str] = None
    layout_suggestion: Optional[LayoutSuggestion] = None
    speaker_notes: Optional[str] = None
    estimated_duration: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return str(v).strip().lower() if v is not None else v

    @field_validator("title", "content", "visual_description", "speaker_notes", "estimated_duration", mode="before")
    @classmethod
    def stringify_scalars(cls, v):
        return scalar_to_str(v)

    @field_validator("layout_suggestion", mode="before")
    @classmethod
    def normalize_layout_suggestion(cls, v):
        if v is None:
            return None
        return coerce_layout_suggestion(v)

    def field_updates(self) -> Dict[str, Any]:
        """Fields explicitly provided by the producer, ready for model_copy."""
        return {
            name: getattr(self, name)
            for name in BATCH_UPDATABLE_FIELDS
            if name in self.model_fields_set and getattr(self, name) is not None
        }


class Delta(BaseModel):
    """
    Instruction transforming a deck, as decoded from the content stream.

    `action` keeps the raw producer string so unknown actions can take the
    permissive default path instead of failing validation.
    """
    model_config = {"extra": "ignore"}

    action: Optional[str] = None
    slides: List[Slide] = Field(default_factory=list)
    operations: List[BatchOperation] = Field(default_factory=list)
    # Conversational fields; never touch the document
    question: Optional[str] = None
    options: Optional[List[str]] = None
    allow_custom_input: Optional[bool] = None
    content: Optional[str] = None
    slide_ids: Optional[List[str]] = None
    new_order: Optional[List[str]] = None

    @field_validator("slides", mode="before")
    @classmethod
    def drop_incomplete_slides(cls, v):
        return coerce_slides(v or [])

    @field_validator("operations", mode="before")
    @classmethod
    def drop_incomplete_operations(cls, v):
        operations = []
        for item in v or []:
            if isinstance(item, BatchOperation):
                operations.append(item)
                continue
            try:
                operations.append(BatchOperation.model_validate(item))
            except ValueError:
                continue
        return operations

    @property
    def kind(self) -> Optional[DeltaAction]:
        return DeltaAction.parse(self.action)


class ReconcileResult(BaseModel):
    """New document snapshot plus the indices a renderer has to refresh."""
    model_config = {"frozen": True}

    slides: List[Slide] = Field(default_factory=list)
    changed_indices: List[int] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changed_indices)

    def changed_slides(self) -> List[Slide]:
        return [self.slides[i] for i in self.changed_indices]
