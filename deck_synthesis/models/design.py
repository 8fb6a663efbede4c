"""
Design records of the per-slide NDJSON layout protocol.

The model streams one JSON object per line: a config record first, then
shapes, image placeholders and text (text last, so it paints on top). A
single error record anywhere means the model refused to design the slide.
Records are kept loosely typed; geometry is checked by the validator, not
by the schema, so a bad coordinate invalidates the design instead of
silently dropping one element.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from deck_synthesis.models.slide import scalar_to_str
from deck_synthesis.services.exceptions import DesignSafetyRefusal

DEFAULT_SAFETY_MESSAGE = "Content violates safety guidelines."

ELEMENT_TYPES = ("shape", "image-placeholder", "text")


class DesignConfig(BaseModel):
    """Layout hint and background for the slide."""
    model_config = {"extra": "allow"}

    type: str = "config"
    layout: Optional[str] = Field(None, description="hero | hero_center | split_left | split_right | grid | grid_cards | chart | minimal")
    background: Any = Field(None, description="{color, transparency?}; other shapes are ignored when rendering")


class DesignErrorRecord(BaseModel):
    """Terminal safety refusal."""
    model_config = {"extra": "allow"}

    type: str = "error"
    message: Optional[str] = None


class DesignElement(BaseModel):
    """A drawable record: shape, text or image placeholder."""
    model_config = {"extra": "allow"}

    type: str
    shapeType: Optional[str] = Field(None, description="rect | ellipse | line, shapes only")
    text: Optional[str] = None
    altText: Optional[str] = None
    options: Optional[Dict[str, Any]] = Field(None, description="x, y, w, h in inches plus style")

    @field_validator("text", "altText", mode="before")
    @classmethod
    def stringify_scalars(cls, v):
        return scalar_to_str(v)

    @property
    def is_line(self) -> bool:
        return self.type == "shape" and self.shapeType == "line"


DesignRecord = Union[DesignConfig, DesignErrorRecord, DesignElement]


class DesignResult(BaseModel):
    """Interpreted design for one slide."""

    config: Optional[DesignConfig] = None
    elements: List[DesignElement] = Field(default_factory=list)
    safety_error: Optional[str] = None

    @property
    def refused(self) -> bool:
        return self.safety_error is not None

    def raise_for_safety(self) -> "DesignResult":
        if self.safety_error is not None:
            raise DesignSafetyRefusal(self.safety_error)
        return self
