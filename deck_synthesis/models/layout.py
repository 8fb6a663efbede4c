from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Box(BaseModel):
    """Axis-aligned box in canvas inches, origin top-left."""
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h


class TextRun(BaseModel):
    text: str
    bold: bool = False


class LayoutElement(BaseModel):
    """
    One drawable element ready for the file writer.

    Attributes:
        kind: shape | image-placeholder | text
        shape_type: rect | ellipse | line | roundRect, shapes only
        runs: rich text runs for text elements
        style: passthrough styling (fill, line, color, align, valign, bullet...)
    """
    kind: str
    box: Box
    shape_type: Optional[str] = None
    runs: List[TextRun] = Field(default_factory=list)
    font_size: Optional[float] = None
    alt_text: Optional[str] = None
    style: Dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


class SlideLayout(BaseModel):
    """Renderable layout for one slide, in paint order."""
    slide_number: int
    layout: str = Field(..., description="Design layout hint or legacy template name")
    source: str = Field(..., description="design | legacy")
    background: Optional[Dict[str, Any]] = None
    elements: List[LayoutElement] = Field(default_factory=list)
    notes: str = ""
    safety_error: Optional[str] = None

    def elements_of(self, kind: str) -> List[LayoutElement]:
        return [el for el in self.elements if el.kind == kind]
