"""
Coordinate safety and typography for designed slides.

Everything the model proposes is corrected, never rejected, at this stage:
boxes are pulled inside the safe zone of the canvas and font sizes are
capped by how much text the box can physically hold.
"""

from numbers import Real
from typing import Any, Dict, List, Optional

from deck_synthesis.config.pipeline_config import (
    CanvasConfig,
    TypographyConfig,
    get_canvas_config,
    get_typography_config,
)
from deck_synthesis.models.design import DesignElement, DesignResult
from deck_synthesis.models.layout import Box, LayoutElement, SlideLayout
from deck_synthesis.models.slide import Slide
from deck_synthesis.services.content_heuristics import parse_text_runs
from deck_synthesis.setup_logging_optimized import get_logger

logger = get_logger(__name__)

GEOMETRY_KEYS = ("x", "y", "w", "h")
FOOTER_COLOR = "AAAAAA"
MIN_BULLET_LINE_HEIGHT = 0.22
POINTS_PER_INCH = 72


def _number(value: Any) -> Optional[float]:
    """Numeric value, or None for missing, boolean, NaN or non-numeric input.

    Numeric strings ("2.5") are accepted, models emit them now and then.
    """
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return None
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    value = float(value)
    if value != value:
        return None
    return value


def clamp_box(x: Any, y: Any, w: Any, h: Any,
              canvas: Optional[CanvasConfig] = None,
              keep_zero_extent: bool = False) -> Box:
    """
    Force a box inside the safe zone.

    Missing or zero origins snap to the margin; missing or zero sizes default to 1.
    Sizes below the minimum are raised, and boxes crossing the far edge are
    shrunk to end exactly on it. `keep_zero_extent` lets a line keep its
    zero-thickness dimension.
    """
    canvas = canvas or get_canvas_config()
    margin = canvas.safe_margin
    min_size = canvas.min_element_size

    nx = max(margin, _number(x) or margin)
    ny = max(margin, _number(y) or margin)

    def _extent(value: Any) -> float:
        n = _number(value)
        if n is None:
            return 1.0
        if n == 0:
            return 0.0 if keep_zero_extent else 1.0
        return max(min_size, n)

    nw = _extent(w)
    nh = _extent(h)

    # An origin past the far edge still has to leave room for the minimum size
    nx = min(nx, canvas.max_x - min(min_size, nw))
    ny = min(ny, canvas.max_y - min(min_size, nh))

    if nx + nw > canvas.max_x:
        nw = canvas.max_x - nx
    if ny + nh > canvas.max_y:
        nh = canvas.max_y - ny

    return Box(x=nx, y=ny, w=nw, h=nh)


def clamp_coordinates(element: DesignElement, canvas: Optional[CanvasConfig] = None) -> DesignElement:
    """
    Return a copy of the element whose box lies inside the safe zone.

    Lines are the one exception to the minimum element size: a line flat in
    exactly one direction keeps its zero extent there, so clamping never
    turns it into a thin rectangle.
    """
    opts = dict(element.options or {})
    w, h = opts.get("w"), opts.get("h")
    # A line may be flat in exactly one direction
    keep_zero = element.is_line and not (_number(w) == 0 and _number(h) == 0)
    box = clamp_box(opts.get("x"), opts.get("y"), w, h, canvas, keep_zero_extent=keep_zero)
    opts.update(x=box.x, y=box.y, w=box.w, h=box.h)
    return element.model_copy(update={"options": opts})


def calculate_safe_font_size(text_length: int, box_width: float, box_height: float,
                             suggested_size: float,
                             capacity_factor: Optional[float] = None) -> float:
    """Cap the suggested font size by how much text the box can hold."""
    if capacity_factor is None:
        capacity_factor = get_typography_config().capacity_factor
    capacity = box_width * box_height * capacity_factor

    if text_length > capacity * 2:
        return max(10, min(suggested_size, 12))
    if text_length > capacity * 1.5:
        return max(12, min(suggested_size, 14))
    if text_length > capacity:
        return min(suggested_size, 16)
    return suggested_size


def compose_notes(slide: Slide) -> str:
    notes = slide.speaker_notes or ""
    if slide.visual_description:
        notes += f"\n\n[VISUAL PROMPT]: {slide.visual_description}"
    return notes


def footer_elements(slide: Slide, canvas: Optional[CanvasConfig] = None,
                    typography: Optional[TypographyConfig] = None) -> List[LayoutElement]:
    """Slide number bottom-left, estimated duration bottom-right."""
    canvas = canvas or get_canvas_config()
    typography = typography or get_typography_config()
    footer_y = canvas.height - 0.5
    style = {"color": FOOTER_COLOR, "fontFace": typography.font_stack}

    elements = [
        LayoutElement(
            kind="text",
            box=clamp_box(0.5, footer_y, 0.5, 0.4, canvas),
            runs=parse_text_runs(str(slide.slide_number)),
            font_size=10,
            style=dict(style),
        )
    ]
    if slide.estimated_duration:
        elements.append(LayoutElement(
            kind="text",
            box=clamp_box(canvas.width - 1.0, footer_y, 1.0, 0.4, canvas),
            runs=parse_text_runs(slide.estimated_duration),
            font_size=10,
            style={**style, "align": "right"},
        ))
    return elements


def _style_of(opts: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in opts.items() if k not in GEOMETRY_KEYS and k != "fontSize"}


def _text_elements(el: DesignElement, typography: TypographyConfig) -> List[LayoutElement]:
    opts = el.options or {}
    box = Box(x=opts["x"], y=opts["y"], w=opts["w"], h=opts["h"])
    text = el.text or ""
    suggested = _number(opts.get("fontSize")) or typography.default_font_size
    size = calculate_safe_font_size(len(text), box.w, box.h, suggested, typography.capacity_factor)

    style = _style_of(opts)
    style.setdefault("fontFace", typography.font_stack)
    style.setdefault("shrinkText", True)
    style.setdefault("wrap", True)

    if not opts.get("bullet"):
        return [LayoutElement(kind="text", box=box, runs=parse_text_runs(text), font_size=size, style=style)]

    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return []
    line_height = max(MIN_BULLET_LINE_HEIGHT, size * 1.4 / POINTS_PER_INCH)
    # Stacked lines stay inside the original box
    line_height = min(line_height, box.h / len(lines))
    elements = []
    for i, line in enumerate(lines):
        clean = line.strip()
        if clean.startswith("-"):
            clean = clean[1:].strip()
        elements.append(LayoutElement(
            kind="text",
            box=Box(x=box.x, y=box.y + i * line_height, w=box.w, h=line_height),
            runs=parse_text_runs(clean),
            font_size=size,
            style={**style, "bullet": True, "autoFit": True},
        ))
    return elements


def resolve_design_layout(design: DesignResult, slide: Slide,
                          canvas: Optional[CanvasConfig] = None,
                          typography: Optional[TypographyConfig] = None) -> SlideLayout:
    """
    Turn a validated design into renderable geometry.

    Elements keep their paint order; every box is clamped and every text
    element gets a safe font size before it reaches the file writer.
    """
    canvas = canvas or get_canvas_config()
    typography = typography or get_typography_config()

    background = None
    if design.config and isinstance(design.config.background, dict):
        color = design.config.background.get("color")
        if isinstance(color, str) and color:
            background = {"color": color}
            transparency = _number(design.config.background.get("transparency"))
            if transparency is not None:
                background["transparency"] = transparency

    elements: List[LayoutElement] = []
    for raw in design.elements:
        el = clamp_coordinates(raw, canvas)
        opts = el.options or {}
        if el.type == "shape":
            elements.append(LayoutElement(
                kind="shape",
                box=Box(x=opts["x"], y=opts["y"], w=opts["w"], h=opts["h"]),
                shape_type=el.shapeType or "rect",
                style=_style_of(opts),
            ))
        elif el.type == "text":
            elements.extend(_text_elements(el, typography))
        elif el.type == "image-placeholder":
            elements.append(LayoutElement(
                kind="image-placeholder",
                box=Box(x=opts["x"], y=opts["y"], w=opts["w"], h=opts["h"]),
                alt_text=el.altText or slide.visual_description or "",
            ))
        else:
            logger.debug(f"Slide {slide.slide_number}: ignoring element type {el.type!r}")

    elements.extend(footer_elements(slide, canvas, typography))

    layout_name = (design.config.layout if design.config else None) or "designed"
    return SlideLayout(
        slide_number=slide.slide_number,
        layout=layout_name,
        source="design",
        background=background,
        elements=elements,
        notes=compose_notes(slide),
    )
