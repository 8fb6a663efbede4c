"""
Legacy rule-based layout renderer.

Non-AI path: a slide is mapped onto one of a fixed family of templates from
its layout suggestion, overridden by content heuristics (timelines, card
grids, big-number callouts). Template geometry is a static table. This is
the terminal fallback of the pipeline, so it must always return a layout.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from deck_synthesis.config.pipeline_config import (
    CanvasConfig,
    TypographyConfig,
    get_canvas_config,
    get_typography_config,
)
from deck_synthesis.models.layout import LayoutElement, SlideLayout
from deck_synthesis.models.slide import LayoutSuggestion, Slide
from deck_synthesis.services.content_heuristics import (
    DEFAULT_PALETTE,
    ListItem,
    TimelineEvent,
    extract_big_number,
    has_big_number,
    is_grid_candidate,
    is_timeline,
    parse_list_items,
    parse_text_runs,
    parse_timeline_events,
    strip_markdown,
)
from deck_synthesis.services.coordinate_safety import clamp_box, compose_notes, footer_elements
from deck_synthesis.setup_logging_optimized import get_logger

logger = get_logger(__name__)


class LayoutType(str, Enum):
    INTRO = "intro"
    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"
    QUOTE = "quote"
    TIMELINE = "timeline"
    GRID = "grid"
    BIGNUMBER = "bignumber"


@dataclass(frozen=True)
class TextSlot:
    x: float
    y: float
    w: float
    h: float
    font_size: float
    align: str = "left"
    bold: bool = False
    italic: bool = False
    bullet: bool = False


@dataclass(frozen=True)
class VisualSlot:
    x: float
    y: float
    w: float
    h: float


@dataclass(frozen=True)
class LayoutConfig:
    title: TextSlot
    content: TextSlot
    visual: Optional[VisualSlot] = None


LAYOUT_CONFIGS: Dict[LayoutType, LayoutConfig] = {
    LayoutType.INTRO: LayoutConfig(
        title=TextSlot(1, 2, 8, 1.5, 54, align="center", bold=True),
        content=TextSlot(1, 4, 8, 1, 18, align="center"),
    ),
    LayoutType.LEFT: LayoutConfig(
        title=TextSlot(0.6, 0.5, 5, 1, 32, bold=True),
        content=TextSlot(0.6, 1.6, 5, 3.8, 14, bullet=True),
        visual=VisualSlot(6.2, 0.6, 3.5, 4.5),
    ),
    LayoutType.RIGHT: LayoutConfig(
        title=TextSlot(4.4, 0.5, 5, 1, 32, bold=True, align="right"),
        content=TextSlot(4.4, 1.6, 5, 3.8, 14, bullet=True, align="right"),
        visual=VisualSlot(0.3, 0.6, 3.5, 4.5),
    ),
    LayoutType.CENTER: LayoutConfig(
        title=TextSlot(1, 0.5, 8, 1, 36, align="center", bold=True),
        content=TextSlot(1.5, 2, 7, 3.5, 16, align="center"),
    ),
    LayoutType.QUOTE: LayoutConfig(
        title=TextSlot(1, 1.5, 8, 2, 36, align="center", italic=True),
        content=TextSlot(1, 3.8, 8, 0.8, 14, align="right"),
    ),
    LayoutType.TIMELINE: LayoutConfig(
        title=TextSlot(1, 0.5, 8, 0.8, 32, align="center", bold=True),
        content=TextSlot(0, 0, 0, 0, 0),
    ),
    LayoutType.GRID: LayoutConfig(
        title=TextSlot(1, 0.5, 8, 0.8, 36, align="center", bold=True),
        content=TextSlot(1.5, 2, 7, 3.5, 16, align="center"),
    ),
    LayoutType.BIGNUMBER: LayoutConfig(
        title=TextSlot(1, 1.5, 8, 1.5, 80, align="center", bold=True),
        content=TextSlot(1, 3.5, 8, 1, 20, align="center"),
    ),
}

SUGGESTION_TO_LAYOUT: Dict[LayoutSuggestion, LayoutType] = {
    LayoutSuggestion.INTRO: LayoutType.INTRO,
    LayoutSuggestion.SPLIT_LEFT: LayoutType.LEFT,
    LayoutSuggestion.SPLIT_RIGHT: LayoutType.RIGHT,
    LayoutSuggestion.CENTERED: LayoutType.CENTER,
    LayoutSuggestion.FULL_IMAGE: LayoutType.CENTER,
    LayoutSuggestion.QUOTE: LayoutType.QUOTE,
    LayoutSuggestion.TIMELINE: LayoutType.TIMELINE,
    LayoutSuggestion.GRID: LayoutType.GRID,
    LayoutSuggestion.BIG_NUMBER: LayoutType.BIGNUMBER,
}

# Grid cards
CARD_W = 4.5
CARD_H = 2.0
CARD_GAP = 0.5
CARD_START_X = 0.5
GRID_START_Y = 1.8

# Timeline
TIMELINE_LINE_Y = 3.0
TIMELINE_X_START = 1.5
TIMELINE_WIDTH = 7.0
TIMELINE_NODE_SIZE = 0.3


def map_layout(suggestion: Any) -> LayoutType:
    """Base template for a layout suggestion; anything unknown is centered."""
    try:
        return SUGGESTION_TO_LAYOUT.get(LayoutSuggestion(suggestion), LayoutType.CENTER)
    except ValueError:
        return LayoutType.CENTER


def resolve_layout(slide: Slide, base: LayoutType) -> LayoutType:
    """Apply content overrides to the base template, first match wins."""
    if is_timeline(slide.content):
        return LayoutType.TIMELINE

    if base == LayoutType.CENTER and is_grid_candidate(parse_list_items(slide.content)):
        return LayoutType.GRID

    if has_big_number(slide.content) and base in (LayoutType.CENTER, LayoutType.INTRO):
        return LayoutType.BIGNUMBER

    return base


class _Builder:
    """Collects clamped elements in paint order."""

    def __init__(self, canvas: CanvasConfig, typography: TypographyConfig):
        self.canvas = canvas
        self.typography = typography
        self.elements: List[LayoutElement] = []

    def shape(self, shape_type: str, x, y, w, h, **style) -> None:
        box = clamp_box(x, y, w, h, self.canvas, keep_zero_extent=(shape_type == "line"))
        self.elements.append(LayoutElement(kind="shape", box=box, shape_type=shape_type, style=style))

    def text(self, text: str, x, y, w, h, font_size: float, **style) -> None:
        style.setdefault("fontFace", self.typography.font_stack)
        box = clamp_box(x, y, w, h, self.canvas)
        self.elements.append(LayoutElement(
            kind="text", box=box, runs=parse_text_runs(text), font_size=font_size, style=style,
        ))

    def slot_text(self, text: str, slot: TextSlot, color: str, **extra) -> None:
        style = {"align": slot.align, "bold": slot.bold, "italic": slot.italic, "color": color}
        style.update(extra)
        self.text(text, slot.x, slot.y, slot.w, slot.h, slot.font_size, **style)

    def image_placeholder(self, x, y, w, h, alt_text: str) -> None:
        box = clamp_box(x, y, w, h, self.canvas)
        self.elements.append(LayoutElement(kind="image-placeholder", box=box, alt_text=alt_text))


def _render_grid(b: _Builder, items: List[ListItem], colors: Dict[str, str], start_y: float = GRID_START_Y) -> None:
    for idx, item in enumerate(items):
        col = idx % 2
        row = idx // 2
        x = CARD_START_X + col * (CARD_W + CARD_GAP)
        y = start_y + row * (CARD_H + CARD_GAP)

        b.shape("roundRect", x, y, CARD_W, CARD_H,
                fill={"color": "FFFFFF"}, line={"color": "E5E5E5", "width": 1}, rectRadius=0.1)
        if item.title:
            b.text(item.title, x + 0.2, y + 0.2, CARD_W - 0.4, 0.5, 15, bold=True, color=colors["primary"])
        b.text(item.description, x + 0.2, y + 0.75, CARD_W - 0.4, CARD_H - 0.95, 11,
               color="555555", valign="top")


def _render_timeline(b: _Builder, events: List[TimelineEvent], colors: Dict[str, str]) -> None:
    b.shape("line", TIMELINE_X_START, TIMELINE_LINE_Y, TIMELINE_WIDTH, 0,
            line={"color": colors["primary"], "width": 3})

    step = TIMELINE_WIDTH / (len(events) - 1) if len(events) > 1 else 0
    for idx, event in enumerate(events):
        x_pos = TIMELINE_X_START + idx * step
        b.shape("ellipse", x_pos - TIMELINE_NODE_SIZE / 2, TIMELINE_LINE_Y - TIMELINE_NODE_SIZE / 2,
                TIMELINE_NODE_SIZE, TIMELINE_NODE_SIZE,
                fill={"color": "FFFFFF"}, line={"color": colors["primary"], "width": 3})
        b.text(event.year, x_pos - 0.6, TIMELINE_LINE_Y - 0.8, 1.2, 0.4, 14,
               bold=True, color=colors["primary"], align="center")
        # Alternate rows so neighbouring descriptions do not collide
        desc_y = TIMELINE_LINE_Y + 0.4 if idx % 2 == 0 else TIMELINE_LINE_Y + 1.2
        b.text(event.description, x_pos - 0.8, desc_y, 1.6, 1.2, 10,
               color="555555", align="center", valign="top")


def _render(slide: Slide, layout: LayoutType, colors: Dict[str, str], b: _Builder) -> SlideLayout:
    config = LAYOUT_CONFIGS[layout]
    notes = slide.speaker_notes or ""

    if layout == LayoutType.BIGNUMBER:
        number, rest = extract_big_number(slide.content)
        b.text(number, 1, 1.5, 8, 1.8, 80, bold=True, color=colors["secondary"], align="center")
        if rest:
            b.text(rest, 1, 3.5, 8, 1, 20, color=colors["secondary"], align="center")
        background = colors["primary"]
        notes = compose_notes(slide)

    elif layout == LayoutType.TIMELINE:
        b.slot_text(slide.title, config.title, colors["primary"])
        _render_timeline(b, parse_timeline_events(slide.content), colors)
        background = colors["secondary"]

    elif layout == LayoutType.GRID:
        b.slot_text(slide.title, config.title, colors["primary"])
        _render_grid(b, parse_list_items(slide.content), colors)
        background = colors["secondary"]

    else:
        if layout == LayoutType.INTRO:
            background = colors["primary"]
            b.shape("rect", 1, 1.5, 1.5, 0.05, fill={"color": colors["secondary"]})
        else:
            background = colors["secondary"]

        title = slide.title if layout == LayoutType.QUOTE else slide.title.upper()
        title_color = colors["secondary"] if layout == LayoutType.INTRO else colors["primary"]
        b.slot_text(title, config.title, title_color)

        content_color = "FFCCCC" if layout == LayoutType.INTRO else "333333"
        content_style = {"valign": "top", "lineSpacingMultiple": 1.3}
        if config.content.bullet:
            content_style["bullet"] = {"characterCode": "2022"}
        b.slot_text(strip_markdown(slide.content), config.content, content_color, **content_style)

        if layout == LayoutType.CENTER:
            if slide.visual_needs_image and slide.visual_description:
                b.image_placeholder(3, 3.5, 4, 2, slide.visual_description)
                notes = compose_notes(slide)
            b.shape("line", 4, 1.5, 2, 0, line={"color": colors["primary"], "width": 2})
        elif config.visual and (slide.visual_needs_image or slide.visual_description):
            v = config.visual
            b.image_placeholder(v.x, v.y, v.w, v.h, slide.visual_description)
            notes = compose_notes(slide)

    b.elements.extend(footer_elements(slide, b.canvas, b.typography))
    return SlideLayout(
        slide_number=slide.slide_number,
        layout=layout.value,
        source="legacy",
        background={"color": background},
        elements=b.elements,
        notes=notes,
    )


def render_plain_layout(slide: Slide,
                        canvas: Optional[CanvasConfig] = None,
                        typography: Optional[TypographyConfig] = None) -> SlideLayout:
    """Bare title + body layout, used when a template cannot be built."""
    b = _Builder(canvas or get_canvas_config(), typography or get_typography_config())
    b.text(slide.title, 1, 1, 8, 0.8, 24, bold=True)
    b.text(slide.content, 1, 2, 8, 3, 14, color="333333", valign="top")
    b.elements.extend(footer_elements(slide, b.canvas, b.typography))
    return SlideLayout(
        slide_number=slide.slide_number,
        layout="plain",
        source="legacy",
        background={"color": "FFFFFF"},
        elements=b.elements,
        notes=slide.speaker_notes or "",
    )


def render_legacy_layout(slide: Slide,
                         colors: Optional[Dict[str, str]] = None,
                         canvas: Optional[CanvasConfig] = None,
                         typography: Optional[TypographyConfig] = None) -> SlideLayout:
    """
    Lay out a slide from a static template chosen by rules.

    Never raises: a failure while building the template degrades to the
    plain title/body layout.
    """
    palette = {**DEFAULT_PALETTE, **(colors or {})}
    canvas = canvas or get_canvas_config()
    typography = typography or get_typography_config()

    try:
        base = map_layout(slide.layout_suggestion)
        layout = resolve_layout(slide, base)
        logger.debug(f"Slide {slide.slide_number}: legacy layout {layout.value} (base {base.value})")
        return _render(slide, layout, palette, _Builder(canvas, typography))
    except Exception as e:
        logger.warning(f"Legacy layout failed for slide {slide.slide_number}, using plain layout: {e}")
        return render_plain_layout(slide, canvas, typography)
