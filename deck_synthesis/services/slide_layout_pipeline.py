"""
Per-slide layout pipeline.

design text -> NDJSON parser -> validator -> coordinate safety -> SlideLayout

Any step that cannot produce a usable design hands the slide to the legacy
renderer, which always succeeds. A safety refusal is not an error for the
deck: the slide is still laid out, and the refusal message travels on the
result so the caller can explain it to the user.
"""

from typing import Callable, Dict, List, Optional, Sequence

from deck_synthesis.config.pipeline_config import (
    CanvasConfig,
    TypographyConfig,
    get_canvas_config,
    get_typography_config,
)
from deck_synthesis.models.layout import SlideLayout
from deck_synthesis.models.slide import Slide
from deck_synthesis.services.content_heuristics import extract_brand_colors
from deck_synthesis.services.coordinate_safety import resolve_design_layout
from deck_synthesis.services.design_stream_parser import parse_design
from deck_synthesis.services.design_validator import find_design_violations
from deck_synthesis.services.exceptions import EmptyDeckError, ExportCancelledError
from deck_synthesis.services.legacy_layout_renderer import render_legacy_layout
from deck_synthesis.setup_logging_optimized import get_logger

logger = get_logger(__name__)

# (slide, palette) -> NDJSON design text, or None when no design is available
DesignSource = Callable[[Slide, Dict[str, str]], Optional[str]]
ProgressCallback = Callable[[int, int, str], None]

SAVING_STATUS = "Saving file..."


def layout_slide(slide: Slide,
                 design_text: Optional[str],
                 colors: Optional[Dict[str, str]] = None,
                 canvas: Optional[CanvasConfig] = None,
                 typography: Optional[TypographyConfig] = None) -> SlideLayout:
    """Lay out one slide from its design response, falling back to the legacy templates."""
    canvas = canvas or get_canvas_config()
    typography = typography or get_typography_config()

    if not design_text or not design_text.strip():
        logger.debug(f"Slide {slide.slide_number}: no design text, using legacy layout")
        return render_legacy_layout(slide, colors, canvas, typography)

    design = parse_design(design_text)

    if design.refused:
        logger.warning(f"Slide {slide.slide_number}: design refused: {design.safety_error}")
        fallback = render_legacy_layout(slide, colors, canvas, typography)
        return fallback.model_copy(update={"safety_error": design.safety_error})

    if design.config is None and not design.elements:
        logger.warning(f"Slide {slide.slide_number}: design response had no usable records, using legacy layout")
        return render_legacy_layout(slide, colors, canvas, typography)

    violations = find_design_violations(design)
    if violations:
        logger.warning(
            f"Slide {slide.slide_number}: design invalid ({len(violations)} problem(s), "
            f"first: {violations[0]}), using legacy layout"
        )
        return render_legacy_layout(slide, colors, canvas, typography)

    return resolve_design_layout(design, slide, canvas, typography)


def _status_for(slides: Sequence[Slide], index: int) -> str:
    if index < len(slides):
        return f"Slide {index + 1}: {slides[index].title}..."
    return SAVING_STATUS


def layout_deck(slides: Sequence[Slide],
                design_source: Optional[DesignSource] = None,
                on_progress: Optional[ProgressCallback] = None,
                is_aborted: Optional[Callable[[], bool]] = None,
                colors: Optional[Dict[str, str]] = None) -> List[SlideLayout]:
    """
    Lay out a whole deck, one design request per slide.

    Args:
        slides: deck in presentation order
        design_source: returns the design response for a slide; a failure
            here only affects that slide, which gets the legacy layout
        on_progress: called as (completed, total, status)
        is_aborted: polled before and after every design request

    Raises:
        EmptyDeckError: no slides
        ExportCancelledError: is_aborted() became true, or the design
            source raised it
    """
    if not slides:
        raise EmptyDeckError()

    def _check_aborted():
        if is_aborted is not None and is_aborted():
            raise ExportCancelledError()

    palette = colors or extract_brand_colors(slides)
    total = len(slides)
    layouts: List[SlideLayout] = []

    if on_progress:
        on_progress(0, total, _status_for(slides, 0))

    for i, slide in enumerate(slides):
        _check_aborted()

        design_text = None
        if design_source is not None:
            try:
                design_text = design_source(slide, palette)
            except ExportCancelledError:
                raise
            except Exception as e:
                logger.error(f"Failed to generate design for slide {i + 1}: {e}")
        _check_aborted()

        layouts.append(layout_slide(slide, design_text, palette))

        if on_progress:
            on_progress(i + 1, total, _status_for(slides, i + 1))

    _check_aborted()
    if on_progress:
        on_progress(total, total, SAVING_STATUS)

    logger.info(f"Laid out {total} slide(s): "
                f"{sum(1 for layout in layouts if layout.source == 'design')} designed, "
                f"{sum(1 for layout in layouts if layout.source == 'legacy')} legacy")
    return layouts
