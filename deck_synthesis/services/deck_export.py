"""
Text exports of a deck: Markdown for clipboard/notes, JSON for download.
Transient action markers are never exported.
"""

from typing import Sequence

from deck_synthesis.models.slide import Slide
from deck_synthesis.utils.json_safe import dumps_json_safe


def _slide_markdown(slide: Slide) -> str:
    lines = [
        f"## Slide {slide.slide_number}: {slide.title}",
        "",
        slide.content,
        "",
    ]

    if slide.visual_needs_image and slide.visual_description:
        lines.append(f"> **Visual:** {slide.visual_description}")
        lines.append("")

    if slide.speaker_notes:
        lines.append(f"> **Speaker notes:** {slide.speaker_notes}")
        lines.append("")

    meta = []
    if slide.layout_suggestion:
        meta.append(f"Layout: {slide.layout_suggestion.value}")
    if slide.estimated_duration:
        meta.append(f"Duration: {slide.estimated_duration}")
    if meta:
        lines.append(f"*{' | '.join(meta)}*")
        lines.append("")

    lines.append("---")
    return "\n".join(lines)


def slides_to_markdown(slides: Sequence[Slide]) -> str:
    return "\n\n".join(_slide_markdown(s) for s in slides)


def slides_to_json(slides: Sequence[Slide]) -> str:
    """Persisted form of the deck, pretty-printed."""
    return dumps_json_safe(list(slides))
