"""
Rule-based content classifiers.

Pure functions over the markdown-lite slide body ("**bold**" markers and
"- " list lines). They drive the legacy template choice and the layout hint
sent with a design request. No semantic understanding beyond these patterns.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from deck_synthesis.models.layout import TextRun
from deck_synthesis.models.slide import Slide

BOLD_PATTERN = re.compile(r"\*\*(.*?)\*\*")
LIST_ITEM_PATTERN = re.compile(r"\*\*(.+?)\*\*:\s*(.+)|(.+?):\s*(.+)")
TIMELINE_EVENT_PATTERN = re.compile(r"\*\*(\d{4}s?)\*\*:\s*(.+)|(\d{4}s?):\s*(.+)")

# Latin letters plus the Vietnamese precomposed ranges
_LETTER = "a-zA-Z\u00E0-\u1EF9\u1E00-\u1EFF"
BIG_NUMBER_PATTERN = re.compile(rf"[0-9][0-9.,]*\s*[{_LETTER}]")
BIG_NUMBER_EXTRACT_PATTERN = re.compile(rf"[0-9][0-9.,]*\s*[{_LETTER}]*")

BIG_NUMBER_MAX_CHARS = 150
GRID_MIN_ITEMS = 3
GRID_MIN_DESCRIPTION_CHARS = 10
TIMELINE_MIN_EVENTS = 2


@dataclass(frozen=True)
class ListItem:
    title: str
    description: str


@dataclass(frozen=True)
class TimelineEvent:
    year: str
    description: str


def strip_markdown(text: str) -> str:
    """Drop **bold** markers, keep the words."""
    return BOLD_PATTERN.sub(r"\1", text or "").strip()


def _list_lines(content: str) -> Iterable[str]:
    for line in (content or "").split("\n"):
        stripped = line.strip()
        if stripped.startswith("-"):
            yield re.sub(r"^-\s*", "", stripped)


def parse_list_items(content: str) -> List[ListItem]:
    """Parse "- **Title**: Description" / "- Title: Description" lines."""
    items = []
    for line in _list_lines(content):
        match = LIST_ITEM_PATTERN.search(line)
        if match:
            items.append(ListItem(
                title=(match.group(1) or match.group(3) or "").strip(),
                description=(match.group(2) or match.group(4) or "").strip(),
            ))
        else:
            items.append(ListItem(title="", description=line.strip()))
    return items


def parse_timeline_events(content: str) -> List[TimelineEvent]:
    """Parse "- **1886**: Description" / "- 1990s: Description" lines."""
    events = []
    for line in _list_lines(content):
        match = TIMELINE_EVENT_PATTERN.search(line)
        if match:
            events.append(TimelineEvent(
                year=(match.group(1) or match.group(3) or "").strip(),
                description=(match.group(2) or match.group(4) or "").strip(),
            ))
    return events


def is_timeline(content: str) -> bool:
    return len(parse_timeline_events(content)) >= TIMELINE_MIN_EVENTS


def is_grid_candidate(items: List[ListItem]) -> bool:
    """Three or more items that each carry a title or a real description.

    Character counts are an approximation: short non-Latin descriptions
    without a title can fall under the threshold.
    """
    if len(items) < GRID_MIN_ITEMS:
        return False
    return all(item.title or len(item.description) > GRID_MIN_DESCRIPTION_CHARS for item in items)


def has_big_number(content: str) -> bool:
    """Short content built around a figure followed by a word, e.g. "3.2M users"."""
    text = strip_markdown(content)
    return len(text) < BIG_NUMBER_MAX_CHARS and BIG_NUMBER_PATTERN.search(text) is not None


def extract_big_number(content: str) -> Tuple[str, str]:
    """Split content into the headline figure and the remaining context text."""
    text = strip_markdown(content)
    match = BIG_NUMBER_EXTRACT_PATTERN.search(text)
    if not match:
        return text[:30], ""
    number = match.group(0).strip()
    rest = text.replace(match.group(0), "", 1).strip()
    return number, re.sub(r"^[\s\-:]+", "", rest)


def parse_text_runs(text: str) -> List[TextRun]:
    """Turn "**Hello** world" into [TextRun(Hello, bold), TextRun( world)]."""
    if not text:
        return [TextRun(text="")]

    runs: List[TextRun] = []
    last_index = 0
    for match in BOLD_PATTERN.finditer(text):
        if match.start() > last_index:
            runs.append(TextRun(text=text[last_index:match.start()]))
        runs.append(TextRun(text=match.group(1), bold=True))
        last_index = match.end()
    if last_index < len(text):
        runs.append(TextRun(text=text[last_index:]))
    return runs or [TextRun(text=text)]


def count_list_lines(content: str) -> int:
    return sum(1 for line in (content or "").split("\n") if line.startswith("-"))


def suggest_design_layout(slide: Slide) -> str:
    """Layout hint passed along with a design request."""
    content_length = len(slide.content)
    has_image = bool(slide.visual_description)

    if count_list_lines(slide.content) >= 3:
        return "grid_cards"
    if has_image and content_length > 200:
        return "split_left"
    if has_image:
        return "split_right"
    return "hero_center"


# Keyword -> palette rules, first match wins
BRAND_COLOR_RULES: List[Tuple[List[str], Dict[str, str]]] = [
    (["coca", "cola", "red", "tet", "sale"], {"primary": "E60012", "secondary": "F9F9F9", "accent": "000000"}),
    (["bank", "trust", "finance", "investment"], {"primary": "1E3A5F", "secondary": "E8EEF4", "accent": "2E7D32"}),
    (["tech", "ai", "software", "digital"], {"primary": "0066CC", "secondary": "F0F4F8", "accent": "1A1A1A"}),
    (["eco", "green", "food", "organic"], {"primary": "2E7D32", "secondary": "E8F5E9", "accent": "1B5E20"}),
    (["health", "medical", "wellness"], {"primary": "0277BD", "secondary": "E3F2FD", "accent": "004D40"}),
]
DEFAULT_PALETTE = {"primary": "2C2C2C", "secondary": "F9F9F9", "accent": "666666"}


def extract_brand_colors(slides: Iterable[Slide], rules: Optional[List[Tuple[List[str], Dict[str, str]]]] = None) -> Dict[str, str]:
    """Pick a palette from keywords found anywhere in the deck."""
    all_text = " ".join(f"{s.title} {s.content}" for s in slides).lower()
    for keywords, palette in (rules or BRAND_COLOR_RULES):
        if any(keyword in all_text for keyword in keywords):
            return dict(palette)
    return dict(DEFAULT_PALETTE)
