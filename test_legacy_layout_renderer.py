"""
Tests for the rule-based template renderer.
"""

import pytest

from deck_synthesis.config.pipeline_config import CanvasConfig, TypographyConfig
from deck_synthesis.models.slide import LayoutSuggestion, Slide
from deck_synthesis.services import legacy_layout_renderer
from deck_synthesis.services.legacy_layout_renderer import (
    LAYOUT_CONFIGS,
    LayoutType,
    map_layout,
    render_legacy_layout,
    resolve_layout,
)

COLORS = {"primary": "0066CC", "secondary": "F0F4F8", "accent": "1A1A1A"}


@pytest.fixture
def canvas():
    return CanvasConfig(width=10.0, height=5.625, safe_margin=0.2, min_element_size=0.1)


@pytest.fixture
def typography():
    return TypographyConfig(capacity_factor=8, default_font_size=18, font_stack="Arial")


def render(slide, canvas, typography, colors=COLORS):
    return render_legacy_layout(slide, colors, canvas, typography)


def assert_inside(layout, canvas):
    for el in layout.elements:
        assert el.box.x >= canvas.safe_margin - 1e-9
        assert el.box.y >= canvas.safe_margin - 1e-9
        assert el.box.right <= canvas.max_x + 1e-9
        assert el.box.bottom <= canvas.max_y + 1e-9


def test_every_layout_has_static_geometry():
    assert set(LAYOUT_CONFIGS) == set(LayoutType)


@pytest.mark.parametrize("suggestion,expected", [
    ("intro", LayoutType.INTRO),
    ("split-left", LayoutType.LEFT),
    ("split-right", LayoutType.RIGHT),
    ("centered", LayoutType.CENTER),
    ("full-image", LayoutType.CENTER),
    ("quote", LayoutType.QUOTE),
    (LayoutSuggestion.TIMELINE, LayoutType.TIMELINE),
    ("big-number", LayoutType.BIGNUMBER),
    ("mosaic", LayoutType.CENTER),
    (None, LayoutType.CENTER),
])
def test_map_layout(suggestion, expected):
    assert map_layout(suggestion) == expected


class TestResolveLayout:

    def test_timeline_wins_over_everything(self):
        slide = Slide(slide_number=1, layout_suggestion="split-left", content="- 1990: A\n- 2000: B")

        assert resolve_layout(slide, LayoutType.LEFT) == LayoutType.TIMELINE

    def test_grid_only_from_center(self):
        slide = Slide(slide_number=1, content="- Speed: fast\n- Cost: low\n- Reach: global")

        assert resolve_layout(slide, LayoutType.CENTER) == LayoutType.GRID
        assert resolve_layout(slide, LayoutType.RIGHT) == LayoutType.RIGHT

    def test_big_number_from_center_or_intro(self):
        slide = Slide(slide_number=1, content="3.2M users")

        assert resolve_layout(slide, LayoutType.CENTER) == LayoutType.BIGNUMBER
        assert resolve_layout(slide, LayoutType.INTRO) == LayoutType.BIGNUMBER
        assert resolve_layout(slide, LayoutType.QUOTE) == LayoutType.QUOTE

    def test_plain_content_keeps_base(self):
        slide = Slide(slide_number=1, content="Just a sentence.")

        assert resolve_layout(slide, LayoutType.QUOTE) == LayoutType.QUOTE


class TestRender:

    def test_center_with_visual(self, canvas, typography):
        slide = Slide(slide_number=1, title="Overview", content="Some **key** text",
                      visual_needs_image=True, visual_description="A skyline", speaker_notes="Talk")
        layout = render(slide, canvas, typography)

        assert layout.source == "legacy"
        assert layout.layout == "center"
        assert layout.background == {"color": COLORS["secondary"]}
        texts = [el.text for el in layout.elements_of("text")]
        assert "OVERVIEW" in texts
        assert "Some key text" in texts
        assert layout.elements_of("image-placeholder")[0].alt_text == "A skyline"
        assert any(el.shape_type == "line" and el.box.h == 0 for el in layout.elements_of("shape"))
        assert layout.notes == "Talk\n\n[VISUAL PROMPT]: A skyline"
        assert_inside(layout, canvas)

    def test_split_left_places_visual_on_the_right(self, canvas, typography):
        slide = Slide(slide_number=2, title="Why", content="- a\n- b", layout_suggestion="split-left",
                      visual_description="Diagram")
        layout = render(slide, canvas, typography)
        visual = layout.elements_of("image-placeholder")[0]

        assert layout.layout == "left"
        assert visual.box.x > 5
        assert_inside(layout, canvas)

    def test_intro(self, canvas, typography):
        slide = Slide(slide_number=1, title="Kickoff", content="Welcome", layout_suggestion="intro")
        layout = render(slide, canvas, typography)

        assert layout.layout == "intro"
        assert layout.background == {"color": COLORS["primary"]}
        assert layout.elements[0].kind == "shape"

    def test_quote_keeps_title_case(self, canvas, typography):
        slide = Slide(slide_number=1, title="Stay hungry", content="Steve Jobs", layout_suggestion="quote")
        layout = render(slide, canvas, typography)

        assert "Stay hungry" in [el.text for el in layout.elements_of("text")]

    def test_grid_cards(self, canvas, typography):
        slide = Slide(slide_number=3, title="Pillars",
                      content="- **Speed**: Fast delivery\n- **Cost**: Lower bills\n- **Reach**: Worldwide")
        layout = render(slide, canvas, typography)

        assert layout.layout == "grid"
        cards = [el for el in layout.elements_of("shape") if el.shape_type == "roundRect"]
        assert len(cards) == 3
        texts = [el.text for el in layout.elements_of("text")]
        assert {"Speed", "Cost", "Reach", "Fast delivery"} <= set(texts)
        assert_inside(layout, canvas)

    def test_many_grid_cards_stay_on_canvas(self, canvas, typography):
        content = "\n".join(f"- Item {i}: description number {i}" for i in range(8))
        layout = render(Slide(slide_number=1, title="All", content=content), canvas, typography)

        assert layout.layout == "grid"
        assert_inside(layout, canvas)

    def test_timeline(self, canvas, typography):
        slide = Slide(slide_number=4, title="History",
                      content="- **1886**: Founded\n- 1919: Sold\n- 1985: New formula")
        layout = render(slide, canvas, typography)
        shapes = layout.elements_of("shape")

        assert layout.layout == "timeline"
        assert shapes[0].shape_type == "line"
        assert shapes[0].box.h == 0
        assert [s.shape_type for s in shapes[1:]] == ["ellipse"] * 3
        assert {"1886", "1919", "1985"} <= {el.text for el in layout.elements_of("text")}
        assert_inside(layout, canvas)

    def test_big_number(self, canvas, typography):
        slide = Slide(slide_number=5, title="Reach", content="**3.2M** users", visual_description="Map")
        layout = render(slide, canvas, typography)
        texts = layout.elements_of("text")

        assert layout.layout == "bignumber"
        assert texts[0].text == "3.2M"
        assert texts[0].font_size == 80
        assert texts[1].text == "users"
        assert layout.background == {"color": COLORS["primary"]}
        assert "[VISUAL PROMPT]: Map" in layout.notes

    def test_footer_is_always_present(self, canvas, typography):
        slide = Slide(slide_number=9, title="End", estimated_duration="1 min")
        layout = render(slide, canvas, typography)

        assert [el.text for el in layout.elements_of("text")][-2:] == ["9", "1 min"]

    def test_partial_palette_is_completed(self, canvas, typography):
        layout = render(Slide(slide_number=1, title="x", layout_suggestion="intro"), canvas, typography,
                        colors={"primary": "FF0000"})

        assert layout.background == {"color": "FF0000"}

    def test_never_raises(self, canvas, typography, monkeypatch):
        def broken(*args, **kwargs):
            raise KeyError("primary")

        monkeypatch.setattr(legacy_layout_renderer, "_render", broken)
        slide = Slide(slide_number=2, title="Fallback", content="Body")
        layout = render(slide, canvas, typography)

        assert layout.layout == "plain"
        assert [el.text for el in layout.elements_of("text")][:2] == ["Fallback", "Body"]
