"""
End-to-end tests: design text through parser, validator and safety engine,
with fallback to the legacy templates.
"""

import json

import pytest

from deck_synthesis.models.slide import Slide
from deck_synthesis.services.delta_reconciler import apply_delta
from deck_synthesis.services.exceptions import EmptyDeckError, ExportCancelledError
from deck_synthesis.services.slide_layout_pipeline import SAVING_STATUS, layout_deck, layout_slide


def ndjson(*records):
    return "\n".join(json.dumps(r) for r in records)


GOOD_DESIGN = ndjson(
    {"type": "config", "layout": "hero_center", "background": {"color": "FFFFFF"}},
    {"type": "text", "text": "Welcome", "options": {"x": 1, "y": 1, "w": 8, "h": 1, "fontSize": 44}},
    {"type": "shape", "shapeType": "rect", "options": {"x": 0, "y": 0, "w": 10, "h": 0.3, "fill": {"color": "0066CC"}}},
)
INVALID_DESIGN = ndjson(
    {"type": "config", "layout": "hero"},
    {"type": "text", "text": "Broken", "options": {"x": 1, "y": 1, "w": 0, "h": 1}},
)
REFUSED_DESIGN = ndjson(
    {"type": "config", "layout": "hero"},
    {"type": "error", "message": "Cannot design this content"},
)


@pytest.fixture
def slide():
    return Slide(slide_number=1, title="Intro", content="Hello there")


class TestLayoutSlide:

    def test_valid_design_is_used(self, slide):
        layout = layout_slide(slide, GOOD_DESIGN)

        assert layout.source == "design"
        assert layout.layout == "hero_center"
        assert [el.kind for el in layout.elements[:2]] == ["shape", "text"]
        assert layout.safety_error is None

    def test_missing_text_falls_back(self, slide):
        assert layout_slide(slide, None).source == "legacy"
        assert layout_slide(slide, "  \n").source == "legacy"

    def test_unparseable_text_falls_back(self, slide):
        assert layout_slide(slide, "Sorry, I can't help with that.").source == "legacy"

    def test_invalid_geometry_falls_back(self, slide):
        layout = layout_slide(slide, INVALID_DESIGN)

        assert layout.source == "legacy"
        assert layout.safety_error is None

    def test_safety_refusal_is_surfaced(self, slide):
        layout = layout_slide(slide, REFUSED_DESIGN)

        assert layout.source == "legacy"
        assert layout.safety_error == "Cannot design this content"


class TestLayoutDeck:

    @pytest.fixture
    def deck(self):
        return [
            Slide(slide_number=1, title="Intro", content="Hello"),
            Slide(slide_number=2, title="Body", content="Details"),
            Slide(slide_number=3, title="End", content="Bye"),
        ]

    def test_progress_and_mixed_sources(self, deck):
        designs = {1: GOOD_DESIGN, 2: INVALID_DESIGN, 3: None}
        progress = []

        layouts = layout_deck(
            deck,
            design_source=lambda s, colors: designs[s.slide_number],
            on_progress=lambda done, total, status: progress.append((done, total, status)),
        )

        assert [l.source for l in layouts] == ["design", "legacy", "legacy"]
        assert progress[0] == (0, 3, "Slide 1: Intro...")
        assert progress[1] == (1, 3, "Slide 2: Body...")
        assert progress[-2] == (3, 3, SAVING_STATUS)
        assert progress[-1] == (3, 3, SAVING_STATUS)

    def test_design_source_receives_palette(self, deck):
        seen = []

        def source(slide, colors):
            seen.append(colors)
            return None

        layout_deck(deck, design_source=source, colors={"primary": "111111", "secondary": "EEEEEE", "accent": "999999"})

        assert all(c["primary"] == "111111" for c in seen)
        assert len(seen) == 3

    def test_design_source_failure_only_affects_that_slide(self, deck):
        def source(slide, colors):
            if slide.slide_number == 2:
                raise TimeoutError("model timed out")
            return GOOD_DESIGN

        layouts = layout_deck(deck, design_source=source)

        assert [l.source for l in layouts] == ["design", "legacy", "design"]

    def test_abort_cancels(self, deck):
        calls = []

        def source(slide, colors):
            calls.append(slide.slide_number)
            return GOOD_DESIGN

        with pytest.raises(ExportCancelledError) as exc_info:
            layout_deck(deck, design_source=source, is_aborted=lambda: len(calls) >= 2)

        assert calls == [1, 2]
        assert str(exc_info.value) == "Export cancelled"

    def test_cancellation_from_design_source_propagates(self, deck):
        def source(slide, colors):
            raise ExportCancelledError()

        with pytest.raises(ExportCancelledError):
            layout_deck(deck, design_source=source)

    def test_empty_deck(self):
        with pytest.raises(EmptyDeckError):
            layout_deck([])

    def test_without_design_source_everything_is_legacy(self, deck):
        assert {l.source for l in layout_deck(deck)} == {"legacy"}


def test_reconcile_then_layout():
    """A deck built from streamed deltas lays out slide by slide."""
    deck = apply_delta([], {"action": "create", "slides": [{"slide_number": 1, "title": "Intro"}]}).slides
    deck = apply_delta(deck, {"action": "append", "slides": [
        {"slide_number": 2, "title": "History", "content": "- 1990: Start\n- 2020: Now"},
    ]}).slides

    layouts = layout_deck(deck, design_source=lambda s, c: GOOD_DESIGN if s.slide_number == 1 else None)

    assert [(l.slide_number, l.source, l.layout) for l in layouts] == [
        (1, "design", "hero_center"),
        (2, "legacy", "timeline"),
    ]
