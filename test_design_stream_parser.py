"""
Tests for the NDJSON design stream parser.
"""

import json

import pytest

from deck_synthesis.models.design import DEFAULT_SAFETY_MESSAGE, DesignConfig, DesignElement, DesignErrorRecord
from deck_synthesis.services.design_stream_parser import (
    IncrementalDesignParser,
    NDJSONDecoder,
    interpret_design,
    parse_design,
    parse_ndjson,
)
from deck_synthesis.services.exceptions import DesignSafetyRefusal, DesignStreamAborted


def line(**record):
    return json.dumps(record, ensure_ascii=False)


CONFIG = line(type="config", layout="hero", background={"color": "1E3A5F"})
TITLE = line(type="text", text="**Hello**", options={"x": 1, "y": 1, "w": 8, "h": 1, "fontSize": 40})
BACKDROP = line(type="shape", shapeType="rect", options={"x": 0, "y": 0, "w": 10, "h": 5.625, "fill": {"color": "000000"}})
PHOTO = line(type="image-placeholder", altText="city at night", options={"x": 6, "y": 1, "w": 3, "h": 3})


class TestNDJSONDecoder:

    def test_skips_noise_and_counts_it(self):
        text = "\n".join([
            "```json",
            CONFIG,
            "",
            "Here is your design:",
            '{"type": "text", "text": "trunc',
            '{"no_type": true}',
            TITLE,
            "```",
        ])
        decoder = NDJSONDecoder()
        records = parse_ndjson(text, decoder)

        assert [type(r) for r in records] == [DesignConfig, DesignElement]
        assert decoder.decoded_lines == 2
        # fence x2, prose, truncated object, typeless object; blank lines are not counted
        assert decoder.skipped_lines == 5

    def test_iter_records_is_lazy(self):
        decoder = NDJSONDecoder()
        records = decoder.iter_records(CONFIG + "\n" + TITLE)

        assert decoder.decoded_lines == 0
        first = next(records)
        assert isinstance(first, DesignConfig)
        assert decoder.decoded_lines == 1

    def test_non_object_json_is_skipped(self):
        decoder = NDJSONDecoder()

        assert decoder.decode_line("[1, 2, 3]") is None
        assert decoder.decode_line("42") is None
        assert decoder.skipped_lines == 2

    def test_empty_input(self):
        assert parse_ndjson("") == []
        assert parse_ndjson(None) == []


class TestInterpretDesign:

    def test_elements_are_put_in_paint_order(self):
        result = parse_design("\n".join([CONFIG, TITLE, BACKDROP, PHOTO]))

        assert result.config.layout == "hero"
        assert [el.type for el in result.elements] == ["shape", "image-placeholder", "text"]
        assert result.safety_error is None
        assert not result.refused

    def test_error_record_discards_everything(self):
        text = "\n".join([CONFIG, BACKDROP, line(type="error", message="X"), TITLE])
        result = parse_design(text)

        assert result.config is None
        assert result.elements == []
        assert result.safety_error == "X"
        assert result.refused

    def test_error_record_without_message_uses_default(self):
        result = parse_design(line(type="error"))

        assert result.safety_error == DEFAULT_SAFETY_MESSAGE

    def test_first_config_wins(self):
        result = parse_design("\n".join([CONFIG, line(type="config", layout="minimal")]))

        assert result.config.layout == "hero"

    def test_string_background_keeps_config(self):
        result = parse_design(line(type="config", layout="minimal", background="FFFFFF"))

        assert result.config.layout == "minimal"
        assert result.config.background == "FFFFFF"

    def test_numeric_text_is_kept(self):
        result = parse_design(line(type="text", text=2024, options={"x": 1, "y": 1, "w": 4, "h": 1}))

        assert [el.text for el in result.elements] == ["2024"]

    def test_unknown_element_types_are_dropped(self):
        result = parse_design("\n".join([TITLE, line(type="chart", options={"x": 1})]))

        assert [el.type for el in result.elements] == ["text"]

    def test_raise_for_safety(self):
        refused = interpret_design([DesignErrorRecord(message="Not allowed")])

        with pytest.raises(DesignSafetyRefusal) as exc_info:
            refused.raise_for_safety()
        assert exc_info.value.refusal_message == "Not allowed"

        accepted = parse_design(TITLE)
        assert accepted.raise_for_safety() is accepted


class TestIncrementalDesignParser:

    def test_chunks_split_anywhere(self):
        text = "\n".join([CONFIG, BACKDROP, TITLE])
        parser = IncrementalDesignParser()
        seen = []
        for i in range(0, len(text), 7):
            seen.extend(parser.feed(text[i:i + 7]))

        # The last line has no newline yet
        assert len(seen) == 2
        result = parser.finish()
        assert [el.type for el in result.elements] == ["shape", "text"]
        assert result.config.layout == "hero"

    def test_utf8_bytes_split_inside_a_character(self):
        record = line(type="text", text="Tết Nguyên Đán", options={"x": 1, "y": 1, "w": 4, "h": 1})
        data = (record + "\n").encode("utf-8")
        split = data.index("ế".encode("utf-8")) + 1

        parser = IncrementalDesignParser()
        assert parser.feed(data[:split]) == []
        records = parser.feed(data[split:])

        assert records[0].text == "Tết Nguyên Đán"

    def test_safety_error_reported_mid_stream(self):
        parser = IncrementalDesignParser()
        parser.feed(CONFIG + "\n")
        assert parser.safety_error is None

        parser.feed(line(type="error", message="Refused") + "\n")
        assert parser.safety_error == "Refused"
        assert parser.finish().elements == []

    def test_abort_stops_the_stream(self):
        parser = IncrementalDesignParser()
        parser.feed(CONFIG + "\n")
        parser.abort()

        with pytest.raises(DesignStreamAborted):
            parser.feed(TITLE)
        with pytest.raises(DesignStreamAborted):
            parser.finish()

    def test_finish_twice_raises(self):
        parser = IncrementalDesignParser()
        parser.feed(TITLE)
        parser.finish()

        with pytest.raises(DesignStreamAborted):
            parser.finish()

    def test_truncated_tail_is_skipped(self):
        parser = IncrementalDesignParser()
        parser.feed(TITLE + "\n" + '{"type": "shape", "options": {"x"')
        result = parser.finish()

        assert len(result.elements) == 1
        assert parser.skipped_lines == 1
