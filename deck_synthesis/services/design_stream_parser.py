"""
Streaming parser for the per-slide design protocol (NDJSON).

Each line of the model output is an independent JSON object. Lines are
decoded one at a time; blank lines, prose, markdown fences and half-written
trailing lines are skipped and counted, never raised. Interpretation turns
the decoded records into a DesignResult: a terminal error record discards
everything else, otherwise the first config wins and drawable elements are
put in paint order.
"""

import codecs
import json
from typing import Any, Iterator, List, Optional, Union

from pydantic import ValidationError

from deck_synthesis.models.design import (
    DEFAULT_SAFETY_MESSAGE,
    ELEMENT_TYPES,
    DesignConfig,
    DesignElement,
    DesignErrorRecord,
    DesignRecord,
    DesignResult,
)
from deck_synthesis.services.design_validator import enforce_z_order
from deck_synthesis.services.exceptions import DesignStreamAborted
from deck_synthesis.setup_logging_optimized import get_logger

logger = get_logger(__name__)


def _build_record(payload: Any) -> Optional[DesignRecord]:
    if not isinstance(payload, dict):
        return None
    record_type = payload.get("type")
    if not isinstance(record_type, str):
        return None
    if record_type == "config":
        return DesignConfig.model_validate(payload)
    if record_type == "error":
        return DesignErrorRecord.model_validate(payload)
    return DesignElement.model_validate(payload)


class NDJSONDecoder:
    """
    Best-effort line decoder.

    `skipped_lines` counts non-blank lines that did not yield a record
    (prose, fences, truncated JSON, objects without a type).
    """

    def __init__(self):
        self.decoded_lines = 0
        self.skipped_lines = 0

    def decode_line(self, line: str) -> Optional[DesignRecord]:
        trimmed = line.strip()
        if not trimmed:
            return None
        if not trimmed.startswith("{"):
            self.skipped_lines += 1
            return None
        try:
            record = _build_record(json.loads(trimmed))
        except (json.JSONDecodeError, ValidationError):
            record = None
        if record is None:
            self.skipped_lines += 1
            return None
        self.decoded_lines += 1
        return record

    def iter_records(self, text: str) -> Iterator[DesignRecord]:
        """Lazily yield every decodable record of `text`, in stream order."""
        for line in (text or "").split("\n"):
            record = self.decode_line(line)
            if record is not None:
                yield record


def parse_ndjson(text: str, decoder: Optional[NDJSONDecoder] = None) -> List[DesignRecord]:
    decoder = decoder or NDJSONDecoder()
    records = list(decoder.iter_records(text))
    if decoder.skipped_lines:
        logger.debug(f"NDJSON: decoded {decoder.decoded_lines} line(s), skipped {decoder.skipped_lines}")
    return records


def interpret_design(records: List[DesignRecord]) -> DesignResult:
    """Turn decoded records into config + paint-ordered elements."""
    for record in records:
        if isinstance(record, DesignErrorRecord):
            return DesignResult(
                config=None,
                elements=[],
                safety_error=record.message or DEFAULT_SAFETY_MESSAGE,
            )

    config = next((r for r in records if isinstance(r, DesignConfig)), None)
    elements = [
        r for r in records
        if isinstance(r, DesignElement) and r.type in ELEMENT_TYPES
    ]
    return DesignResult(config=config, elements=enforce_z_order(elements), safety_error=None)


def parse_design(text: str) -> DesignResult:
    """Parse a complete design response."""
    return interpret_design(parse_ndjson(text))


class IncrementalDesignParser:
    """
    Consumes a design response as it streams in.

    Chunks may split lines or UTF-8 sequences anywhere; only complete lines
    are decoded until `finish()` flushes the tail. A caller-side abort makes
    every later call raise DesignStreamAborted.
    """

    def __init__(self):
        self.decoder = NDJSONDecoder()
        self.records: List[DesignRecord] = []
        self._buffer = ""
        self._bytes = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._aborted = False
        self._finished = False

    @property
    def safety_error(self) -> Optional[str]:
        """Refusal message as soon as an error record has arrived."""
        for record in self.records:
            if isinstance(record, DesignErrorRecord):
                return record.message or DEFAULT_SAFETY_MESSAGE
        return None

    @property
    def skipped_lines(self) -> int:
        return self.decoder.skipped_lines

    def abort(self) -> None:
        self._aborted = True

    def _check_open(self) -> None:
        if self._aborted:
            raise DesignStreamAborted("Design stream aborted")
        if self._finished:
            raise DesignStreamAborted("Design stream already finished")

    def feed(self, chunk: Union[str, bytes]) -> List[DesignRecord]:
        """Add a chunk; return the records completed by it."""
        self._check_open()
        if isinstance(chunk, bytes):
            chunk = self._bytes.decode(chunk)
        self._buffer += chunk
        if "\n" not in self._buffer:
            return []
        complete, self._buffer = self._buffer.rsplit("\n", 1)
        new_records = list(self.decoder.iter_records(complete))
        self.records.extend(new_records)
        return new_records

    def finish(self) -> DesignResult:
        """Flush the trailing line and interpret everything received."""
        self._check_open()
        tail = self._buffer + self._bytes.decode(b"", final=True)
        self._buffer = ""
        self.records.extend(self.decoder.iter_records(tail))
        self._finished = True
        if self.decoder.skipped_lines:
            logger.debug(f"NDJSON stream: skipped {self.decoder.skipped_lines} line(s)")
        return interpret_design(self.records)
