"""
Consumption of the main content stream.

The content model answers with a single JSON object
({"action": ..., "slides": [...]}) that arrives a few tokens at a time,
sometimes wrapped in a markdown fence, sometimes preceded by <think>
reasoning and followed by a short conversational message. Everything here
works on the accumulated text so far and returns the best Delta it can; a
half-written slide is dropped and reappears on the next pass.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from deck_synthesis.models.delta import Delta, DeltaAction
from deck_synthesis.setup_logging_optimized import get_logger

logger = get_logger(__name__)

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"
THINK_BLOCK_PATTERN = re.compile(r"<think>([\s\S]*?)</think>")
ACTION_PATTERN = re.compile(r'"action"\s*:\s*"([^"]+)"')
SLIDES_START_PATTERN = re.compile(r'"slides"\s*:\s*\[')
# Top-level objects with at most one level of nesting
FLAT_OBJECT_PATTERN = re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}")
CONVERSATIONAL_ACTIONS = (DeltaAction.ASK, DeltaAction.RESPONSE)


@dataclass
class ChunkResult:
    content: str
    thinking: str
    processed_length: int


def _chunk_payload(line: str) -> Tuple[str, str]:
    """(content, thinking) carried by one line of an SSE or Ollama stream."""
    if line.startswith("data:"):
        payload = line[5:].strip()
        if payload == "[DONE]":
            return "", ""
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError:
            # Incomplete line, completed by the next chunk
            return "", ""
        choices = parsed.get("choices") if isinstance(parsed, dict) else None
        delta = choices[0].get("delta") if isinstance(choices, list) and choices and isinstance(choices[0], dict) else None
        if not isinstance(delta, dict):
            return "", ""
        return delta.get("content") or "", delta.get("reasoning_content") or ""

    try:
        parsed = json.loads(line)
    except json.JSONDecodeError:
        return "", ""
    if not isinstance(parsed, dict):
        return "", ""
    message = parsed.get("message")
    text = message.get("content") if isinstance(message, dict) else None
    if text is None:
        text = parsed.get("response")
    return text or "", ""


def extract_content_from_chunk(raw: str, processed_length: int = 0) -> ChunkResult:
    """
    Pull content deltas out of the part of a raw HTTP stream not seen yet.

    Understands OpenAI-compatible SSE ("data: {...}" lines, with
    reasoning_content reported separately) and Ollama's one-object-per-line
    format.
    """
    content = []
    thinking = []
    for line in raw[processed_length:].split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue
        text, reasoning = _chunk_payload(trimmed)
        content.append(text)
        thinking.append(reasoning)
    return ChunkResult(content="".join(content), thinking="".join(thinking), processed_length=len(raw))


def separate_thinking(full_text: str) -> Tuple[str, str]:
    """Split <think> reasoning from the answer. Returns (thinking, content)."""
    thinking = "".join(THINK_BLOCK_PATTERN.findall(full_text))
    content = THINK_BLOCK_PATTERN.sub("", full_text)

    # Reasoning still streaming
    unclosed = content.rfind(THINK_OPEN)
    if unclosed != -1:
        thinking += content[unclosed + len(THINK_OPEN):]
        content = content[:unclosed]

    return thinking.strip(), content.strip()


def is_inside_think_tag(full_text: str) -> bool:
    return full_text.count(THINK_OPEN) > full_text.count(THINK_CLOSE)


def extract_completion_message(content: str) -> str:
    """Text the model wrote after the closing brace of its JSON answer."""
    trimmed = content.strip()
    start = trimmed.find("{")
    if start == -1:
        return ""

    depth = 0
    for i in range(start, len(trimmed)):
        if trimmed[i] == "{":
            depth += 1
        elif trimmed[i] == "}":
            depth -= 1
            if depth == 0:
                return trimmed[i + 1:].strip()
    return ""


def _strip_fences(text: str) -> str:
    text = re.sub(r"^```json\s*", "", text)
    text = re.sub(r"^```\s*", "", text)
    text = re.sub(r"```\s*$", "", text)
    return text.strip()


def parse_partial_slides(text: str) -> List[Dict[str, Any]]:
    """
    Best-effort decode of a possibly truncated slides array.

    The array is cut after its last complete object and closed. If that
    still does not parse, flat objects are picked out one by one and kept
    when they look like slides.
    """
    trimmed = text.strip()
    start = trimmed.find("[")
    if start == -1:
        return []
    array_text = trimmed[start:]

    last_close = array_text.rfind("}")
    if last_close == -1:
        return []
    repaired = array_text[:last_close + 1]
    if not repaired.endswith("]"):
        repaired += "]"
    repaired = re.sub(r",\s*\]$", "]", repaired)

    try:
        parsed = json.loads(repaired)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, list):
        return [item for item in parsed if isinstance(item, dict)]
    if parsed is not None:
        return []

    objects = []
    for match in FLAT_OBJECT_PATTERN.finditer(array_text):
        try:
            obj = json.loads(match.group(0))
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict) and (obj.get("slide_number") or obj.get("title")):
            objects.append(obj)
    logger.debug(f"Recovered {len(objects)} slide object(s) from a broken array")
    return objects


def _is_complete_answer(parsed: Any) -> bool:
    if not isinstance(parsed, dict):
        return False
    if isinstance(parsed.get("slides"), list) or isinstance(parsed.get("operations"), list):
        return True
    return DeltaAction.parse(parsed.get("action")) in CONVERSATIONAL_ACTIONS


def parse_partial_response(text: str) -> Delta:
    """Decode the accumulated answer text into the best Delta available so far."""
    trimmed = (text or "").strip()
    if not trimmed:
        return Delta()
    trimmed = _strip_fences(trimmed)

    try:
        # A conversational message may follow the object
        parsed, _ = json.JSONDecoder().raw_decode(trimmed)
    except json.JSONDecodeError:
        parsed = None
    if _is_complete_answer(parsed):
        try:
            return Delta.model_validate(parsed)
        except ValidationError as e:
            logger.debug(f"Complete answer failed validation, reading it as partial: {e.error_count()} error(s)")

    action = None
    action_match = ACTION_PATTERN.search(trimmed)
    if action_match:
        action = action_match.group(1)

    slides: List[Dict[str, Any]] = []
    slides_match = SLIDES_START_PATTERN.search(trimmed)
    if slides_match:
        slides = parse_partial_slides(trimmed[slides_match.end() - 1:])

    return Delta(action=action, slides=slides)
