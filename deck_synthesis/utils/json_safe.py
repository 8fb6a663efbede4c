"""
JSON-safe serialization for decks and layouts.
Ensures pydantic models, enums and dataclasses are converted to plain JSON types.
"""
import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from deck_synthesis.services.exceptions import ExportError
from deck_synthesis.setup_logging_optimized import get_logger

logger = get_logger(__name__)


def to_json_safe(obj: Any) -> Any:
    """
    Convert any object to a JSON-serializable representation.

    Pydantic models go through model_dump, so fields declared with
    exclude=True (transient UI state such as action markers) never leak
    into the output.
    """
    if isinstance(obj, Enum):
        return to_json_safe(obj.value)

    if obj is None or isinstance(obj, (str, bool, int, float)):
        return obj

    if isinstance(obj, (datetime, date)):
        return obj.isoformat()

    if isinstance(obj, Decimal):
        return float(obj)

    if hasattr(obj, 'model_dump'):
        return to_json_safe(obj.model_dump(mode='json', exclude_none=True))

    if is_dataclass(obj) and not isinstance(obj, type):
        return to_json_safe(asdict(obj))

    if isinstance(obj, dict):
        return {str(key): to_json_safe(value) for key, value in obj.items()}

    if isinstance(obj, (list, tuple, set)):
        return [to_json_safe(item) for item in obj]

    logger.warning(f"Falling back to str() for object {type(obj)}")
    return str(obj)


def dumps_json_safe(obj: Any, indent: int = 2) -> str:
    """Serialize to a JSON string, raising ExportError if that is impossible."""
    try:
        return json.dumps(to_json_safe(obj), indent=indent, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ExportError("Failed to serialize deck", cause=e, context={"type": type(obj).__name__}) from e
