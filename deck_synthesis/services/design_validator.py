"""
Design validation and paint-order normalization.

Validation is purely structural: it rejects geometry no renderer could
draw sensibly (missing or non-positive sizes, origins far off the canvas).
It does not check overlap. A single bad element invalidates the design and
the caller falls back to the legacy renderer.
"""

from numbers import Real
from typing import Any, List, Optional, Sequence

from deck_synthesis.config.pipeline_config import ValidationConfig, get_validation_config
from deck_synthesis.models.design import DesignElement, DesignResult
from deck_synthesis.setup_logging_optimized import get_logger

logger = get_logger(__name__)

Z_INDEX_ORDER = {
    "shape": 1,
    "image-placeholder": 2,
    "text": 3,
}
UNKNOWN_Z_INDEX = 99


def enforce_z_order(elements: Sequence[DesignElement]) -> List[DesignElement]:
    """Shapes first, then images, then text on top. Ties keep stream order."""
    # sorted() is stable
    return sorted(elements, key=lambda el: Z_INDEX_ORDER.get(el.type, UNKNOWN_Z_INDEX))


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _element_violation(el: DesignElement, bounds: ValidationConfig) -> Optional[str]:
    opts = el.options
    if not isinstance(opts, dict):
        return f"{el.type}: missing options"

    w = opts.get("w")
    h = opts.get("h")
    if not _is_number(w) or not _is_number(h):
        return f"{el.type}: non-numeric size w={w!r} h={h!r}"

    if el.is_line:
        # Horizontal/vertical rules have one zero dimension
        if w <= 0 and h <= 0:
            return f"line: degenerate size {w}x{h}"
    elif w <= 0 or h <= 0:
        return f"{el.type}: non-positive size {w}x{h}"

    x = opts.get("x")
    y = opts.get("y")
    if _is_number(x) and not (bounds.min_x <= x <= bounds.max_x):
        return f"{el.type}: x={x} outside [{bounds.min_x}, {bounds.max_x}]"
    if _is_number(y) and not (bounds.min_y <= y <= bounds.max_y):
        return f"{el.type}: y={y} outside [{bounds.min_y}, {bounds.max_y}]"
    return None


def find_design_violations(result: DesignResult, bounds: Optional[ValidationConfig] = None) -> List[str]:
    """Every reason the design would be rejected, in element order."""
    bounds = bounds or get_validation_config()
    violations = []
    for el in result.elements:
        reason = _element_violation(el, bounds)
        if reason:
            violations.append(reason)
    return violations


def validate_design(result: DesignResult, bounds: Optional[ValidationConfig] = None) -> bool:
    """True when every element has drawable geometry."""
    bounds = bounds or get_validation_config()
    for el in result.elements:
        reason = _element_violation(el, bounds)
        if reason:
            logger.debug(f"Design rejected: {reason}")
            return False
    return True
