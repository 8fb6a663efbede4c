"""
Delta reconciliation: current deck + incoming delta -> new deck.

Two output shapes of the same transition:

- apply_delta: hard mode, deletions are spliced out and the deck is
  renumbered densely where the action requires it.
- preview_delta: tagging mode, every touched slide carries an ActionMarker
  so a presentation layer can show "pending delete" and friends; nothing is
  removed and nothing is renumbered.

Both modes run the same planner, which turns the delta into an ordered list
of (slide, marker) steps. Addressing a slide_number that does not exist is a
no-op, never an error: streams routinely reference slides that are not
materialized yet or were already removed.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from deck_synthesis.models.delta import BatchOperation, Delta, DeltaAction, ReconcileResult
from deck_synthesis.models.slide import ActionMarker, Slide, coerce_slides
from deck_synthesis.setup_logging_optimized import get_logger

logger = get_logger(__name__)


@dataclass
class _Step:
    slide: Slide
    marker: Optional[ActionMarker] = None


@dataclass
class _Plan:
    steps: List[_Step] = field(default_factory=list)
    renumber: bool = False


def _untouched(current: Sequence[Slide]) -> List[_Step]:
    return [_Step(s) for s in current]


def merge_slides(current: Sequence[Slide], incoming: Sequence[Slide]) -> List[Slide]:
    """
    Overlay incoming slides onto the current ones by slide_number.

    Covers every number from 1 to the highest one seen on either side,
    preferring the incoming version. Current slides not yet present in the
    incoming stream are kept, so a partial stream never shrinks the deck.
    An incoming slide equal to the existing one keeps the existing object.
    When a number repeats, the last copy wins.
    """
    current_map: Dict[int, Slide] = {}
    for s in current:
        current_map[s.slide_number] = s
    incoming_map: Dict[int, Slide] = {}
    for s in incoming:
        incoming_map[s.slide_number] = s

    max_number = max([0, *current_map.keys(), *incoming_map.keys()])
    result = []
    for number in range(1, max_number + 1):
        existing = current_map.get(number)
        new = incoming_map.get(number)
        if new is not None:
            result.append(existing if existing is not None and existing == new else new)
        elif existing is not None:
            result.append(existing)
    return result


def _plan_identity(current: List[Slide], delta: Delta) -> _Plan:
    return _Plan(_untouched(current))


def _plan_create(current: List[Slide], delta: Delta) -> _Plan:
    return _Plan([_Step(s, ActionMarker.CREATE) for s in delta.slides])


def _plan_append(current: List[Slide], delta: Delta) -> _Plan:
    seen = {s.slide_number for s in current}
    added = []
    for s in delta.slides:
        # Re-delivered partials carry numbers we already hold
        if s.slide_number in seen:
            continue
        seen.add(s.slide_number)
        added.append(_Step(s, ActionMarker.APPEND))
    steps = _untouched(current) + added
    # sorted() is stable, so equal numbers already in the deck keep their order
    steps.sort(key=lambda step: step.slide.slide_number)
    return _Plan(steps)


def _plan_update(current: List[Slide], delta: Delta) -> _Plan:
    incoming: Dict[int, Slide] = {}
    for s in delta.slides:
        incoming.setdefault(s.slide_number, s)
    steps = []
    for existing in current:
        match = incoming.get(existing.slide_number)
        steps.append(_Step(match, ActionMarker.UPDATE) if match is not None else _Step(existing))
    return _Plan(steps)


def _plan_delete(current: List[Slide], delta: Delta) -> _Plan:
    numbers = {s.slide_number for s in delta.slides}
    steps = [
        _Step(s, ActionMarker.DELETE if s.slide_number in numbers else None)
        for s in current
    ]
    return _Plan(steps, renumber=True)


def _find_live(steps: List[_Step], slide_number: int) -> Optional[_Step]:
    for step in steps:
        if step.slide.slide_number == slide_number and step.marker != ActionMarker.DELETE:
            return step
    return None


def _apply_operation(steps: List[_Step], op: BatchOperation) -> None:
    target = _find_live(steps, op.slide_number)
    if target is None:
        logger.debug(f"Batch {op.type} on missing slide {op.slide_number}, skipped")
        return
    if op.type == "delete":
        target.marker = ActionMarker.DELETE
    elif op.type == "update":
        updates = op.field_updates()
        if updates:
            target.slide = target.slide.model_copy(update=updates)
        target.marker = ActionMarker.BATCH
    else:
        logger.debug(f"Unknown batch operation type {op.type!r} for slide {op.slide_number}")


def _plan_batch(current: List[Slide], delta: Delta) -> _Plan:
    if not delta.operations:
        return _plan_default(current, delta)
    steps = _untouched(current)
    # Sequential: a later update to the same slide wins, and a deleted slide
    # stays out of reach for the rest of the batch
    for op in delta.operations:
        _apply_operation(steps, op)
    return _Plan(steps, renumber=True)


def _plan_default(current: List[Slide], delta: Delta) -> _Plan:
    if not delta.slides:
        return _Plan(_untouched(current))
    if not current:
        return _Plan([_Step(s) for s in delta.slides])
    return _Plan([_Step(s) for s in merge_slides(current, delta.slides)])


_PLANNERS: Dict[DeltaAction, Callable[[List[Slide], Delta], _Plan]] = {
    DeltaAction.ASK: _plan_identity,
    DeltaAction.RESPONSE: _plan_identity,
    DeltaAction.CREATE: _plan_create,
    DeltaAction.APPEND: _plan_append,
    DeltaAction.UPDATE: _plan_update,
    DeltaAction.DELETE: _plan_delete,
    DeltaAction.BATCH: _plan_batch,
}


def _plan(current: List[Slide], delta: Delta) -> _Plan:
    kind = delta.kind
    if kind is None and delta.action:
        logger.debug(f"Unknown delta action {delta.action!r}, using merge fallback")
    planner = _PLANNERS.get(kind, _plan_default)
    return planner(current, delta)


def _changed_indices(before: Sequence[Slide], after: Sequence[Slide]) -> List[int]:
    previous: Dict[int, Slide] = {}
    for s in before:
        previous.setdefault(s.slide_number, s)
    changed = []
    for i, s in enumerate(after):
        old = previous.get(s.slide_number)
        if old is None or (old is not s and old != s):
            changed.append(i)
    return changed


def _coerce_inputs(current: Sequence[Any], delta: Union[Delta, Dict[str, Any]]):
    slides = coerce_slides(current)
    if not isinstance(delta, Delta):
        delta = Delta.model_validate(delta or {})
    return slides, delta


def apply_delta(current: Sequence[Slide], delta: Union[Delta, Dict[str, Any]]) -> ReconcileResult:
    """Apply a delta for real: deletions are removed and numbering is compacted."""
    slides, delta = _coerce_inputs(current, delta)
    plan = _plan(slides, delta)

    result = [step.slide for step in plan.steps if step.marker != ActionMarker.DELETE]
    if plan.renumber:
        result = [s.renumbered(i + 1) for i, s in enumerate(result)]

    changed = _changed_indices(slides, result)
    logger.debug(f"apply_delta({delta.action}): {len(slides)} -> {len(result)} slide(s), {len(changed)} changed")
    return ReconcileResult(slides=result, changed_indices=changed)


def preview_delta(current: Sequence[Slide], delta: Union[Delta, Dict[str, Any]]) -> ReconcileResult:
    """Tag the slides a delta touches without removing or renumbering anything."""
    slides, delta = _coerce_inputs(current, delta)
    plan = _plan(slides, delta)

    result = [
        step.slide.with_marker(step.marker) if step.marker is not None else step.slide
        for step in plan.steps
    ]
    changed = _changed_indices(slides, result)
    logger.debug(f"preview_delta({delta.action}): {len(result)} slide(s), {len(changed)} tagged or changed")
    return ReconcileResult(slides=result, changed_indices=changed)
