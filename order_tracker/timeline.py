"""Timeline template and the pure functions that keep a timeline well-formed.

Every order carries exactly seven steps. The functions here build that
sequence from a cursor, merge caller-supplied partial steps onto the
template, and re-derive the cursor from step states. None of them mutate
their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from .domain import STANDARD_TOTAL, StepStatus, TimelineStep


@dataclass(frozen=True, slots=True)
class TemplateStep:
    id: int
    title: str
    description: str
    estimated_duration: str


TIMELINE_TEMPLATE: Tuple[TemplateStep, ...] = (
    TemplateStep(
        1,
        "Offer Accepted",
        "Customer has approved the offer; order has been initiated.",
        "1 day",
    ),
    TemplateStep(
        2,
        "Mold / Product in Development",
        "Product or mold is being created.",
        "14 days",
    ),
    TemplateStep(
        3,
        "Sample Sent to Client",
        "Customer receives a sample. Approval required.",
        "3 days",
    ),
    TemplateStep(
        4,
        "Sample Approved",
        "Customer has approved the sample. Mass production begins.",
        "2 days",
    ),
    TemplateStep(
        5,
        "Production Phase",
        "Final product is being manufactured.",
        "21 days",
    ),
    TemplateStep(
        6,
        "Transport Phase",
        "Order has shipped. In transit to the destination country.",
        "7 days",
    ),
    TemplateStep(
        7,
        "Delivered to Final Location",
        "Order has been delivered to the specified location.",
        "1 day",
    ),
)

PHASE_TITLES: Tuple[str, ...] = tuple(step.title for step in TIMELINE_TEMPLATE)

_INITIAL_PROGRESS_BY_STATUS = {
    "development": 2,
    "in progress": 4,
    "production": 5,
    "shipped": 6,
    "delivered": 7,
}


@dataclass(slots=True)
class StepInput:
    """A caller-supplied, possibly partial, timeline step."""

    id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    estimated_duration: Optional[str] = None
    start_date: Optional[str] = None
    finish_date: Optional[str] = None
    status: Optional[StepStatus] = None
    is_completed: Optional[bool] = None
    is_in_progress: Optional[bool] = None

    def resolved_status(self) -> StepStatus:
        """Explicit status first, then the boolean flags, else locked."""

        if self.status is not None:
            return self.status
        if self.is_completed:
            return StepStatus.COMPLETED
        if self.is_in_progress:
            return StepStatus.IN_PROGRESS
        return StepStatus.LOCKED


def clamp(value: int, lower: int, upper: int) -> int:
    return min(max(value, lower), upper)


def _status_for_position(index: int, current_index: int) -> StepStatus:
    if index < current_index:
        return StepStatus.COMPLETED
    if index == current_index:
        return StepStatus.IN_PROGRESS
    return StepStatus.LOCKED


def _template_step(template: TemplateStep, status: StepStatus = StepStatus.LOCKED) -> TimelineStep:
    return TimelineStep(
        id=template.id,
        title=template.title,
        description=template.description,
        estimated_duration=template.estimated_duration,
        status=status,
    )


def build_default_timeline(current_index: int) -> List[TimelineStep]:
    """Return the template steps with a single active step at ``current_index``.

    ``current_index`` is 0-based and clamped into the template range.
    """

    current_index = clamp(current_index, 0, len(TIMELINE_TEMPLATE) - 1)
    return [
        _template_step(template, _status_for_position(index, current_index))
        for index, template in enumerate(TIMELINE_TEMPLATE)
    ]


def resolve_initial_progress(status: Optional[str]) -> int:
    """Guess a 1-based cursor from a human status when no timeline is given."""

    key = (status or "").strip().lower()
    return _INITIAL_PROGRESS_BY_STATUS.get(key, 1)


def normalize_provided_timeline(steps: Sequence[StepInput]) -> List[TimelineStep]:
    """Force an arbitrary-length list of partial steps onto the template.

    Positions the caller did not supply are locked, whatever later
    positions say.
    """

    normalized: List[TimelineStep] = []
    for index, template in enumerate(TIMELINE_TEMPLATE):
        if index >= len(steps):
            normalized.append(_template_step(template))
            continue
        provided = steps[index]
        normalized.append(
            TimelineStep(
                id=template.id,
                title=provided.title or template.title,
                description=provided.description or template.description,
                estimated_duration=provided.estimated_duration or template.estimated_duration,
                start_date=provided.start_date or "",
                finish_date=provided.finish_date or "",
                status=provided.resolved_status(),
            )
        )
    return normalized


def enforce_single_active_step(timeline: Sequence[TimelineStep], current: int) -> List[TimelineStep]:
    """Sweep the timeline so only the step at ``current`` (1-based) is active.

    Earlier steps become completed and later ones locked. A cursor of 0
    locks every step.
    """

    current_index = current - 1
    return [
        replace(step, status=_status_for_position(index, current_index))
        for index, step in enumerate(timeline)
    ]


def recompute_progress_from_flags(timeline: Sequence[TimelineStep], total: int = STANDARD_TOTAL) -> int:
    completed = sum(1 for step in timeline if step.is_completed)
    in_progress = any(step.is_in_progress for step in timeline)
    return clamp(completed + (1 if in_progress else 0), 1, total)


def phase_title_at(timeline: Sequence[TimelineStep], current: int) -> Optional[str]:
    """Title of the step under a 1-based cursor, or None when out of range."""

    index = current - 1
    if 0 <= index < len(timeline):
        return timeline[index].title
    return None


def find_phase_index(timeline: Sequence[TimelineStep], title: str) -> int:
    for index, step in enumerate(timeline):
        if step.title == title:
            return index
    return -1


__all__ = [
    "TemplateStep",
    "TIMELINE_TEMPLATE",
    "PHASE_TITLES",
    "StepInput",
    "clamp",
    "build_default_timeline",
    "resolve_initial_progress",
    "normalize_provided_timeline",
    "enforce_single_active_step",
    "recompute_progress_from_flags",
    "phase_title_at",
    "find_phase_index",
]
