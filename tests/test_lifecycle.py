"""Tests for order creation, bulk update and phase transitions."""

from __future__ import annotations

import itertools
from datetime import date, datetime

import pytest

from order_tracker.domain import (
    DEFAULT_PHASE,
    CustomerInfo,
    OrderStatus,
    Progress,
    StepStatus,
)
from order_tracker.errors import InvalidPhaseError, TerminalStateError, ValidationError
from order_tracker.lifecycle import (
    CustomerPatch,
    OrderPatch,
    ProgressInput,
    advance_phase,
    apply_update,
    create_order,
    resolve_update,
    set_phase,
)
from order_tracker.status import status_from_cursor
from order_tracker.timeline import (
    PHASE_TITLES,
    StepInput,
    build_default_timeline,
    enforce_single_active_step,
    normalize_provided_timeline,
    recompute_progress_from_flags,
)
from tests.conftest import make_draft

NOW = datetime(2025, 3, 14, 9, 30)


def new_order(**overrides):
    return create_order(make_draft(**overrides), id="a" * 32, order_id="ORD-2025-001", now=NOW)


def order_at(cursor: int):
    return new_order(progress=ProgressInput(current=cursor))


class TestCreateOrder:
    def test_shipped_status_without_timeline(self) -> None:
        order = new_order(status=OrderStatus.SHIPPED)
        assert order.progress == Progress(current=6, total=7)
        assert [step.status for step in order.timeline] == [StepStatus.COMPLETED] * 5 + [
            StepStatus.IN_PROGRESS,
            StepStatus.LOCKED,
        ]
        assert order.current_phase == "Transport Phase"
        assert order.status is OrderStatus.SHIPPED

    def test_defaults(self) -> None:
        order = new_order()
        assert order.progress.current == 1
        assert order.timeline[0].is_in_progress
        assert order.current_phase == DEFAULT_PHASE
        assert order.status is OrderStatus.DEVELOPMENT
        assert order.is_active
        assert order.created_at == NOW
        assert order.order_date == NOW

    def test_explicit_cursor_beyond_one_is_kept(self) -> None:
        order = new_order(progress=ProgressInput(current=5))
        assert order.progress.current == 5
        assert order.timeline[4].is_in_progress
        assert order.current_phase == "Production Phase"
        assert order.status is OrderStatus.PRODUCTION

    def test_cursor_of_one_defers_to_status(self) -> None:
        order = new_order(status=OrderStatus.PRODUCTION, progress=ProgressInput(current=1))
        assert order.progress.current == 5

    def test_supplied_timeline_is_kept_as_given(self) -> None:
        order = new_order(
            timeline=[
                StepInput(is_completed=True),
                StepInput(is_in_progress=True),
                StepInput(is_in_progress=True),
            ],
            progress=ProgressInput(current=2),
        )
        assert len(order.timeline) == 7
        assert order.timeline[2].is_in_progress
        assert order.timeline[3].is_locked
        assert order.progress.current == 2
        assert order.current_phase == PHASE_TITLES[1]

    def test_supplied_timeline_without_progress_starts_at_one(self) -> None:
        order = new_order(timeline=[StepInput(is_in_progress=True)])
        assert order.progress == Progress(current=1, total=7)

    def test_explicit_phase_and_status_win(self) -> None:
        order = new_order(
            status=OrderStatus.CANCELLED,
            current_phase="Sample Approved",
            progress=ProgressInput(current=3),
        )
        assert order.status is OrderStatus.CANCELLED
        assert order.current_phase == "Sample Approved"

    def test_caller_structures_are_copied(self) -> None:
        draft = make_draft()
        order = create_order(draft, id="b" * 32, order_id="ORD-2025-002", now=NOW)
        order.customer.name = "Changed"
        assert draft.customer.name == "Acme Trading"

    def test_invalid_total_is_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            new_order(timeline=[StepInput()], progress=ProgressInput(current=1, total=11))


class TestResolveUpdate:
    def test_timeline_drives_progress_and_status(self) -> None:
        order = new_order()
        patch = OrderPatch(
            timeline=[
                StepInput(is_completed=True),
                StepInput(is_completed=True),
                StepInput(is_completed=True),
                StepInput(is_in_progress=True),
            ]
        )
        updated = apply_update(order, patch, now=NOW)
        assert updated.progress == Progress(current=4, total=7)
        assert updated.status is OrderStatus.IN_PROGRESS
        assert updated.current_phase == "Sample Approved"
        assert [step.status for step in updated.timeline] == [StepStatus.COMPLETED] * 3 + [
            StepStatus.IN_PROGRESS
        ] + [StepStatus.LOCKED] * 3

    def test_timeline_with_gaps_is_swept(self) -> None:
        order = new_order()
        patch = OrderPatch(
            timeline=[
                StepInput(is_completed=True),
                StepInput(),
                StepInput(is_in_progress=True),
                StepInput(is_in_progress=True),
            ]
        )
        updated = apply_update(order, patch, now=NOW)
        assert updated.progress.current == 2
        assert sum(step.is_in_progress for step in updated.timeline) == 1
        assert updated.timeline[1].is_in_progress

    def test_all_locked_timeline_clamps_to_one(self) -> None:
        updated = apply_update(new_order(), OrderPatch(timeline=[]), now=NOW)
        assert updated.progress.current == 1
        assert updated.timeline[0].is_in_progress

    def test_explicit_status_wins(self) -> None:
        order = new_order()
        patch = OrderPatch(
            status=OrderStatus.CANCELLED,
            timeline=[StepInput(is_completed=True)] * 6 + [StepInput(is_in_progress=True)],
        )
        updated = apply_update(order, patch, now=NOW)
        assert updated.progress.current == 7
        assert updated.status is OrderStatus.CANCELLED

    def test_progress_only_update(self) -> None:
        updated = apply_update(
            new_order(), OrderPatch(progress=ProgressInput(current=6)), now=NOW
        )
        assert updated.progress.current == 6
        assert updated.status is OrderStatus.SHIPPED
        assert updated.current_phase == "Transport Phase"
        assert updated.timeline[5].is_in_progress
        assert updated.timeline[4].is_completed

    def test_progress_update_keeps_explicit_phase(self) -> None:
        updated = apply_update(
            new_order(),
            OrderPatch(progress=ProgressInput(current=3), current_phase="Custom label"),
            now=NOW,
        )
        assert updated.current_phase == "Custom label"

    def test_non_standard_total_uses_percentage(self) -> None:
        updated = apply_update(
            new_order(), OrderPatch(progress=ProgressInput(current=4, total=5)), now=NOW
        )
        assert updated.progress == Progress(current=4, total=5)
        assert updated.status is OrderStatus.PRODUCTION

    def test_cursor_beyond_total_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            resolve_update(new_order(), OrderPatch(progress=ProgressInput(current=4, total=3)))

    def test_timeline_overrides_out_of_range_progress(self) -> None:
        changes = resolve_update(
            new_order(),
            OrderPatch(
                progress=ProgressInput(current=5, total=3),
                timeline=[StepInput(is_completed=True), StepInput(is_in_progress=True)],
            ),
        )
        assert changes.progress == Progress(current=2, total=7)
        assert changes.current_phase == PHASE_TITLES[1]

    def test_untouched_fields_stay_none(self) -> None:
        changes = resolve_update(new_order(), OrderPatch(notes="Call before delivery"))
        assert changes.notes == "Call before delivery"
        assert changes.progress is None
        assert changes.timeline is None
        assert changes.status is None

    def test_nested_patch_overlays_existing_values(self) -> None:
        order = new_order(customer=CustomerInfo(name="Acme", email="a@acme.example", phone="123"))
        updated = apply_update(order, OrderPatch(customer=CustomerPatch(name="Acme Ltd")), now=NOW)
        assert updated.customer.name == "Acme Ltd"
        assert updated.customer.email == "a@acme.example"
        assert updated.customer.phone == "123"

    def test_original_order_is_not_mutated(self) -> None:
        order = new_order()
        apply_update(order, OrderPatch(progress=ProgressInput(current=5)), updated_by="admin-1", now=NOW)
        assert order.progress.current == 1
        assert order.timeline[0].is_in_progress
        assert order.last_updated_by is None

    def test_stamps_audit_fields(self) -> None:
        later = datetime(2025, 4, 1, 12, 0)
        updated = apply_update(new_order(), OrderPatch(notes="x"), updated_by="admin-1", now=later)
        assert updated.updated_at == later
        assert updated.last_updated_by == "admin-1"


class TestAdvancePhase:
    @pytest.mark.parametrize("cursor", range(1, 7))
    def test_moves_one_step(self, cursor: int) -> None:
        order = order_at(cursor)
        advanced = advance_phase(order, today=date(2025, 3, 20), updated_by="admin-1")
        assert advanced.progress.current == cursor + 1
        assert advanced.status is status_from_cursor(cursor + 1)
        assert advanced.timeline[cursor - 1].is_completed
        assert advanced.timeline[cursor - 1].finish_date == "3/20/2025"
        assert advanced.timeline[cursor].is_in_progress
        assert advanced.timeline[cursor].start_date == "3/20/2025"
        assert advanced.current_phase == PHASE_TITLES[cursor]
        assert advanced.last_updated_by == "admin-1"

    def test_final_phase_is_terminal(self) -> None:
        order = order_at(7)
        before = order.to_dict()
        with pytest.raises(TerminalStateError):
            advance_phase(order)
        assert order.to_dict() == before

    def test_stamps_given_time(self) -> None:
        later = datetime(2025, 3, 20, 16, 45)
        assert advance_phase(order_at(2), now=later).updated_at == later
        assert set_phase(order_at(2), "Transport Phase", now=later).updated_at == later

    def test_cancelled_order_cannot_advance(self) -> None:
        order = new_order(status=OrderStatus.CANCELLED)
        with pytest.raises(TerminalStateError):
            advance_phase(order)

    def test_full_journey(self) -> None:
        order = new_order()
        for _ in range(6):
            order = advance_phase(order, today=date(2025, 3, 20))
        assert order.status is OrderStatus.DELIVERED
        assert order.progress_percentage == 100
        assert all(step.is_completed for step in order.timeline[:6])
        assert order.timeline[6].is_in_progress


class TestSetPhase:
    @pytest.mark.parametrize("cursor", [1, 3, 7])
    def test_production_phase_from_anywhere(self, cursor: int) -> None:
        updated = set_phase(order_at(cursor), "Production Phase")
        assert updated.progress.current == 5
        assert updated.status is OrderStatus.PRODUCTION
        assert updated.current_phase == "Production Phase"
        assert sum(step.is_in_progress for step in updated.timeline) == 1

    def test_explicit_progress_is_clamped(self) -> None:
        updated = set_phase(order_at(2), "Sample Approved", 12)
        assert updated.progress.current == 7
        assert updated.current_phase == "Sample Approved"
        assert updated.status is OrderStatus.DELIVERED

    def test_explicit_zero_locks_timeline(self) -> None:
        updated = set_phase(order_at(4), "Offer Accepted", 0)
        assert updated.progress.current == 0
        assert all(step.is_locked for step in updated.timeline)
        assert updated.status is OrderStatus.DEVELOPMENT

    def test_unknown_phase(self) -> None:
        with pytest.raises(InvalidPhaseError):
            set_phase(order_at(2), "Quality Inspection")

    def test_cancelled_order_cannot_jump(self) -> None:
        with pytest.raises(TerminalStateError):
            set_phase(new_order(status=OrderStatus.CANCELLED), "Transport Phase")


class TestTimelineProperties:
    @pytest.mark.parametrize("current", range(0, 8))
    def test_enforce_is_idempotent(self, current: int) -> None:
        source = normalize_provided_timeline(
            [StepInput(is_completed=True), StepInput(), StepInput(is_in_progress=True)]
        )
        once = enforce_single_active_step(source, current)
        assert enforce_single_active_step(once, current) == once

    @pytest.mark.parametrize("index", range(7))
    def test_recompute_then_enforce_is_fixed_point(self, index: int) -> None:
        timeline = build_default_timeline(index)
        current = recompute_progress_from_flags(timeline)
        assert current == index + 1
        assert enforce_single_active_step(timeline, current) == timeline

    def test_normalized_titles_match_template_for_any_subset(self) -> None:
        for size in range(0, 8):
            for flags in itertools.product([False, True], repeat=min(size, 3)):
                steps = [StepInput(is_completed=flag) for flag in flags]
                steps += [StepInput()] * (size - len(steps))
                titles = [step.title for step in normalize_provided_timeline(steps)]
                assert titles == list(PHASE_TITLES)
