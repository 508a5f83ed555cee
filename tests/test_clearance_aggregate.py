"""
Tests for the clearance aggregate: transition table, guards, event history and replay.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from singlewindow.customs.declaration.aggregate import PURPOSE_APPEAL, ClearanceAggregate, Reservation
from singlewindow.customs.declaration.events import (
    ClearanceStateChanged,
    DeclarationAmended,
    DeclarationSubmitted,
    RiskProfileAssigned,
)
from singlewindow.customs.declaration.transitions import ALLOWED_TRANSITIONS, valid_transitions
from singlewindow.customs.enums import (
    Channel,
    ClearanceState,
    DeclarationType,
    InspectionOutcome,
    RiskTier,
    SuspensionReason,
)
from singlewindow.customs.exceptions import (
    AmendmentNotAllowedError,
    ClearanceGuardError,
    DeclarationValidationError,
    GuardPreconditionError,
    InvalidTransitionError,
)
from singlewindow.customs.risk.engine import assess_risk
from singlewindow.customs.risk.models import RiskInputs, RiskPolicy
from singlewindow.infra.event_registry import event_from_dict

from tests.factories import NOW, make_declaration, make_item

S = ClearanceState

CHANNEL_INPUTS = {
    Channel.AUTOMATIC: {},
    Channel.DOCUMENTARY: {"origin_tier": RiskTier.MEDIUM, "documents_complete": False},
    Channel.PHYSICAL: {"trader_violation_rate": Decimal("1"), "commodity_tier": RiskTier.HIGH},
    Channel.DETAILED: {
        "trader_violation_rate": Decimal("1"),
        "commodity_tier": RiskTier.HIGH,
        "origin_tier": RiskTier.HIGH,
    },
}


def _profile(aggregate, channel):
    inputs = RiskInputs(
        declaration_id=aggregate.id,
        declaration_version=aggregate.state.declaration_version,
        **CHANNEL_INPUTS[channel],
    )
    profile = assess_risk(inputs, RiskPolicy())
    assert profile.channel == channel
    return profile


def _routed(channel, declaration=None):
    declaration = declaration or make_declaration()
    aggregate = ClearanceAggregate(declaration.declaration_id)
    aggregate.submit(declaration, NOW)
    aggregate.assign_risk_profile(_profile(aggregate, channel), NOW)
    aggregate.route(NOW)
    return aggregate


def _transitions(aggregate):
    return [
        (e.old_state, e.new_state)
        for e in aggregate.get_uncommitted_events()
        if isinstance(e, ClearanceStateChanged)
    ]


class TestTransitionTable:

    def test_terminal_states_have_no_exits(self):
        for state in (S.RELEASED, S.REJECTED, S.EXITED):
            assert valid_transitions(state) == frozenset()
            assert state.is_terminal

    def test_every_state_is_listed(self):
        assert set(ALLOWED_TRANSITIONS) == set(ClearanceState)

    def test_every_non_terminal_state_can_be_rejected(self):
        for state, targets in ALLOWED_TRANSITIONS.items():
            if not state.is_terminal:
                assert S.REJECTED in targets


class TestSubmission:

    def test_submit_records_content_and_transition(self):
        declaration = make_declaration()
        aggregate = ClearanceAggregate(declaration.declaration_id)
        aggregate.submit(declaration, NOW)

        events = aggregate.get_uncommitted_events()
        assert isinstance(events[0], DeclarationSubmitted)
        assert _transitions(aggregate) == [(None, S.SUBMITTED)]
        assert aggregate.status == S.SUBMITTED
        assert aggregate.declaration == declaration

    def test_invalid_content_emits_nothing(self):
        declaration = make_declaration(items=[make_item(2)])
        aggregate = ClearanceAggregate(declaration.declaration_id)
        with pytest.raises(DeclarationValidationError) as exc:
            aggregate.submit(declaration, NOW)
        assert exc.value.check == "goods_sequence"
        assert aggregate.get_uncommitted_events() == []
        assert aggregate.status is None

    def test_stale_risk_profile_is_refused(self):
        declaration = make_declaration()
        aggregate = ClearanceAggregate(declaration.declaration_id)
        aggregate.submit(declaration, NOW)
        stale = assess_risk(
            RiskInputs(declaration_id=aggregate.id, declaration_version=0), RiskPolicy(),
        )
        with pytest.raises(GuardPreconditionError) as exc:
            aggregate.assign_risk_profile(stale, NOW)
        assert exc.value.check == "risk_profile_current"
        assert aggregate.status == S.SUBMITTED


class TestRouting:

    @pytest.mark.parametrize("channel, state", [
        (Channel.DOCUMENTARY, S.AWAITING_DOCUMENT_CHECK),
        (Channel.PHYSICAL, S.AWAITING_INSPECTION),
        (Channel.DETAILED, S.AWAITING_EXAMINATION),
    ])
    def test_channel_states(self, channel, state):
        assert _routed(channel).status == state

    def test_automatic_channel_goes_on_to_payment(self):
        aggregate = _routed(Channel.AUTOMATIC)
        assert aggregate.status == S.AWAITING_PAYMENT
        assert _transitions(aggregate)[-2:] == [
            (S.RISK_ASSESSED, S.AUTO_RELEASED),
            (S.AUTO_RELEASED, S.AWAITING_PAYMENT),
        ]

    def test_route_without_profile(self):
        declaration = make_declaration()
        aggregate = ClearanceAggregate(declaration.declaration_id)
        aggregate.submit(declaration, NOW)
        with pytest.raises(GuardPreconditionError):
            aggregate.route(NOW)


class TestSafety:

    @pytest.mark.parametrize("channel", list(Channel))
    def test_moves_outside_the_table_are_refused(self, channel):
        aggregate = _routed(channel)
        current = aggregate.status
        for target in ClearanceState:
            if target in ALLOWED_TRANSITIONS[current]:
                continue
            with pytest.raises(InvalidTransitionError):
                aggregate.check_transition(target)
        assert aggregate.status == current

    def test_refused_command_leaves_no_trace(self):
        aggregate = _routed(Channel.PHYSICAL)
        aggregate.mark_events_committed()
        version = aggregate.version
        with pytest.raises(ClearanceGuardError):
            aggregate.confirm_payment(Decimal("60"), "EUR", NOW)
        assert aggregate.version == version
        assert aggregate.get_uncommitted_events() == []

    def test_every_transition_event_follows_the_table(self):
        aggregate = _routed(Channel.DOCUMENTARY)
        aggregate.escalate(S.AWAITING_INSPECTION, NOW, "suspicious invoice")
        aggregate.record_control_outcome(S.AWAITING_INSPECTION, InspectionOutcome.COMPLIANT, NOW, "OFF-7")
        aggregate.confirm_payment(Decimal("60.00"), "EUR", NOW)
        for old, new in _transitions(aggregate):
            if old is not None:
                assert new in ALLOWED_TRANSITIONS[old]
        assert aggregate.status == S.RELEASED

    def test_terminal_state_accepts_nothing(self):
        aggregate = _routed(Channel.AUTOMATIC)
        aggregate.reject(NOW, "withdrawn", "DECLARATION_WITHDRAWN")
        assert aggregate.valid_transitions() == frozenset()
        with pytest.raises(InvalidTransitionError):
            aggregate.reject(NOW, "again", "X")


class TestControls:

    def test_escalation_must_be_stricter(self):
        aggregate = _routed(Channel.PHYSICAL)
        with pytest.raises(GuardPreconditionError) as exc:
            aggregate.escalate(S.AWAITING_DOCUMENT_CHECK, NOW)
        assert exc.value.check == "escalation_stricter"

    def test_non_compliant_inspection_rejects(self):
        aggregate = _routed(Channel.DETAILED)
        aggregate.record_control_outcome(S.AWAITING_EXAMINATION, InspectionOutcome.NON_COMPLIANT, NOW)
        assert aggregate.status == S.REJECTED
        assert aggregate.state.rejection_reason_code == "CONTROL_NON_COMPLIANT"
        assert aggregate.state.rejection_check == "control_outcome"

    def test_control_outcome_for_wrong_stage(self):
        aggregate = _routed(Channel.PHYSICAL)
        with pytest.raises(GuardPreconditionError):
            aggregate.record_control_outcome(S.AWAITING_EXAMINATION, InspectionOutcome.COMPLIANT, NOW)

    def test_incomplete_documents_block_the_check(self):
        aggregate = _routed(Channel.DOCUMENTARY)
        with pytest.raises(GuardPreconditionError) as exc:
            aggregate.complete_document_check(False, NOW)
        assert exc.value.check == "document_set_complete"
        aggregate.complete_document_check(True, NOW)
        assert aggregate.status == S.AWAITING_PAYMENT


class TestPayment:

    def test_payment_must_cover_duties(self):
        aggregate = _routed(Channel.AUTOMATIC)
        with pytest.raises(GuardPreconditionError) as exc:
            aggregate.confirm_payment(Decimal("59.99"), "EUR", NOW)
        assert exc.value.check == "payment_covers_duties"

    def test_payment_currency(self):
        aggregate = _routed(Channel.AUTOMATIC)
        with pytest.raises(GuardPreconditionError) as exc:
            aggregate.confirm_payment(Decimal("60"), "USD", NOW)
        assert exc.value.check == "payment_currency"

    def test_transit_declaration_is_not_released_on_payment(self):
        aggregate = _routed(Channel.AUTOMATIC, make_declaration(declaration_type=DeclarationType.TRANSIT))
        with pytest.raises(GuardPreconditionError) as exc:
            aggregate.confirm_payment(Decimal("60"), "EUR", NOW)
        assert exc.value.check == "declaration_type"

    def test_only_transit_declarations_start_transit(self):
        aggregate = _routed(Channel.AUTOMATIC)
        with pytest.raises(GuardPreconditionError):
            aggregate.start_transit("GRN-1", Decimal("10"), "MRN-1", NOW)


class TestAmendment:

    def test_amend_during_document_check_forces_reassessment(self):
        declaration = make_declaration()
        aggregate = _routed(Channel.DOCUMENTARY, declaration)
        amended = make_declaration(declaration_id=declaration.declaration_id, items=[make_item(duty=Decimal("70"))])
        aggregate.amend(amended, NOW)

        assert aggregate.status == S.SUBMITTED
        assert aggregate.state.declaration_version == 2
        assert aggregate.state.risk_profile is None
        assert aggregate.declaration.total_duty == Decimal("70")
        assert isinstance(aggregate.get_uncommitted_events()[-2], DeclarationAmended)

    def test_amend_after_routing_to_payment(self):
        aggregate = _routed(Channel.AUTOMATIC)
        with pytest.raises(AmendmentNotAllowedError):
            aggregate.amend(aggregate.declaration, NOW)


class TestSuspension:

    def test_appeal_suspension_and_deadline(self):
        aggregate = _routed(Channel.PHYSICAL)
        reservation = Reservation(guarantee_id="GRN-1", amount=Decimal("100"), purpose=PURPOSE_APPEAL)
        aggregate.suspend(SuspensionReason.APPEAL, NOW, timedelta(days=30), "classification disputed", reservation)

        assert aggregate.status == S.SUSPENDED
        assert aggregate.state.suspended_from == S.AWAITING_INSPECTION
        assert aggregate.state.review_deadline == NOW + timedelta(days=30)
        assert not aggregate.appeal_expired(NOW + timedelta(days=30))
        assert aggregate.appeal_expired(NOW + timedelta(days=30, seconds=1))

    def test_resolution_needs_appeal_reservation_released(self):
        aggregate = _routed(Channel.PHYSICAL)
        reservation = Reservation(guarantee_id="GRN-1", amount=Decimal("100"), purpose=PURPOSE_APPEAL)
        aggregate.suspend(SuspensionReason.APPEAL, NOW, timedelta(days=30), reservation=reservation)
        with pytest.raises(GuardPreconditionError):
            aggregate.resolve_suspension(NOW)

        aggregate.record_settlement(reservation, forfeited=False, now=NOW)
        assert aggregate.resolve_suspension(NOW) == S.AWAITING_INSPECTION
        assert aggregate.status == S.AWAITING_INSPECTION
        assert aggregate.state.suspension_reason is None

    def test_reject_with_outstanding_reservation(self):
        aggregate = _routed(Channel.PHYSICAL)
        reservation = Reservation(guarantee_id="GRN-1", amount=Decimal("100"), purpose=PURPOSE_APPEAL)
        aggregate.suspend(SuspensionReason.APPEAL, NOW, timedelta(days=30), reservation=reservation)
        with pytest.raises(GuardPreconditionError) as exc:
            aggregate.reject(NOW, "expired", "APPEAL_WINDOW_EXPIRED")
        assert exc.value.check == "reservations_settled"

    def test_appeal_needs_a_pending_decision(self):
        declaration = make_declaration()
        aggregate = ClearanceAggregate(declaration.declaration_id)
        aggregate.submit(declaration, NOW)
        with pytest.raises(ClearanceGuardError):
            aggregate.suspend(SuspensionReason.APPEAL, NOW, timedelta(days=30))


class TestReplay:

    def test_history_rebuilds_state(self):
        aggregate = _routed(Channel.DOCUMENTARY)
        aggregate.escalate(S.AWAITING_EXAMINATION, NOW)
        aggregate.record_control_outcome(S.AWAITING_EXAMINATION, InspectionOutcome.COMPLIANT, NOW)
        history = list(aggregate.get_uncommitted_events())

        replayed = ClearanceAggregate.from_events(aggregate.id, history)
        assert replayed.state == aggregate.state
        assert replayed.version == aggregate.version

    def test_serialized_history_rebuilds_state(self):
        aggregate = _routed(Channel.PHYSICAL)
        serialized = [e.to_dict_for_bus() for e in aggregate.get_uncommitted_events()]
        events = [event_from_dict(d) for d in serialized]

        assert any(isinstance(e, RiskProfileAssigned) for e in events)
        replayed = ClearanceAggregate.from_events(aggregate.id, events)
        assert replayed.status == S.AWAITING_INSPECTION
        assert replayed.state.risk_profile == aggregate.state.risk_profile
        assert replayed.declaration == aggregate.declaration
