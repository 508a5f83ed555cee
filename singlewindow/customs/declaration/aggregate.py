# =============================================================================
# File: singlewindow/customs/declaration/aggregate.py
# Description: Clearance Aggregate Root (declaration lifecycle)
# Responsibilities:
#  - Guard every transition against ALLOWED_TRANSITIONS and its preconditions.
#  - Emit a ClearanceStateChanged for each accepted transition.
#  - Track guarantee reservations backing appeals and transit movements.
#  - Rebuild state from the event history for audit.
# =============================================================================

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from singlewindow.common.base.base_model import BaseEvent
from singlewindow.config.logging_config import get_logger
from singlewindow.customs.declaration.events import (
    ClearanceStateChanged,
    ComplianceFindingRecorded,
    ControlOutcomeRecorded,
    DeclarationAmended,
    DeclarationSubmitted,
    GuaranteeReservationRecorded,
    GuaranteeReservationSettled,
    PaymentConfirmed,
    RiskProfileAssigned,
    SuspensionOpened,
)
from singlewindow.customs.declaration.transitions import (
    AMENDABLE_STATES,
    APPEALABLE_STATES,
    CHANNEL_STATES,
    ESCALATION_ORDER,
    is_allowed,
    valid_transitions,
)
from singlewindow.customs.enums import (
    Channel,
    ClearanceState,
    DeclarationType,
    InspectionOutcome,
    SuspensionReason,
)
from singlewindow.customs.exceptions import (
    AmendmentNotAllowedError,
    DeclarationValidationError,
    GuardPreconditionError,
    InvalidTransitionError,
)
from singlewindow.customs.risk.models import RiskProfile
from singlewindow.customs.transit.models import ComplianceFinding
from singlewindow.customs.value_objects import Declaration

log = get_logger("singlewindow.customs.declaration.aggregate")

S = ClearanceState

PURPOSE_APPEAL = "appeal"
PURPOSE_TRANSIT = "transit"


class Reservation(BaseModel):
    """A ledger reservation held on behalf of this declaration."""
    model_config = ConfigDict(frozen=True)

    guarantee_id: str
    amount: Decimal
    purpose: str
    movement_reference: Optional[str] = None


class ClearanceAggregateState(BaseModel):
    """
    In-memory state of a ClearanceAggregate.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    declaration_id: uuid.UUID
    declaration: Optional[Declaration] = None
    declaration_version: int = 0
    status: Optional[ClearanceState] = None
    channel: Optional[Channel] = None
    risk_profile: Optional[RiskProfile] = None

    # Suspension
    suspended_from: Optional[ClearanceState] = None
    suspension_reason: Optional[SuspensionReason] = None
    review_deadline: Optional[datetime] = None

    # Guarantees, controls, findings
    reservations: List[Reservation] = Field(default_factory=list)
    control_outcomes: List[Dict[str, Any]] = Field(default_factory=list)
    findings: List[Dict[str, Any]] = Field(default_factory=list)

    # Payment
    paid_amount: Optional[Decimal] = None
    paid_currency: Optional[str] = None

    rejection_reason_code: Optional[str] = None
    rejection_check: Optional[str] = None

    # Timestamps
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClearanceAggregate:
    """
    Aggregate root for the clearance of one declaration.
    - Commands check guards, then emit events.
    - Events are applied to update internal state.
    - A refused command raises a ClearanceGuardError and emits nothing.

    Ledger side effects are performed by the service between the guard
    checks (check_*) and the recording commands.
    """

    def __init__(self, declaration_id: uuid.UUID):
        self.id: uuid.UUID = declaration_id
        self.version: int = 0
        self.state = ClearanceAggregateState(declaration_id=declaration_id)
        self._uncommitted_events: List[BaseEvent] = []

    def get_uncommitted_events(self) -> List[BaseEvent]:
        """Return events not yet written to the history."""
        return self._uncommitted_events

    def mark_events_committed(self) -> None:
        self._uncommitted_events.clear()

    @classmethod
    def from_events(cls, declaration_id: uuid.UUID, events: Iterable[BaseEvent]) -> "ClearanceAggregate":
        """Replay a history into a fresh aggregate."""
        aggregate = cls(declaration_id)
        for event in events:
            aggregate._apply(event)
            aggregate.version += 1
        return aggregate

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------
    @property
    def status(self) -> ClearanceState:
        return self.state.status

    @property
    def declaration(self) -> Declaration:
        return self.state.declaration

    def valid_transitions(self):
        return valid_transitions(self.state.status)

    def reservations(self, purpose: Optional[str] = None) -> List[Reservation]:
        return [r for r in self.state.reservations if purpose is None or r.purpose == purpose]

    def appeal_expired(self, now: datetime) -> bool:
        return (
            self.state.status == S.SUSPENDED
            and self.state.suspension_reason == SuspensionReason.APPEAL
            and self.state.review_deadline is not None
            and now > self.state.review_deadline
        )

    # -------------------------------------------------------------------------
    # Guard checks (raise, never mutate)
    # -------------------------------------------------------------------------
    def check_transition(self, target: ClearanceState) -> None:
        current = self.state.status
        if current is None or not is_allowed(current, target):
            raise InvalidTransitionError(
                str(self.id),
                current.value if current else "NONE",
                target.value,
            )

    def _guard(self, condition: bool, check: str, message: str) -> None:
        if not condition:
            raise GuardPreconditionError(str(self.id), check, message)

    def check_start_transit(self) -> None:
        self.check_transition(S.IN_TRANSIT)
        self._guard(
            self.declaration.declaration_type == DeclarationType.TRANSIT,
            "declaration_type",
            "only transit declarations can start a transit movement",
        )

    def check_suspend(self, reason: SuspensionReason) -> None:
        self.check_transition(S.SUSPENDED)
        if reason == SuspensionReason.APPEAL:
            self._guard(
                self.state.status in APPEALABLE_STATES,
                "appealable_state",
                f"no control decision to appeal in state {self.state.status.value}",
            )

    def check_resolve_suspension(self) -> None:
        self._guard(self.state.status == S.SUSPENDED, "suspended", "declaration is not suspended")
        self.check_transition(self.state.suspended_from)

    def check_exit(self) -> None:
        self.check_transition(S.EXITED)

    def check_reject(self) -> None:
        self.check_transition(S.REJECTED)

    def check_control_stage(self, stage: ClearanceState) -> None:
        self._guard(
            stage in (S.AWAITING_INSPECTION, S.AWAITING_EXAMINATION),
            "control_stage",
            f"{stage.value} is not a control stage",
        )
        self._guard(
            self.state.status == stage,
            "control_stage",
            f"expected state {stage.value}, declaration is {self.state.status.value}",
        )

    # -------------------------------------------------------------------------
    # Command Handlers - Content
    # -------------------------------------------------------------------------
    def submit(self, declaration: Declaration, now: datetime) -> None:
        if self.version > 0:
            raise DeclarationValidationError(f"Declaration {self.id} already submitted", check="declaration_unique")
        if declaration.declaration_id != self.id:
            raise DeclarationValidationError("Declaration id does not match the aggregate", check="declaration_id")
        declaration.validate()

        self._apply_and_record(DeclarationSubmitted(
            declaration_id=self.id,
            declaration=declaration.to_dict(),
            declaration_version=1,
            occurred_at=now,
        ))
        self._record_transition(S.SUBMITTED, now, "declaration submitted")

    def amend(self, declaration: Declaration, now: datetime) -> None:
        """
        Replace the content. Only in SUBMITTED or AWAITING_DOCUMENT_CHECK;
        the risk profile is dropped and the declaration goes back to
        SUBMITTED for a new assessment.
        """
        if self.state.status not in AMENDABLE_STATES:
            raise AmendmentNotAllowedError(str(self.id), self.state.status.value if self.state.status else "NONE")
        if declaration.declaration_id != self.id:
            raise DeclarationValidationError("Declaration id does not match the aggregate", check="declaration_id")
        declaration.validate()

        self._apply_and_record(DeclarationAmended(
            declaration_id=self.id,
            declaration=declaration.to_dict(),
            declaration_version=self.state.declaration_version + 1,
            occurred_at=now,
        ))
        if self.state.status != S.SUBMITTED:
            self._record_transition(S.SUBMITTED, now, "declaration amended")

    # -------------------------------------------------------------------------
    # Command Handlers - Risk & Routing
    # -------------------------------------------------------------------------
    def assign_risk_profile(self, profile: RiskProfile, now: datetime) -> None:
        """SUBMITTED -> RISK_ASSESSED; the profile must match the current version."""
        self.check_transition(S.RISK_ASSESSED)
        self._guard(
            profile.declaration_id == self.id
            and profile.declaration_version == self.state.declaration_version,
            "risk_profile_current",
            f"risk profile is for v{profile.declaration_version}, "
            f"declaration is at v{self.state.declaration_version}",
        )

        self._apply_and_record(RiskProfileAssigned(declaration_id=self.id, profile=profile, occurred_at=now))
        self._record_transition(
            S.RISK_ASSESSED, now, f"score {profile.total_score} -> {profile.channel.name}"
        )

    def route(self, now: datetime) -> ClearanceState:
        """
        RISK_ASSESSED -> channel state. The automatic channel goes straight
        on to AWAITING_PAYMENT.
        """
        self._guard(self.state.risk_profile is not None, "risk_profile_present", "no risk profile")
        target = CHANNEL_STATES[self.state.channel]
        self.check_transition(target)

        self._record_transition(target, now, f"channel {self.state.channel.name}")
        if target == S.AUTO_RELEASED:
            self._record_transition(S.AWAITING_PAYMENT, now, "automatic channel")
        return self.state.status

    def complete_document_check(self, documents_complete: bool, now: datetime) -> None:
        """AWAITING_DOCUMENT_CHECK -> AWAITING_PAYMENT when the document set is complete."""
        self._guard(
            self.state.status == S.AWAITING_DOCUMENT_CHECK,
            "document_check_pending",
            f"no document check pending in state {self.state.status.value}",
        )
        self._guard(documents_complete, "document_set_complete", "document set is incomplete")
        self._record_transition(S.AWAITING_PAYMENT, now, "document check passed")

    def record_control_outcome(
            self,
            stage: ClearanceState,
            outcome: InspectionOutcome,
            now: datetime,
            officer_id: Optional[str] = None,
            remarks: str = "",
    ) -> None:
        """COMPLIANT -> AWAITING_PAYMENT; NON_COMPLIANT -> REJECTED."""
        self.check_control_stage(stage)
        target = S.AWAITING_PAYMENT if outcome == InspectionOutcome.COMPLIANT else S.REJECTED
        self.check_transition(target)
        if target == S.REJECTED:
            self._check_reservations_settled()

        self._apply_and_record(ControlOutcomeRecorded(
            declaration_id=self.id,
            stage=stage,
            outcome=outcome,
            officer_id=officer_id,
            remarks=remarks,
            occurred_at=now,
        ))
        if target == S.REJECTED:
            self._record_transition(
                S.REJECTED, now, f"{stage.value}: non-compliant",
                reason_code="CONTROL_NON_COMPLIANT", check="control_outcome",
            )
        else:
            self._record_transition(target, now, f"{stage.value}: compliant")

    def escalate(self, target: ClearanceState, now: datetime, reason: str = "") -> None:
        """Move to a stricter check (document check -> inspection -> examination)."""
        current = self.state.status
        self._guard(
            current in ESCALATION_ORDER and target in ESCALATION_ORDER
            and ESCALATION_ORDER.index(target) > ESCALATION_ORDER.index(current),
            "escalation_stricter",
            f"{target.value} is not stricter than {current.value}",
        )
        self.check_transition(target)
        self._record_transition(target, now, reason or "escalated")

    # -------------------------------------------------------------------------
    # Command Handlers - Payment & Transit
    # -------------------------------------------------------------------------
    def confirm_payment(self, amount: Decimal, currency: str, now: datetime) -> None:
        """AWAITING_PAYMENT -> RELEASED with payment covering all duties."""
        self.check_transition(S.RELEASED)
        declaration = self.declaration
        self._guard(
            declaration.declaration_type != DeclarationType.TRANSIT,
            "declaration_type",
            "transit declarations are discharged at exit, not released on payment",
        )
        self._guard(
            currency == declaration.currency,
            "payment_currency",
            f"payment in {currency}, declaration in {declaration.currency}",
        )
        self._guard(
            amount >= declaration.total_duty,
            "payment_covers_duties",
            f"paid {amount}, duties {declaration.total_duty}",
        )

        self._apply_and_record(PaymentConfirmed(
            declaration_id=self.id, amount=amount, currency=currency, occurred_at=now,
        ))
        self._record_transition(S.RELEASED, now, "payment confirmed")

    def start_transit(self, guarantee_id: str, amount: Decimal, movement_reference: str, now: datetime) -> None:
        """AWAITING_PAYMENT -> IN_TRANSIT; the ledger reservation is already made."""
        self.check_start_transit()
        self._apply_and_record(GuaranteeReservationRecorded(
            declaration_id=self.id,
            guarantee_id=guarantee_id,
            amount=amount,
            purpose=PURPOSE_TRANSIT,
            movement_reference=movement_reference,
            occurred_at=now,
        ))
        self._record_transition(S.IN_TRANSIT, now, f"movement {movement_reference} under guarantee {guarantee_id}")

    def record_finding(self, finding: ComplianceFinding, now: datetime) -> None:
        self._guard(
            self.state.status is not None and not self.state.status.is_terminal,
            "not_terminal",
            "declaration is closed",
        )
        self._apply_and_record(ComplianceFindingRecorded(
            declaration_id=self.id, finding=finding.to_dict(), occurred_at=now,
        ))

    def exit(self, now: datetime) -> None:
        """IN_TRANSIT -> EXITED once the transit reservation is settled."""
        self.check_exit()
        self._check_reservations_settled()
        self._record_transition(S.EXITED, now, "clean exit")

    # -------------------------------------------------------------------------
    # Command Handlers - Suspension, Guarantees, Rejection
    # -------------------------------------------------------------------------
    def suspend(
            self,
            reason: SuspensionReason,
            now: datetime,
            review_window: Optional[timedelta] = None,
            grounds: str = "",
            reservation: Optional[Reservation] = None,
    ) -> None:
        self.check_suspend(reason)
        self._apply_and_record(SuspensionOpened(
            declaration_id=self.id,
            reason=reason,
            review_deadline=now + review_window if review_window is not None else None,
            grounds=grounds,
            occurred_at=now,
        ))
        if reservation is not None:
            self._apply_and_record(GuaranteeReservationRecorded(
                declaration_id=self.id,
                guarantee_id=reservation.guarantee_id,
                amount=reservation.amount,
                purpose=reservation.purpose,
                occurred_at=now,
            ))
        self._record_transition(S.SUSPENDED, now, f"{reason.value}: {grounds}" if grounds else reason.value)

    def resolve_suspension(self, now: datetime, reason: str = "") -> ClearanceState:
        """SUSPENDED -> pre-suspension state."""
        self.check_resolve_suspension()
        if self.state.suspension_reason == SuspensionReason.APPEAL:
            self._guard(
                not self.reservations(PURPOSE_APPEAL),
                "appeal_reservation_released",
                "appeal reservation still held",
            )
        target = self.state.suspended_from
        self._record_transition(target, now, reason or "suspension resolved")
        return target

    def record_settlement(self, reservation: Reservation, forfeited: bool, now: datetime) -> None:
        self._guard(
            reservation in self.state.reservations,
            "reservation_held",
            f"no {reservation.purpose} reservation on {reservation.guarantee_id}",
        )
        self._apply_and_record(GuaranteeReservationSettled(
            declaration_id=self.id,
            guarantee_id=reservation.guarantee_id,
            amount=reservation.amount,
            purpose=reservation.purpose,
            forfeited=forfeited,
            occurred_at=now,
        ))

    def reject(self, now: datetime, reason: str, reason_code: str, check: Optional[str] = None) -> None:
        """Any non-terminal state -> REJECTED; reservations must be forfeited first."""
        self.check_reject()
        self._check_reservations_settled()
        self._record_transition(S.REJECTED, now, reason, reason_code=reason_code, check=check)

    def _check_reservations_settled(self) -> None:
        self._guard(
            not self.state.reservations,
            "reservations_settled",
            f"{len(self.state.reservations)} guarantee reservation(s) outstanding",
        )

    # -------------------------------------------------------------------------
    # Internal Event Application
    # -------------------------------------------------------------------------
    def _record_transition(
            self,
            target: ClearanceState,
            now: datetime,
            reason: str,
            reason_code: Optional[str] = None,
            check: Optional[str] = None,
    ) -> None:
        log.debug(
            f"Declaration {self.id}: {self.state.status.value if self.state.status else 'NONE'} "
            f"-> {target.value} ({reason})"
        )
        self._apply_and_record(ClearanceStateChanged(
            declaration_id=self.id,
            old_state=self.state.status,
            new_state=target,
            reason=reason,
            reason_code=reason_code,
            check=check,
            declaration_version=self.state.declaration_version,
            occurred_at=now,
        ))

    def _apply_and_record(self, event: BaseEvent) -> None:
        """Apply event to state and record it for the history."""
        self._apply(event)
        self._uncommitted_events.append(event)
        self.version += 1

    def _apply(self, event: BaseEvent) -> None:
        """Dispatch event to the appropriate state update method."""
        if isinstance(event, ClearanceStateChanged):
            self._on_state_changed(event)
        elif isinstance(event, DeclarationSubmitted):
            self._on_submitted(event)
        elif isinstance(event, DeclarationAmended):
            self._on_amended(event)
        elif isinstance(event, RiskProfileAssigned):
            self.state.risk_profile = event.profile
            self.state.channel = event.profile.channel
        elif isinstance(event, ControlOutcomeRecorded):
            self.state.control_outcomes.append({
                "stage": event.stage.value,
                "outcome": event.outcome.value,
                "officer_id": event.officer_id,
                "remarks": event.remarks,
            })
        elif isinstance(event, PaymentConfirmed):
            self.state.paid_amount = event.amount
            self.state.paid_currency = event.currency
        elif isinstance(event, ComplianceFindingRecorded):
            self.state.findings.append(event.finding)
        elif isinstance(event, SuspensionOpened):
            self.state.suspension_reason = event.reason
            self.state.review_deadline = event.review_deadline
        elif isinstance(event, GuaranteeReservationRecorded):
            self.state.reservations.append(Reservation(
                guarantee_id=event.guarantee_id,
                amount=event.amount,
                purpose=event.purpose,
                movement_reference=event.movement_reference,
            ))
        elif isinstance(event, GuaranteeReservationSettled):
            self._on_reservation_settled(event)
        self.state.updated_at = getattr(event, "occurred_at", self.state.updated_at)

    # -------------------------------------------------------------------------
    # State Update Methods
    # -------------------------------------------------------------------------
    def _on_state_changed(self, event: ClearanceStateChanged) -> None:
        if event.new_state == S.SUSPENDED:
            self.state.suspended_from = event.old_state
        elif event.old_state == S.SUSPENDED:
            self.state.suspended_from = None
            self.state.suspension_reason = None
            self.state.review_deadline = None
        if event.new_state == S.REJECTED:
            self.state.rejection_reason_code = event.reason_code
            self.state.rejection_check = event.check
        self.state.status = event.new_state

    def _on_submitted(self, event: DeclarationSubmitted) -> None:
        self.state.declaration = Declaration.from_dict(event.declaration)
        self.state.declaration_version = event.declaration_version
        self.state.submitted_at = event.occurred_at

    def _on_amended(self, event: DeclarationAmended) -> None:
        self.state.declaration = Declaration.from_dict(event.declaration)
        self.state.declaration_version = event.declaration_version
        self.state.risk_profile = None
        self.state.channel = None

    def _on_reservation_settled(self, event: GuaranteeReservationSettled) -> None:
        for index, reservation in enumerate(self.state.reservations):
            if reservation.guarantee_id == event.guarantee_id and reservation.purpose == event.purpose:
                del self.state.reservations[index]
                return


# =============================================================================
# EOF
# =============================================================================
