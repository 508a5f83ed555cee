# =============================================================================
# File: singlewindow/services/clearance_service.py
# Description: Clearance Service - orchestrates the declaration lifecycle
# Responsibilities:
#  - Serialize every operation per declaration id.
#  - Consult the ports (documents, reference data, trader compliance) and
#    the risk engine, then drive the ClearanceAggregate.
#  - Check guards before any guarantee ledger side effect.
#  - Dispatch every ClearanceStateChanged to the notification port.
#  - Process batches of CUSDEC messages into typed outcomes.
# =============================================================================

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, Iterator, List, Optional, Union

from singlewindow.common.base.base_model import BaseEvent
from singlewindow.common.exceptions.exceptions import SingleWindowError
from singlewindow.config.clearance_config import ClearanceConfig, get_clearance_config
from singlewindow.config.logging_config import get_logger, log_metrics_table
from singlewindow.customs.declaration.aggregate import (
    PURPOSE_APPEAL,
    PURPOSE_TRANSIT,
    ClearanceAggregate,
    ClearanceAggregateState,
    Reservation,
)
from singlewindow.customs.declaration.events import ClearanceStateChanged
from singlewindow.customs.enums import (
    ClearanceState,
    ComplianceDecision,
    InspectionOutcome,
    MessageFunction,
    ResponseStatus,
    SuspensionReason,
)
from singlewindow.customs.exceptions import (
    ClearanceGuardError,
    DeclarationAlreadyExistsError,
    DeclarationNotFoundError,
    DeclarationValidationError,
    GuaranteeLedgerError,
    GuardPreconditionError,
)
from singlewindow.customs.risk.engine import assess_risk, build_risk_inputs
from singlewindow.customs.risk.models import RiskPolicy, RiskProfile
from singlewindow.customs.transit.models import ComplianceFinding, PositionReport, TransitDocument
from singlewindow.customs.transit.monitor import TransitMonitor, check_time_limit, time_limit_finding
from singlewindow.customs.transit.policy import CompliancePolicy, SeverityCompliancePolicy
from singlewindow.customs.value_objects import Declaration
from singlewindow.infra.metrics.prometheus import clearance_transitions, deadline_failures, guard_rejections
from singlewindow.infra.reliability.keyed_lock import KeyedLock
from singlewindow.messaging.cusdec import cusdec_to_declaration
from singlewindow.messaging.cusres import ClearanceResponse, encode_cusres
from singlewindow.messaging.message_codec import decode_message_result
from singlewindow.utils.uuid_utils import generate_reference

if TYPE_CHECKING:
    from singlewindow.customs.guarantee.ledger import GuaranteeLedger
    from singlewindow.customs.ports.document_store_port import DocumentStorePort
    from singlewindow.customs.ports.notification_dispatcher_port import NotificationDispatcherPort
    from singlewindow.customs.ports.reference_data_port import ReferenceDataPort
    from singlewindow.customs.ports.trader_compliance_port import TraderCompliancePort

log = get_logger("singlewindow.services.clearance")

S = ClearanceState

# Reason codes of rejections decided by the core
REASON_APPEAL_EXPIRED = "APPEAL_WINDOW_EXPIRED"
REASON_GUARANTEE_FORFEITED = "GUARANTEE_FORFEITED"
REASON_TRANSIT_NON_COMPLIANT = "TRANSIT_NON_COMPLIANT"
REASON_WITHDRAWN = "DECLARATION_WITHDRAWN"
REASON_MANUAL = "MANUAL_REJECTION"

_HELD_STATES = frozenset({S.AWAITING_INSPECTION, S.AWAITING_EXAMINATION, S.SUSPENDED})
_CLEARED_STATES = frozenset({S.RELEASED, S.EXITED})


@dataclass(frozen=True)
class SubmissionOutcome:
    """Typed result of one message in a batch: a state and response, or the error."""
    index: int
    reference: Optional[str] = None
    declaration_id: Optional[uuid.UUID] = None
    state: Optional[ClearanceState] = None
    response: Optional[ClearanceResponse] = None
    reply: Optional[bytes] = None
    error: Optional[SingleWindowError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ClearanceService:
    """
    Clearance State Machine service.

    Holds the arena of clearance aggregates and their histories. Operations
    on the same declaration are strictly ordered; different declarations
    proceed independently. Every time check uses the caller-supplied `now`.
    """

    def __init__(
        self,
        ledger: 'GuaranteeLedger',
        document_store: 'DocumentStorePort',
        notifier: 'NotificationDispatcherPort',
        reference_data: 'ReferenceDataPort',
        trader_compliance: 'TraderCompliancePort',
        compliance_policy: Optional[CompliancePolicy] = None,
        config: Optional[ClearanceConfig] = None,
        risk_policy: Optional[RiskPolicy] = None,
    ):
        self.config = config or get_clearance_config()
        self.ledger = ledger
        self.documents = document_store
        self.notifier = notifier
        self.reference_data = reference_data
        self.trader_compliance = trader_compliance
        self.compliance_policy = compliance_policy or SeverityCompliancePolicy(config=self.config)
        self.risk_policy = risk_policy or self.config.to_risk_policy()
        self.monitor = TransitMonitor(self.config)

        self._aggregates: Dict[uuid.UUID, ClearanceAggregate] = {}
        self._history: Dict[uuid.UUID, List[BaseEvent]] = {}
        self._transit_documents: Dict[uuid.UUID, TransitDocument] = {}
        self._arena_lock = threading.Lock()
        self._locks = KeyedLock("declaration", timeout=self.config.lock_timeout_seconds)
        log.debug(f"Clearance service ready: {self.config.summary()}")

    # -------------------------------------------------------------------------
    # Submission, amendment, risk
    # -------------------------------------------------------------------------
    def submit(self, declaration: Declaration, now: datetime) -> ClearanceState:
        """Register a new declaration in SUBMITTED."""
        declaration_id = declaration.declaration_id
        with self._locks.hold(declaration_id):
            with self._arena_lock:
                if declaration_id in self._aggregates:
                    raise DeclarationAlreadyExistsError(str(declaration_id))
            aggregate = ClearanceAggregate(declaration_id)
            try:
                aggregate.submit(declaration, now)
            except ClearanceGuardError as e:
                self._count_guard_rejection(declaration_id, "submit", e)
                raise
            with self._arena_lock:
                self._aggregates[declaration_id] = aggregate
                self._history[declaration_id] = []
            self._commit(aggregate)
        log.info(f"Declaration {declaration_id} submitted ({declaration.declaration_type.value})")
        return aggregate.status

    def amend(self, declaration: Declaration, now: datetime) -> ClearanceState:
        """Replace content; the declaration must be assessed again."""
        with self._operation(declaration.declaration_id, "amend") as aggregate:
            aggregate.amend(declaration, now)
            return aggregate.status

    def assess(self, declaration_id: uuid.UUID, now: datetime) -> RiskProfile:
        """Compute and assign the risk profile of the current version."""
        with self._operation(declaration_id, "assess") as aggregate:
            aggregate.check_transition(S.RISK_ASSESSED)
            declaration = aggregate.declaration
            inputs = build_risk_inputs(
                declaration,
                aggregate.state.declaration_version,
                self.reference_data,
                self.trader_compliance.compliance_summary(declaration.declarant_id),
                self.documents.is_document_set_complete(declaration_id),
                now,
            )
            profile = assess_risk(inputs, self.risk_policy)
            aggregate.assign_risk_profile(profile, now)
            return profile

    def route(self, declaration_id: uuid.UUID, now: datetime) -> ClearanceState:
        with self._operation(declaration_id, "route") as aggregate:
            return aggregate.route(now)

    def process_submission(self, declaration: Declaration, now: datetime) -> ClearanceState:
        """Submit, assess and route in one go."""
        self.submit(declaration, now)
        self.assess(declaration.declaration_id, now)
        return self.route(declaration.declaration_id, now)

    def reassess(self, declaration_id: uuid.UUID, now: datetime) -> ClearanceState:
        """Assess and route an amended declaration."""
        self.assess(declaration_id, now)
        return self.route(declaration_id, now)

    # -------------------------------------------------------------------------
    # Controls
    # -------------------------------------------------------------------------
    def complete_document_check(self, declaration_id: uuid.UUID, now: datetime) -> ClearanceState:
        with self._operation(declaration_id, "complete_document_check") as aggregate:
            aggregate.complete_document_check(self.documents.is_document_set_complete(declaration_id), now)
            return aggregate.status

    def escalate(
            self,
            declaration_id: uuid.UUID,
            target: ClearanceState,
            now: datetime,
            reason: str = "",
    ) -> ClearanceState:
        with self._operation(declaration_id, "escalate") as aggregate:
            aggregate.escalate(target, now, reason)
            return aggregate.status

    def record_inspection(
            self,
            declaration_id: uuid.UUID,
            outcome: InspectionOutcome,
            now: datetime,
            officer_id: Optional[str] = None,
            remarks: str = "",
    ) -> ClearanceState:
        return self._record_control(declaration_id, S.AWAITING_INSPECTION, outcome, now, officer_id, remarks)

    def record_examination(
            self,
            declaration_id: uuid.UUID,
            outcome: InspectionOutcome,
            now: datetime,
            officer_id: Optional[str] = None,
            remarks: str = "",
    ) -> ClearanceState:
        return self._record_control(declaration_id, S.AWAITING_EXAMINATION, outcome, now, officer_id, remarks)

    def _record_control(
            self,
            declaration_id: uuid.UUID,
            stage: ClearanceState,
            outcome: InspectionOutcome,
            now: datetime,
            officer_id: Optional[str],
            remarks: str,
    ) -> ClearanceState:
        with self._operation(declaration_id, f"record_{stage.value.lower()}") as aggregate:
            aggregate.check_control_stage(stage)
            if outcome == InspectionOutcome.NON_COMPLIANT:
                aggregate.check_reject()
                self._forfeit_reservations(aggregate, now, f"{stage.value} non-compliant")
            aggregate.record_control_outcome(stage, outcome, now, officer_id, remarks)
            return aggregate.status

    # -------------------------------------------------------------------------
    # Payment & transit
    # -------------------------------------------------------------------------
    def confirm_payment(
            self,
            declaration_id: uuid.UUID,
            amount: Decimal,
            currency: str,
            now: datetime,
    ) -> ClearanceState:
        """Inbound payment gateway confirmation."""
        with self._operation(declaration_id, "confirm_payment") as aggregate:
            aggregate.confirm_payment(amount, currency, now)
            return aggregate.status

    def release_for_transit(
            self,
            declaration_id: uuid.UUID,
            document: TransitDocument,
            now: datetime,
    ) -> ClearanceState:
        """Secure duties on the document's guarantee and start the movement."""
        with self._operation(declaration_id, "release_for_transit") as aggregate:
            aggregate.check_start_transit()
            if document.declaration_id != declaration_id:
                raise DeclarationValidationError(
                    f"Transit document {document.movement_reference} belongs to {document.declaration_id}",
                    check="transit_document",
                )
            self.ledger.reserve(
                document.guarantee_id, document.secured_amount, now, reference=document.movement_reference,
            )
            aggregate.start_transit(document.guarantee_id, document.secured_amount, document.movement_reference, now)
            self._transit_documents[declaration_id] = document
            return aggregate.status

    def record_position(
            self,
            declaration_id: uuid.UUID,
            report: PositionReport,
    ) -> ComplianceDecision:
        """Log a position of a movement in transit and act on any findings."""
        with self._operation(declaration_id, "record_position") as aggregate:
            aggregate.check_exit()
            document = self._transit_documents[declaration_id]
            findings = self.monitor.inspect_position(document, report)
            return self._act_on_findings(aggregate, findings, report.recorded_at)

    def process_exit(
            self,
            declaration_id: uuid.UUID,
            presented_seals: Iterable[str],
            now: datetime,
    ) -> ClearanceState:
        """
        Exit of a transit movement.

        Clean exit releases the secured amount and reaches EXITED; a seal or
        time violation goes to the compliance policy instead.
        """
        with self._operation(declaration_id, "process_exit") as aggregate:
            aggregate.check_exit()
            document = self._transit_documents[declaration_id]
            findings = self.monitor.inspect_exit(document, presented_seals, now)
            decision = self._act_on_findings(aggregate, findings, now)
            if decision == ComplianceDecision.CONTINUE:
                self._release_reservations(aggregate, now, PURPOSE_TRANSIT)
                aggregate.exit(now)
            return aggregate.status

    def transit_document(self, declaration_id: uuid.UUID) -> Optional[TransitDocument]:
        return self._transit_documents.get(declaration_id)

    # -------------------------------------------------------------------------
    # Suspension, appeal, rejection
    # -------------------------------------------------------------------------
    def file_appeal(
            self,
            declaration_id: uuid.UUID,
            guarantee_id: str,
            amount: Decimal,
            now: datetime,
            grounds: str = "",
    ) -> ClearanceState:
        """
        Suspend pending appeal; the amount is reserved on the guarantee.

        The guarantee must stay valid until the review deadline, otherwise an
        expired appeal could not be forfeited.
        """
        with self._operation(declaration_id, "file_appeal") as aggregate:
            aggregate.check_suspend(SuspensionReason.APPEAL)
            review_deadline = now + self.config.appeal_review_window
            valid_until = self.ledger.snapshot(guarantee_id).valid_until
            if valid_until < review_deadline:
                raise GuardPreconditionError(
                    str(declaration_id),
                    "guarantee_covers_review_window",
                    f"guarantee {guarantee_id} valid until {valid_until.isoformat()}, "
                    f"review deadline is {review_deadline.isoformat()}",
                )
            self.ledger.reserve(guarantee_id, amount, now, reference=str(declaration_id))
            aggregate.suspend(
                SuspensionReason.APPEAL,
                now,
                review_window=self.config.appeal_review_window,
                grounds=grounds,
                reservation=Reservation(guarantee_id=guarantee_id, amount=amount, purpose=PURPOSE_APPEAL),
            )
            return aggregate.status

    def resolve_suspension(self, declaration_id: uuid.UUID, now: datetime, reason: str = "") -> ClearanceState:
        """Return to the pre-suspension state, releasing the appeal reservation."""
        with self._operation(declaration_id, "resolve_suspension") as aggregate:
            aggregate.check_resolve_suspension()
            self._release_reservations(aggregate, now, PURPOSE_APPEAL)
            return aggregate.resolve_suspension(now, reason)

    def forfeit(self, declaration_id: uuid.UUID, now: datetime, reason: str = "guarantee forfeited") -> ClearanceState:
        """Forfeit every reservation and reject."""
        with self._operation(declaration_id, "forfeit") as aggregate:
            self._reject(aggregate, now, reason, REASON_GUARANTEE_FORFEITED, "guarantee_forfeiture")
            return aggregate.status

    def reject(
            self,
            declaration_id: uuid.UUID,
            now: datetime,
            reason: str,
            reason_code: str = REASON_MANUAL,
            check: Optional[str] = None,
    ) -> ClearanceState:
        with self._operation(declaration_id, "reject") as aggregate:
            self._reject(aggregate, now, reason, reason_code, check)
            return aggregate.status

    def enforce_deadlines(self, now: datetime) -> List[uuid.UUID]:
        """
        Compare stored deadlines against `now`.

        Expired appeals are rejected with their guarantee forfeited; transit
        movements past their time limit get a finding and a policy decision.
        A declaration that cannot be processed is logged, counted and left
        for the next sweep. Returns the ids whose state changed.
        """
        with self._arena_lock:
            ids = list(self._aggregates)

        changed: List[uuid.UUID] = []
        failed = 0
        for declaration_id in ids:
            try:
                with self._operation(declaration_id, "enforce_deadlines") as aggregate:
                    before = aggregate.status
                    if aggregate.appeal_expired(now):
                        self._reject(
                            aggregate, now, "appeal review window expired",
                            REASON_APPEAL_EXPIRED, "appeal_review_window",
                        )
                    elif before == S.IN_TRANSIT:
                        finding = time_limit_finding(check_time_limit(self._transit_documents[declaration_id], now))
                        if finding is not None:
                            self._act_on_findings(aggregate, [finding], now)
                    if aggregate.status != before:
                        changed.append(declaration_id)
            except SingleWindowError as e:
                failed += 1
                deadline_failures.labels(reason_code=e.reason_code).inc()
                log.warning(f"Deadline enforcement skipped declaration {declaration_id} [{e.reason_code}]: {e}")
        if changed or failed:
            log.info(f"Deadline enforcement changed {len(changed)} declaration(s), {failed} failed")
        return changed

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------
    def get(self, declaration_id: uuid.UUID) -> ClearanceAggregateState:
        with self._locks.hold(declaration_id):
            return self._get(declaration_id).state.model_copy(deep=True)

    def state_of(self, declaration_id: uuid.UUID) -> ClearanceState:
        return self.get(declaration_id).status

    def history(self, declaration_id: uuid.UUID) -> List[BaseEvent]:
        """Full event history, retained for audit."""
        with self._locks.hold(declaration_id):
            self._get(declaration_id)
            return list(self._history[declaration_id])

    def valid_transitions(self, declaration_id: uuid.UUID) -> FrozenSet[ClearanceState]:
        with self._locks.hold(declaration_id):
            return self._get(declaration_id).valid_transitions()

    def count_by_state(self) -> Dict[str, int]:
        """Number of declarations per clearance state."""
        with self._arena_lock:
            aggregates = list(self._aggregates.values())
        counts: Dict[str, int] = {}
        for aggregate in aggregates:
            counts[aggregate.status.value] = counts.get(aggregate.status.value, 0) + 1
        return counts

    def log_status_summary(self) -> Dict[str, int]:
        counts = self.count_by_state()
        log_metrics_table(log, "Clearance status", counts or {"declarations": 0})
        log_metrics_table(log, "Declaration locks", self._locks.stats())
        return counts

    def response_for(
            self,
            declaration_id: uuid.UUID,
            now: datetime,
            response_reference: Optional[str] = None,
            original_reference: Optional[str] = None,
    ) -> ClearanceResponse:
        """CUSRES content describing the current clearance status."""
        state = self.get(declaration_id)
        declaration = state.declaration
        if state.status in _CLEARED_STATES:
            status = ResponseStatus.CLEARED
        elif state.status == S.REJECTED:
            status = ResponseStatus.REJECTED
        elif state.status in _HELD_STATES:
            status = ResponseStatus.HELD_FOR_EXAMINATION
        else:
            status = ResponseStatus.ACCEPTED

        duty = declaration.total_duty
        return ClearanceResponse(
            original_reference=original_reference or str(declaration_id),
            status=status,
            response_reference=response_reference or generate_reference("RES"),
            issued_at=now,
            amount=duty if duty > 0 else None,
            currency=declaration.currency if duty > 0 else None,
            reason_code=state.rejection_reason_code if status == ResponseStatus.REJECTED else None,
            failed_check=state.rejection_check if status == ResponseStatus.REJECTED else None,
        )

    def encode_response(self, response: ClearanceResponse) -> bytes:
        """CUSRES bytes in the configured encoding, UNA advice as configured."""
        return encode_cusres(
            response,
            service_advice=self.config.emit_service_advice,
            encoding=self.config.message_encoding,
        )

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------
    def submit_messages(
            self,
            messages: Iterable[Union[bytes, str]],
            now: datetime,
    ) -> List[SubmissionOutcome]:
        """
        Process a batch of CUSDEC messages. Format, guard and ledger errors
        are returned per message; one failure does not abort the batch.
        """
        outcomes: List[SubmissionOutcome] = []
        for index, data in enumerate(messages):
            decoded = decode_message_result(data, self.config.message_encoding)
            if not decoded.ok:
                outcomes.append(SubmissionOutcome(index=index, error=decoded.error))
                continue

            reference = decoded.message.envelope.reference
            declaration_id = None
            try:
                content = cusdec_to_declaration(decoded.message)
                declaration_id = content.declaration.declaration_id
                state = self._apply_message(content.declaration, content.function, now)
                response = self.response_for(declaration_id, now, original_reference=content.reference)
                outcomes.append(SubmissionOutcome(
                    index=index,
                    reference=reference,
                    declaration_id=declaration_id,
                    state=state,
                    response=response,
                    reply=self.encode_response(response),
                ))
            except SingleWindowError as e:
                log.warning(f"Message {reference} refused [{e.reason_code}] {e.check}: {e.message}")
                outcomes.append(SubmissionOutcome(
                    index=index, reference=reference, declaration_id=declaration_id, error=e,
                ))
        accepted = sum(1 for o in outcomes if o.ok)
        log.info(f"Processed {len(outcomes)} message(s): {accepted} accepted, {len(outcomes) - accepted} refused")
        return outcomes

    def _apply_message(self, declaration: Declaration, function: MessageFunction, now: datetime) -> ClearanceState:
        if function == MessageFunction.ORIGINAL:
            return self.process_submission(declaration, now)
        if function == MessageFunction.AMENDMENT:
            self.amend(declaration, now)
            return self.reassess(declaration.declaration_id, now)
        return self.reject(declaration.declaration_id, now, "withdrawn by declarant", REASON_WITHDRAWN)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    def _get(self, declaration_id: uuid.UUID) -> ClearanceAggregate:
        with self._arena_lock:
            aggregate = self._aggregates.get(declaration_id)
        if aggregate is None:
            raise DeclarationNotFoundError(str(declaration_id))
        return aggregate

    @contextmanager
    def _operation(self, declaration_id: uuid.UUID, operation: str) -> Iterator[ClearanceAggregate]:
        """
        Lock the declaration, hand out its aggregate and commit whatever it
        recorded, also when the operation fails part-way.
        """
        with self._locks.hold(declaration_id):
            aggregate = self._get(declaration_id)
            try:
                yield aggregate
            except ClearanceGuardError as e:
                self._count_guard_rejection(declaration_id, operation, e)
                raise
            except GuaranteeLedgerError as e:
                log.warning(f"Declaration {declaration_id} {operation}: ledger refused [{e.reason_code}]")
                raise
            finally:
                self._commit(aggregate)

    def _commit(self, aggregate: ClearanceAggregate) -> None:
        events = list(aggregate.get_uncommitted_events())
        if not events:
            return
        self._history[aggregate.id].extend(events)
        aggregate.mark_events_committed()
        for event in events:
            if isinstance(event, ClearanceStateChanged):
                clearance_transitions.labels(
                    from_state=event.old_state.value if event.old_state else "NONE",
                    to_state=event.new_state.value,
                ).inc()
                self.notifier.dispatch(event)

    def _count_guard_rejection(self, declaration_id: uuid.UUID, operation: str, error: ClearanceGuardError) -> None:
        guard_rejections.labels(reason_code=error.reason_code).inc()
        log.info(f"Declaration {declaration_id} {operation} refused [{error.reason_code}] {error.check}")

    def _release_reservations(self, aggregate: ClearanceAggregate, now: datetime, purpose: str) -> None:
        for reservation in aggregate.reservations(purpose):
            self.ledger.release(reservation.guarantee_id, reservation.amount, now, reference=str(aggregate.id))
            aggregate.record_settlement(reservation, forfeited=False, now=now)

    def _forfeit_reservations(self, aggregate: ClearanceAggregate, now: datetime, reason: str) -> None:
        for reservation in aggregate.reservations():
            self.ledger.forfeit(
                reservation.guarantee_id, reservation.amount, now, reference=str(aggregate.id), reason=reason,
            )
            aggregate.record_settlement(reservation, forfeited=True, now=now)

    def _reject(
            self,
            aggregate: ClearanceAggregate,
            now: datetime,
            reason: str,
            reason_code: str,
            check: Optional[str],
    ) -> None:
        aggregate.check_reject()
        self._forfeit_reservations(aggregate, now, reason)
        aggregate.reject(now, reason, reason_code, check)
        log.info(f"Declaration {aggregate.id} rejected [{reason_code}]: {reason}")

    def _act_on_findings(
            self,
            aggregate: ClearanceAggregate,
            findings: List[ComplianceFinding],
            now: datetime,
    ) -> ComplianceDecision:
        """Record findings and apply the compliance policy's decision."""
        for finding in findings:
            aggregate.record_finding(finding, now)
        if not findings:
            return ComplianceDecision.CONTINUE

        prior = self.trader_compliance.compliance_summary(aggregate.declaration.declarant_id).prior_offenses
        decision = self.compliance_policy.decide(findings, prior)
        log.info(
            f"Declaration {aggregate.id}: {len(findings)} finding(s), prior offenses {prior} -> {decision.value}"
        )
        if decision == ComplianceDecision.SUSPEND and aggregate.status != S.SUSPENDED:
            aggregate.suspend(
                SuspensionReason.INVESTIGATION,
                now,
                grounds="; ".join(f.detail for f in findings),
            )
        elif decision == ComplianceDecision.REJECT:
            self._reject(
                aggregate, now, "; ".join(f.detail for f in findings),
                REASON_TRANSIT_NON_COMPLIANT, "transit_compliance",
            )
        return decision


# =============================================================================
# EOF
# =============================================================================
