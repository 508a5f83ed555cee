# =============================================================================
# File: singlewindow/customs/declaration/events.py
# Description: Domain events for the Clearance aggregate
# =============================================================================

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Literal, Optional

from singlewindow.common.base.base_model import BaseEvent
from singlewindow.customs.enums import ClearanceState, InspectionOutcome, SuspensionReason
from singlewindow.customs.risk.models import RiskProfile
from singlewindow.infra.event_registry import domain_event


# =============================================================================
# SECTION: Transition Event (delivered to the notification dispatcher)
# =============================================================================

@domain_event(category="clearance")
class ClearanceStateChanged(BaseEvent):
    """
    Emitted on every accepted transition, including the initial submission
    (old_state is None then).
    """
    event_type: Literal["ClearanceStateChanged"] = "ClearanceStateChanged"
    declaration_id: uuid.UUID
    old_state: Optional[ClearanceState] = None
    new_state: ClearanceState
    reason: str = ""
    reason_code: Optional[str] = None
    check: Optional[str] = None  # failed check behind a rejection
    declaration_version: int = 1
    occurred_at: datetime


# =============================================================================
# SECTION: Content Events
# =============================================================================

@domain_event(category="clearance")
class DeclarationSubmitted(BaseEvent):
    """Emitted when a declaration is registered; carries the full content."""
    event_type: Literal["DeclarationSubmitted"] = "DeclarationSubmitted"
    declaration_id: uuid.UUID
    declaration: Dict[str, Any]
    declaration_version: int = 1
    occurred_at: datetime


@domain_event(category="clearance")
class DeclarationAmended(BaseEvent):
    """Emitted when the content is replaced; invalidates the risk profile."""
    event_type: Literal["DeclarationAmended"] = "DeclarationAmended"
    declaration_id: uuid.UUID
    declaration: Dict[str, Any]
    declaration_version: int
    occurred_at: datetime


@domain_event(category="clearance")
class RiskProfileAssigned(BaseEvent):
    """Emitted when a risk profile for the current version is accepted."""
    event_type: Literal["RiskProfileAssigned"] = "RiskProfileAssigned"
    declaration_id: uuid.UUID
    profile: RiskProfile
    occurred_at: datetime


# =============================================================================
# SECTION: Control Events
# =============================================================================

@domain_event(category="clearance")
class ControlOutcomeRecorded(BaseEvent):
    """Emitted when a document check, inspection or examination concludes."""
    event_type: Literal["ControlOutcomeRecorded"] = "ControlOutcomeRecorded"
    declaration_id: uuid.UUID
    stage: ClearanceState
    outcome: InspectionOutcome
    officer_id: Optional[str] = None
    remarks: str = ""
    occurred_at: datetime


@domain_event(category="clearance")
class PaymentConfirmed(BaseEvent):
    """Inbound payment gateway confirmation, accepted."""
    event_type: Literal["PaymentConfirmed"] = "PaymentConfirmed"
    declaration_id: uuid.UUID
    amount: Decimal
    currency: str
    occurred_at: datetime


@domain_event(category="clearance")
class ComplianceFindingRecorded(BaseEvent):
    """A transit finding kept on record, whatever the policy decided."""
    event_type: Literal["ComplianceFindingRecorded"] = "ComplianceFindingRecorded"
    declaration_id: uuid.UUID
    finding: Dict[str, Any]
    occurred_at: datetime


# =============================================================================
# SECTION: Suspension & Guarantee Events
# =============================================================================

@domain_event(category="clearance")
class SuspensionOpened(BaseEvent):
    """Details of a suspension; followed by the transition to SUSPENDED."""
    event_type: Literal["SuspensionOpened"] = "SuspensionOpened"
    declaration_id: uuid.UUID
    reason: SuspensionReason
    review_deadline: Optional[datetime] = None
    grounds: str = ""
    occurred_at: datetime


@domain_event(category="clearance")
class GuaranteeReservationRecorded(BaseEvent):
    """A ledger reservation now backs an obligation of this declaration."""
    event_type: Literal["GuaranteeReservationRecorded"] = "GuaranteeReservationRecorded"
    declaration_id: uuid.UUID
    guarantee_id: str
    amount: Decimal
    purpose: str  # "appeal" | "transit"
    movement_reference: Optional[str] = None
    occurred_at: datetime


@domain_event(category="clearance")
class GuaranteeReservationSettled(BaseEvent):
    """A reservation was released back or forfeited on the ledger."""
    event_type: Literal["GuaranteeReservationSettled"] = "GuaranteeReservationSettled"
    declaration_id: uuid.UUID
    guarantee_id: str
    amount: Decimal
    purpose: str
    forfeited: bool = False
    occurred_at: datetime


# =============================================================================
# EOF
# =============================================================================
