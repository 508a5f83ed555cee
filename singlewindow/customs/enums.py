# =============================================================================
# File: singlewindow/customs/enums.py
# Description: Shared enumerations for the Customs clearance domain
# =============================================================================

from enum import Enum


class DeclarationType(str, Enum):
    """Type of customs declaration."""
    IMPORT = "IM"
    EXPORT = "EX"
    TRANSIT = "TR"
    RE_EXPORT = "RX"


class ClearanceState(str, Enum):
    """
    Lifecycle state of a declaration.

    The allowed moves between states live in
    singlewindow.customs.declaration.transitions.ALLOWED_TRANSITIONS.
    """
    SUBMITTED = "SUBMITTED"
    RISK_ASSESSED = "RISK_ASSESSED"
    AUTO_RELEASED = "AUTO_RELEASED"
    AWAITING_DOCUMENT_CHECK = "AWAITING_DOCUMENT_CHECK"
    AWAITING_INSPECTION = "AWAITING_INSPECTION"
    AWAITING_EXAMINATION = "AWAITING_EXAMINATION"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    IN_TRANSIT = "IN_TRANSIT"
    SUSPENDED = "SUSPENDED"
    RELEASED = "RELEASED"        # terminal
    REJECTED = "REJECTED"        # terminal
    EXITED = "EXITED"            # terminal (transit movement discharged)

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({
    ClearanceState.RELEASED,
    ClearanceState.REJECTED,
    ClearanceState.EXITED,
})


class Channel(int, Enum):
    """
    Scrutiny level assigned by risk assessment.

    Ordinal: a higher value is a stricter channel.
    """
    AUTOMATIC = 0       # Green - no intervention
    DOCUMENTARY = 1     # Yellow - documentary check
    PHYSICAL = 2        # Orange - partial physical inspection
    DETAILED = 3        # Red - detailed examination


class RiskTier(str, Enum):
    """Risk tier returned by the reference-data provider."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskFactor(str, Enum):
    """Weighted factors of the risk score, in breakdown order."""
    TRADER_HISTORY = "trader_history"
    COMMODITY = "commodity"
    ORIGIN_DESTINATION = "origin_destination"
    VALUE_ANOMALY = "value_anomaly"
    DOCUMENT_COMPLETENESS = "document_completeness"


class MessageFunction(str, Enum):
    """BGM message function code of a declaration message."""
    ORIGINAL = "9"
    AMENDMENT = "5"
    DELETION = "3"


class ResponseStatus(str, Enum):
    """Status code carried by a CUSRES response."""
    ACCEPTED = "1"
    HELD_FOR_EXAMINATION = "2"
    REJECTED = "3"
    CLEARED = "4"


class InspectionOutcome(str, Enum):
    """Result of a physical inspection or detailed examination."""
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"


class GuaranteeType(str, Enum):
    """Instrument type of a guarantee."""
    CASH = "cash"
    BANK = "bank"
    CARNET = "carnet"
    COMPREHENSIVE = "comprehensive"


class SuspensionReason(str, Enum):
    """Why a declaration was suspended."""
    APPEAL = "appeal"
    INVESTIGATION = "investigation"


class FindingKind(str, Enum):
    """Kind of compliance finding raised by the transit monitor."""
    SEAL = "seal"
    ROUTE = "route"
    TIME_LIMIT = "time_limit"


class SealViolationReason(str, Enum):
    """
    Distinguishes tampering from loss for downstream penalty calculation.
    """
    MISSING = "missing"          # presented set is a strict subset (loss)
    UNEXPECTED = "unexpected"    # presented set is a strict superset (tampering)
    MISMATCH = "mismatch"        # both missing and unexpected seals


class ComplianceDecision(str, Enum):
    """Outcome of the injected compliance policy."""
    CONTINUE = "continue"
    SUSPEND = "suspend"
    REJECT = "reject"


class FindingSeverity(str, Enum):
    """How serious a compliance finding is."""
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"
