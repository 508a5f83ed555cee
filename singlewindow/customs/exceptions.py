# =============================================================================
# File: singlewindow/customs/exceptions.py
# Description: Exception hierarchy for the Customs clearance domain
# =============================================================================

from datetime import datetime
from decimal import Decimal
from typing import Optional

from singlewindow.common.exceptions.exceptions import DomainError


class CustomsError(DomainError):
    """Base exception for all customs domain errors."""
    reason_code = "CUS-000"


# =============================================================================
# Guard violations - local, recoverable, declaration state unchanged
# =============================================================================

class ClearanceGuardError(CustomsError):
    """A clearance operation was refused; the declaration is unchanged."""
    reason_code = "CLR-000"


class InvalidTransitionError(ClearanceGuardError):
    """Raised when a transition is not in the transition table."""
    reason_code = "CLR-001"

    def __init__(self, declaration_id: str, from_state: str, to_state: str):
        super().__init__(
            f"Declaration {declaration_id}: transition {from_state} -> {to_state} is not allowed",
            check="transition_table",
            details={"from_state": from_state, "to_state": to_state},
        )
        self.declaration_id = declaration_id
        self.from_state = from_state
        self.to_state = to_state


class GuardPreconditionError(ClearanceGuardError):
    """Raised when a documented transition's precondition is not met."""
    reason_code = "CLR-002"

    def __init__(self, declaration_id: str, check: str, message: str):
        super().__init__(f"Declaration {declaration_id}: {message}", check=check)
        self.declaration_id = declaration_id


class AmendmentNotAllowedError(ClearanceGuardError):
    """Raised when an amendment is attempted outside SUBMITTED / AWAITING_DOCUMENT_CHECK."""
    reason_code = "CLR-003"

    def __init__(self, declaration_id: str, state: str):
        super().__init__(
            f"Declaration {declaration_id} cannot be amended in state {state}",
            check="amendment_window",
            details={"state": state},
        )
        self.declaration_id = declaration_id


class DeclarationNotFoundError(ClearanceGuardError):
    """Raised when a declaration is not registered."""
    reason_code = "CLR-004"

    def __init__(self, declaration_id: str):
        super().__init__(f"Declaration not found: {declaration_id}", check="declaration_exists")
        self.declaration_id = declaration_id


class DeclarationValidationError(ClearanceGuardError):
    """Raised when declaration data fails validation."""
    reason_code = "CLR-005"

    def __init__(self, message: str, check: str = "declaration_content"):
        super().__init__(message, check=check)


class DeclarationAlreadyExistsError(ClearanceGuardError):
    """Raised when a declaration id is submitted twice."""
    reason_code = "CLR-006"

    def __init__(self, declaration_id: str):
        super().__init__(f"Declaration already submitted: {declaration_id}", check="declaration_unique")
        self.declaration_id = declaration_id


# =============================================================================
# Ledger violations - recoverable, but usually need a new guarantee instrument
# =============================================================================

class GuaranteeLedgerError(CustomsError):
    """Base class for guarantee ledger refusals; the ledger is unchanged."""
    reason_code = "GUA-000"

    def __init__(self, guarantee_id: str, message: str, check: str, **details):
        super().__init__(message, check=check, details={"guarantee_id": guarantee_id, **details})
        self.guarantee_id = guarantee_id


class InsufficientCapacity(GuaranteeLedgerError):
    """consumed + amount would exceed the face amount."""
    reason_code = "GUA-001"

    def __init__(self, guarantee_id: str, requested: Decimal, available: Decimal):
        super().__init__(
            guarantee_id,
            f"Guarantee {guarantee_id}: requested {requested}, available {available}",
            check="capacity",
            requested=str(requested),
            available=str(available),
        )
        self.requested = requested
        self.available = available


class OverRelease(GuaranteeLedgerError):
    """Release (or forfeit) amount exceeds what is currently reserved."""
    reason_code = "GUA-002"

    def __init__(self, guarantee_id: str, requested: Decimal, reserved: Decimal):
        super().__init__(
            guarantee_id,
            f"Guarantee {guarantee_id}: cannot release {requested}, only {reserved} reserved",
            check="reserved_amount",
            requested=str(requested),
            reserved=str(reserved),
        )
        self.requested = requested
        self.reserved = reserved


class GuaranteeExpired(GuaranteeLedgerError):
    """Operation attempted outside the validity window."""
    reason_code = "GUA-003"

    def __init__(self, guarantee_id: str, now: datetime, valid_from: datetime, valid_until: datetime):
        super().__init__(
            guarantee_id,
            f"Guarantee {guarantee_id} is not valid at {now.isoformat()} "
            f"(window {valid_from.isoformat()} .. {valid_until.isoformat()})",
            check="validity_window",
            now=now.isoformat(),
        )


class GuaranteeClosed(GuaranteeLedgerError):
    """Operation attempted on a closed guarantee."""
    reason_code = "GUA-004"

    def __init__(self, guarantee_id: str):
        super().__init__(guarantee_id, f"Guarantee {guarantee_id} is closed", check="guarantee_open")


class GuaranteeNotFound(GuaranteeLedgerError):
    """Unknown guarantee reference."""
    reason_code = "GUA-005"

    def __init__(self, guarantee_id: str):
        super().__init__(guarantee_id, f"Guarantee not found: {guarantee_id}", check="guarantee_exists")


class GuaranteeStillReserved(GuaranteeLedgerError):
    """close() called while an amount is still reserved."""
    reason_code = "GUA-006"

    def __init__(self, guarantee_id: str, reserved: Decimal):
        super().__init__(
            guarantee_id,
            f"Guarantee {guarantee_id} still has {reserved} reserved",
            check="reserved_zero",
            reserved=str(reserved),
        )


class InvalidGuaranteeAmount(GuaranteeLedgerError):
    """Amounts must be strictly positive."""
    reason_code = "GUA-007"

    def __init__(self, guarantee_id: str, amount: Decimal):
        super().__init__(
            guarantee_id,
            f"Guarantee {guarantee_id}: amount must be positive, got {amount}",
            check="positive_amount",
        )


# =============================================================================
# Risk engine
# =============================================================================

class RiskAssessmentError(CustomsError):
    """Raised when risk inputs cannot be scored."""
    reason_code = "RSK-001"

    def __init__(self, message: str, declaration_id: Optional[str] = None):
        super().__init__(message, check="risk_inputs", details={"declaration_id": declaration_id})


# =============================================================================
# EOF
# =============================================================================
