# =============================================================================
# File: singlewindow/customs/declaration/transitions.py
# Description: Closed transition table of the clearance lifecycle
# =============================================================================

from types import MappingProxyType
from typing import FrozenSet, Mapping

from singlewindow.customs.enums import Channel, ClearanceState

S = ClearanceState

ALLOWED_TRANSITIONS: Mapping[ClearanceState, FrozenSet[ClearanceState]] = MappingProxyType({
    S.SUBMITTED: frozenset({S.RISK_ASSESSED, S.REJECTED}),
    S.RISK_ASSESSED: frozenset({
        S.AUTO_RELEASED,
        S.AWAITING_DOCUMENT_CHECK,
        S.AWAITING_INSPECTION,
        S.AWAITING_EXAMINATION,
        S.REJECTED,
    }),
    S.AUTO_RELEASED: frozenset({S.AWAITING_PAYMENT, S.REJECTED}),
    S.AWAITING_DOCUMENT_CHECK: frozenset({
        S.AWAITING_PAYMENT,
        S.AWAITING_INSPECTION,      # escalation
        S.AWAITING_EXAMINATION,     # escalation
        S.SUBMITTED,                # amendment
        S.SUSPENDED,
        S.REJECTED,
    }),
    S.AWAITING_INSPECTION: frozenset({
        S.AWAITING_PAYMENT,
        S.AWAITING_EXAMINATION,     # escalation
        S.SUSPENDED,
        S.REJECTED,
    }),
    S.AWAITING_EXAMINATION: frozenset({S.AWAITING_PAYMENT, S.SUSPENDED, S.REJECTED}),
    S.AWAITING_PAYMENT: frozenset({S.RELEASED, S.IN_TRANSIT, S.SUSPENDED, S.REJECTED}),
    S.IN_TRANSIT: frozenset({S.EXITED, S.SUSPENDED, S.REJECTED}),
    # Resolution goes back to the pre-suspension state only
    S.SUSPENDED: frozenset({
        S.AWAITING_DOCUMENT_CHECK,
        S.AWAITING_INSPECTION,
        S.AWAITING_EXAMINATION,
        S.AWAITING_PAYMENT,
        S.IN_TRANSIT,
        S.REJECTED,
    }),
    S.RELEASED: frozenset(),
    S.REJECTED: frozenset(),
    S.EXITED: frozenset(),
})

# Channel -> state entered from RISK_ASSESSED
CHANNEL_STATES: Mapping[Channel, ClearanceState] = MappingProxyType({
    Channel.AUTOMATIC: S.AUTO_RELEASED,
    Channel.DOCUMENTARY: S.AWAITING_DOCUMENT_CHECK,
    Channel.PHYSICAL: S.AWAITING_INSPECTION,
    Channel.DETAILED: S.AWAITING_EXAMINATION,
})

# Stricter check reachable by escalation
ESCALATION_ORDER = (S.AWAITING_DOCUMENT_CHECK, S.AWAITING_INSPECTION, S.AWAITING_EXAMINATION)

AMENDABLE_STATES = frozenset({S.SUBMITTED, S.AWAITING_DOCUMENT_CHECK})

# States from which an appeal may be filed (a control decision is pending)
APPEALABLE_STATES = frozenset({
    S.AWAITING_DOCUMENT_CHECK,
    S.AWAITING_INSPECTION,
    S.AWAITING_EXAMINATION,
    S.AWAITING_PAYMENT,
})


def valid_transitions(state: ClearanceState) -> FrozenSet[ClearanceState]:
    """Documented outgoing transitions of a state (empty for terminal states)."""
    return ALLOWED_TRANSITIONS[state]


def is_allowed(from_state: ClearanceState, to_state: ClearanceState) -> bool:
    return to_state in ALLOWED_TRANSITIONS[from_state]


# =============================================================================
# EOF
# =============================================================================
