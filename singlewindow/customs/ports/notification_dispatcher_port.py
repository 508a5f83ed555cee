# =============================================================================
# File: singlewindow/customs/ports/notification_dispatcher_port.py
# Description: Port interface for delivering clearance transition events
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from typing import Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from singlewindow.customs.declaration.events import ClearanceStateChanged


@runtime_checkable
class NotificationDispatcherPort(Protocol):
    """
    Port: Notification dispatcher (email, SMS, trader portal inbox)

    Defined by: Customs Domain
    Implemented by: the hosting platform's messaging adapter

    Receives one ClearanceStateChanged per accepted transition, in order.
    Delivery and retries are the collaborator's responsibility.
    """

    def dispatch(self, event: 'ClearanceStateChanged') -> None:
        """
        Hand over a transition event (old state, new state, declaration id,
        timestamp, reason).
        """
        ...

# =============================================================================
# EOF
# =============================================================================
