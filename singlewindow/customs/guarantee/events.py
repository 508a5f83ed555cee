# =============================================================================
# File: singlewindow/customs/guarantee/events.py
# Description: Domain events for the Guarantee aggregate
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from singlewindow.common.base.base_model import BaseEvent
from singlewindow.infra.event_registry import domain_event


@domain_event(category="guarantee")
class GuaranteeOpened(BaseEvent):
    """Emitted when an instrument is lodged with the ledger."""
    event_type: Literal["GuaranteeOpened"] = "GuaranteeOpened"
    guarantee_id: str
    guarantee_type: str
    face_amount: Decimal
    currency: str
    valid_from: datetime
    valid_until: datetime
    holder_id: str = ""


@domain_event(category="guarantee")
class GuaranteeAmountReserved(BaseEvent):
    """Emitted when part of the capacity is reserved for an obligation."""
    event_type: Literal["GuaranteeAmountReserved"] = "GuaranteeAmountReserved"
    guarantee_id: str
    amount: Decimal
    reference: Optional[str] = None  # obligation the amount backs
    occurred_at: datetime


@domain_event(category="guarantee")
class GuaranteeAmountReleased(BaseEvent):
    """Emitted when a discharged obligation returns its amount to capacity."""
    event_type: Literal["GuaranteeAmountReleased"] = "GuaranteeAmountReleased"
    guarantee_id: str
    amount: Decimal
    reference: Optional[str] = None
    occurred_at: datetime


@domain_event(category="guarantee")
class GuaranteeAmountForfeited(BaseEvent):
    """Emitted when a reserved amount is permanently consumed."""
    event_type: Literal["GuaranteeAmountForfeited"] = "GuaranteeAmountForfeited"
    guarantee_id: str
    amount: Decimal
    reference: Optional[str] = None
    reason: str = ""
    occurred_at: datetime


@domain_event(category="guarantee")
class GuaranteeInstrumentClosed(BaseEvent):
    """Emitted when the instrument is closed; no further operations are possible."""
    event_type: Literal["GuaranteeInstrumentClosed"] = "GuaranteeInstrumentClosed"
    guarantee_id: str
    occurred_at: datetime


# =============================================================================
# EOF
# =============================================================================
