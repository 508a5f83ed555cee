# =============================================================================
# File: singlewindow/customs/guarantee/aggregate.py
# Description: Guarantee Aggregate Root
# Responsibilities:
#  - Validate reserve/release/forfeit/close against capacity and validity.
#  - Emit events and apply them to the state; a refused operation emits
#    nothing and leaves the state untouched.
#  - Rebuild state from the event history for audit.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from pydantic import BaseModel

from singlewindow.common.base.base_model import BaseEvent
from singlewindow.customs.enums import GuaranteeType
from singlewindow.customs.exceptions import (
    GuaranteeClosed,
    GuaranteeExpired,
    GuaranteeStillReserved,
    InsufficientCapacity,
    InvalidGuaranteeAmount,
    OverRelease,
)
from singlewindow.customs.guarantee.events import (
    GuaranteeAmountForfeited,
    GuaranteeAmountReleased,
    GuaranteeAmountReserved,
    GuaranteeInstrumentClosed,
    GuaranteeOpened,
)
from singlewindow.customs.guarantee.models import GuaranteeInstrument, GuaranteeSnapshot
from singlewindow.utils.datetime_utils import ensure_utc

_ZERO = Decimal("0")


class GuaranteeAggregateState(BaseModel):
    """
    In-memory state of a GuaranteeAggregate.
    """
    guarantee_id: str
    guarantee_type: Optional[GuaranteeType] = None
    currency: str = ""
    holder_id: str = ""
    face_amount: Decimal = _ZERO
    reserved: Decimal = _ZERO
    forfeited: Decimal = _ZERO
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    closed: bool = False


class GuaranteeAggregate:
    """
    Aggregate root for one guarantee instrument.
    - Commands validate and emit events.
    - Events are applied to update internal state.
    """

    def __init__(self, guarantee_id: str):
        self.id = guarantee_id
        self.version: int = 0
        self.state = GuaranteeAggregateState(guarantee_id=guarantee_id)
        self._uncommitted_events: List[BaseEvent] = []

    def get_uncommitted_events(self) -> List[BaseEvent]:
        """Return events not yet written to the journal."""
        return self._uncommitted_events

    def mark_events_committed(self) -> None:
        self._uncommitted_events.clear()

    @classmethod
    def from_events(cls, guarantee_id: str, events: Iterable[BaseEvent]) -> "GuaranteeAggregate":
        """Replay a journal into a fresh aggregate."""
        aggregate = cls(guarantee_id)
        for event in events:
            aggregate._apply(event)
            aggregate.version += 1
        return aggregate

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------
    @property
    def consumed(self) -> Decimal:
        return self.state.reserved + self.state.forfeited

    @property
    def available(self) -> Decimal:
        return self.state.face_amount - self.consumed

    def snapshot(self) -> GuaranteeSnapshot:
        return GuaranteeSnapshot(
            guarantee_id=self.id,
            guarantee_type=self.state.guarantee_type,
            currency=self.state.currency,
            face_amount=self.state.face_amount,
            reserved=self.state.reserved,
            forfeited=self.state.forfeited,
            valid_from=self.state.valid_from,
            valid_until=self.state.valid_until,
            closed=self.state.closed,
            version=self.version,
        )

    # -------------------------------------------------------------------------
    # Command Handlers
    # -------------------------------------------------------------------------
    def open(self, instrument: GuaranteeInstrument) -> None:
        if self.version > 0:
            raise ValueError(f"Guarantee {self.id} already exists.")

        self._apply_and_record(GuaranteeOpened(
            guarantee_id=self.id,
            guarantee_type=instrument.guarantee_type.value,
            face_amount=instrument.face_amount,
            currency=instrument.currency,
            valid_from=ensure_utc(instrument.valid_from),
            valid_until=ensure_utc(instrument.valid_until),
            holder_id=instrument.holder_id,
        ))

    def reserve(self, amount: Decimal, now: datetime, reference: Optional[str] = None) -> None:
        """Fails with InsufficientCapacity when consumed + amount > face."""
        self._validate_operation(amount, now)
        if self.consumed + amount > self.state.face_amount:
            raise InsufficientCapacity(self.id, amount, self.available)

        self._apply_and_record(GuaranteeAmountReserved(
            guarantee_id=self.id, amount=amount, reference=reference, occurred_at=now,
        ))

    def release(self, amount: Decimal, now: datetime, reference: Optional[str] = None) -> None:
        """Fails with OverRelease when amount > reserved."""
        self._validate_operation(amount, now)
        if amount > self.state.reserved:
            raise OverRelease(self.id, amount, self.state.reserved)

        self._apply_and_record(GuaranteeAmountReleased(
            guarantee_id=self.id, amount=amount, reference=reference, occurred_at=now,
        ))

    def forfeit(
            self,
            amount: Decimal,
            now: datetime,
            reference: Optional[str] = None,
            reason: str = "",
    ) -> None:
        """Convert a reserved amount into permanent consumption."""
        self._validate_operation(amount, now)
        if amount > self.state.reserved:
            raise OverRelease(self.id, amount, self.state.reserved)

        self._apply_and_record(GuaranteeAmountForfeited(
            guarantee_id=self.id, amount=amount, reference=reference, reason=reason, occurred_at=now,
        ))

    def close(self, now: datetime) -> None:
        """Only permitted when nothing is reserved."""
        self._validate_open_and_valid(now)
        if self.state.reserved > _ZERO:
            raise GuaranteeStillReserved(self.id, self.state.reserved)

        self._apply_and_record(GuaranteeInstrumentClosed(guarantee_id=self.id, occurred_at=now))

    # -------------------------------------------------------------------------
    # Validation Helpers
    # -------------------------------------------------------------------------
    def _validate_open_and_valid(self, now: datetime) -> None:
        if self.state.closed:
            raise GuaranteeClosed(self.id)
        now = ensure_utc(now)
        if not (self.state.valid_from <= now <= self.state.valid_until):
            raise GuaranteeExpired(self.id, now, self.state.valid_from, self.state.valid_until)

    def _validate_operation(self, amount: Decimal, now: datetime) -> None:
        self._validate_open_and_valid(now)
        if amount <= _ZERO:
            raise InvalidGuaranteeAmount(self.id, amount)

    # -------------------------------------------------------------------------
    # Internal Event Application
    # -------------------------------------------------------------------------
    def _apply_and_record(self, event: BaseEvent) -> None:
        """Apply event to state and record it for the journal."""
        self._apply(event)
        self._uncommitted_events.append(event)
        self.version += 1

    def _apply(self, event: BaseEvent) -> None:
        """Dispatch event to the appropriate state update method."""
        if isinstance(event, GuaranteeOpened):
            self._on_opened(event)
        elif isinstance(event, GuaranteeAmountReserved):
            self.state.reserved += event.amount
        elif isinstance(event, GuaranteeAmountReleased):
            self.state.reserved -= event.amount
        elif isinstance(event, GuaranteeAmountForfeited):
            self.state.reserved -= event.amount
            self.state.forfeited += event.amount
        elif isinstance(event, GuaranteeInstrumentClosed):
            self.state.closed = True

    def _on_opened(self, event: GuaranteeOpened) -> None:
        self.state.guarantee_type = GuaranteeType(event.guarantee_type)
        self.state.face_amount = event.face_amount
        self.state.currency = event.currency
        self.state.valid_from = event.valid_from
        self.state.valid_until = event.valid_until
        self.state.holder_id = event.holder_id


# =============================================================================
# EOF
# =============================================================================
