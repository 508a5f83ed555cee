# =============================================================================
# File: singlewindow/customs/guarantee/ledger.py
# Description: Guarantee Ledger - arena of guarantee aggregates keyed by id
# Responsibilities:
#  - Serialize every mutation per guarantee id with a KeyedLock.
#  - Journal committed events per guarantee for audit and replay.
#  - Count refused operations by reason code.
# =============================================================================

from __future__ import annotations

import threading
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from singlewindow.common.base.base_model import BaseEvent
from singlewindow.config.clearance_config import get_clearance_config
from singlewindow.config.logging_config import get_logger
from singlewindow.customs.exceptions import GuaranteeLedgerError, GuaranteeNotFound
from singlewindow.customs.guarantee.aggregate import GuaranteeAggregate
from singlewindow.customs.guarantee.models import GuaranteeInstrument, GuaranteeSnapshot
from singlewindow.infra.event_registry import event_from_dict
from singlewindow.infra.metrics.prometheus import ledger_rejections
from singlewindow.infra.reliability.keyed_lock import KeyedLock
from singlewindow.utils.uuid_utils import generate_reference

log = get_logger("singlewindow.customs.guarantee.ledger")


class GuaranteeLedger:
    """
    Owns every guarantee aggregate; the only way to mutate one is through
    the serialized operations below. A refused operation raises a
    GuaranteeLedgerError and changes nothing.
    """

    def __init__(self, lock_timeout: Optional[float] = None):
        if lock_timeout is None:
            lock_timeout = get_clearance_config().lock_timeout_seconds
        self._arena: Dict[str, GuaranteeAggregate] = {}
        self._journal: Dict[str, List[BaseEvent]] = {}
        self._arena_lock = threading.Lock()
        self._locks = KeyedLock("guarantee", timeout=lock_timeout)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------
    def open(self, instrument: GuaranteeInstrument) -> str:
        """Lodge an instrument and return its guarantee id."""
        guarantee_id = instrument.guarantee_id or generate_reference("GRN")
        aggregate = GuaranteeAggregate(guarantee_id)
        aggregate.open(instrument)
        with self._arena_lock:
            if guarantee_id in self._arena:
                raise ValueError(f"Guarantee {guarantee_id} already exists.")
            self._arena[guarantee_id] = aggregate
            self._journal[guarantee_id] = []
        self._commit(aggregate)
        log.info(
            f"Guarantee {guarantee_id} opened: {instrument.guarantee_type.value} "
            f"{instrument.face_amount} {instrument.currency}"
        )
        return guarantee_id

    def reserve(
            self,
            guarantee_id: str,
            amount: Decimal,
            now: datetime,
            reference: Optional[str] = None,
    ) -> GuaranteeSnapshot:
        return self._mutate("reserve", guarantee_id, lambda g: g.reserve(amount, now, reference))

    def release(
            self,
            guarantee_id: str,
            amount: Decimal,
            now: datetime,
            reference: Optional[str] = None,
    ) -> GuaranteeSnapshot:
        return self._mutate("release", guarantee_id, lambda g: g.release(amount, now, reference))

    def forfeit(
            self,
            guarantee_id: str,
            amount: Decimal,
            now: datetime,
            reference: Optional[str] = None,
            reason: str = "",
    ) -> GuaranteeSnapshot:
        return self._mutate("forfeit", guarantee_id, lambda g: g.forfeit(amount, now, reference, reason))

    def close(self, guarantee_id: str, now: datetime) -> GuaranteeSnapshot:
        return self._mutate("close", guarantee_id, lambda g: g.close(now))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------
    def available(self, guarantee_id: str) -> Decimal:
        return self.snapshot(guarantee_id).available

    def snapshot(self, guarantee_id: str) -> GuaranteeSnapshot:
        with self._locks.hold(guarantee_id):
            return self._get(guarantee_id).snapshot()

    def journal(self, guarantee_id: str) -> List[BaseEvent]:
        """Committed events of one guarantee, oldest first."""
        with self._locks.hold(guarantee_id):
            self._get(guarantee_id)
            return list(self._journal[guarantee_id])

    def exists(self, guarantee_id: str) -> bool:
        with self._arena_lock:
            return guarantee_id in self._arena

    def audit(self, guarantee_id: str) -> bool:
        """
        Replay the serialized journal and compare with the live state.

        True when the rebuilt snapshot equals the current one.
        """
        with self._locks.hold(guarantee_id):
            live = self._get(guarantee_id).snapshot()
            events = [event_from_dict(e.to_dict_for_bus()) for e in self._journal[guarantee_id]]
        rebuilt = GuaranteeAggregate.from_events(guarantee_id, events).snapshot()
        if rebuilt != live:
            log.error(f"Guarantee {guarantee_id} journal does not reproduce live state")
            return False
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    def _get(self, guarantee_id: str) -> GuaranteeAggregate:
        with self._arena_lock:
            aggregate = self._arena.get(guarantee_id)
        if aggregate is None:
            raise GuaranteeNotFound(guarantee_id)
        return aggregate

    def _commit(self, aggregate: GuaranteeAggregate) -> None:
        self._journal[aggregate.id].extend(aggregate.get_uncommitted_events())
        aggregate.mark_events_committed()

    def _mutate(
            self,
            operation: str,
            guarantee_id: str,
            command: Callable[[GuaranteeAggregate], None],
    ) -> GuaranteeSnapshot:
        with self._locks.hold(guarantee_id):
            try:
                aggregate = self._get(guarantee_id)
                command(aggregate)
            except GuaranteeLedgerError as e:
                ledger_rejections.labels(operation=operation, reason_code=e.reason_code).inc()
                log.warning(f"Guarantee {guarantee_id} {operation} refused [{e.reason_code}]: {e.message}")
                raise
            self._commit(aggregate)
            snapshot = aggregate.snapshot()
        log.debug(
            f"Guarantee {guarantee_id} {operation}: reserved={snapshot.reserved} "
            f"forfeited={snapshot.forfeited} available={snapshot.available}"
        )
        return snapshot


# =============================================================================
# EOF
# =============================================================================
