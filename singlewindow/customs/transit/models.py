# =============================================================================
# File: singlewindow/customs/transit/models.py
# Description: Transit document, position reports and check results
# =============================================================================

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from singlewindow.customs.enums import FindingKind, FindingSeverity, SealViolationReason
from singlewindow.utils.datetime_utils import ensure_utc


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 position in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not (-180.0 <= self.longitude <= 180.0):
            raise ValueError(f"Longitude out of range: {self.longitude}")


@dataclass(frozen=True)
class PositionReport:
    point: GeoPoint
    recorded_at: datetime


@dataclass(frozen=True)
class TransitDocument:
    """
    Record of a guaranteed movement through the territory.

    Seals are fixed at sealing time. The position history only grows, in
    chronological order.
    """
    movement_reference: str
    declaration_id: uuid.UUID
    guarantee_id: str
    secured_amount: Decimal
    route: Tuple[GeoPoint, ...]
    time_limit: datetime
    seals: FrozenSet[str]
    _positions: List[PositionReport] = field(default_factory=list, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "seals", frozenset(self.seals))
        object.__setattr__(self, "route", tuple(self.route))
        object.__setattr__(self, "time_limit", ensure_utc(self.time_limit))
        if not self.route:
            raise ValueError("A transit route needs at least one waypoint")
        if not self.seals:
            raise ValueError("A transit movement must be sealed")
        if self.secured_amount <= 0:
            raise ValueError("Secured amount must be positive")

    @classmethod
    def create(
            cls,
            movement_reference: str,
            declaration_id: uuid.UUID,
            guarantee_id: str,
            secured_amount: Decimal,
            route: Iterable[GeoPoint],
            time_limit: datetime,
            seals: Iterable[str],
    ) -> "TransitDocument":
        return cls(
            movement_reference=movement_reference,
            declaration_id=declaration_id,
            guarantee_id=guarantee_id,
            secured_amount=secured_amount,
            route=tuple(route),
            time_limit=time_limit,
            seals=frozenset(seals),
        )

    @property
    def positions(self) -> Tuple[PositionReport, ...]:
        return tuple(self._positions)

    @property
    def last_position(self) -> Optional[PositionReport]:
        return self._positions[-1] if self._positions else None

    def record_position(self, report: PositionReport) -> None:
        last = self.last_position
        if last is not None and report.recorded_at < last.recorded_at:
            raise ValueError(
                f"Position at {report.recorded_at.isoformat()} is older than the last "
                f"report at {last.recorded_at.isoformat()}"
            )
        self._positions.append(report)


# =============================================================================
# SECTION: Check results
# =============================================================================

@dataclass(frozen=True)
class SealCheck:
    """Intact, or a violation with the missing and unexpected seal ids."""
    missing: FrozenSet[str] = frozenset()
    unexpected: FrozenSet[str] = frozenset()

    @property
    def intact(self) -> bool:
        return not self.missing and not self.unexpected

    @property
    def reason(self) -> Optional[SealViolationReason]:
        if self.missing and self.unexpected:
            return SealViolationReason.MISMATCH
        if self.missing:
            return SealViolationReason.MISSING
        if self.unexpected:
            return SealViolationReason.UNEXPECTED
        return None


@dataclass(frozen=True)
class RouteCheck:
    """Compliant, or a deviation with the distance to the corridor."""
    distance_km: float
    tolerance_km: float

    @property
    def compliant(self) -> bool:
        return self.distance_km <= self.tolerance_km


@dataclass(frozen=True)
class TimeLimitCheck:
    time_limit: datetime
    checked_at: datetime

    @property
    def exceeded(self) -> bool:
        return self.checked_at > self.time_limit

    @property
    def overdue(self) -> timedelta:
        return max(self.checked_at - self.time_limit, timedelta(0))


@dataclass(frozen=True)
class ComplianceFinding:
    """A recorded compliance violation; never raised."""
    kind: FindingKind
    severity: FindingSeverity
    detail: str
    recorded_at: datetime
    data: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "detail": self.detail,
            "recorded_at": self.recorded_at.isoformat(),
            "data": self.data,
        }


# =============================================================================
# EOF
# =============================================================================
