# =============================================================================
# File: singlewindow/customs/transit/monitor.py
# Description: Transit Monitor - seal integrity, route and time-limit checks
# Responsibilities:
#  - Pure checks returning typed results (SealCheck, RouteCheck, TimeLimitCheck).
#  - Turn failed checks into ComplianceFindings with a severity.
#  - Never decide the declaration's fate; that is the CompliancePolicy's job.
# =============================================================================

from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from singlewindow.config.clearance_config import ClearanceConfig, get_clearance_config
from singlewindow.config.logging_config import get_logger
from singlewindow.customs.enums import FindingKind, FindingSeverity, SealViolationReason
from singlewindow.customs.transit.models import (
    ComplianceFinding,
    GeoPoint,
    PositionReport,
    RouteCheck,
    SealCheck,
    TimeLimitCheck,
    TransitDocument,
)
from singlewindow.utils.datetime_utils import ensure_utc

log = get_logger("singlewindow.customs.transit.monitor")

EARTH_RADIUS_KM = 6371.0088


# -----------------------------------------------------------------------------
# Checks
# -----------------------------------------------------------------------------
def verify_seals(expected: Iterable[str], presented: Iterable[str]) -> SealCheck:
    """
    Compare the seal set recorded at sealing time with the one presented.

    A superset (extra seal) and a subset (lost seal) are both violations and
    carry different reasons.
    """
    expected_set = frozenset(expected)
    presented_set = frozenset(presented)
    return SealCheck(
        missing=expected_set - presented_set,
        unexpected=presented_set - expected_set,
    )


def _to_plane(point: GeoPoint, ref_lat_rad: float):
    """Equirectangular projection in km around a reference latitude."""
    x = math.radians(point.longitude) * math.cos(ref_lat_rad) * EARTH_RADIUS_KM
    y = math.radians(point.latitude) * EARTH_RADIUS_KM
    return x, y


def distance_to_segment_km(point: GeoPoint, start: GeoPoint, end: GeoPoint) -> float:
    ref_lat = math.radians((start.latitude + end.latitude + point.latitude) / 3.0)
    px, py = _to_plane(point, ref_lat)
    ax, ay = _to_plane(start, ref_lat)
    bx, by = _to_plane(end, ref_lat)

    dx, dy = bx - ax, by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return math.hypot(px - ax, py - ay)
    t = max(0.0, min(1.0, ((px - ax) * dx + (py - ay) * dy) / length_sq))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))


def distance_to_corridor_km(point: GeoPoint, corridor: Sequence[GeoPoint]) -> float:
    if not corridor:
        raise ValueError("Corridor needs at least one waypoint")
    if len(corridor) == 1:
        return distance_to_segment_km(point, corridor[0], corridor[0])
    return min(
        distance_to_segment_km(point, a, b)
        for a, b in zip(corridor, corridor[1:])
    )


def check_route_compliance(
        position: GeoPoint,
        corridor: Sequence[GeoPoint],
        tolerance_km: float,
) -> RouteCheck:
    """Compliant when the distance to the corridor polyline is <= tolerance."""
    if tolerance_km < 0:
        raise ValueError("Tolerance must not be negative")
    return RouteCheck(distance_km=distance_to_corridor_km(position, corridor), tolerance_km=tolerance_km)


def check_time_limit(document: TransitDocument, now: datetime) -> TimeLimitCheck:
    return TimeLimitCheck(time_limit=document.time_limit, checked_at=ensure_utc(now))


# -----------------------------------------------------------------------------
# Findings
# -----------------------------------------------------------------------------
def seal_finding(check: SealCheck, now: datetime) -> Optional[ComplianceFinding]:
    if check.intact:
        return None
    severity = (
        FindingSeverity.MAJOR if check.reason is SealViolationReason.MISSING
        else FindingSeverity.CRITICAL
    )
    return ComplianceFinding(
        kind=FindingKind.SEAL,
        severity=severity,
        detail=(
            f"Seal violation ({check.reason.value}): missing={sorted(check.missing)} "
            f"unexpected={sorted(check.unexpected)}"
        ),
        recorded_at=now,
        data={
            "reason": check.reason.value,
            "missing": sorted(check.missing),
            "unexpected": sorted(check.unexpected),
        },
    )


def route_finding(check: RouteCheck, now: datetime, severe_km: float) -> Optional[ComplianceFinding]:
    if check.compliant:
        return None
    severity = FindingSeverity.MAJOR if check.distance_km >= severe_km else FindingSeverity.MINOR
    return ComplianceFinding(
        kind=FindingKind.ROUTE,
        severity=severity,
        detail=f"Route deviation of {check.distance_km:.2f} km (tolerance {check.tolerance_km} km)",
        recorded_at=now,
        data={"distance_km": round(check.distance_km, 3), "tolerance_km": check.tolerance_km},
    )


def time_limit_finding(check: TimeLimitCheck) -> Optional[ComplianceFinding]:
    if not check.exceeded:
        return None
    return ComplianceFinding(
        kind=FindingKind.TIME_LIMIT,
        severity=FindingSeverity.MAJOR,
        detail=f"Time limit {check.time_limit.isoformat()} exceeded by {check.overdue}",
        recorded_at=check.checked_at,
        data={"overdue_seconds": int(check.overdue.total_seconds())},
    )


class TransitMonitor:
    """
    Evaluates a movement against its transit document.

    Only reports findings; the clearance service hands them to the
    injected CompliancePolicy.
    """

    def __init__(self, config: Optional[ClearanceConfig] = None):
        config = config or get_clearance_config()
        self.tolerance_km = config.route_tolerance_km
        self.severe_deviation_km = config.severe_route_deviation_km

    def inspect_position(self, document: TransitDocument, report: PositionReport) -> List[ComplianceFinding]:
        """Append the report to the history and check route and time limit."""
        document.record_position(report)
        findings = [
            route_finding(
                check_route_compliance(report.point, document.route, self.tolerance_km),
                report.recorded_at,
                self.severe_deviation_km,
            ),
            time_limit_finding(check_time_limit(document, report.recorded_at)),
        ]
        found = [f for f in findings if f is not None]
        if found:
            log.info(f"Movement {document.movement_reference}: {len(found)} finding(s) at position report")
        return found

    def inspect_exit(
            self,
            document: TransitDocument,
            presented_seals: Iterable[str],
            now: datetime,
    ) -> List[ComplianceFinding]:
        """Seal integrity and time limit at the office of exit."""
        findings = [
            seal_finding(verify_seals(document.seals, presented_seals), now),
            time_limit_finding(check_time_limit(document, now)),
        ]
        found = [f for f in findings if f is not None]
        for finding in found:
            log.warning(f"Movement {document.movement_reference} exit finding: {finding.detail}")
        return found


# =============================================================================
# EOF
# =============================================================================
