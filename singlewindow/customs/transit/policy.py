# =============================================================================
# File: singlewindow/customs/transit/policy.py
# Description: Compliance policy - turns transit findings into a decision
# =============================================================================

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from singlewindow.config.clearance_config import ClearanceConfig, get_clearance_config
from singlewindow.customs.enums import ComplianceDecision, FindingSeverity
from singlewindow.customs.transit.models import ComplianceFinding


@runtime_checkable
class CompliancePolicy(Protocol):
    """Decides continue / suspend / reject from findings and offense history."""

    def decide(self, findings: Sequence[ComplianceFinding], prior_offenses: int) -> ComplianceDecision:
        ...


class SeverityCompliancePolicy:
    """
    Default policy.

    - No findings: continue.
    - Any finding from a repeat offender (prior offenses at or above the
      threshold): reject.
    - Any major or critical finding: suspend pending investigation.
    - Minor findings only: continue, findings stay on record.
    """

    def __init__(self, repeat_offense_threshold: Optional[int] = None, config: Optional[ClearanceConfig] = None):
        if repeat_offense_threshold is None:
            repeat_offense_threshold = (config or get_clearance_config()).repeat_offense_threshold
        self.repeat_offense_threshold = repeat_offense_threshold

    def decide(self, findings: Sequence[ComplianceFinding], prior_offenses: int) -> ComplianceDecision:
        if not findings:
            return ComplianceDecision.CONTINUE
        if prior_offenses >= self.repeat_offense_threshold:
            return ComplianceDecision.REJECT
        if any(f.severity is not FindingSeverity.MINOR for f in findings):
            return ComplianceDecision.SUSPEND
        return ComplianceDecision.CONTINUE


# =============================================================================
# EOF
# =============================================================================
