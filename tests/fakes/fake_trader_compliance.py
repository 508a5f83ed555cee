# =============================================================================
# File: tests/fakes/fake_trader_compliance.py
# Description: Fake implementation of TraderCompliancePort for unit testing
# Pattern: Ports & Adapters - Fake/Stub adapter
# =============================================================================

from __future__ import annotations

from typing import Dict

from singlewindow.customs.risk.models import TraderComplianceSummary

from tests.fakes.call_tracking import CallTrackingFake


class FakeTraderCompliance(CallTrackingFake):
    """
    Trader registry. Unknown traders have a clean, uncertified history.

    Usage:
        fake = FakeTraderCompliance()
        fake.set_summary(TraderComplianceSummary(trader_id="T1", certified=True))
    """

    def __init__(self):
        super().__init__()
        self.summaries: Dict[str, TraderComplianceSummary] = {}

    def set_summary(self, summary: TraderComplianceSummary) -> None:
        self.summaries[summary.trader_id] = summary

    def compliance_summary(self, trader_id: str) -> TraderComplianceSummary:
        self._record_call("compliance_summary", trader_id)
        self._check_failure("compliance_summary")
        return self.summaries.get(trader_id, TraderComplianceSummary(trader_id=trader_id))
