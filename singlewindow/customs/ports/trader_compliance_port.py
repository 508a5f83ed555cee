# =============================================================================
# File: singlewindow/customs/ports/trader_compliance_port.py
# Description: Port interface for the trader compliance registry
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from typing import Protocol, runtime_checkable

from singlewindow.customs.risk.models import TraderComplianceSummary


@runtime_checkable
class TraderCompliancePort(Protocol):
    """
    Port: Trader compliance registry (AEO / trusted-trader certifications,
    violation history)

    Defined by: Customs Domain
    Implemented by: trader registry adapter
    """

    def compliance_summary(self, trader_id: str) -> TraderComplianceSummary:
        """
        Compliance history of a trader.

        Unknown traders get a summary with no certification and a zero
        violation rate.
        """
        ...

# =============================================================================
# EOF
# =============================================================================
