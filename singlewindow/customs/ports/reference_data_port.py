# =============================================================================
# File: singlewindow/customs/ports/reference_data_port.py
# Description: Port interface for tariff and country reference data
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol, Tuple, runtime_checkable

from singlewindow.customs.enums import RiskTier


@runtime_checkable
class ReferenceDataPort(Protocol):
    """
    Port: Reference-data provider (HS tariff, country tables)

    Defined by: Customs Domain
    Implemented by: master-data service adapter

    Synchronous lookups. The core does not own or update these tables.
    """

    def commodity_risk_tier(self, classification_code: str) -> RiskTier:
        """Risk tier of an HS classification code."""
        ...

    def country_risk_tier(self, country_code: str) -> RiskTier:
        """Risk tier of an ISO 3166-1 alpha-2 country code."""
        ...

    def reference_value_range(self, classification_code: str) -> Optional[Tuple[Decimal, Decimal]]:
        """
        Expected unit-value range (low, high) for a classification code,
        or None when no reference price is held.
        """
        ...

# =============================================================================
# EOF
# =============================================================================
