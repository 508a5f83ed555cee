# =============================================================================
# File: singlewindow/customs/risk/models.py
# Description: Risk assessment inputs, policy and profile
# =============================================================================

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from singlewindow.customs.enums import Channel, RiskFactor, RiskTier


# =============================================================================
# SECTION: Policy
# =============================================================================

class ChannelThresholds(BaseModel):
    """
    Lower bounds of each non-automatic channel.

    A score exactly on a bound goes to the stricter channel.
    """
    model_config = ConfigDict(frozen=True)

    documentary: Decimal = Decimal("20")
    physical: Decimal = Decimal("50")
    detailed: Decimal = Decimal("75")

    @model_validator(mode="after")
    def _check_order(self) -> "ChannelThresholds":
        if not (Decimal("0") < self.documentary < self.physical < self.detailed <= Decimal("100")):
            raise ValueError(
                "Channel thresholds must satisfy 0 < documentary < physical < detailed <= 100"
            )
        return self

    def channel_for(self, score: Decimal) -> Channel:
        if score >= self.detailed:
            return Channel.DETAILED
        if score >= self.physical:
            return Channel.PHYSICAL
        if score >= self.documentary:
            return Channel.DOCUMENTARY
        return Channel.AUTOMATIC


def _default_weights() -> Dict[RiskFactor, Decimal]:
    return {
        RiskFactor.TRADER_HISTORY: Decimal("0.30"),
        RiskFactor.COMMODITY: Decimal("0.25"),
        RiskFactor.ORIGIN_DESTINATION: Decimal("0.20"),
        RiskFactor.VALUE_ANOMALY: Decimal("0.15"),
        RiskFactor.DOCUMENT_COMPLETENESS: Decimal("0.10"),
    }


def _default_tier_scores() -> Dict[RiskTier, Decimal]:
    return {
        RiskTier.LOW: Decimal("0"),
        RiskTier.MEDIUM: Decimal("0.5"),
        RiskTier.HIGH: Decimal("1"),
    }


class RiskPolicy(BaseModel):
    """
    Weights, tier scores and thresholds for one jurisdiction / policy version.

    Passed explicitly into every assessment so a profile can always be
    traced back to the figures that produced it.
    """
    model_config = ConfigDict(frozen=True)

    version: str = "default"
    weights: Dict[RiskFactor, Decimal] = Field(default_factory=_default_weights)
    tier_scores: Dict[RiskTier, Decimal] = Field(default_factory=_default_tier_scores)
    thresholds: ChannelThresholds = Field(default_factory=ChannelThresholds)
    # Distance kept below the documentary bound when the trusted-trader override applies
    trusted_trader_margin: Decimal = Decimal("0.01")

    @model_validator(mode="after")
    def _check_policy(self) -> "RiskPolicy":
        missing = set(RiskFactor) - set(self.weights)
        if missing:
            raise ValueError(f"Missing weights for factors: {sorted(f.value for f in missing)}")
        if any(w < 0 for w in self.weights.values()):
            raise ValueError("Risk weights must be non-negative")
        if sum(self.weights.values()) != Decimal("1"):
            raise ValueError("Risk weights must sum to 1")
        if set(self.tier_scores) != set(RiskTier):
            raise ValueError("Tier scores must cover every risk tier")
        if any(not (Decimal("0") <= s <= Decimal("1")) for s in self.tier_scores.values()):
            raise ValueError("Tier scores must lie in [0, 1]")
        if not (Decimal("0") < self.trusted_trader_margin <= self.thresholds.documentary):
            raise ValueError("Trusted trader margin must lie in (0, documentary threshold]")
        return self


# =============================================================================
# SECTION: Inputs
# =============================================================================

class TraderComplianceSummary(BaseModel):
    """Compliance history of the declarant, supplied by the trader registry."""
    model_config = ConfigDict(frozen=True)

    trader_id: str
    violation_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    certified: bool = False
    certification_valid_until: Optional[datetime] = None
    prior_offenses: int = Field(default=0, ge=0)

    def certification_valid_at(self, now: datetime) -> bool:
        if not self.certified:
            return False
        return self.certification_valid_until is None or now <= self.certification_valid_until


class RiskInputs(BaseModel):
    """Everything the engine looks at for one declaration version."""
    model_config = ConfigDict(frozen=True)

    declaration_id: uuid.UUID
    declaration_version: int = 1
    trader_violation_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    trusted_trader: bool = False
    commodity_tier: RiskTier = RiskTier.LOW
    origin_tier: RiskTier = RiskTier.LOW
    destination_tier: RiskTier = RiskTier.LOW
    declared_unit_value: Optional[Decimal] = None
    reference_value_range: Optional[Tuple[Decimal, Decimal]] = None
    documents_complete: bool = True

    @model_validator(mode="after")
    def _check_range(self) -> "RiskInputs":
        if self.reference_value_range is not None:
            low, high = self.reference_value_range
            if low <= 0 or high < low:
                raise ValueError("Reference value range must satisfy 0 < low <= high")
        return self


# =============================================================================
# SECTION: Output
# =============================================================================

class FactorScore(BaseModel):
    """One line of the explainable breakdown."""
    model_config = ConfigDict(frozen=True)

    factor: RiskFactor
    score: Decimal          # in [0, 1]
    weight: Decimal
    contribution: Decimal   # score * weight * 100
    detail: str = ""


class RiskProfile(BaseModel):
    """
    Computed, explainable output of the risk engine for one declaration
    version. Immutable once computed.
    """
    model_config = ConfigDict(frozen=True)

    declaration_id: uuid.UUID
    declaration_version: int
    factors: List[FactorScore]
    raw_score: Decimal
    total_score: Decimal
    channel: Channel
    trusted_trader_override: bool = False
    policy_version: str = "default"

    def factor(self, factor: RiskFactor) -> FactorScore:
        for item in self.factors:
            if item.factor == factor:
                return item
        raise KeyError(factor)
