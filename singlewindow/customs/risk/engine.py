# =============================================================================
# File: singlewindow/customs/risk/engine.py
# Description: Risk Assessment Engine - weighted score to channel
# Responsibilities:
#  - Map each risk factor to a score in [0, 1].
#  - Weight, sum and clamp to [0, 100] using the explicit RiskPolicy.
#  - Apply the trusted-trader override and pick the channel.
#  - Assemble RiskInputs from a declaration and the reference-data ports.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from singlewindow.config.logging_config import get_logger
from singlewindow.customs.enums import RiskFactor, RiskTier
from singlewindow.customs.exceptions import RiskAssessmentError
from singlewindow.customs.risk.models import (
    FactorScore,
    RiskInputs,
    RiskPolicy,
    RiskProfile,
    TraderComplianceSummary,
)
from singlewindow.customs.value_objects import Declaration
from singlewindow.infra.metrics.prometheus import channel_assignments

log = get_logger("singlewindow.customs.risk.engine")

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")
_SCORE_QUANTUM = Decimal("0.0001")

_TIER_ORDER = {RiskTier.LOW: 0, RiskTier.MEDIUM: 1, RiskTier.HIGH: 2}


def _clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(high, value))


def max_tier(tiers: Iterable[RiskTier]) -> RiskTier:
    return max(tiers, key=_TIER_ORDER.__getitem__, default=RiskTier.LOW)


# -----------------------------------------------------------------------------
# Factor scores
# -----------------------------------------------------------------------------
def value_anomaly_score(
        unit_value: Optional[Decimal],
        reference_range: Optional[Tuple[Decimal, Decimal]],
) -> Decimal:
    """
    Relative distance of the declared unit value outside the reference
    range, capped at 1. Inside the range (bounds included) the score is 0;
    without a reference range there is nothing to compare and the score is 0.
    """
    if unit_value is None or reference_range is None:
        return _ZERO
    low, high = reference_range
    if unit_value < low:
        deviation = (low - unit_value) / low
    elif unit_value > high:
        deviation = (unit_value - high) / high
    else:
        return _ZERO
    return _clamp(deviation, _ZERO, _ONE).quantize(_SCORE_QUANTUM, rounding=ROUND_HALF_UP)


def _factor_scores(inputs: RiskInputs, policy: RiskPolicy) -> List[Tuple[RiskFactor, Decimal, str]]:
    tier = policy.tier_scores
    route_tier = max_tier((inputs.origin_tier, inputs.destination_tier))
    return [
        (
            RiskFactor.TRADER_HISTORY,
            inputs.trader_violation_rate,
            f"violation rate {inputs.trader_violation_rate}",
        ),
        (
            RiskFactor.COMMODITY,
            tier[inputs.commodity_tier],
            f"commodity tier {inputs.commodity_tier.value}",
        ),
        (
            RiskFactor.ORIGIN_DESTINATION,
            tier[route_tier],
            f"origin {inputs.origin_tier.value}, destination {inputs.destination_tier.value}",
        ),
        (
            RiskFactor.VALUE_ANOMALY,
            value_anomaly_score(inputs.declared_unit_value, inputs.reference_value_range),
            f"unit value {inputs.declared_unit_value} vs range {inputs.reference_value_range}",
        ),
        (
            RiskFactor.DOCUMENT_COMPLETENESS,
            _ZERO if inputs.documents_complete else _ONE,
            "complete" if inputs.documents_complete else "incomplete",
        ),
    ]


# -----------------------------------------------------------------------------
# Assessment
# -----------------------------------------------------------------------------
def assess_risk(inputs: RiskInputs, policy: RiskPolicy) -> RiskProfile:
    """
    Compute the RiskProfile for one declaration version.

    Pure and deterministic: identical inputs and policy give an identical
    profile. A trusted trader is pinned strictly below the documentary
    threshold whatever the other factors say.
    """
    factors: List[FactorScore] = []
    for factor, score, detail in _factor_scores(inputs, policy):
        weight = policy.weights[factor]
        factors.append(FactorScore(
            factor=factor,
            score=score,
            weight=weight,
            contribution=score * weight * _HUNDRED,
            detail=detail,
        ))

    raw_score = sum((f.contribution for f in factors), _ZERO)
    total = _clamp(raw_score, _ZERO, _HUNDRED)

    if inputs.trusted_trader:
        total = min(total, policy.thresholds.documentary - policy.trusted_trader_margin)

    channel = policy.thresholds.channel_for(total)
    channel_assignments.labels(channel=channel.name).inc()
    log.debug(
        f"Risk assessed for {inputs.declaration_id} v{inputs.declaration_version}: "
        f"raw={raw_score} total={total} channel={channel.name} trusted={inputs.trusted_trader}"
    )

    return RiskProfile(
        declaration_id=inputs.declaration_id,
        declaration_version=inputs.declaration_version,
        factors=factors,
        raw_score=raw_score,
        total_score=total,
        channel=channel,
        trusted_trader_override=inputs.trusted_trader,
        policy_version=policy.version,
    )


@dataclass(frozen=True)
class RiskOutcome:
    """Typed result of one batch item: a profile or the error, never both."""
    index: int
    profile: Optional[RiskProfile] = None
    error: Optional[RiskAssessmentError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def assess_batch(
        items: Iterable[Union[RiskInputs, Mapping]],
        policy: RiskPolicy,
) -> List[RiskOutcome]:
    """
    Assess many declarations; one invalid input does not abort the batch.

    Items may be RiskInputs or plain mappings that are validated here.
    """
    outcomes: List[RiskOutcome] = []
    for index, item in enumerate(items):
        try:
            inputs = item if isinstance(item, RiskInputs) else RiskInputs.model_validate(item)
            outcomes.append(RiskOutcome(index=index, profile=assess_risk(inputs, policy)))
        except ValidationError as e:
            declaration_id = item.get("declaration_id") if isinstance(item, Mapping) else None
            error = RiskAssessmentError(
                f"Invalid risk inputs at position {index}: {e.error_count()} error(s)",
                declaration_id=str(declaration_id) if declaration_id else None,
            )
            log.warning(f"Risk batch item {index} rejected: {e.errors()[0]['msg']}")
            outcomes.append(RiskOutcome(index=index, error=error))
    return outcomes


# -----------------------------------------------------------------------------
# Input assembly
# -----------------------------------------------------------------------------
def build_risk_inputs(
        declaration: Declaration,
        declaration_version: int,
        reference_data,
        compliance: TraderComplianceSummary,
        documents_complete: bool,
        now: datetime,
) -> RiskInputs:
    """
    Collect risk inputs for a declaration.

    Commodity and origin tiers are the highest across goods items. The
    value-anomaly input is the item whose unit value lies furthest outside
    its reference range.

    Args:
        reference_data: ReferenceDataPort implementation
        compliance: Trader compliance summary of the declarant
        documents_complete: Document store answer for this declaration
        now: Caller-supplied time for the certification validity check
    """
    items = declaration.goods_items
    commodity_tier = max_tier(reference_data.commodity_risk_tier(i.classification_code) for i in items)
    origin_tier = max_tier(reference_data.country_risk_tier(i.origin_country) for i in items)
    destination_tier = reference_data.country_risk_tier(declaration.destination_country)

    unit_value: Optional[Decimal] = None
    value_range: Optional[Tuple[Decimal, Decimal]] = None
    worst = Decimal("-1")
    for item in items:
        item_range = reference_data.reference_value_range(item.classification_code)
        score = value_anomaly_score(item.unit_value, item_range)
        if item_range is not None and score > worst:
            worst, unit_value, value_range = score, item.unit_value, item_range

    return RiskInputs(
        declaration_id=declaration.declaration_id,
        declaration_version=declaration_version,
        trader_violation_rate=compliance.violation_rate,
        trusted_trader=compliance.certification_valid_at(now),
        commodity_tier=commodity_tier,
        origin_tier=origin_tier,
        destination_tier=destination_tier,
        declared_unit_value=unit_value,
        reference_value_range=value_range,
        documents_complete=documents_complete,
    )


# =============================================================================
# EOF
# =============================================================================
