# =============================================================================
# File: singlewindow/config/clearance_config.py
# Description: Clearance policy configuration (risk weights, channel
#              thresholds, appeal window, transit tolerances, wire defaults)
# =============================================================================

from datetime import timedelta
from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from singlewindow.common.base.base_config import BaseConfig, BASE_CONFIG_DICT
from singlewindow.customs.enums import RiskFactor, RiskTier
from singlewindow.customs.risk.models import ChannelThresholds, RiskPolicy


class ClearanceConfig(BaseConfig):
    """
    Clearance configuration with the jurisdiction's default policy.

    Weights and thresholds are policy. Every number here can be
    overridden from the environment (CLEARANCE_WEIGHT_COMMODITY=0.30, ...).
    """

    model_config = SettingsConfigDict(
        **BASE_CONFIG_DICT,
        env_prefix='CLEARANCE_',
    )

    # =========================================================================
    # RISK POLICY
    # =========================================================================

    risk_policy_version: str = Field(default="2024.1", description="Identifier stamped on every RiskProfile")

    weight_trader_history: Decimal = Field(default=Decimal("0.30"))
    weight_commodity: Decimal = Field(default=Decimal("0.25"))
    weight_origin_destination: Decimal = Field(default=Decimal("0.20"))
    weight_value_anomaly: Decimal = Field(default=Decimal("0.15"))
    weight_document_completeness: Decimal = Field(default=Decimal("0.10"))

    tier_score_low: Decimal = Field(default=Decimal("0"))
    tier_score_medium: Decimal = Field(default=Decimal("0.5"))
    tier_score_high: Decimal = Field(default=Decimal("1"))

    threshold_documentary: Decimal = Field(default=Decimal("20"))
    threshold_physical: Decimal = Field(default=Decimal("50"))
    threshold_detailed: Decimal = Field(default=Decimal("75"))

    trusted_trader_margin: Decimal = Field(
        default=Decimal("0.01"),
        description="How far below the documentary threshold a trusted trader is pinned"
    )

    # =========================================================================
    # APPEALS & COMPLIANCE
    # =========================================================================

    appeal_review_window_hours: int = Field(
        default=720,
        description="Time an appeal may stay unresolved before the guarantee is forfeited"
    )
    repeat_offense_threshold: int = Field(
        default=2,
        description="Prior offenses at which any transit violation forces rejection"
    )

    # =========================================================================
    # TRANSIT
    # =========================================================================

    route_tolerance_km: float = Field(default=5.0, description="Corridor half-width")
    severe_route_deviation_km: float = Field(
        default=25.0,
        description="Deviation at or above which the declaration is suspended"
    )

    # =========================================================================
    # WIRE FORMAT
    # =========================================================================

    message_encoding: str = Field(default="utf-8")
    emit_service_advice: bool = Field(default=True, description="Prefix outgoing messages with UNA")

    # =========================================================================
    # CONCURRENCY
    # =========================================================================

    lock_timeout_seconds: float = Field(
        default=5.0,
        description="Max wait for a per-declaration / per-guarantee lock"
    )

    @property
    def appeal_review_window(self) -> timedelta:
        return timedelta(hours=self.appeal_review_window_hours)

    def to_risk_policy(self) -> RiskPolicy:
        """Build the immutable RiskPolicy handed to the risk engine."""
        return RiskPolicy(
            version=self.risk_policy_version,
            weights={
                RiskFactor.TRADER_HISTORY: self.weight_trader_history,
                RiskFactor.COMMODITY: self.weight_commodity,
                RiskFactor.ORIGIN_DESTINATION: self.weight_origin_destination,
                RiskFactor.VALUE_ANOMALY: self.weight_value_anomaly,
                RiskFactor.DOCUMENT_COMPLETENESS: self.weight_document_completeness,
            },
            tier_scores={
                RiskTier.LOW: self.tier_score_low,
                RiskTier.MEDIUM: self.tier_score_medium,
                RiskTier.HIGH: self.tier_score_high,
            },
            thresholds=ChannelThresholds(
                documentary=self.threshold_documentary,
                physical=self.threshold_physical,
                detailed=self.threshold_detailed,
            ),
            trusted_trader_margin=self.trusted_trader_margin,
        )


@lru_cache(maxsize=1)
def get_clearance_config() -> ClearanceConfig:
    """Get clearance configuration (cached)."""
    return ClearanceConfig()


def reset_clearance_config() -> None:
    """Reset config singleton (for testing)."""
    get_clearance_config.cache_clear()


# =============================================================================
# EOF
# =============================================================================
