"""
Tests for the risk engine: weighted score, channel boundaries, trusted trader override.
"""
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from singlewindow.customs.enums import Channel, RiskFactor, RiskTier
from singlewindow.customs.exceptions import RiskAssessmentError
from singlewindow.customs.risk.engine import (
    assess_batch,
    assess_risk,
    build_risk_inputs,
    max_tier,
    value_anomaly_score,
)
from singlewindow.customs.risk.models import ChannelThresholds, RiskInputs, RiskPolicy, TraderComplianceSummary

from tests.factories import NOW, make_declaration, make_item
from tests.fakes.fake_reference_data import FakeReferenceData

POLICY = RiskPolicy()


def _inputs(**kwargs):
    kwargs.setdefault("declaration_id", uuid.uuid4())
    return RiskInputs(**kwargs)


class TestScore:

    def test_clean_declaration_is_automatic(self):
        profile = assess_risk(_inputs(), POLICY)
        assert profile.total_score == Decimal("0")
        assert profile.channel == Channel.AUTOMATIC

    def test_all_factors_maxed_is_detailed(self):
        profile = assess_risk(_inputs(
            trader_violation_rate=Decimal("1"),
            commodity_tier=RiskTier.HIGH,
            origin_tier=RiskTier.HIGH,
            declared_unit_value=Decimal("100"),
            reference_value_range=(Decimal("1"), Decimal("2")),
            documents_complete=False,
        ), POLICY)
        assert profile.total_score == Decimal("100")
        assert profile.channel == Channel.DETAILED

    def test_breakdown_is_explainable(self):
        profile = assess_risk(_inputs(commodity_tier=RiskTier.MEDIUM, documents_complete=False), POLICY)
        commodity = profile.factor(RiskFactor.COMMODITY)
        assert commodity.score == Decimal("0.5")
        assert commodity.contribution == Decimal("12.5")
        assert [f.factor for f in profile.factors] == list(RiskFactor)
        assert sum(f.contribution for f in profile.factors) == profile.raw_score == Decimal("22.5")

    def test_route_factor_takes_the_worse_end(self):
        profile = assess_risk(_inputs(origin_tier=RiskTier.LOW, destination_tier=RiskTier.HIGH), POLICY)
        assert profile.factor(RiskFactor.ORIGIN_DESTINATION).score == Decimal("1")

    def test_deterministic(self):
        inputs = _inputs(trader_violation_rate=Decimal("0.37"), commodity_tier=RiskTier.MEDIUM)
        assert assess_risk(inputs, POLICY) == assess_risk(inputs, POLICY)

    def test_monotonic_in_each_factor(self):
        base = dict(declaration_id=uuid.uuid4(), trader_violation_rate=Decimal("0.2"))
        low = assess_risk(RiskInputs(**base), POLICY)
        for change in (
                {"trader_violation_rate": Decimal("0.6")},
                {"commodity_tier": RiskTier.MEDIUM},
                {"origin_tier": RiskTier.HIGH},
                {"documents_complete": False},
                {"declared_unit_value": Decimal("1"), "reference_value_range": (Decimal("5"), Decimal("6"))},
        ):
            higher = assess_risk(RiskInputs(**{**base, **change}), POLICY)
            assert higher.total_score >= low.total_score
            assert higher.channel >= low.channel


class TestChannelBoundaries:

    @pytest.mark.parametrize("score, channel", [
        (Decimal("19.99"), Channel.AUTOMATIC),
        (Decimal("20"), Channel.DOCUMENTARY),
        (Decimal("49.99"), Channel.DOCUMENTARY),
        (Decimal("50"), Channel.PHYSICAL),
        (Decimal("74.99"), Channel.PHYSICAL),
        (Decimal("75"), Channel.DETAILED),
        (Decimal("100"), Channel.DETAILED),
    ])
    def test_boundary_goes_to_stricter_channel(self, score, channel):
        assert ChannelThresholds().channel_for(score) == channel

    def test_exact_threshold_through_the_engine(self):
        # 0.5 * 20 (origin/destination) + 1 * 10 (documents) = 20
        profile = assess_risk(_inputs(origin_tier=RiskTier.MEDIUM, documents_complete=False), POLICY)
        assert profile.total_score == Decimal("20")
        assert profile.channel == Channel.DOCUMENTARY

    def test_thresholds_must_ascend(self):
        with pytest.raises(ValidationError):
            ChannelThresholds(documentary=Decimal("50"), physical=Decimal("40"), detailed=Decimal("75"))


class TestTrustedTrader:

    def test_pinned_below_documentary(self):
        profile = assess_risk(_inputs(
            trusted_trader=True,
            trader_violation_rate=Decimal("1"),
            commodity_tier=RiskTier.HIGH,
            documents_complete=False,
        ), POLICY)
        assert profile.raw_score == Decimal("65")
        assert profile.total_score == Decimal("19.99")
        assert profile.channel == Channel.AUTOMATIC
        assert profile.trusted_trader_override

    def test_low_score_untouched(self):
        profile = assess_risk(_inputs(trusted_trader=True, commodity_tier=RiskTier.MEDIUM), POLICY)
        assert profile.total_score == Decimal("12.5")

    def test_expired_certification_is_not_trusted(self):
        summary = TraderComplianceSummary(
            trader_id="T", certified=True, certification_valid_until=NOW - timedelta(seconds=1),
        )
        assert not summary.certification_valid_at(NOW)
        assert TraderComplianceSummary(trader_id="T", certified=True).certification_valid_at(NOW)


class TestValueAnomaly:

    def test_inside_range_bounds_included(self):
        assert value_anomaly_score(Decimal("2"), (Decimal("2"), Decimal("8"))) == 0
        assert value_anomaly_score(Decimal("8"), (Decimal("2"), Decimal("8"))) == 0

    def test_relative_deviation(self):
        assert value_anomaly_score(Decimal("1"), (Decimal("2"), Decimal("8"))) == Decimal("0.5")
        assert value_anomaly_score(Decimal("10"), (Decimal("2"), Decimal("8"))) == Decimal("0.25")

    def test_capped_at_one(self):
        assert value_anomaly_score(Decimal("1000"), (Decimal("2"), Decimal("8"))) == Decimal("1")

    def test_no_reference_range(self):
        assert value_anomaly_score(Decimal("1000"), None) == 0


class TestPolicy:

    def test_weights_must_sum_to_one(self):
        weights = {f: Decimal("0.1") for f in RiskFactor}
        with pytest.raises(ValidationError):
            RiskPolicy(weights=weights)

    def test_alternative_weights(self):
        weights = {
            RiskFactor.TRADER_HISTORY: Decimal("0.2"),
            RiskFactor.COMMODITY: Decimal("0.3"),
            RiskFactor.ORIGIN_DESTINATION: Decimal("0.2"),
            RiskFactor.VALUE_ANOMALY: Decimal("0.2"),
            RiskFactor.DOCUMENT_COMPLETENESS: Decimal("0.1"),
        }
        profile = assess_risk(_inputs(commodity_tier=RiskTier.HIGH), RiskPolicy(version="alt", weights=weights))
        assert profile.total_score == Decimal("30")
        assert profile.policy_version == "alt"


class TestBatch:

    def test_invalid_item_does_not_abort_batch(self):
        good_id = uuid.uuid4()
        outcomes = assess_batch([
            _inputs(declaration_id=good_id),
            {"declaration_id": str(uuid.uuid4()), "trader_violation_rate": "1.5"},
            {"declaration_id": str(uuid.uuid4()), "commodity_tier": "high"},
        ], POLICY)
        assert [o.ok for o in outcomes] == [True, False, True]
        assert outcomes[0].profile.declaration_id == good_id
        assert isinstance(outcomes[1].error, RiskAssessmentError)
        assert outcomes[2].profile.factor(RiskFactor.COMMODITY).score == Decimal("1")


class TestInputAssembly:

    def test_worst_item_drives_each_factor(self):
        reference = FakeReferenceData()
        reference.set_commodity_tier("930100", RiskTier.HIGH)
        reference.set_country_tier("KP", RiskTier.HIGH)
        reference.set_value_range("610910", Decimal("4"), Decimal("6"))
        reference.set_value_range("930100", Decimal("100"), Decimal("200"))
        declaration = make_declaration(items=[
            make_item(1),                                                  # unit value 5, in range
            make_item(2, classification_code="930100", origin_country="KP",
                      quantity=Decimal("1"), item_value=Decimal("50")),   # 50 vs 100..200
        ])

        inputs = build_risk_inputs(
            declaration, 3, reference, TraderComplianceSummary(trader_id="TRADER-1"), False, NOW,
        )
        assert inputs.declaration_version == 3
        assert inputs.commodity_tier == RiskTier.HIGH
        assert inputs.origin_tier == RiskTier.HIGH
        assert inputs.destination_tier == RiskTier.LOW
        assert inputs.declared_unit_value == Decimal("50")
        assert inputs.reference_value_range == (Decimal("100"), Decimal("200"))
        assert not inputs.documents_complete
        assert not inputs.trusted_trader

    def test_max_tier(self):
        assert max_tier([RiskTier.LOW, RiskTier.MEDIUM, RiskTier.LOW]) == RiskTier.MEDIUM
        assert max_tier([]) == RiskTier.LOW
