"""
Tests for clearance configuration loading.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from singlewindow.config.clearance_config import ClearanceConfig, get_clearance_config, reset_clearance_config
from singlewindow.customs.enums import RiskFactor


class TestClearanceConfig:

    def test_defaults(self):
        config = ClearanceConfig()
        assert config.appeal_review_window == timedelta(days=30)
        assert config.route_tolerance_km == 5.0
        policy = config.to_risk_policy()
        assert policy.weights[RiskFactor.TRADER_HISTORY] == Decimal("0.30")
        assert policy.thresholds.documentary == Decimal("20")

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CLEARANCE_WEIGHT_COMMODITY", "0.30")
        monkeypatch.setenv("CLEARANCE_WEIGHT_TRADER_HISTORY", "0.25")
        monkeypatch.setenv("CLEARANCE_APPEAL_REVIEW_WINDOW_HOURS", "48")
        config = ClearanceConfig()
        assert config.to_risk_policy().weights[RiskFactor.COMMODITY] == Decimal("0.30")
        assert config.appeal_review_window == timedelta(hours=48)

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("CLEARANCE_THRESHOLD_PHYSICAL=60\n")
        assert ClearanceConfig().threshold_physical == Decimal("60")

    def test_inconsistent_weights_rejected_when_building_policy(self, monkeypatch):
        monkeypatch.setenv("CLEARANCE_WEIGHT_COMMODITY", "0.90")
        with pytest.raises(ValidationError):
            ClearanceConfig().to_risk_policy()

    def test_cached_singleton(self, monkeypatch):
        first = get_clearance_config()
        assert get_clearance_config() is first
        monkeypatch.setenv("CLEARANCE_REPEAT_OFFENSE_THRESHOLD", "5")
        reset_clearance_config()
        assert get_clearance_config().repeat_offense_threshold == 5

    def test_summary_is_printable(self):
        summary = ClearanceConfig().summary()
        assert summary["appeal_review_window_hours"] == "720"
        assert summary["threshold_detailed"] == "75"
