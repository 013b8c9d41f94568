"""
Settings Tests.
"""

import structlog

from execsight.analyzers.registry import build_analyzers
from execsight.config import Settings
from execsight.live.hub import LiveUpdateHub
from execsight.logging_setup import configure_logging
from execsight.schemas.domains import Domain
from execsight.services.decision_support import DecisionSupportService


class TestSettings:
    def test_defaults(self):
        config = Settings()
        assert config.priority_high_threshold == 0.75
        assert config.priority_medium_threshold == 0.4
        assert config.retry_max_retries == 3
        assert config.retry_delay_seconds == 0.1
        assert config.interval_floor_ratio == 0.10
        assert config.fetch_timeout_seconds is None

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("EXECSIGHT_PRIORITY_HIGH", "0.8")
        monkeypatch.setenv("EXECSIGHT_MONTE_CARLO_SEED", "123")
        monkeypatch.setenv("EXECSIGHT_ROI_MINIMUM", "2.0")
        config = Settings()
        assert config.priority_high_threshold == 0.8
        assert config.monte_carlo_seed == 123
        assert config.roi_minimum == 2.0

    def test_version_multiplier_reaches_hub(self):
        hub = LiveUpdateHub.from_settings(Settings(EXECSIGHT_VERSION_MULTIPLIER=10, EXECSIGHT_LIVE_QUEUE_SIZE=5))
        assert hub.versioner.multiplier == 10
        assert hub.max_queue_size == 5
        assert hub.publish("u1", "kpi", {}).assigned_version == 11

    def test_retry_setting_counts_retries(self, monkeypatch):
        monkeypatch.setenv("EXECSIGHT_RETRY_MAX_RETRIES", "2")
        service = DecisionSupportService.from_settings(Settings())
        assert service.aggregator.max_retries == 2

    def test_thresholds_reach_analyzers(self):
        config = Settings(EXECSIGHT_BOTTLENECK_UTILIZATION=0.8, EXECSIGHT_EFFICIENCY_FLOOR=0.5)
        analyzers = build_analyzers(config)
        assert set(analyzers) == set(Domain)
        assert all(a.efficiency_floor == 0.5 for a in analyzers.values())


class TestLogging:
    def test_json_logging(self):
        configure_logging(Settings(LOG_FORMAT="json", LOG_LEVEL="DEBUG"))
        structlog.get_logger("execsight.test").info("configured", component="tests")
