"""
Marketing Analyzer Tests.
"""

import pytest

from execsight.analyzers.marketing import AttributionModel, MarketingAnalyzer, attribute
from execsight.schemas.domains import ChannelPerformance, ConversionPath, MarketingMetrics
from execsight.schemas.findings import ImpactKind


class TestAttribution:
    """First-touch, last-touch and linear attribution."""

    def setup_method(self):
        self.paths = [
            ConversionPath(touchpoints=["social", "search"], value=100),
            ConversionPath(touchpoints=["email"], value=50),
        ]

    def test_first_touch(self):
        assert attribute(self.paths, AttributionModel.FIRST_TOUCH) == {"social": 100, "email": 50}

    def test_last_touch(self):
        assert attribute(self.paths, AttributionModel.LAST_TOUCH) == {"search": 100, "email": 50}

    def test_linear(self):
        assert attribute(self.paths, AttributionModel.LINEAR) == {"social": 50, "search": 50, "email": 50}

    def test_total_value_preserved(self):
        for model in AttributionModel:
            assert sum(attribute(self.paths, model).values()) == pytest.approx(150)


class TestMarketingAnalyze:
    def setup_method(self):
        self.analyzer = MarketingAnalyzer()

    def test_channel_roi(self):
        assert self.analyzer.channel_roi(ChannelPerformance(channel="x", spend=200, revenue=500)) == 2.5
        assert self.analyzer.channel_roi(ChannelPerformance(channel="x", spend=0, revenue=500)) is None

    def test_underperforming_channel(self, marketing_metrics):
        findings = self.analyzer.analyze(marketing_metrics)
        under = [f for f in findings if f.category == "marketing.underperforming_channel"]
        assert [f.subject for f in under] == ["social"]
        assert under[0].impact_kind == ImpactKind.COST
        assert under[0].impact_estimate == pytest.approx(333.33)
        assert under[0].severity == pytest.approx(1 / 3, abs=1e-6)

    def test_budget_reallocation(self, marketing_metrics):
        findings = self.analyzer.analyze(marketing_metrics)
        realloc = next(f for f in findings if f.category == "marketing.budget_reallocation")
        assert realloc.impact_estimate == pytest.approx(3500.0)
        params = realloc.actions[0].parameters
        assert params["source_channels"] == ["social"]
        assert params["target_channels"] == ["search"]

    def test_spend_revenue_lag(self, marketing_metrics):
        findings = self.analyzer.analyze(marketing_metrics)
        lag = next(f for f in findings if f.category == "marketing.spend_revenue_lag")
        assert lag.evidence["lag_offset"] == 1

    def test_blended_efficiency_above_floor(self, marketing_metrics):
        efficiency = self.analyzer.compute_efficiency(marketing_metrics)
        assert efficiency.score == pytest.approx(2.8 / 3.0)
        assert efficiency.components["cac"] == pytest.approx(100.0)
        findings = self.analyzer.analyze(marketing_metrics)
        assert not any(f.category == "marketing.blended_roi" for f in findings)

    def test_blended_efficiency_below_floor(self):
        metrics = MarketingMetrics(
            user_id="u1",
            channels=[ChannelPerformance(channel="display", spend=1000, revenue=1200)],
        )
        findings = self.analyzer.analyze(metrics)
        assert any(f.category == "marketing.blended_roi" for f in findings)

    def test_no_reallocation_without_top_performer(self):
        metrics = MarketingMetrics(
            user_id="u1",
            channels=[
                ChannelPerformance(channel="a", spend=100, revenue=100),
                ChannelPerformance(channel="b", spend=100, revenue=250),
            ],
        )
        assert self.analyzer.reallocation_impact(metrics) == 0.0
        findings = self.analyzer.analyze(metrics)
        assert not any(f.category == "marketing.budget_reallocation" for f in findings)

    def test_cac_without_new_customers(self):
        metrics = MarketingMetrics(user_id="u1", channels=[ChannelPerformance(channel="a", spend=10, revenue=5)])
        assert self.analyzer.customer_acquisition_cost(metrics) is None
