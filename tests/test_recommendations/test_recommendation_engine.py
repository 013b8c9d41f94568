"""
Recommendation Engine Tests.
"""

import numpy as np
import pytest
from pydantic import ValidationError

from conftest import make_finding
from execsight.recommendations.confidence import ConfidenceWeights
from execsight.recommendations.engine import RecommendationEngine, matches_category
from execsight.recommendations.schemas import FeedbackRecord, Priority, RecommendationOptions
from execsight.schemas.findings import ImpactKind, action_plan


class TestGenerate:
    """Findings → ranked RecommendationBatch."""

    def setup_method(self):
        self.engine = RecommendationEngine(seed=42)

    def test_issues_recommendation(self):
        batch = self.engine.generate([make_finding()])
        assert len(batch) == 1
        rec = batch[0]
        assert rec.id.startswith("rec_")
        assert rec.category == "inventory.stockout"
        assert 0 <= rec.confidence <= 1
        assert rec.priority in Priority

    def test_malformed_findings_become_diagnostics(self):
        """Ten findings missing required fields → ten diagnostics, no exception."""
        raw = [{"domain": "inventory", "title": f"broken {i}"} for i in range(10)]
        batch = self.engine.generate(raw)
        assert len(batch) == 0
        assert len(batch.diagnostics) == 10
        assert [d.index for d in batch.diagnostics] == list(range(10))
        assert all(d.reason == "invalid_finding" for d in batch.diagnostics)

    def test_mixed_valid_and_invalid(self):
        raw = [
            make_finding(),
            {"category": "x"},
            make_finding(subject="SKU-2").model_dump(),
            42,
        ]
        batch = self.engine.generate(raw)
        assert len(batch) == 2
        assert [(d.index, d.reason) for d in batch.diagnostics] == [
            (1, "invalid_finding"),
            (3, "unsupported_type"),
        ]

    def test_non_finite_values_rejected(self):
        raw = make_finding().model_dump()
        raw["impact_estimate"] = float("nan")
        batch = self.engine.generate([raw])
        assert len(batch) == 0
        assert len(batch.diagnostics) == 1

    def test_revenue_impact_ordering(self):
        rec = self.engine.generate([make_finding(impact_kind=ImpactKind.REVENUE)])[0]
        assert rec.impact.worst_case <= rec.impact.likely_case <= rec.impact.best_case

    def test_cost_impact_ordering_inverted(self):
        rec = self.engine.generate([make_finding(impact_kind=ImpactKind.COST)])[0]
        assert rec.impact.best_case <= rec.impact.likely_case <= rec.impact.worst_case

    def test_interval_floor(self):
        rec = self.engine.generate([make_finding(impact_estimate=5000.0, impact_volatility=0.0)])[0]
        assert rec.impact.interval_width >= 0.1 * 5000.0 - 1e-6

    def test_actions_ordered(self):
        finding = make_finding(actions=list(reversed(action_plan("first", "second", "third"))))
        rec = self.engine.generate([finding])[0]
        assert [a.order for a in rec.actions] == [1, 2, 3]

    def test_recommendations_are_immutable(self):
        rec = self.engine.generate([make_finding()])[0]
        with pytest.raises(ValidationError):
            rec.priority = Priority.LOW

    def test_unique_ids(self):
        findings = [make_finding(subject=f"SKU-{i}") for i in range(50)]
        ids = [r.id for r in self.engine.generate(findings)]
        assert len(set(ids)) == 50

    def test_seeded_impact_reproducible(self):
        first = RecommendationEngine(seed=7).generate([make_finding()])[0]
        second = RecommendationEngine(seed=7).generate([make_finding()])[0]
        assert first.impact == second.impact

    def test_huge_impact_does_not_abort_batch(self):
        batch = self.engine.generate([
            make_finding(subject="big", impact_estimate=1e200),
            make_finding(subject="ok"),
        ])
        subjects = {r.subject for r in batch}
        assert "ok" in subjects
        assert "big" in subjects
        big = next(r for r in batch if r.subject == "big")
        assert big.impact.worst_case <= big.impact.likely_case <= big.impact.best_case

    def test_unrepresentable_impact_becomes_diagnostic(self):
        batch = self.engine.generate([
            make_finding(subject="huge", impact_estimate=1e308, impact_volatility=2.0),
            make_finding(subject="ok"),
        ])
        assert [r.subject for r in batch] == ["ok"]
        assert [(d.index, d.reason) for d in batch.diagnostics] == [(0, "impact_unavailable")]

    def test_injected_random_source(self):
        engine = RecommendationEngine(rng=np.random.default_rng(3))
        assert len(engine.generate([make_finding()])) == 1


class TestDedupAndFilters:
    def setup_method(self):
        self.engine = RecommendationEngine(seed=1)

    def test_dedup_keeps_highest_confidence(self):
        weak = make_finding(data_completeness=0.2, evidence={"variant": "weak"})
        strong = make_finding(data_completeness=1.0, evidence={"variant": "strong"})
        batch = self.engine.generate([weak, strong])
        assert len(batch) == 1
        assert batch[0].evidence["variant"] == "strong"

    def test_different_subjects_not_deduplicated(self):
        batch = self.engine.generate([make_finding(subject="A"), make_finding(subject="B")])
        assert len(batch) == 2

    def test_min_confidence(self):
        findings = [
            make_finding(subject="A", data_completeness=1.0, sample_size=100),
            make_finding(subject="B", data_completeness=0.0, sample_size=0),
        ]
        batch = self.engine.generate(findings, RecommendationOptions(min_confidence=0.5))
        assert [r.subject for r in batch] == ["A"]

    def test_category_filter_exact_and_prefix(self):
        findings = [
            make_finding(category="inventory.stockout", subject="A"),
            make_finding(domain="marketing", category="marketing.budget_reallocation", subject="B"),
            make_finding(domain="finance", category="finance.liquidity", subject="C"),
        ]
        batch = self.engine.generate(
            findings, RecommendationOptions(category_filter={"inventory", "finance.liquidity"}),
        )
        assert sorted(r.subject for r in batch) == ["A", "C"]

    def test_max_results(self):
        findings = [
            make_finding(subject=f"S{i}", severity=0.1 * (i + 1), data_completeness=0.5 + 0.1 * i)
            for i in range(5)
        ]
        batch = self.engine.generate(findings, RecommendationOptions(max_results=2))
        assert len(batch) == 2
        assert [r.subject for r in batch] == ["S4", "S3"]

    def test_sorted_by_priority_then_confidence(self):
        findings = [
            make_finding(subject="low", severity=0.1),
            make_finding(subject="high", severity=1.0, sample_size=200),
            make_finding(subject="medium-less-sure", severity=0.6, data_completeness=0.8),
            make_finding(subject="medium-sure", severity=0.6, data_completeness=1.0),
        ]
        batch = self.engine.generate(findings)
        assert [r.subject for r in batch] == ["high", "medium-sure", "medium-less-sure", "low"]
        ranks = [r.priority.rank for r in batch]
        assert ranks == sorted(ranks)

    def test_matches_category(self):
        assert matches_category("inventory.stockout", frozenset({"inventory"}))
        assert matches_category("inventory.stockout", frozenset({"inventory.stockout"}))
        assert not matches_category("inventory.stockout", frozenset({"inventory.overstock"}))


class TestPriorityBoundary:
    def test_score_exactly_at_high_threshold_is_high(self):
        """Boundary is inclusive on the high side."""
        engine = RecommendationEngine(
            weights=ConfidenceWeights(completeness=1.0, sample_size=0.0, history=0.0), seed=1,
        )
        rec = engine.generate([make_finding(severity=0.75, urgency=1.0, data_completeness=1.0)])[0]
        assert rec.confidence == 1.0
        assert rec.priority_score == 0.75
        assert rec.priority == Priority.HIGH

    def test_score_at_medium_threshold_is_medium(self):
        engine = RecommendationEngine(
            weights=ConfidenceWeights(completeness=1.0, sample_size=0.0, history=0.0), seed=1,
        )
        rec = engine.generate([make_finding(severity=0.4, urgency=1.0, data_completeness=1.0)])[0]
        assert rec.priority == Priority.MEDIUM

    def test_invalid_thresholds(self):
        with pytest.raises(ValueError):
            RecommendationEngine(high_threshold=0.3, medium_threshold=0.5)


class TestFeedback:
    def setup_method(self):
        self.engine = RecommendationEngine(seed=5)

    def test_feedback_affects_future_runs_only(self):
        first = self.engine.generate([make_finding()])[0]
        original_confidence = first.confidence

        for _ in range(10):
            assert self.engine.record_feedback(FeedbackRecord(recommendation_id=first.id, was_accurate=False))

        assert first.confidence == original_confidence
        second = self.engine.generate([make_finding()])[0]
        assert second.confidence < original_confidence

    def test_positive_feedback_raises_confidence(self):
        first = self.engine.generate([make_finding()])[0]
        for _ in range(10):
            self.engine.record_feedback(FeedbackRecord(recommendation_id=first.id, was_accurate=True))
        assert self.engine.generate([make_finding()])[0].confidence > first.confidence

    def test_feedback_scoped_to_category(self):
        rec = self.engine.generate([make_finding()])[0]
        other_before = self.engine.generate([make_finding(category="inventory.overstock")])[0].confidence
        self.engine.record_feedback(FeedbackRecord(recommendation_id=rec.id, was_accurate=False))
        other_after = self.engine.generate([make_finding(category="inventory.overstock")])[0].confidence
        assert other_after == other_before

    def test_unknown_recommendation_ignored(self):
        assert not self.engine.record_feedback(FeedbackRecord(recommendation_id="rec_missing", was_accurate=True))
        assert self.engine.learning_metrics() == {}

    def test_learning_metrics(self):
        rec = self.engine.generate([make_finding()])[0]
        self.engine.record_feedback(FeedbackRecord(recommendation_id=rec.id, was_accurate=True))
        self.engine.record_feedback(FeedbackRecord(recommendation_id=rec.id, was_accurate=False))
        metrics = self.engine.learning_metrics()["inventory.stockout"]
        assert metrics.total == 2
        assert metrics.raw_accuracy == 0.5
        assert metrics.accuracy == pytest.approx((3 + 1) / (4 + 2))
