"""
Recommendation Engine — confidence, priority, impact and calibration.

Components:
- schemas: Recommendation, ImpactAssessment, options, feedback, diagnostics
- confidence: weighted completeness / sample size / history score
- priority: severity × confidence × urgency → high / medium / low
- impact: Monte Carlo bands and floored confidence interval
- calibration: Beta-smoothed per-category accuracy from feedback
- engine: RecommendationEngine.generate / record_feedback
"""
