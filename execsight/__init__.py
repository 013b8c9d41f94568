"""
ExecSight — Executive Decision Support & Cross-Role Analytics Engine.

Architecture:
    execsight/
    ├── engine/           # Statistics (correlation, anomalies, Monte Carlo, intervals, trend)
    ├── schemas/          # Pydantic models (domain metric snapshots, findings)
    ├── analyzers/        # Per-domain analyzers (inventory, marketing, operations, finance, customer)
    ├── recommendations/  # Confidence, impact, priority, dedup, calibration
    ├── aggregation/      # Concurrent cross-role fetch with failure isolation + retry
    ├── live/             # Collision-free live-update versioning and broadcast
    └── services/         # Decision support orchestration

Module Boundaries:
    - Data access is an external collaborator; sources hand us validated snapshots
    - Analyzers report findings, they NEVER assign priority
    - Ranking policy lives only in the recommendation engine
    - Every statistic reports a status; no NaN or Infinity ever leaves the engine
    - Every recommendation is immutable once issued

Data Flow:
    DomainSource → Aggregator → AggregatedView → Analyzers → Findings
    → RecommendationEngine → RecommendationBatch → Feedback → Calibration

Version: 1.0.0
"""

__version__ = "1.0.0"
