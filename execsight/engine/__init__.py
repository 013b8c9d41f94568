"""
ExecSight Statistical Engine — pure functions over in-memory series.

Components:
- series: MetricSeries, StatStatus and descriptive helpers
- correlation: Pearson, lagged and pairwise correlation with explicit "undefined"
- anomaly: Whole-series z-score anomaly detection, outlier removal
- simulation: Monte Carlo risk bands with an injected random source
- intervals: Normal-approximation confidence intervals with a stability floor
- trend: Trend direction, seasonality, forecasting, volatility
"""
