"""Application services composing aggregation, analysis and recommendation."""
