"""Live updates: collision-free versioning and per-user broadcast."""
