"""Pydantic schemas shared across the engine (domain snapshots, findings)."""
