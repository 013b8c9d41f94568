"""
Live Update Versioner — collision-free versions for concurrent events.

    version = global_counter × VERSION_MULTIPLIER + local_sequence

The global counter increases on every allocation across all scopes, so a
version is unique process-wide. The local sequence increases per
(user_id, update_type) scope, so versions within a scope strictly increase.

Allocation and increment happen in one synchronous critical section:
there is no await between them, and a lock covers threaded callers.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

import structlog

logger = structlog.get_logger(__name__)

VERSION_MULTIPLIER: int = 1_000_000


@dataclass(frozen=True)
class LiveUpdateEnvelope:
    user_id: str
    update_type: str
    payload: Mapping[str, Any]
    assigned_version: int
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "update_type": self.update_type,
            "payload": dict(self.payload),
            "version": self.assigned_version,
            "issued_at": self.issued_at.isoformat(),
        }


class LiveUpdateVersioner:
    """Per-scope monotonic, globally unique version numbers."""

    def __init__(self, multiplier: int = VERSION_MULTIPLIER):
        if multiplier < 2:
            raise ValueError("multiplier must be >= 2")
        self.multiplier = multiplier
        self._lock = threading.Lock()
        self._global_counter = 0
        self._local: dict[tuple[str, str], int] = {}

    def assign_version(self, user_id: str, update_type: str) -> int:
        if not user_id or not update_type:
            raise ValueError("user_id and update_type are required")

        scope = (user_id, update_type)
        with self._lock:
            local = self._local.get(scope, 0) + 1
            if local >= self.multiplier:
                logger.error("version_sequence_exhausted", user_id=user_id, update_type=update_type)
                raise OverflowError(
                    f"Local sequence for ({user_id}, {update_type}) exhausted the multiplier {self.multiplier}"
                )
            self._global_counter += 1
            self._local[scope] = local
            return self._global_counter * self.multiplier + local

    def stamp(self, user_id: str, update_type: str, payload: Mapping[str, Any]) -> LiveUpdateEnvelope:
        return LiveUpdateEnvelope(
            user_id=user_id,
            update_type=update_type,
            payload=payload,
            assigned_version=self.assign_version(user_id, update_type),
        )

    def current_sequence(self, user_id: str, update_type: str) -> int:
        with self._lock:
            return self._local.get((user_id, update_type), 0)

    def reset(self) -> None:
        with self._lock:
            self._global_counter = 0
            self._local.clear()
