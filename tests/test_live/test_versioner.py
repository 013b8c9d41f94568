"""
Live Update Versioner Tests.
"""

import asyncio
import threading

import pytest

from execsight.live.versioner import LiveUpdateEnvelope, LiveUpdateVersioner


class TestAssignVersion:
    def setup_method(self):
        self.versioner = LiveUpdateVersioner()

    def test_first_version(self):
        assert self.versioner.assign_version("u1", "risk_update") == 1_000_001

    def test_strictly_increasing_within_scope(self):
        versions = [self.versioner.assign_version("u1", "risk_update") for _ in range(5)]
        assert versions == sorted(versions)
        assert len(set(versions)) == 5
        assert self.versioner.current_sequence("u1", "risk_update") == 5

    @pytest.mark.asyncio
    async def test_concurrent_calls_unique(self):
        async def allocate():
            await asyncio.sleep(0)
            return self.versioner.assign_version("u1", "risk_update")

        versions = await asyncio.gather(*(allocate() for _ in range(10)))
        assert len(set(versions)) == 10
        assert min(versions) == 1_000_001
        assert list(versions) == sorted(versions)

    def test_users_never_collide(self):
        u1 = {self.versioner.assign_version("u1", "kpi") for _ in range(20)}
        u2 = {self.versioner.assign_version("u2", "kpi") for _ in range(20)}
        assert u1.isdisjoint(u2)

    def test_threads(self):
        versions = []
        lock = threading.Lock()

        def worker():
            for _ in range(100):
                v = self.versioner.assign_version("u1", "kpi")
                with lock:
                    versions.append(v)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(versions)) == 800
        assert self.versioner.current_sequence("u1", "kpi") == 800

    def test_overflow(self):
        versioner = LiveUpdateVersioner(multiplier=3)
        versioner.assign_version("u1", "kpi")
        versioner.assign_version("u1", "kpi")
        with pytest.raises(OverflowError):
            versioner.assign_version("u1", "kpi")
        assert versioner.assign_version("u2", "kpi") > 0

    def test_reset(self):
        self.versioner.assign_version("u1", "kpi")
        self.versioner.reset()
        assert self.versioner.current_sequence("u1", "kpi") == 0
        assert self.versioner.assign_version("u1", "kpi") == 1_000_001

    def test_requires_scope(self):
        with pytest.raises(ValueError):
            self.versioner.assign_version("", "kpi")
        with pytest.raises(ValueError):
            LiveUpdateVersioner(multiplier=1)


class TestEnvelope:
    def test_stamp(self):
        envelope = LiveUpdateVersioner().stamp("u1", "kpi", {"revenue": 10})
        assert isinstance(envelope, LiveUpdateEnvelope)
        assert envelope.to_dict()["version"] == envelope.assigned_version
        assert envelope.to_dict()["payload"] == {"revenue": 10}

    def test_payload_is_read_only(self):
        source = {"revenue": 10}
        envelope = LiveUpdateVersioner().stamp("u1", "kpi", source)
        source["revenue"] = 99
        assert envelope.payload["revenue"] == 10
        with pytest.raises(TypeError):
            envelope.payload["revenue"] = 5
