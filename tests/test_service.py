"""Tests for the snapshot-owning index service."""

from __future__ import annotations

import logging
import os

import pytest

from cradlemap.config import AnalysisConfig
from cradlemap.service import IndexService

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")
APP_DIR = os.path.join(FIXTURES_DIR, "awilix_app")


@pytest.fixture
def service():
    with IndexService(AnalysisConfig(roots=[APP_DIR])) as svc:
        yield svc


class TestIndexService:
    def test_starts_empty(self, service):
        assert len(service.index.keys) == 0
        assert service.index.references == ()

    def test_rebuild_publishes_snapshot(self, service):
        index = service.rebuild()
        assert service.index is index
        assert "userService" in index.keys
        assert service.stats.files_failed == 1

    def test_rebuild_swaps_whole_snapshot(self, service):
        first = service.rebuild()
        second = service.rebuild()
        assert first is not second
        assert dict(first.keys) == dict(second.keys)

    def test_subscribers_receive_diagnostics(self, service):
        received = []
        service.subscribe(received.append)
        service.rebuild()

        assert len(received) == 1
        by_file = received[0]
        app = by_file[os.path.join(APP_DIR, "app.js")]
        assert len(app) == 2

    def test_failing_subscriber_does_not_abort(self, service, caplog):
        def broken(_):
            raise RuntimeError("boom")

        received = []
        service.subscribe(broken)
        service.subscribe(received.append)
        with caplog.at_level(logging.ERROR):
            service.rebuild()

        assert len(received) == 1
        assert "Diagnostics subscriber failed" in caplog.text

    def test_schedule_rebuild(self, service):
        service.schedule_rebuild().result(timeout=60)
        assert "userService" in service.index.keys

    def test_notify_ignores_unrelated_files(self, service):
        assert service.notify_changed(os.path.join(APP_DIR, "README.md")) is None
        future = service.notify_changed(os.path.join(APP_DIR, "app.js"))
        future.result(timeout=60)
        assert "userService" in service.index.keys

    def test_set_ignore_patterns(self, service):
        original = service.config
        service.rebuild()
        before = len(service.index.references)

        service.set_ignore_patterns(["**/data/**"]).result(timeout=60)

        assert len(service.index.references) == before - 1
        assert service.config.ignore_patterns == ["**/data/**"]
        assert original.ignore_patterns == []


class TestFileChanges:
    def test_rebuild_reflects_edits(self, tmp_path):
        container = tmp_path / "container.js"
        container.write_text("container.register({ first: asValue(1) });\n")

        with IndexService(AnalysisConfig(roots=[str(tmp_path)])) as service:
            service.rebuild()
            assert set(service.index.keys) == {"first"}
            stale = service.index

            container.write_text("container.register({ second: asValue(2) });\n")
            service.notify_changed(str(container)).result(timeout=60)

            assert set(service.index.keys) == {"second"}
            assert set(stale.keys) == {"first"}

    def test_deleted_file_drops_keys(self, tmp_path):
        extra = tmp_path / "extra.js"
        extra.write_text("container.register({ extra: asValue(1) });\n")

        with IndexService(AnalysisConfig(roots=[str(tmp_path)])) as service:
            service.rebuild()
            assert "extra" in service.index.keys

            extra.unlink()
            service.notify_changed(str(extra)).result(timeout=60)
            assert "extra" not in service.index.keys

    def test_coalesced_triggers_see_latest_state(self, tmp_path):
        container = tmp_path / "container.js"
        container.write_text("container.register({ v1: asValue(1) });\n")

        with IndexService(AnalysisConfig(roots=[str(tmp_path)])) as service:
            futures = [service.schedule_rebuild() for _ in range(5)]
            container.write_text("container.register({ v2: asValue(2) });\n")
            last = service.schedule_rebuild()
            last.result(timeout=60)
            for future in futures:
                future.result(timeout=60)

            assert set(service.index.keys) == {"v2"}
