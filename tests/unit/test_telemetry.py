"""Unit tests for JSONL telemetry."""

import json

import pytest

from automaton.telemetry import EVENT_TYPES, TelemetrySink, new_run_id, read_events


class TestTelemetrySink:
    def test_records_lifecycle_events(self, tmp_path):
        path = tmp_path / "logs" / "telemetry.jsonl"
        sink = TelemetrySink(enabled=True, path=path)

        sink.record("run1", "sandbox_ready", "sb-1", {"status": "running"})
        sink.record("run1", "state_synced", "sb-1")

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["run_id"] == "run1"
        assert first["type"] == "sandbox_ready"
        assert first["sandbox_id"] == "sb-1"
        assert first["data"] == {"status": "running"}
        assert isinstance(first["timestamp"], float)
        assert json.loads(lines[1])["data"] == {}

    def test_unknown_event_type_rejected(self, tmp_path):
        sink = TelemetrySink(enabled=True, path=tmp_path / "telemetry.jsonl")

        with pytest.raises(ValueError, match="Unknown event type"):
            sink.record("r", "sandbox_deleted", "sb-1")  # type: ignore[arg-type]
        assert not sink.path.exists()

    def test_disabled_sink_writes_nothing(self, tmp_path):
        path = tmp_path / "telemetry.jsonl"
        TelemetrySink(enabled=False, path=path).record("r", "state_committed", "sb-1")
        assert not path.exists()

    def test_event_types(self):
        assert EVENT_TYPES == {
            "sandbox_ready",
            "state_synced",
            "state_repo_initialized",
            "state_committed",
        }


class TestReadEvents:
    def test_missing_file(self, tmp_path):
        assert read_events(tmp_path / "none.jsonl") == []

    def test_skips_malformed_lines_and_limits(self, tmp_path):
        path = tmp_path / "telemetry.jsonl"
        path.write_text(
            '{"type": "a"}\n'
            "not json\n"
            "[1, 2]\n"
            "\n"
            '{"type": "b"}\n'
            '{"type": "c"}\n'
        )

        assert [e["type"] for e in read_events(path)] == ["a", "b", "c"]
        assert [e["type"] for e in read_events(path, limit=2)] == ["b", "c"]
        assert read_events(path, limit=0) == []

    def test_filters_by_type_and_sandbox(self, tmp_path):
        path = tmp_path / "telemetry.jsonl"
        sink = TelemetrySink(enabled=True, path=path)
        sink.record("r1", "sandbox_ready", "sb-1")
        sink.record("r1", "state_committed", "sb-1", {"result": "one"})
        sink.record("r2", "state_committed", "sb-2", {"result": "two"})
        sink.record("r2", "state_committed", "sb-1", {"result": "three"})

        commits = read_events(path, event_type="state_committed")
        assert [e["data"]["result"] for e in commits] == ["one", "two", "three"]

        on_sb1 = read_events(path, limit=1, event_type="state_committed", sandbox_id="sb-1")
        assert [e["data"]["result"] for e in on_sb1] == ["three"]


def test_run_ids_are_short_and_unique():
    ids = {new_run_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) == 12 for i in ids)
