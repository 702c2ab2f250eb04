"""Unit tests for core data types."""

import pytest

from automaton.types import ExecResult, SandboxCreateRequest, SandboxInfo


class TestSandboxInfo:
    """Tests for SandboxInfo."""

    def test_from_api_camel_case(self):
        info = SandboxInfo.from_api(
            {
                "id": "sb-1",
                "status": "running",
                "region": "us-east",
                "vcpu": 1,
                "memoryMb": 512,
                "diskGb": 5,
                "createdAt": "2026-02-01T00:00:00.000Z",
            }
        )
        assert info.id == "sb-1"
        assert info.memory_mb == 512
        assert info.disk_gb == 5
        assert info.created_at == "2026-02-01T00:00:00.000Z"

    def test_from_api_snake_case(self):
        info = SandboxInfo.from_api(
            {"id": "sb-2", "status": "stopped", "memory_mb": 1024, "disk_gb": 10}
        )
        assert info.memory_mb == 1024
        assert info.created_at is None

    def test_timestamp_parses_zulu(self):
        early = SandboxInfo(id="a", status="running", created_at="2026-01-01T00:00:00.000Z")
        late = SandboxInfo(id="b", status="running", created_at="2026-02-01T00:00:00Z")
        assert early.created_at_timestamp() < late.created_at_timestamp()

    @pytest.mark.parametrize("created_at", [None, "", "yesterday", "2026-13-45"])
    def test_timestamp_missing_or_invalid(self, created_at):
        info = SandboxInfo(id="a", status="running", created_at=created_at)
        assert info.created_at_timestamp() is None

    @pytest.mark.parametrize("created_at", [1700000000000, 1.5, ["2026"]])
    def test_from_api_non_string_timestamp(self, created_at):
        info = SandboxInfo.from_api({"id": "a", "status": "running", "createdAt": created_at})
        assert isinstance(info.created_at, str)
        assert info.created_at_timestamp() is None

    def test_timestamp_non_string_value(self):
        info = SandboxInfo(id="a", status="running", created_at=1700000000000)  # type: ignore[arg-type]
        assert info.created_at_timestamp() is None

    @pytest.mark.parametrize(
        "created_at",
        [
            "2026-01-01T00:00:00.12Z",
            "2026-01-01T00:00:00.1Z",
            "2026-01-01T00:00:00.120000000Z",
            "2026-01-01T00:00:00.1200+00:00",
        ],
    )
    def test_timestamp_any_fraction_width(self, created_at):
        info = SandboxInfo(id="a", status="running", created_at=created_at)
        base = SandboxInfo(id="b", status="running", created_at="2026-01-01T00:00:00Z")
        assert info.created_at_timestamp() is not None
        assert 0 < info.created_at_timestamp() - base.created_at_timestamp() < 1

    @pytest.mark.parametrize("status", ["running", "RUNNING", "Running"])
    def test_is_running_case_insensitive(self, status):
        assert SandboxInfo(id="a", status=status).is_running

    def test_is_frozen(self):
        info = SandboxInfo(id="a", status="running")
        with pytest.raises(AttributeError):
            info.status = "stopped"  # type: ignore[misc]


class TestSandboxCreateRequest:
    """Tests for SandboxCreateRequest."""

    def test_to_api(self):
        req = SandboxCreateRequest(name="GENESIS", vcpu=1, memory_mb=512, disk_gb=5)
        assert req.to_api() == {"name": "GENESIS", "vcpu": 1, "memory_mb": 512, "disk_gb": 5}

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="name"):
            SandboxCreateRequest(name="", vcpu=1, memory_mb=512, disk_gb=5)

    def test_non_positive_sizing_rejected(self):
        with pytest.raises(ValueError, match="Invalid memory_mb"):
            SandboxCreateRequest(name="x", vcpu=1, memory_mb=0, disk_gb=5)


def test_exec_result_ok():
    assert ExecResult(stdout="", stderr="", exit_code=0).ok
    assert not ExecResult(stdout="", stderr="boom", exit_code=2).ok
