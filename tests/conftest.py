"""Global pytest configuration and shared fakes."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from automaton.types import ExecResult, PortInfo, SandboxCreateRequest, SandboxInfo


class MockConwayClient:
    """In-memory Conway client recording every call."""

    def __init__(
        self,
        sandboxes: list[SandboxInfo] | None = None,
        exec_handler: Callable[[str, int | None], ExecResult] | None = None,
    ):
        self.sandboxes = list(sandboxes or [])
        self.files: dict[str, str] = {}
        self.exec_calls: list[tuple[str, int | None]] = []
        self.create_calls: list[SandboxCreateRequest] = []
        self.list_calls = 0
        self.sandbox_id = ""
        self._exec_handler = exec_handler

    def with_sandbox(self, sandbox_id: str) -> MockConwayClient:
        self.sandbox_id = sandbox_id
        return self

    async def list_sandboxes(self) -> list[SandboxInfo]:
        self.list_calls += 1
        return list(self.sandboxes)

    async def create_sandbox(self, request: SandboxCreateRequest) -> SandboxInfo:
        self.create_calls.append(request)
        info = SandboxInfo(
            id="new-sandbox-id",
            status="running",
            region="us-east",
            vcpu=request.vcpu,
            memory_mb=request.memory_mb,
            disk_gb=request.disk_gb,
            created_at="2026-03-01T00:00:00.000Z",
        )
        self.sandboxes.append(info)
        return info

    async def delete_sandbox(self, sandbox_id: str) -> None:
        self.sandboxes = [s for s in self.sandboxes if s.id != sandbox_id]

    async def exec(self, command: str, timeout_ms: int | None = None) -> ExecResult:
        self.exec_calls.append((command, timeout_ms))
        if self._exec_handler is not None:
            return self._exec_handler(command, timeout_ms)
        return ExecResult(stdout="", stderr="", exit_code=0)

    async def write_file(self, path: str, content: str) -> None:
        self.files[path] = content

    async def read_file(self, path: str) -> str:
        return self.files[path]

    async def expose_port(self, port: int) -> PortInfo:
        return PortInfo(port=port, public_url=f"https://{port}.example.test", sandbox_id="s")

    async def remove_port(self, port: int) -> None:
        return None

    @property
    def commands(self) -> list[str]:
        return [command for command, _ in self.exec_calls]


@pytest.fixture
def conway() -> MockConwayClient:
    return MockConwayClient()


@pytest.fixture
def make_conway() -> type[MockConwayClient]:
    return MockConwayClient


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    # Keep tests away from the real ~/.automaton and any Conway credentials.
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for var in (
        "CONWAY_API_URL",
        "CONWAY_API_KEY",
        "AUTOMATON_NAME",
        "AUTOMATON_SANDBOX_ID",
        "AUTOMATON_LOCAL_DIR",
        "AUTOMATON_TELEMETRY_PATH",
        "AUTOMATON_TELEMETRY",
    ):
        monkeypatch.delenv(var, raising=False)
