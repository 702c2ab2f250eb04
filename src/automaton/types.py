"""Core data types for sandbox provisioning and state versioning."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# fromisoformat() before 3.11 only takes 3 or 6 fractional digits.
_FRACTION = re.compile(r"\.(\d+)")


def _pad_fraction(match: re.Match[str]) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


@dataclass(frozen=True)
class SandboxInfo:
    """Snapshot of a Conway sandbox as reported by the control plane."""

    id: str
    status: str  # "running", "stopped", ...
    region: str = ""
    vcpu: int = 0
    memory_mb: int = 0
    disk_gb: int = 0
    created_at: str | None = None  # ISO-8601, may be missing or malformed

    @property
    def is_running(self) -> bool:
        return self.status.lower() == "running"

    def created_at_timestamp(self) -> float | None:
        """Return the creation time as a POSIX timestamp, or None if unparseable."""
        if not self.created_at or not isinstance(self.created_at, str):
            return None
        raw = self.created_at.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        raw = _FRACTION.sub(_pad_fraction, raw, count=1)
        try:
            return datetime.fromisoformat(raw).timestamp()
        except ValueError:
            return None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> SandboxInfo:
        """Build from a control-plane payload (camelCase or snake_case keys)."""
        created_at = data.get("created_at") or data.get("createdAt")
        if created_at is not None and not isinstance(created_at, str):
            created_at = str(created_at)
        return cls(
            id=str(data.get("id") or data.get("sandbox_id") or ""),
            status=str(data.get("status") or ""),
            region=str(data.get("region") or ""),
            vcpu=int(data.get("vcpu") or 0),
            memory_mb=int(data.get("memory_mb") or data.get("memoryMb") or 0),
            disk_gb=int(data.get("disk_gb") or data.get("diskGb") or 0),
            created_at=created_at,
        )


@dataclass(frozen=True)
class SandboxCreateRequest:
    """Sizing and name for a new sandbox."""

    name: str
    vcpu: int
    memory_mb: int
    disk_gb: int

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Sandbox name must not be empty")
        for attr in ("vcpu", "memory_mb", "disk_gb"):
            if getattr(self, attr) <= 0:
                raise ValueError(f"Invalid {attr}: {getattr(self, attr)}. Must be positive")

    def to_api(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "vcpu": self.vcpu,
            "memory_mb": self.memory_mb,
            "disk_gb": self.disk_gb,
        }


@dataclass(frozen=True)
class ExecResult:
    """Outcome of a remote shell command."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class PortInfo:
    port: int
    public_url: str
    sandbox_id: str


@dataclass
class GitStatus:
    """Parsed `git status --porcelain -b` output."""

    branch: str
    staged: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)
    clean: bool = True


@dataclass(frozen=True)
class GitLogEntry:
    hash: str
    message: str
    author: str
    date: str
