"""Structured remote commands.

Commands are assembled from argv lists and quoted with ``shlex`` right before
they reach the transport, so paths and commit messages containing spaces or
quotes cannot break out of their argument.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .client import ConwayError

if TYPE_CHECKING:
    from ..types import ExecResult
    from .client import ConwayClient

# Timeouts (ms) for remote commands.
SHORT_TIMEOUT_MS = 5_000
SYNC_TIMEOUT_MS = 10_000


class RemoteCommandError(ConwayError):
    """A remote command exited non-zero."""

    def __init__(self, command: str, result: ExecResult):
        self.command = command
        self.result = result
        detail = result.stderr.strip() or result.stdout.strip()
        super().__init__(f"Remote command failed ({result.exit_code}): {command}\n{detail}")


@dataclass(frozen=True)
class RemoteCommand:
    """An argv to run inside the sandbox, optionally from a working directory."""

    argv: list[str]
    cwd: str | None = None
    timeout_ms: int = SHORT_TIMEOUT_MS
    # Further argvs chained with && after the first.
    then: list[list[str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.argv:
            raise ValueError("Empty argv")
        for arg in [*self.argv, *(a for argv in self.then for a in argv)]:
            if "\x00" in arg:
                raise ValueError("NUL not allowed in remote command arguments")

    def to_shell(self) -> str:
        parts = [shlex.join(self.argv), *(shlex.join(argv) for argv in self.then)]
        if self.cwd:
            parts.insert(0, f"cd {shlex.quote(self.cwd)}")
        return " && ".join(parts)


async def run_remote(client: ConwayClient, command: RemoteCommand) -> ExecResult:
    """Execute ``command`` and raise RemoteCommandError on a non-zero exit."""
    shell = command.to_shell()
    result = await client.exec(shell, command.timeout_ms)
    if result.exit_code != 0:
        raise RemoteCommandError(shell, result)
    return result


def mkdir_p(path: str, timeout_ms: int = SYNC_TIMEOUT_MS) -> RemoteCommand:
    return RemoteCommand(["mkdir", "-p", path], timeout_ms=timeout_ms)
