"""Git operations executed inside the Conway sandbox.

Each helper issues one remote command through the control-plane client.
A non-zero exit raises GitCommandError; nothing here retries.
"""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from ..conway.commands import SHORT_TIMEOUT_MS, RemoteCommand, RemoteCommandError, run_remote
from ..types import ExecResult, GitLogEntry, GitStatus

if TYPE_CHECKING:
    from ..conway.client import ConwayClient

INIT_TIMEOUT_MS = 10_000
COMMIT_TIMEOUT_MS = 30_000
LOG_TIMEOUT_MS = 10_000

# Field separator for `git log --format`; cannot appear in a commit subject.
_LOG_SEP = "\x1f"


class GitCommandError(RemoteCommandError):
    pass


async def _run_git(client: ConwayClient, command: RemoteCommand) -> ExecResult:
    try:
        return await run_remote(client, command)
    except GitCommandError:
        raise
    except RemoteCommandError as e:
        raise GitCommandError(e.command, e.result) from e


async def git_repo_exists(client: ConwayClient, repo_path: str) -> bool:
    """Probe for `<repo_path>/.git` without failing when it is absent."""
    git_dir = shlex.quote(f"{repo_path.rstrip('/')}/.git")
    result = await client.exec(
        f'test -d {git_dir} && echo "exists" || echo "nope"',
        SHORT_TIMEOUT_MS,
    )
    return result.stdout.strip() == "exists"


async def git_init(client: ConwayClient, repo_path: str) -> str:
    result = await _run_git(
        client,
        RemoteCommand(
            ["mkdir", "-p", repo_path],
            timeout_ms=INIT_TIMEOUT_MS,
            then=[["git", "-C", repo_path, "init"]],
        ),
    )
    return result.stdout.strip()


async def git_config_identity(
    client: ConwayClient, repo_path: str, name: str, email: str
) -> None:
    await _run_git(
        client,
        RemoteCommand(
            ["git", "config", "user.name", name],
            cwd=repo_path,
            timeout_ms=SHORT_TIMEOUT_MS,
            then=[["git", "config", "user.email", email]],
        ),
    )


def parse_status(output: str) -> GitStatus:
    """Parse `git status --porcelain -b` output."""
    status = GitStatus(branch="")
    for line in output.splitlines():
        if not line.strip():
            continue
        if line.startswith("## "):
            branch = line[3:]
            if branch.startswith("No commits yet on "):
                branch = branch[len("No commits yet on "):]
            status.branch = branch.split("...", 1)[0].strip()
            continue
        code, path = line[:2], line[3:]
        if code == "??":
            status.untracked.append(path)
            continue
        if code[0] not in (" ", "?"):
            status.staged.append(path)
        if code[1] != " ":
            status.modified.append(path)
    status.clean = not (status.staged or status.modified or status.untracked)
    return status


async def git_status(client: ConwayClient, repo_path: str) -> GitStatus:
    result = await _run_git(
        client,
        RemoteCommand(
            ["git", "status", "--porcelain", "-b"],
            cwd=repo_path,
            timeout_ms=SHORT_TIMEOUT_MS,
        ),
    )
    return parse_status(result.stdout)


async def git_commit(
    client: ConwayClient,
    repo_path: str,
    message: str,
    add_all: bool = True,
    allow_empty: bool = False,
) -> str:
    """Stage (optionally) and commit; returns a one-line confirmation."""
    commit_argv = ["git", "commit", "-m", message]
    if allow_empty:
        commit_argv.append("--allow-empty")
    if add_all:
        command = RemoteCommand(
            ["git", "add", "-A"],
            cwd=repo_path,
            timeout_ms=COMMIT_TIMEOUT_MS,
            then=[commit_argv],
        )
    else:
        command = RemoteCommand(commit_argv, cwd=repo_path, timeout_ms=COMMIT_TIMEOUT_MS)
    result = await _run_git(client, command)
    first_line = result.stdout.strip().split("\n", 1)[0]
    return f"Committed: {first_line}"


def parse_log(output: str) -> list[GitLogEntry]:
    entries: list[GitLogEntry] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split(_LOG_SEP)
        if len(parts) != 4:
            continue
        commit_hash, message, author, date = parts
        entries.append(GitLogEntry(hash=commit_hash, message=message, author=author, date=date))
    return entries


async def git_log(client: ConwayClient, repo_path: str, limit: int = 10) -> list[GitLogEntry]:
    """Most recent `limit` commits, newest first."""
    if limit <= 0:
        raise ValueError(f"Invalid limit: {limit}. Must be positive")
    result = await _run_git(
        client,
        RemoteCommand(
            [
                "git",
                "log",
                f"--format=%H{_LOG_SEP}%s{_LOG_SEP}%an{_LOG_SEP}%aI",
                "-n",
                str(limit),
            ],
            cwd=repo_path,
            timeout_ms=LOG_TIMEOUT_MS,
        ),
    )
    return parse_log(result.stdout)
