"""Sandbox path resolution.

Single source of truth for the sandbox home directory and for turning
agent-supplied paths into absolute paths inside the Conway sandbox VM.
"""

from __future__ import annotations

import posixpath

# Home directory inside the Conway sandbox VM.
SANDBOX_HOME = "/root"

# State directory in the sandbox: /root/.automaton
SANDBOX_AUTOMATON_DIR = posixpath.join(SANDBOX_HOME, ".automaton")

SANDBOX_SKILLS_DIR = posixpath.join(SANDBOX_AUTOMATON_DIR, "skills")


def resolve_sandbox_path(file_path: str) -> str:
    """
    Resolve a path to an absolute, normalized path in the sandbox.

    - ``~`` or ``~/...`` resolves under SANDBOX_HOME
    - relative paths resolve under SANDBOX_HOME
    - absolute paths are only normalized

    The sandbox is always POSIX, so this never consults the local OS path rules.
    """
    trimmed = file_path.strip()
    if trimmed.startswith("~"):
        rest = trimmed[1:]
        if rest.startswith("/"):
            rest = rest[1:]
        return posixpath.normpath(posixpath.join(SANDBOX_HOME, rest))
    if not posixpath.isabs(trimmed):
        return posixpath.normpath(posixpath.join(SANDBOX_HOME, trimmed))
    return _normalize_absolute(trimmed)


def _normalize_absolute(path: str) -> str:
    normalized = posixpath.normpath(path)
    # normpath keeps a leading "//" (POSIX implementation-defined); collapse it.
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized
