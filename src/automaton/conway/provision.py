"""Sandbox provisioning and state sync.

- ensure_sandbox(): adopt the newest running sandbox or create a minimal one
- sync_state_to_sandbox(): push allow-listed state files and skill docs,
  never anything on the sensitive deny-list
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
import weakref
from functools import cmp_to_key
from pathlib import Path
from typing import TYPE_CHECKING

from ..types import SandboxCreateRequest, SandboxInfo
from .commands import mkdir_p, run_remote
from .paths import SANDBOX_AUTOMATON_DIR, SANDBOX_SKILLS_DIR

if TYPE_CHECKING:
    from ..config import AutomatonConfig
    from .client import ConwayClient

logger = logging.getLogger(__name__)

DEFAULT_SANDBOX_NAME = "automaton"

# Minimal resource profile for newly created sandboxes.
DEFAULT_VCPU = 1
DEFAULT_MEMORY_MB = 512
DEFAULT_DISK_GB = 5

ALLOWED_SYNC_FILES = ("constitution.md", "SOUL.md", "WORKLOG.md")

SENSITIVE_FILES = frozenset(
    {
        "wallet.json",
        "automaton.json",
        "config.json",
        "state.db",
        "state.db-wal",
        "state.db-shm",
    }
)

SKILL_MARKER = "SKILL.md"

GITIGNORE_CONTENT = """# Sensitive files - never commit
wallet.json
automaton.json
config.json
state.db
state.db-wal
state.db-shm
logs/
*.log
*.err
"""

# One lock per (event loop, agent name) so concurrent callers in this process
# cannot both observe "nothing running" and create two sandboxes.
_provision_locks: weakref.WeakKeyDictionary[
    asyncio.AbstractEventLoop, dict[str, asyncio.Lock]
] = weakref.WeakKeyDictionary()


def _provision_lock(name: str) -> asyncio.Lock:
    locks = _provision_locks.setdefault(asyncio.get_running_loop(), {})
    lock = locks.get(name)
    if lock is None:
        lock = locks[name] = asyncio.Lock()
    return lock


def _newest_first(a: SandboxInfo, b: SandboxInfo) -> int:
    ta = a.created_at_timestamp()
    tb = b.created_at_timestamp()
    if ta is None or tb is None:
        return 0
    return (tb > ta) - (tb < ta)


def select_running_sandbox(sandboxes: list[SandboxInfo]) -> SandboxInfo | None:
    """Pick the most recently created running sandbox, if any."""
    running = [s for s in sandboxes if s.status.lower() == "running"]
    if not running:
        return None
    return sorted(running, key=cmp_to_key(_newest_first))[0]


async def ensure_sandbox(client: ConwayClient, config: AutomatonConfig) -> SandboxInfo:
    """
    Return a running sandbox for this automaton, creating one if needed.

    Adopting an existing sandbox makes no creation call. Errors from the
    control plane propagate unchanged.
    """
    name = config.name or DEFAULT_SANDBOX_NAME
    async with _provision_lock(name):
        sandboxes = await client.list_sandboxes()
        chosen = select_running_sandbox(sandboxes)
        if chosen is not None:
            logger.info("[sandbox] adopting existing running sandbox: %s", chosen.id)
            return chosen

        created = await client.create_sandbox(
            SandboxCreateRequest(
                name=name,
                vcpu=DEFAULT_VCPU,
                memory_mb=DEFAULT_MEMORY_MB,
                disk_gb=DEFAULT_DISK_GB,
            )
        )
        logger.info("[sandbox] created new sandbox: %s", created.id)
        return created


def _read_verbatim(path: Path) -> str | None:
    """Read a regular file byte-for-byte (no newline translation), or None."""
    if not path.is_file():
        return None
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


async def sync_state_to_sandbox(client: ConwayClient, local_automaton_dir: Path | str) -> None:
    """
    Push local state into the sandbox state directory.

    Each file write is independent: a failure part way leaves earlier files
    synced, and re-running converges.
    """
    local_dir = Path(local_automaton_dir).expanduser()
    await run_remote(client, mkdir_p(SANDBOX_SKILLS_DIR))

    for name in ALLOWED_SYNC_FILES:
        if name in SENSITIVE_FILES:
            continue
        try:
            content = _read_verbatim(local_dir / name)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("[sandbox] skipping %s: %s", name, e)
            continue
        if content is None:
            logger.warning("[sandbox] skipping %s: not found in %s", name, local_dir)
            continue
        await client.write_file(posixpath.join(SANDBOX_AUTOMATON_DIR, name), content)

    await client.write_file(posixpath.join(SANDBOX_AUTOMATON_DIR, ".gitignore"), GITIGNORE_CONTENT)

    local_skills_dir = local_dir / "skills"
    if not local_skills_dir.is_dir():
        return

    for entry in sorted(local_skills_dir.iterdir(), key=lambda p: p.name):
        skill_name = entry.name
        if not skill_name or skill_name in SENSITIVE_FILES:
            continue
        if not entry.is_dir():
            continue
        marker = entry / SKILL_MARKER
        if not marker.is_file():
            continue

        sandbox_skill_dir = posixpath.join(SANDBOX_SKILLS_DIR, skill_name)
        await run_remote(client, mkdir_p(sandbox_skill_dir))
        try:
            content = _read_verbatim(marker) or ""
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("[sandbox] skipping skill %s: %s", skill_name, e)
            continue
        await client.write_file(posixpath.join(sandbox_skill_dir, SKILL_MARKER), content)
