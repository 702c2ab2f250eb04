"""State versioning.

Version control the automaton's own state directory (~/.automaton/). Every
self-modification is recorded as a categorized git commit, so the
automaton's identity history is auditable and replayable.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from ..conway.paths import resolve_sandbox_path
from .tools import (
    git_commit,
    git_config_identity,
    git_init,
    git_log,
    git_repo_exists,
    git_status,
)

if TYPE_CHECKING:
    from ..conway.client import ConwayClient
    from ..types import GitLogEntry

logger = logging.getLogger(__name__)

AUTOMATON_DIR = "~/.automaton"

NO_CHANGES = "No changes to commit"

GENESIS_MESSAGE = "genesis: automaton state repository initialized"

COMMITTER_NAME = "Automaton"
COMMITTER_EMAIL = "automaton@conway.tech"

SKILL_ACTIONS = frozenset({"install", "remove", "update"})

# Written on first init only. Unlike the sync manifest this one does not
# list automaton.json.
REPO_GITIGNORE = """# Sensitive files - never commit
wallet.json
config.json
state.db
state.db-wal
state.db-shm
logs/
*.log
*.err
"""


def resolve_home(path: str) -> str:
    """Expand a leading ``~`` against $HOME as it is right now."""
    home = os.environ.get("HOME") or "/root"
    if path.startswith("~"):
        return f"{home}{path[1:]}"
    return path


def default_state_dir() -> str:
    return resolve_home(AUTOMATON_DIR)


def _repo_dir(repo_path: str | None) -> str:
    # Explicit paths are sandbox-side: "~" means the sandbox home, not ours.
    if repo_path:
        return resolve_sandbox_path(repo_path)
    return default_state_dir()


async def init_state_repo(
    client: ConwayClient,
    repo_path: str | None = None,
    author_name: str = COMMITTER_NAME,
    author_email: str = COMMITTER_EMAIL,
) -> None:
    """
    Initialize the state repository, once.

    If ``<dir>/.git`` already exists nothing beyond the probe is executed, so
    existing history is never reset.
    """
    repo_dir = _repo_dir(repo_path)

    if await git_repo_exists(client, repo_dir):
        logger.debug("State repo already initialized at %s", repo_dir)
        return

    await git_init(client, repo_dir)
    await client.write_file(f"{repo_dir.rstrip('/')}/.gitignore", REPO_GITIGNORE)
    await git_config_identity(client, repo_dir, author_name, author_email)
    await git_commit(client, repo_dir, GENESIS_MESSAGE, allow_empty=True)
    logger.info("Initialized state repo at %s", repo_dir)


async def commit_state_change(
    client: ConwayClient,
    description: str,
    category: str = "state",
    repo_path: str | None = None,
) -> str:
    """
    Commit pending state changes as ``"<category>: <description>"``.

    Returns NO_CHANGES without committing when the working tree is clean.
    """
    repo_dir = _repo_dir(repo_path)

    status = await git_status(client, repo_dir)
    if status.clean:
        return NO_CHANGES

    message = f"{category}: {description}"
    return await git_commit(client, repo_dir, message)


async def commit_soul_update(
    client: ConwayClient, description: str, repo_path: str | None = None
) -> str:
    return await commit_state_change(client, description, "soul", repo_path)


async def commit_skill_change(
    client: ConwayClient,
    skill_name: str,
    action: str,
    repo_path: str | None = None,
) -> str:
    """Commit after a skill install, removal or update."""
    if action not in SKILL_ACTIONS:
        raise ValueError(f"Invalid action: {action}. Must be one of {sorted(SKILL_ACTIONS)}")
    return await commit_state_change(client, f"{action} skill: {skill_name}", "skill", repo_path)


async def commit_heartbeat_change(
    client: ConwayClient, description: str, repo_path: str | None = None
) -> str:
    return await commit_state_change(client, description, "heartbeat", repo_path)


async def commit_config_change(
    client: ConwayClient, description: str, repo_path: str | None = None
) -> str:
    return await commit_state_change(client, description, "config", repo_path)


async def get_state_history(
    client: ConwayClient, limit: int = 20, repo_path: str | None = None
) -> list[GitLogEntry]:
    return await git_log(client, _repo_dir(repo_path), limit)


class StateVersioning:
    """
    State versioning bound to one explicit state directory.

    The directory is fixed at construction (typically from
    `AutomatonConfig.state.sandbox_dir`), so callers do not depend on $HOME
    at commit time.
    """

    def __init__(
        self,
        client: ConwayClient,
        state_dir: str,
        author_name: str = COMMITTER_NAME,
        author_email: str = COMMITTER_EMAIL,
    ):
        if not state_dir:
            raise ValueError("state_dir must not be empty")
        self.client = client
        self.state_dir = resolve_sandbox_path(state_dir)
        self.author_name = author_name
        self.author_email = author_email

    async def init(self) -> None:
        await init_state_repo(self.client, self.state_dir, self.author_name, self.author_email)

    async def commit(self, description: str, category: str = "state") -> str:
        return await commit_state_change(self.client, description, category, self.state_dir)

    async def commit_soul(self, description: str) -> str:
        return await commit_soul_update(self.client, description, self.state_dir)

    async def commit_skill(self, skill_name: str, action: str) -> str:
        return await commit_skill_change(self.client, skill_name, action, self.state_dir)

    async def commit_heartbeat(self, description: str) -> str:
        return await commit_heartbeat_change(self.client, description, self.state_dir)

    async def commit_config(self, description: str) -> str:
        return await commit_config_change(self.client, description, self.state_dir)

    async def history(self, limit: int = 20) -> list[GitLogEntry]:
        return await get_state_history(self.client, limit, self.state_dir)
