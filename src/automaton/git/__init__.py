"""Git-backed versioning of the automaton state directory."""

from .state_versioning import (
    NO_CHANGES,
    StateVersioning,
    commit_config_change,
    commit_heartbeat_change,
    commit_skill_change,
    commit_soul_update,
    commit_state_change,
    get_state_history,
    init_state_repo,
)
from .tools import GitCommandError

__all__ = [
    "GitCommandError",
    "NO_CHANGES",
    "StateVersioning",
    "commit_config_change",
    "commit_heartbeat_change",
    "commit_skill_change",
    "commit_soul_update",
    "commit_state_change",
    "get_state_history",
    "init_state_repo",
]
