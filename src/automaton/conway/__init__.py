"""Conway sandbox control plane: client, paths and provisioning."""

from .client import ConwayClient, ConwayError, HttpConwayClient
from .commands import RemoteCommand, RemoteCommandError
from .paths import SANDBOX_AUTOMATON_DIR, SANDBOX_HOME, resolve_sandbox_path
from .provision import ensure_sandbox, sync_state_to_sandbox

__all__ = [
    "ConwayClient",
    "ConwayError",
    "HttpConwayClient",
    "RemoteCommand",
    "RemoteCommandError",
    "SANDBOX_AUTOMATON_DIR",
    "SANDBOX_HOME",
    "ensure_sandbox",
    "resolve_sandbox_path",
    "sync_state_to_sandbox",
]
