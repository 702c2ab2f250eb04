"""Conway sandbox provisioning and git-versioned state for an automaton."""

__version__ = "0.1.0"
