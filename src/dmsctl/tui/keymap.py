"""Keybinding definitions for the fleet TUI."""

from dataclasses import dataclass, field
from enum import Enum

# NOTE: Avoid __future__.annotations for standalone import in tests (Python 3.14
# dataclasses resolves string annotations via sys.modules).


class Action(str, Enum):
    """TUI actions that can be bound to keys."""

    # Global
    QUIT = "quit"
    REFRESH = "refresh"
    TOGGLE_AUTO_REFRESH = "toggle_auto_refresh"

    # Task list
    UP = "up"
    DOWN = "down"
    TOGGLE_SELECT = "toggle_select"
    CLEAR_SELECTION = "clear_selection"
    OPEN_DETAILS = "open_details"
    START = "start"
    STOP = "stop"
    RESUME = "resume"
    RELOAD = "reload"

    # Details / stats
    BACK = "back"
    TOGGLE_MAPPINGS = "toggle_mappings"
    TABLE_STATS = "table_stats"

    # Error screen
    RETRY = "retry"


@dataclass
class KeyBinding:
    """A single key binding."""

    keys: tuple[str, ...]
    action: Action
    description: str
    when: str = "always"  # always, list, details, stats, loading, error


DEFAULT_BINDINGS: list[KeyBinding] = [
    KeyBinding(keys=("q", "c-c"), action=Action.QUIT, description="Quit"),
    KeyBinding(keys=("f",), action=Action.REFRESH, description="Refresh now"),
    KeyBinding(keys=("a",), action=Action.TOGGLE_AUTO_REFRESH, description="Toggle auto-refresh"),
    # Task list
    KeyBinding(keys=("up", "k"), action=Action.UP, description="Move up", when="list"),
    KeyBinding(keys=("down", "j"), action=Action.DOWN, description="Move down", when="list"),
    KeyBinding(keys=("space",), action=Action.TOGGLE_SELECT, description="Select", when="list"),
    KeyBinding(keys=("c",), action=Action.CLEAR_SELECTION, description="Clear selection", when="list"),
    KeyBinding(keys=("enter",), action=Action.OPEN_DETAILS, description="Details", when="list"),
    KeyBinding(keys=("s",), action=Action.START, description="Start", when="list"),
    KeyBinding(keys=("x",), action=Action.STOP, description="Stop", when="list"),
    KeyBinding(keys=("r",), action=Action.RESUME, description="Resume", when="list"),
    KeyBinding(keys=("l",), action=Action.RELOAD, description="Reload", when="list"),
    # Details
    KeyBinding(keys=("escape", "backspace"), action=Action.BACK, description="Back", when="details"),
    KeyBinding(keys=("t",), action=Action.TOGGLE_MAPPINGS, description="Table mappings", when="details"),
    KeyBinding(keys=("T",), action=Action.TABLE_STATS, description="Table statistics", when="details"),
    # Table stats
    KeyBinding(keys=("escape", "backspace"), action=Action.BACK, description="Back", when="stats"),
    KeyBinding(keys=("escape", "backspace"), action=Action.BACK, description="Back", when="loading"),
    # Error
    KeyBinding(keys=("r",), action=Action.RETRY, description="Retry", when="error"),
]


@dataclass
class KeymapManager:
    """Resolves keys to actions for the current screen and formats help text."""

    bindings: list[KeyBinding] = field(default_factory=lambda: list(DEFAULT_BINDINGS))

    def resolve(self, key: str, context: str) -> Action | None:
        """Find the action bound to ``key`` on the given screen.

        Screen-specific bindings win over global ones.
        """
        fallback = None
        for binding in self.bindings:
            if key not in binding.keys:
                continue
            if binding.when == context:
                return binding.action
            if binding.when == "always" and fallback is None:
                fallback = binding.action
        return fallback

    def all_keys(self) -> list[str]:
        """Every distinct key, in binding order."""
        seen: list[str] = []
        for binding in self.bindings:
            for key in binding.keys:
                if key not in seen:
                    seen.append(key)
        return seen

    def _format_keys(self, keys: tuple[str, ...]) -> str:
        result = []
        for key in keys:
            if key.startswith("c-"):
                result.append(f"Ctrl+{key[2:].upper()}")
            elif key == "escape":
                result.append("Esc")
            elif len(key) == 1:
                result.append(key)
            else:
                result.append(key.capitalize())
        return "/".join(result)

    def get_help_text(self, context: str) -> list[tuple[str, str]]:
        """Get (shortcut, description) pairs for a screen's footer."""
        specific = [b for b in self.bindings if b.when == context]
        general = [b for b in self.bindings if b.when == "always"]
        return [(self._format_keys(b.keys), b.description) for b in specific + general]
