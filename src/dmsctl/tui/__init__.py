"""Interactive terminal UI for watching and operating a replication fleet."""

from .app import TuiApp, run_tui
from .keymap import Action, KeyBinding, KeymapManager
from .state import FleetView, LoadingReason, ViewState

__all__ = [
    "Action",
    "FleetView",
    "KeyBinding",
    "KeymapManager",
    "LoadingReason",
    "TuiApp",
    "ViewState",
    "run_tui",
]
