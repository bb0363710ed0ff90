"""Main TUI Application for dmsctl."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from prompt_toolkit.application import Application
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import Layout
from prompt_toolkit.layout.containers import HSplit, Window
from prompt_toolkit.layout.controls import FormattedTextControl

from dmsctl.config import DmsCtlConfig
from dmsctl.executor import ExecutorConfig, FanOutExecutor
from dmsctl.gateway import FleetGateway
from dmsctl.models import OperationOutcome
from dmsctl.ui import Theme

from .keymap import KeymapManager
from .render import render_screen
from .state import (
    Effect,
    Event,
    FetchSnapshot,
    FetchTableStats,
    FleetView,
    OperationCompleted,
    Quit,
    RunOperation,
    SnapshotLoaded,
    TableStatsLoaded,
    Tick,
    UserInput,
)

logger = logging.getLogger(__name__)


@dataclass
class TuiApp:
    """
    Interactive fleet view.

    A single dispatcher task owns ``view`` and applies queued events one at a
    time. Key presses, timer ticks and background results all arrive through
    the same queue; background workers never touch ``view`` directly.
    """

    gateway: FleetGateway
    config: DmsCtlConfig = field(default_factory=DmsCtlConfig)
    theme: Theme = field(default_factory=Theme.default)
    keymap: KeymapManager = field(default_factory=KeymapManager)

    view: FleetView = field(init=False)
    events: asyncio.Queue[Event] = field(init=False)

    _app: Application | None = None
    _executor: FanOutExecutor | None = None
    _timer_task: asyncio.Task[None] | None = None
    _workers: set[asyncio.Task[None]] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.view = FleetView(
            auto_refresh=self.config.auto_refresh,
            region=self.gateway.region,
            profile=self.gateway.profile,
        )
        self.events = asyncio.Queue()
        self._executor = FanOutExecutor(self.gateway, ExecutorConfig.from_config(self.config))

    # =========================================================================
    # Event handling
    # =========================================================================

    def post(self, event: Event) -> None:
        self.events.put_nowait(event)

    def apply(self, event: Event) -> bool:
        """Apply one event and launch its effects. Returns False on quit."""
        effects = self.view.handle(event)
        keep_running = self.run_effects(effects)
        self._sync_timer()
        if self._app:
            self._app.invalidate()
        return keep_running

    def run_effects(self, effects: list[Effect]) -> bool:
        keep_running = True
        for effect in effects:
            if isinstance(effect, Quit):
                keep_running = False
            elif isinstance(effect, FetchSnapshot):
                self._spawn(self._fetch_snapshot(effect))
            elif isinstance(effect, FetchTableStats):
                self._spawn(self._fetch_table_stats(effect))
            elif isinstance(effect, RunOperation):
                self._spawn(self._run_operation(effect))
        return keep_running

    @property
    def timer_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._workers.add(task)
        task.add_done_callback(self._workers.discard)

    def _sync_timer(self) -> None:
        if self.view.timer_armed and not self.timer_running:
            self._timer_task = asyncio.get_running_loop().create_task(self._timer_loop())
        elif not self.view.timer_armed and self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    async def _timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.refresh_interval)
            self.post(Tick())

    async def _dispatch_loop(self) -> None:
        while True:
            event = await self.events.get()
            if not self.apply(event):
                if self._app:
                    self._app.exit()
                return

    # =========================================================================
    # Background workers
    # =========================================================================

    async def _fetch_snapshot(self, effect: FetchSnapshot) -> None:
        # Catch-all: failures become result events, never dispatcher crashes
        try:
            tasks = await self.gateway.list_tasks()
        except Exception as e:
            logger.info("Fleet refresh failed", extra={"error": str(e)})
            self.post(SnapshotLoaded(effect.token, error=str(e)))
            return
        self.post(SnapshotLoaded(effect.token, tuple(tasks)))

    async def _fetch_table_stats(self, effect: FetchTableStats) -> None:
        try:
            stats = await self.gateway.get_table_statistics(effect.arn)
        except Exception as e:
            logger.info("Table statistics failed", extra={"arn": effect.arn, "error": str(e)})
            self.post(TableStatsLoaded(effect.token, effect.arn, error=str(e)))
            return
        self.post(TableStatsLoaded(effect.token, effect.arn, tuple(stats)))

    async def _run_operation(self, effect: RunOperation) -> None:
        try:
            outcomes = await self._executor.execute(list(effect.targets), effect.operation)
        except Exception as e:
            logger.warning(
                "Operation batch failed",
                extra={"operation": effect.operation.verb, "error": str(e)},
            )
            outcomes = [
                OperationOutcome.failed(arn, effect.operation.verb, str(e)) for arn in effect.targets
            ]
        self.post(OperationCompleted(effect.token, effect.operation, tuple(outcomes)))

    # =========================================================================
    # prompt_toolkit
    # =========================================================================

    def _get_screen(self) -> ANSI:
        width = None
        if self._app is not None:
            width = self._app.output.get_size().columns
        help_items = self.keymap.get_help_text(self.view.key_context)
        return ANSI(render_screen(self.view, self.theme, help_items, width=width))

    def _build_layout(self) -> Layout:
        body = Window(content=FormattedTextControl(self._get_screen), wrap_lines=False)
        return Layout(HSplit([body]))

    def _build_keybindings(self) -> KeyBindings:
        kb = KeyBindings()
        for key in self.keymap.all_keys():
            kb.add(key)(self._key_handler(key))
        return kb

    def _key_handler(self, key: str):
        def handler(event) -> None:
            action = self.keymap.resolve(key, self.view.key_context)
            if action is not None:
                self.post(UserInput(action))

        return handler

    async def run(self) -> None:
        """Run the TUI until the user quits."""
        self._app = Application(
            layout=self._build_layout(),
            key_bindings=self._build_keybindings(),
            full_screen=True,
            mouse_support=False,
        )
        # Bare Esc is a binding; don't wait long for an escape sequence
        self._app.ttimeoutlen = 0.05

        dispatcher = asyncio.create_task(self._dispatch_loop())
        self.run_effects(self.view.start())

        try:
            await self._app.run_async()
        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            await self.shutdown(dispatcher)

    async def shutdown(self, *extra: asyncio.Task[Any]) -> None:
        """Cancel the timer, outstanding workers and any extra tasks."""
        pending = [*extra, *self._workers]
        if self._timer_task is not None:
            pending.append(self._timer_task)
            self._timer_task = None
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass


async def run_tui(gateway: FleetGateway, config: DmsCtlConfig | None = None) -> None:
    """Run the fleet TUI.

    Args:
        gateway: Fleet gateway to read from and act on
        config: DmsCtlConfig instance (optional)
    """
    config = config or DmsCtlConfig()
    app = TuiApp(gateway=gateway, config=config, theme=Theme.named(config.ui_theme))
    await app.run()
