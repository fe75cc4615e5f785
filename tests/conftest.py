"""
Pytest configuration and fixtures for zabbix_setup tests.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable, Generator, List, Tuple

import pytest
from rich.console import Console

from zabbix_setup.actions import ActionResult
from zabbix_setup.logsink import LogSink
from zabbix_setup.steps import Step, StepRegistry, StepStatus
from zabbix_setup.theme import make_console


# ============================================================================
# Fakes
# ============================================================================


class FakeAction:
    """Deterministic action that records how often it ran."""

    def __init__(
        self,
        ok: bool = True,
        output: bytes = b"",
        description: str = "fake",
        returncode: int | None = None,
    ) -> None:
        self.ok = ok
        self.output = output
        self.description = description
        self.returncode = (0 if ok else 1) if returncode is None else returncode
        self.calls = 0

    def run(self, stream=None) -> ActionResult:
        self.calls += 1
        return ActionResult(ok=self.ok, output=self.output, returncode=self.returncode)


class RaisingAction:
    description = "raises"

    def run(self, stream=None) -> ActionResult:
        raise RuntimeError("boom")


class RecordingView:
    """ChecklistView that records draws and transitions."""

    def __init__(self) -> None:
        self.draws: List[Tuple[StepStatus, ...]] = []
        self.changes: List[Tuple[int, StepStatus]] = []
        self.parked = 0

    def draw(self, registry: StepRegistry) -> None:
        self.draws.append(registry.statuses())

    def status_changed(self, registry: StepRegistry, step: Step) -> None:
        self.changes.append((step.index, step.status))

    def park_cursor(self) -> None:
        self.parked += 1


class RecordingSurface:
    """TerminalSurface that records primitive calls instead of drawing."""

    def __init__(self, is_interactive: bool = True) -> None:
        self.is_interactive = is_interactive
        self.calls: List[tuple] = []

    def write_line(self, text) -> None:
        self.calls.append(("write", str(text)))

    def save_cursor(self) -> None:
        self.calls.append(("save",))

    def restore_cursor(self) -> None:
        self.calls.append(("restore",))

    def move_to(self, row: int, column: int = 0) -> None:
        self.calls.append(("move", row, column))

    def clear_line(self) -> None:
        self.calls.append(("clear",))


# ============================================================================
# Console Fixtures
# ============================================================================


@pytest.fixture
def terminal_console() -> Console:
    """Console that behaves like an interactive 80x40 terminal."""
    return make_console(
        file=io.StringIO(),
        force_terminal=True,
        color_system="truecolor",
        width=80,
        height=40,
        _environ={"TERM": "xterm-256color"},
    )


@pytest.fixture
def plain_console() -> Console:
    """Console writing to a non-interactive stream."""
    return make_console(
        file=io.StringIO(),
        force_terminal=False,
        width=400,
        _environ={},
    )


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def fake_action() -> Callable[..., FakeAction]:
    return FakeAction


@pytest.fixture
def raising_action() -> RaisingAction:
    return RaisingAction()


@pytest.fixture
def recording_view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def recording_surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "run.log"


@pytest.fixture
def sink(log_path: Path) -> Generator[LogSink, None, None]:
    log_sink = LogSink.open(log_path)
    yield log_sink
    log_sink.close()


@pytest.fixture
def make_registry(recording_view: RecordingView) -> Callable[..., StepRegistry]:
    """Build a registry from (label, ok, allow_failure) triples."""

    def _make(*rows: Tuple[str, bool, bool], view=recording_view) -> StepRegistry:
        return StepRegistry.initialize(
            [label for label, _, _ in rows],
            [allowed for _, _, allowed in rows],
            [
                FakeAction(ok=ok, output=f"{label} output\n".encode(), description=f"run {label}")
                for label, ok, _ in rows
            ],
            view=view,
        )

    return _make
