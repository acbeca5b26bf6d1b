"""Shared test fixtures for machine-setup tests."""

import logging
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest
from typer.testing import CliRunner

from machine_setup.errors import CommandError, StepError
from machine_setup.models import Probe, Step, StepId, StepResult
from machine_setup.services.machine import MachineState


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


class FakeRunner:
    """subprocess.run stand-in that answers by command prefix.

    Commands without a configured response exit with ``default_returncode``
    and empty output. Every call is recorded in ``calls``.
    """

    def __init__(self, default_returncode: int = 0) -> None:
        self.default_returncode = default_returncode
        self.responses: dict[tuple[str, ...], tuple[int, str]] = {}
        self.calls: list[list[str]] = []
        self.kwargs: list[dict[str, object]] = []

    def respond(self, *prefix: str, returncode: int = 0, stdout: str = "") -> None:
        """Answer commands starting with prefix."""
        self.responses[prefix] = (returncode, stdout)

    def __call__(self, args: Sequence[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        args = list(args)
        self.calls.append(args)
        self.kwargs.append(kwargs)
        for prefix in sorted(self.responses, key=len, reverse=True):
            if tuple(args[: len(prefix)]) == prefix:
                returncode, stdout = self.responses[prefix]
                return subprocess.CompletedProcess(args, returncode, stdout, "")
        return subprocess.CompletedProcess(args, self.default_returncode, "", "")

    def ran(self, *prefix: str) -> bool:
        """Return True if any recorded call starts with prefix."""
        return any(tuple(call[: len(prefix)]) == prefix for call in self.calls)


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Fake subprocess runner where every command succeeds by default."""
    return FakeRunner()


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    """Directory used as the whole PATH of the fake machine."""
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def install_tool(bin_dir: Path) -> Callable[[str], str]:
    """Create an executable stub in bin_dir and return its path."""

    def install(name: str) -> str:
        tool = bin_dir / name
        tool.write_text("#!/bin/sh\n")
        tool.chmod(0o755)
        return str(tool)

    return install


@pytest.fixture
def machine(tmp_path: Path, bin_dir: Path, fake_runner: FakeRunner) -> MachineState:
    """MachineState with a temporary home, an empty PATH and a fake runner."""
    home = tmp_path / "home"
    home.mkdir()
    return MachineState(
        home=home,
        env={"PATH": str(bin_dir)},
        search_paths=(),
        runner=fake_runner,
        prompt=lambda text: None,
    )


class StepRecorder:
    """Builds fake steps and records which probes and applies ran."""

    def __init__(self) -> None:
        self.probed: list[StepId] = []
        self.applied: list[StepId] = []

    def step(
        self,
        step_id: StepId,
        *,
        needed: bool = True,
        prerequisites: tuple[StepId, ...] = (),
        category: str = "installed",
        fail: bool = False,
        probe_error: bool = False,
    ) -> Step:
        def probe(state: MachineState) -> Probe:
            self.probed.append(step_id)
            if probe_error:
                raise CommandError("tool missing")
            return Probe(needed=needed, reason="not there" if needed else "already there")

        def apply(state: MachineState) -> StepResult:
            self.applied.append(step_id)
            if fail:
                raise StepError("boom")
            return StepResult(category=category, detail=f"{step_id.value} done")

        return Step(
            id=step_id,
            label=f"Step {step_id.value}",
            probe=probe,
            apply=apply,
            prerequisites=prerequisites,
        )


@pytest.fixture
def recorder() -> StepRecorder:
    """Fresh StepRecorder."""
    return StepRecorder()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo configure_logging's rebinding of the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
