"""CLI integration tests for machine-setup."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from machine_setup.cli import app
from machine_setup.core import Registry
from machine_setup.models import StepId
from machine_setup.steps import GROUPS


@pytest.fixture
def fake_catalog(recorder):
    """Patch the CLI to use recorder steps for every step id.

    Steps are satisfied unless listed in ``needed``; ``fail`` makes a
    step's apply raise.
    """

    def install(needed=(), fail=(), platform="Darwin"):
        steps = [
            recorder.step(
                step_id, needed=step_id in needed or step_id in fail, fail=step_id in fail
            )
            for step_id in StepId
        ]
        registry = Registry(steps)
        patches = [
            patch("machine_setup.cli.build_registry", return_value=registry),
            patch("machine_setup.cli.current_platform", return_value=platform),
        ]
        for p in patches:
            p.start()
        return patches

    started = []

    def start(**kwargs):
        started.extend(install(**kwargs))
        return recorder

    yield start
    for p in started:
        p.stop()


@pytest.fixture
def base_args(tmp_path: Path) -> list[str]:
    """Options that keep a run away from the real home directory."""
    return [
        "--no-color",
        "--config",
        str(tmp_path / "config.toml"),
        "--log-dir",
        str(tmp_path / "logs"),
    ]


class TestVersionAndHelp:
    """Tests for --version and --help."""

    def test_version_shows_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "machine-setup 0.1.0" in result.output

    def test_help_lists_groups_and_steps(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "--only" in result.output
        for group in GROUPS:
            assert group in result.output
        assert "brew-bundle" in result.output
        assert "1password" in result.output

    def test_short_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["-h"])
        assert result.exit_code == 0
        assert "default-terminal" in result.output


class TestUsageErrors:
    """Tests for rejected invocations."""

    def test_unknown_flag_exits_one(self, runner: CliRunner, fake_catalog) -> None:
        recorder = fake_catalog()
        result = runner.invoke(app, ["--bogus"])
        assert result.exit_code == 1
        assert recorder.probed == []

    def test_unknown_token_runs_nothing(
        self, runner: CliRunner, fake_catalog, base_args
    ) -> None:
        recorder = fake_catalog(needed=(StepId.DOCK,))
        result = runner.invoke(app, [*base_args, "--only", "dock,nope"])
        assert result.exit_code == 1
        assert "Unknown section: nope" in result.output
        assert recorder.probed == []
        assert recorder.applied == []

    def test_unknown_token_json(self, runner: CliRunner, fake_catalog, base_args) -> None:
        fake_catalog()
        result = runner.invoke(app, [*base_args, "--json", "-q", "--skip", "nope"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data == {"error": "Unknown section: nope", "token": "nope"}

    def test_invalid_config(self, runner: CliRunner, fake_catalog, tmp_path, base_args) -> None:
        fake_catalog()
        (tmp_path / "config.toml").write_text("[machine\n")
        result = runner.invoke(app, base_args)
        assert result.exit_code == 1
        assert "Invalid config" in result.output

    def test_live_run_requires_macos(self, runner: CliRunner, fake_catalog, base_args) -> None:
        recorder = fake_catalog(needed=(StepId.DOCK,), platform="Linux")
        result = runner.invoke(app, base_args)
        assert result.exit_code == 1
        assert "macOS only" in result.output
        assert recorder.probed == []


class TestDryRun:
    """Tests for --dry-run."""

    def test_dry_run_lists_planned_changes(
        self, runner: CliRunner, fake_catalog, base_args
    ) -> None:
        recorder = fake_catalog(needed=(StepId.HOMEBREW, StepId.DOCK), platform="Linux")
        result = runner.invoke(app, [*base_args, "--dry-run"])
        assert result.exit_code == 0
        assert "Planned changes:" in result.output
        assert "Step homebrew: not there" in result.output
        assert "Step dock: not there" in result.output
        assert recorder.applied == []

    def test_plan_alias_with_nothing_needed(
        self, runner: CliRunner, fake_catalog, base_args
    ) -> None:
        recorder = fake_catalog()
        result = runner.invoke(app, [*base_args, "--plan"])
        assert result.exit_code == 0
        assert "No changes needed." in result.output
        assert recorder.probed == list(StepId)

    def test_dry_run_json(self, runner: CliRunner, fake_catalog, base_args) -> None:
        fake_catalog(needed=(StepId.SAFARI,))
        result = runner.invoke(app, [*base_args, "--dry-run", "--json", "-q"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["mode"] == "dry-run"
        assert data["planned"] == ["Step safari: not there"]


class TestLiveRun:
    """Tests for live runs."""

    def test_only_and_skip_tokens(self, runner: CliRunner, fake_catalog, base_args) -> None:
        recorder = fake_catalog()
        result = runner.invoke(
            app, [*base_args, "--only", "dock,finder", "--only", "safari", "--skip", "finder"]
        )
        assert result.exit_code == 0
        assert recorder.applied == [StepId.DOCK, StepId.SAFARI]
        assert "Installed:" in result.output
        assert "Step finder (skipped by flag)" in result.output

    def test_legacy_group_flag(self, runner: CliRunner, fake_catalog, base_args) -> None:
        recorder = fake_catalog()
        result = runner.invoke(app, [*base_args, "--defaults-only", "--dry-run"])
        assert result.exit_code == 0
        assert recorder.probed == list(GROUPS["defaults"])

    def test_all_satisfied(self, runner: CliRunner, fake_catalog, base_args) -> None:
        recorder = fake_catalog()
        result = runner.invoke(app, base_args)
        assert result.exit_code == 0
        assert recorder.applied == []
        assert "Skipped:" in result.output
        assert "Installed:" not in result.output

    def test_failure_exits_one_and_stops(
        self, runner: CliRunner, fake_catalog, base_args, tmp_path
    ) -> None:
        recorder = fake_catalog(needed=(StepId.XCODE_CLT, StepId.DOCK), fail=(StepId.HOMEBREW,))
        result = runner.invoke(app, base_args)
        assert result.exit_code == 1
        assert recorder.applied == [StepId.XCODE_CLT, StepId.HOMEBREW]
        assert StepId.DOCK not in recorder.probed
        assert "Failed:" in result.output
        assert "Step homebrew failed" in result.output

        transcripts = list((tmp_path / "logs").glob("*-setup.log"))
        assert len(transcripts) == 1
        assert "Step homebrew failed" in transcripts[0].read_text()

    def test_manual_steps_listed(
        self, runner: CliRunner, fake_catalog, base_args, tmp_path
    ) -> None:
        fake_catalog()
        (tmp_path / "config.toml").write_text('manual_steps = ["Pair the keyboard"]\n')
        result = runner.invoke(app, base_args)
        assert result.exit_code == 0
        assert "Manual steps" in result.output
        assert "- Pair the keyboard" in result.output

    def test_brewfile_entries_listed(
        self, runner: CliRunner, fake_catalog, base_args, tmp_path
    ) -> None:
        fake_catalog()
        brewfile = tmp_path / "Brewfile"
        brewfile.write_text('brew "git"\ncask "ghostty"\n')
        (tmp_path / "config.toml").write_text(f'[homebrew]\nbrewfile = "{brewfile}"\n')
        result = runner.invoke(app, base_args)
        assert result.exit_code == 0
        assert "CLI tools: git" in result.output
        assert "Apps (casks): ghostty" in result.output


class TestWriteConfig:
    """Tests for --write-config."""

    def test_write_config(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "setup" / "config.toml"
        result = runner.invoke(app, ["--no-color", "--write-config", "--config", str(config)])
        assert result.exit_code == 0
        assert config.exists()
        assert "Created config template" in result.output

    def test_write_config_refuses_overwrite(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "config.toml"
        config.write_text("# mine\n")
        result = runner.invoke(app, ["--no-color", "--write-config", "--config", str(config)])
        assert result.exit_code == 1
        assert config.read_text() == "# mine\n"


class TestTranscript:
    """Tests for the run transcript written by every run."""

    @staticmethod
    def _transcript(tmp_path: Path) -> str:
        transcripts = list((tmp_path / "logs").glob("*-setup.log"))
        assert len(transcripts) == 1
        return transcripts[0].read_text()

    def test_json_summary_in_transcript(
        self, runner: CliRunner, fake_catalog, base_args, tmp_path
    ) -> None:
        fake_catalog(needed=(StepId.SAFARI,))
        result = runner.invoke(app, [*base_args, "--dry-run", "--json"])
        assert result.exit_code == 0
        assert "Step safari: not there" in self._transcript(tmp_path)

    def test_unknown_token_writes_transcript(
        self, runner: CliRunner, fake_catalog, base_args, tmp_path
    ) -> None:
        fake_catalog()
        result = runner.invoke(app, [*base_args, "--only", "bogus"])
        assert result.exit_code == 1
        assert "Unknown section: bogus" in self._transcript(tmp_path)

    def test_invalid_config_writes_transcript(
        self, runner: CliRunner, fake_catalog, base_args, tmp_path
    ) -> None:
        fake_catalog()
        (tmp_path / "config.toml").write_text("[machine\n")
        result = runner.invoke(app, base_args)
        assert result.exit_code == 1
        assert "Invalid config" in self._transcript(tmp_path)

    def test_non_macos_live_run_writes_transcript(
        self, runner: CliRunner, fake_catalog, base_args, tmp_path
    ) -> None:
        fake_catalog(platform="Linux")
        result = runner.invoke(app, base_args)
        assert result.exit_code == 1
        assert "macOS only" in self._transcript(tmp_path)
