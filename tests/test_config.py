"""Tests for machine-setup configuration."""

import tomllib
from pathlib import Path

import pytest
from pydantic import ValidationError

from machine_setup.config import (
    ONEPASSWORD_AGENT_SOCKET,
    SetupConfig,
    load_config,
    write_config_template,
)


def test_defaults():
    """Default config should describe a usable machine."""
    config = SetupConfig()
    assert config.machine.name is None
    assert config.homebrew.install_url.endswith("install.sh")
    assert config.homebrew.required_apps == ["/Applications/Xcode.app"]
    assert config.onepassword.agent_socket == ONEPASSWORD_AGENT_SOCKET
    assert config.preferences.dock["autohide"] is True
    assert config.terminal.bundle_id == "com.mitchellh.ghostty"
    assert config.logging.dir.endswith("logs")
    assert config.manual_steps


def test_load_missing_file_returns_defaults(tmp_path: Path):
    """A missing config file means defaults."""
    config = load_config(tmp_path / "nope.toml")
    assert config == SetupConfig()


def test_load_overrides(tmp_path: Path):
    """Values in the file override defaults, other sections keep theirs."""
    path = tmp_path / "config.toml"
    path.write_text(
        '[machine]\nname = "studio"\n\n'
        '[git]\nuser_email = "dev@example.com"\n\n'
        "[preferences.dock]\nautohide = false\ntilesize = 48\n"
    )
    config = load_config(path)
    assert config.machine.name == "studio"
    assert config.git.user_email == "dev@example.com"
    assert config.git.excludes_file == "~/.gitignore_global"
    assert config.preferences.dock == {"autohide": False, "tilesize": 48}
    assert config.node.version == "lts"


def test_preference_value_types_preserved(tmp_path: Path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[preferences.keyboard]\nAppleShowAllExtensions = true\nKeyRepeat = 2\n'
        'Scale = 1.5\nTheme = "Dark"\n'
    )
    keyboard = load_config(path).preferences.keyboard
    assert keyboard["AppleShowAllExtensions"] is True
    assert keyboard["KeyRepeat"] == 2 and isinstance(keyboard["KeyRepeat"], int)
    assert keyboard["Scale"] == 1.5
    assert keyboard["Theme"] == "Dark"


def test_load_invalid_toml(tmp_path: Path):
    path = tmp_path / "config.toml"
    path.write_text("[machine\nname = ")
    with pytest.raises(tomllib.TOMLDecodeError):
        load_config(path)


def test_load_schema_mismatch(tmp_path: Path):
    path = tmp_path / "config.toml"
    path.write_text("[node]\nglobal_packages = 3\n")
    with pytest.raises(ValidationError):
        load_config(path)


def test_write_config_template(tmp_path: Path):
    """The template is valid TOML that loads back into a config."""
    path = tmp_path / "nested" / "config.toml"
    result = write_config_template(path)
    assert result == path
    assert path.exists()

    config = load_config(path)
    assert config.machine.name == "my-mac"
    assert config.git.user_name == "Your Name"
    assert config.homebrew.brewfile == "~/.machine-setup/Brewfile"
    assert config.preferences == SetupConfig().preferences


def test_default_manual_steps_include_calendar_account():
    assert any(item.startswith("Calendar:") for item in SetupConfig().manual_steps)
