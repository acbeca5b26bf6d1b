"""Configuration management for machine-setup."""

import tomllib
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field

from .constants import CONFIG_FILE_NAME, SETUP_DIR_NAME

PreferenceValue = bool | int | float | str

ONEPASSWORD_AGENT_SOCKET = "~/Library/Group Containers/2BUA8C4S2C.com.1password/t/agent.sock"


class MachineConfig(BaseModel):
    """Machine identity."""

    name: str | None = Field(
        default=None, description="ComputerName, HostName and LocalHostName to set"
    )


class HomebrewConfig(BaseModel):
    """Homebrew installation and bundle settings."""

    install_url: str = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
    brewfile: str | None = Field(default=None, description="Local Brewfile path")
    brewfile_url: str | None = Field(
        default=None, description="Brewfile to download when no local file exists"
    )
    required_apps: list[str] = Field(
        default=["/Applications/Xcode.app"],
        description="App bundles that must exist for the bundle to count as installed",
    )


class ShellConfig(BaseModel):
    """Lines that must be present in the zsh startup files."""

    zprofile_lines: list[str] = Field(
        default=[
            'export PNPM_HOME="$HOME/Library/pnpm"',
            'export PATH="$PNPM_HOME:$PATH"',
        ]
    )
    zshrc_lines: list[str] = Field(default=['eval "$(mise activate zsh)"'])


class GitConfig(BaseModel):
    """Global git identity and ignore file."""

    user_name: str | None = None
    user_email: str | None = None
    excludes_file: str = "~/.gitignore_global"
    ignore_patterns: list[str] = Field(
        default=[".DS_Store", ".AppleDouble", ".LSOverride", "._*", ".Trashes"]
    )


class NodeConfig(BaseModel):
    """Node toolchain managed through mise and corepack."""

    version: str = "lts"
    pnpm_version: str = "latest"
    global_packages: list[str] = Field(default_factory=list)


class OnePasswordConfig(BaseModel):
    """1Password CLI and SSH agent settings."""

    agent_socket: str = ONEPASSWORD_AGENT_SOCKET


class PreferencesConfig(BaseModel):
    """macOS preference values, one map per preference domain."""

    dock: dict[str, PreferenceValue] = Field(
        default={
            "show-recents": False,
            "autohide": True,
            "magnification": True,
            "largesize": 70,
        }
    )
    finder: dict[str, PreferenceValue] = Field(
        default={"FXPreferredViewStyle": "Nlsv", "NewWindowTarget": "PfHm"}
    )
    keyboard: dict[str, PreferenceValue] = Field(
        default={
            "AppleShowAllExtensions": True,
            "ApplePressAndHoldEnabled": False,
            "KeyRepeat": 2,
            "InitialKeyRepeat": 15,
        }
    )
    safari: dict[str, PreferenceValue] = Field(default={"AutoFillPasswords": False})


class TerminalConfig(BaseModel):
    """Default handler for shell scripts."""

    app_name: str = "Ghostty"
    app_path: str = "/Applications/Ghostty.app"
    bundle_id: str = "com.mitchellh.ghostty"
    utis: list[str] = Field(
        default=[
            "public.shell-script",
            "public.unix-executable",
            "public.script",
            "com.apple.terminal.shell-script",
        ]
    )


class LoggingConfig(BaseModel):
    """Run transcript settings."""

    dir: str = f"~/{SETUP_DIR_NAME}/logs"


class SetupConfig(BaseModel):
    """Root configuration for machine-setup."""

    machine: MachineConfig = Field(default_factory=MachineConfig)
    homebrew: HomebrewConfig = Field(default_factory=HomebrewConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    node: NodeConfig = Field(default_factory=NodeConfig)
    onepassword: OnePasswordConfig = Field(default_factory=OnePasswordConfig)
    preferences: PreferencesConfig = Field(default_factory=PreferencesConfig)
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    manual_steps: list[str] = Field(
        default=[
            "System Settings -> Passwords -> AutoFill Passwords and Passkeys: disable",
            "System Settings -> Notifications: disable notification sounds per app",
            "System Settings -> Appearance: set sidebar icon size to Small",
            "Finder: customize sidebar favorites",
            "Calendar: add the Fastmail account (CalDAV), see "
            "https://www.fastmail.help/hc/en-us/articles/1500000277682-Automatic-setup-on-Mac",
        ]
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_default_config_path() -> Path:
    """Return the config path used when none is given on the command line."""
    return Path.home() / SETUP_DIR_NAME / CONFIG_FILE_NAME


def load_config(config_path: Path | None = None) -> SetupConfig:
    """Load config from a TOML file.

    Args:
        config_path: Path to config.toml (defaults to ~/.machine-setup/config.toml)

    Returns:
        Loaded configuration, or defaults if the file doesn't exist

    Raises:
        tomllib.TOMLDecodeError: If the file is not valid TOML
        pydantic.ValidationError: If the file doesn't match the schema
    """
    config_path = config_path or get_default_config_path()
    if not config_path.exists():
        return SetupConfig()
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return SetupConfig.model_validate(data)


def write_config_template(config_path: Path) -> Path:
    """Write a config.toml template populated with the defaults.

    Args:
        config_path: Destination file

    Returns:
        Path to the written config file
    """
    config_path.parent.mkdir(parents=True, exist_ok=True)
    template = SetupConfig().model_dump(exclude_none=True)
    # Placeholders for the settings that have no sensible default
    template["machine"] = {"name": "my-mac"}
    template["git"].update({"user_name": "Your Name", "user_email": "you@example.com"})
    template["homebrew"]["brewfile"] = f"~/{SETUP_DIR_NAME}/Brewfile"
    template["node"]["global_packages"] = ["@openai/codex"]
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path
