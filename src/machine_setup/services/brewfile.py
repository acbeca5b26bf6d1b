"""Brewfile lookup and entry listing."""

import re
from pathlib import Path

from pydantic import BaseModel, Field

from ..config import HomebrewConfig
from .machine import MachineState

_ENTRY_RE = re.compile(r'^\s*(brew|cask|mas)\s+"([^"]+)"')


class BrewfileEntries(BaseModel):
    """Package names declared in a Brewfile, by kind."""

    brews: list[str] = Field(default_factory=list, description="CLI tools (brew)")
    casks: list[str] = Field(default_factory=list, description="Apps (cask)")
    mas: list[str] = Field(default_factory=list, description="App Store apps (mas)")


def resolve_brewfile(state: MachineState, config: HomebrewConfig) -> Path | None:
    """Find the Brewfile: the local file if it exists, else a download.

    Args:
        state: Machine handle
        config: Homebrew configuration

    Returns:
        Path to a readable Brewfile, or None if neither source is available
    """
    if config.brewfile:
        local = state.expand_path(config.brewfile)
        if local.is_file():
            return local
    if config.brewfile_url:
        return state.download(config.brewfile_url)
    return None


def parse_brewfile(text: str) -> BrewfileEntries:
    """List the brew, cask and mas entries of a Brewfile."""
    entries = BrewfileEntries()
    for line in text.splitlines():
        match = _ENTRY_RE.match(line)
        if not match:
            continue
        kind, name = match.groups()
        if kind == "brew":
            entries.brews.append(name)
        elif kind == "cask":
            entries.casks.append(name)
        else:
            entries.mas.append(name)
    return entries


def format_entries(entries: BrewfileEntries) -> list[str]:
    """Format entries as summary lines, omitting empty kinds."""
    lines = []
    if entries.brews:
        lines.append(f"CLI tools: {', '.join(entries.brews)}")
    if entries.casks:
        lines.append(f"Apps (casks): {', '.join(entries.casks)}")
    if entries.mas:
        lines.append(f"App Store (mas): {', '.join(entries.mas)}")
    return lines
