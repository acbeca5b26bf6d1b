"""Machine-wide setup: name, developer tools, Homebrew and the Brewfile."""

import logging
from functools import partial
from pathlib import Path

from ..config import HomebrewConfig, MachineConfig, SetupConfig
from ..errors import CommandError, StepError
from ..models import Probe, Step, StepId, StepResult
from ..services.brewfile import resolve_brewfile
from ..services.machine import MachineState

logger = logging.getLogger(__name__)

NAME_KEYS = ("ComputerName", "HostName", "LocalHostName")

# Skip App Store entries in `brew bundle check`: mas cannot verify them reliably
BUNDLE_CHECK_ENV = {"HOMEBREW_BUNDLE_MAS_SKIP": "1"}


def activate_homebrew(state: MachineState) -> str:
    """Locate brew and put its bin directory first on PATH.

    Raises:
        StepError: If Homebrew is not installed
    """
    brew = state.find_brew()
    if brew is None:
        raise StepError("Homebrew not installed")
    state.prepend_path(Path(brew).parent)
    return brew


# ============================================================================
# Machine name
# ============================================================================


def probe_machine_name(state: MachineState, config: MachineConfig) -> Probe:
    if not config.name:
        return Probe(needed=False, reason="no machine name configured")
    current = state.output(["scutil", "--get", "ComputerName"])
    if current is None:
        return Probe(needed=True, reason="current name unknown")
    if current != config.name:
        return Probe(needed=True, reason=f"current name is {current}")
    return Probe(needed=False, reason=f"name is {current}")


def apply_machine_name(state: MachineState, config: MachineConfig) -> StepResult:
    if not config.name:
        raise StepError("machine.name is not configured")
    for key in NAME_KEYS:
        state.run(["sudo", "scutil", "--set", key, config.name], interactive=True)
    return StepResult(category="changed", detail=f"Machine name set to {config.name}")


# ============================================================================
# Xcode Command Line Tools
# ============================================================================


def _clt_installed(state: MachineState) -> bool:
    return state.succeeds(["xcode-select", "-p"])


def probe_xcode_clt(state: MachineState) -> Probe:
    if _clt_installed(state):
        return Probe(needed=False, reason="Command Line Tools installed")
    return Probe(needed=True, reason="Command Line Tools not installed")


def apply_xcode_clt(state: MachineState) -> StepResult:
    if _clt_installed(state):
        return StepResult(category="changed", detail="Xcode Command Line Tools already installed")
    try:
        state.run(["xcode-select", "--install"])
    except CommandError as e:
        # The GUI installer may already be open; wait for it either way
        logger.debug("xcode-select --install: %s", e)
    state.wait_until(
        partial(_clt_installed, state),
        "Finish the Command Line Tools installer.",
        "Press Enter once the installer has finished...",
    )
    return StepResult(category="installed", detail="Xcode Command Line Tools")


# ============================================================================
# Homebrew
# ============================================================================


def probe_homebrew(state: MachineState) -> Probe:
    brew = state.find_brew()
    if brew is None:
        return Probe(needed=True, reason="Homebrew not installed")
    return Probe(needed=False, reason=f"Homebrew at {brew}")


def apply_homebrew(state: MachineState, config: HomebrewConfig) -> StepResult:
    script = state.download(config.install_url)
    if script is None:
        raise StepError(f"Could not download the Homebrew installer from {config.install_url}")
    state.run(["/bin/bash", str(script)], interactive=True)
    if state.find_brew() is None:
        raise StepError("Homebrew not found after install")
    brew = activate_homebrew(state)
    return StepResult(category="installed", detail=f"Homebrew ({brew})")


# ============================================================================
# mas (App Store CLI)
# ============================================================================


def probe_mas(state: MachineState) -> Probe:
    if state.find_brew() is None:
        return Probe(needed=True, reason="Homebrew not installed")
    mas = state.which("mas")
    if mas is None:
        return Probe(needed=True, reason="mas not installed")
    return Probe(needed=False, reason=f"mas at {mas}")


def apply_mas(state: MachineState) -> StepResult:
    brew = activate_homebrew(state)
    state.run([brew, "install", "mas"], interactive=True)
    return StepResult(category="installed", detail="mas")


# ============================================================================
# App Store sign-in
# ============================================================================


def _app_store_signed_in(state: MachineState) -> bool:
    mas = state.which("mas")
    return mas is not None and state.succeeds([mas, "account"])


def probe_app_store_signin(state: MachineState) -> Probe:
    if state.which("mas") is None:
        return Probe(needed=True, reason="mas not installed")
    if _app_store_signed_in(state):
        return Probe(needed=False, reason="signed in to the App Store")
    return Probe(needed=True, reason="not signed in to the App Store")


def apply_app_store_signin(state: MachineState) -> StepResult:
    state.require("mas")
    state.wait_until(
        partial(_app_store_signed_in, state),
        "Sign in to the App Store to enable App Store installs.",
        "Press Enter once signed in...",
    )
    return StepResult(category="changed", detail="Signed in to the App Store")


# ============================================================================
# brew bundle
# ============================================================================


def probe_brew_bundle(state: MachineState, config: HomebrewConfig) -> Probe:
    brew = state.find_brew()
    if brew is None:
        return Probe(needed=True, reason="Homebrew not installed")
    brewfile = resolve_brewfile(state, config)
    if brewfile is None:
        return Probe(needed=True, reason="Brewfile not available")
    for app in config.required_apps:
        if not state.expand_path(app).exists():
            return Probe(needed=True, reason=f"{app} missing")
    if not state.succeeds(
        [brew, "bundle", "check", "--file", str(brewfile)], extra_env=BUNDLE_CHECK_ENV
    ):
        return Probe(needed=True, reason="Brewfile dependencies not satisfied")
    return Probe(needed=False, reason="Brewfile dependencies satisfied")


def apply_brew_bundle(state: MachineState, config: HomebrewConfig) -> StepResult:
    brew = activate_homebrew(state)
    brewfile = resolve_brewfile(state, config)
    if brewfile is None:
        raise StepError(
            "Brewfile not found locally and could not be downloaded; "
            "check homebrew.brewfile or network access, then re-run"
        )
    state.run([brew, "bundle", "--file", str(brewfile)], interactive=True)
    return StepResult(category="installed", detail="Brewfile packages")


def build_system_steps(config: SetupConfig) -> list[Step]:
    """Return the machine-wide steps in execution order."""
    return [
        Step(
            id=StepId.MACHINE_NAME,
            label="Machine name",
            probe=partial(probe_machine_name, config=config.machine),
            apply=partial(apply_machine_name, config=config.machine),
        ),
        Step(
            id=StepId.XCODE_CLT,
            label="Xcode Command Line Tools",
            probe=probe_xcode_clt,
            apply=apply_xcode_clt,
        ),
        Step(
            id=StepId.HOMEBREW,
            label="Homebrew",
            probe=probe_homebrew,
            apply=partial(apply_homebrew, config=config.homebrew),
            prerequisites=(StepId.XCODE_CLT,),
        ),
        Step(
            id=StepId.MAS,
            label="mas",
            probe=probe_mas,
            apply=apply_mas,
            prerequisites=(StepId.HOMEBREW,),
        ),
        Step(
            id=StepId.APP_STORE_SIGNIN,
            label="App Store sign-in",
            probe=probe_app_store_signin,
            apply=apply_app_store_signin,
            prerequisites=(StepId.MAS,),
        ),
        Step(
            id=StepId.BREW_BUNDLE,
            label="Brewfile packages",
            probe=partial(probe_brew_bundle, config=config.homebrew),
            apply=partial(apply_brew_bundle, config=config.homebrew),
            prerequisites=(StepId.HOMEBREW, StepId.APP_STORE_SIGNIN),
        ),
    ]
