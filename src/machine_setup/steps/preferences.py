"""macOS preferences written with `defaults`, and the default terminal app."""

import logging
from collections.abc import Mapping
from functools import partial

from ..config import PreferenceValue, SetupConfig, TerminalConfig
from ..constants import PREFERENCE_TIMEOUT
from ..errors import StepError
from ..models import Probe, Step, StepId, StepResult
from ..services.machine import MachineState

logger = logging.getLogger(__name__)


def defaults_type(value: PreferenceValue) -> tuple[str, str]:
    """Return the `defaults write` type flag and argument for a value."""
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        return "-bool", "true" if value else "false"
    if isinstance(value, int):
        return "-int", str(value)
    if isinstance(value, float):
        return "-float", repr(value)
    return "-string", value


def matches(current: str | None, value: PreferenceValue) -> bool:
    """Compare `defaults read` output with a desired value."""
    if current is None:
        return False
    if isinstance(value, bool):
        return current in (("1", "true", "YES") if value else ("0", "false", "NO"))
    if isinstance(value, int | float):
        try:
            return float(current) == float(value)
        except ValueError:
            return False
    return current == value


def differing_keys(
    state: MachineState, domain: str, values: Mapping[str, PreferenceValue]
) -> list[str]:
    """Return the keys whose stored value differs from the desired one."""
    return [
        key
        for key, value in values.items()
        if not matches(
            state.output(["defaults", "read", domain, key], timeout=PREFERENCE_TIMEOUT), value
        )
    ]


def probe_preferences(
    state: MachineState, domain: str, values: Mapping[str, PreferenceValue]
) -> Probe:
    differing = differing_keys(state, domain, values)
    if differing:
        return Probe(needed=True, reason=f"{', '.join(differing)} differ")
    return Probe(needed=False, reason=f"{domain} up to date")


def apply_preferences(
    state: MachineState,
    domain: str,
    values: Mapping[str, PreferenceValue],
    label: str,
    restart: tuple[str, ...],
) -> StepResult:
    for key, value in values.items():
        flag, arg = defaults_type(value)
        state.run(["defaults", "write", domain, key, flag, arg], timeout=PREFERENCE_TIMEOUT)
    for process in restart:
        # Not running is fine; the new values apply on next launch
        if not state.succeeds(["killall", process]):
            logger.debug("%s was not running", process)
    return StepResult(category="changed", detail=f"{label} preferences ({len(values)} settings)")


def preference_step(
    step_id: StepId,
    label: str,
    domain: str,
    values: Mapping[str, PreferenceValue],
    restart: tuple[str, ...] = (),
) -> Step:
    """Build a step that enforces a set of values in one preference domain."""
    return Step(
        id=step_id,
        label=label,
        probe=partial(probe_preferences, domain=domain, values=values),
        apply=partial(
            apply_preferences, domain=domain, values=values, label=label, restart=restart
        ),
    )


# ============================================================================
# Default terminal
# ============================================================================


def terminal_bundle_id(state: MachineState, config: TerminalConfig) -> str:
    """Return the installed app's bundle id, falling back to the configured one."""
    return (
        state.output(["osascript", "-e", f'id of app "{config.app_name}"']) or config.bundle_id
    )


def probe_default_terminal(state: MachineState, config: TerminalConfig) -> Probe:
    duti = state.which("duti")
    if duti is None:
        return Probe(needed=True, reason="duti not installed")
    if not state.expand_path(config.app_path).exists():
        return Probe(needed=True, reason=f"{config.app_name} not installed")
    bundle_id = terminal_bundle_id(state, config)
    for uti in config.utis:
        current = state.output([duti, "-d", uti])
        if current != bundle_id:
            return Probe(needed=True, reason=f"{uti} opens with {current or 'default app'}")
    return Probe(needed=False, reason=f"{config.app_name} is the default terminal")


def apply_default_terminal(state: MachineState, config: TerminalConfig) -> StepResult:
    duti = state.which("duti")
    if duti is None:
        raise StepError("duti not found; install it via the Brewfile")
    if not state.expand_path(config.app_path).exists():
        raise StepError(f"{config.app_name} not found at {config.app_path}")
    bundle_id = terminal_bundle_id(state, config)
    for uti in config.utis:
        state.run([duti, "-s", bundle_id, uti, "all"])
    return StepResult(category="changed", detail=f"{config.app_name} set as default terminal")


def build_preference_steps(config: SetupConfig) -> list[Step]:
    """Return the preference steps in execution order."""
    prefs = config.preferences
    return [
        preference_step(StepId.DOCK, "Dock", "com.apple.dock", prefs.dock, ("Dock",)),
        preference_step(StepId.FINDER, "Finder", "com.apple.finder", prefs.finder, ("Finder",)),
        preference_step(
            StepId.KEYBOARD,
            "Global preferences",
            "NSGlobalDomain",
            prefs.keyboard,
            ("SystemUIServer",),
        ),
        preference_step(StepId.SAFARI, "Safari", "com.apple.Safari", prefs.safari, ("Safari",)),
        Step(
            id=StepId.DEFAULT_TERMINAL,
            label="Default terminal",
            probe=partial(probe_default_terminal, config=config.terminal),
            apply=partial(apply_default_terminal, config=config.terminal),
            prerequisites=(StepId.BREW_BUNDLE,),
        ),
    ]
