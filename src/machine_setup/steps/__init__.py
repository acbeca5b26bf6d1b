"""Concrete setup steps and the group table.

Steps are listed group by group; the combined list is the registry and
execution order.
"""

from ..config import SetupConfig
from ..core.registry import Registry
from ..core.selector import build_alias_table
from ..models import StepId
from .preferences import build_preference_steps
from .system import build_system_steps
from .user import build_user_steps

GROUPS: dict[str, tuple[StepId, ...]] = {
    "global": (
        StepId.MACHINE_NAME,
        StepId.XCODE_CLT,
        StepId.HOMEBREW,
        StepId.MAS,
        StepId.APP_STORE_SIGNIN,
        StepId.BREW_BUNDLE,
    ),
    "user": (
        StepId.SHELL_PROFILE,
        StepId.GIT_CONFIG,
        StepId.NODE_TOOLCHAIN,
        StepId.ONEPASSWORD,
        StepId.SSH_AGENT,
    ),
    "defaults": (
        StepId.DOCK,
        StepId.FINDER,
        StepId.KEYBOARD,
        StepId.SAFARI,
        StepId.DEFAULT_TERMINAL,
    ),
}

# Short names accepted in addition to group and step names
ALIASES: dict[str, str] = {
    "system": "global",
    "prefs": "defaults",
    "brew": StepId.HOMEBREW.value,
    "bundle": StepId.BREW_BUNDLE.value,
    "xcode": StepId.XCODE_CLT.value,
    "hostname": StepId.MACHINE_NAME.value,
    "shell": StepId.SHELL_PROFILE.value,
    "git": StepId.GIT_CONFIG.value,
    "node": StepId.NODE_TOOLCHAIN.value,
    "op": StepId.ONEPASSWORD.value,
    "terminal": StepId.DEFAULT_TERMINAL.value,
}


def build_registry(config: SetupConfig) -> Registry:
    """Build the full step registry for a configuration."""
    return Registry(
        [
            *build_system_steps(config),
            *build_user_steps(config),
            *build_preference_steps(config),
        ]
    )


def build_aliases(registry: Registry) -> dict[str, frozenset[StepId]]:
    """Build the token table for the registry's groups and aliases."""
    return build_alias_table(registry, GROUPS, ALIASES)


__all__ = ["ALIASES", "GROUPS", "build_aliases", "build_registry"]
