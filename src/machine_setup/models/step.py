"""Step model for the setup catalog.

A step is one unit of desired-state configuration: a side-effect-free
probe that reports whether the machine already matches, and an apply
action that brings it there.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from ..services.machine import MachineState


class StepId(str, Enum):
    """Identifiers of every setup step, in execution order."""

    # Global (machine-wide) setup
    MACHINE_NAME = "machine-name"
    XCODE_CLT = "xcode-clt"
    HOMEBREW = "homebrew"
    MAS = "mas"
    APP_STORE_SIGNIN = "app-store-signin"
    BREW_BUNDLE = "brew-bundle"

    # Per-user setup
    SHELL_PROFILE = "shell-profile"
    GIT_CONFIG = "git-config"
    NODE_TOOLCHAIN = "node-toolchain"
    ONEPASSWORD = "1password"
    SSH_AGENT = "ssh-agent"

    # macOS preferences
    DOCK = "dock"
    FINDER = "finder"
    KEYBOARD = "keyboard"
    SAFARI = "safari"
    DEFAULT_TERMINAL = "default-terminal"


class Probe(BaseModel):
    """Result of checking whether a step still has work to do."""

    needed: bool = Field(description="True if the desired state does not hold yet")
    reason: str = Field(default="", description="Human-readable explanation")


class StepResult(BaseModel):
    """Outcome reported by a successful apply action.

    The step decides whether its work counts as a first install or as a
    change to something that already existed.
    """

    category: Literal["installed", "changed"]
    detail: str = Field(default="", description="Summary line for the report")


ProbeFn = Callable[["MachineState"], Probe]
ApplyFn = Callable[["MachineState"], StepResult]


@dataclass(frozen=True)
class Step:
    """A registered setup step.

    Attributes:
        id: Unique step identifier.
        label: Display name used in logs and the summary.
        probe: Reports whether the step is needed. Must not mutate anything.
        apply: Brings the machine into the desired state. Raises SetupError
            on failure.
        prerequisites: Steps that must be selected whenever this one is.
    """

    id: StepId
    label: str
    probe: ProbeFn
    apply: ApplyFn
    prerequisites: tuple[StepId, ...] = ()
