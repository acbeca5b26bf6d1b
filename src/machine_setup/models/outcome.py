"""Outcome models for a setup run.

Collects one entry per step that produced a result, in execution order,
and exposes per-category views for the summary report.
"""

from enum import Enum

from pydantic import BaseModel, Field

from .step import StepId


class RunMode(str, Enum):
    """Whether a run mutates the machine or only reports its plan."""

    LIVE = "live"
    DRY_RUN = "dry-run"


class OutcomeCategory(str, Enum):
    """Category of a single step outcome."""

    INSTALLED = "installed"
    CHANGED = "changed"
    SKIPPED = "skipped"
    FAILED = "failed"
    PLANNED = "planned"


class Outcome(BaseModel):
    """Result recorded for one step."""

    step: StepId = Field(description="Step the outcome belongs to")
    category: OutcomeCategory = Field(description="Outcome category")
    detail: str = Field(description="Summary line shown to the operator")


class RunSummary(BaseModel):
    """Aggregated outcomes of one run.

    Attributes:
        mode: Run mode the outcomes were produced in.
        outcomes: Outcomes in the order steps were visited.
        aborted: True if a step failed and the remaining steps never ran.
        failed_step: Step that aborted the run, if any.
    """

    mode: RunMode
    outcomes: list[Outcome] = Field(default_factory=list)
    aborted: bool = False
    failed_step: StepId | None = None

    def record(self, step: StepId, category: OutcomeCategory, detail: str) -> None:
        """Append an outcome."""
        self.outcomes.append(Outcome(step=step, category=category, detail=detail))

    def details(self, category: OutcomeCategory) -> list[str]:
        """Return detail strings for one category in recorded order."""
        return [o.detail for o in self.outcomes if o.category == category]

    def steps(self, category: OutcomeCategory) -> list[StepId]:
        """Return step ids for one category in recorded order."""
        return [o.step for o in self.outcomes if o.category == category]

    @property
    def installed(self) -> list[str]:
        return self.details(OutcomeCategory.INSTALLED)

    @property
    def changed(self) -> list[str]:
        return self.details(OutcomeCategory.CHANGED)

    @property
    def skipped(self) -> list[str]:
        return self.details(OutcomeCategory.SKIPPED)

    @property
    def failed(self) -> list[str]:
        return self.details(OutcomeCategory.FAILED)

    @property
    def planned(self) -> list[str]:
        return self.details(OutcomeCategory.PLANNED)

    @property
    def exit_code(self) -> int:
        """Process exit code for this run (dry-runs always succeed)."""
        if self.mode == RunMode.DRY_RUN:
            return 0
        return 1 if self.failed else 0
