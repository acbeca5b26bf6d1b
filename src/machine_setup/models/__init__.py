"""Data models for machine-setup.

This package defines:
- The step catalog entries (StepId, Step, Probe, StepResult)
- Run outcomes and their aggregate (Outcome, OutcomeCategory, RunSummary)
- The run mode (RunMode)

Outcome models are Pydantic BaseModel subclasses so a summary can be
dumped as JSON with ``--json``.
"""

from .outcome import Outcome, OutcomeCategory, RunMode, RunSummary
from .step import Probe, Step, StepId, StepResult

__all__ = [
    "Outcome",
    "OutcomeCategory",
    "Probe",
    "RunMode",
    "RunSummary",
    "Step",
    "StepId",
    "StepResult",
]
