"""Planner/executor: one sequential pass over the registry."""

import logging
from typing import TYPE_CHECKING

from ..errors import SetupError
from ..models import OutcomeCategory, Probe, RunMode, RunSummary, Step
from .registry import Registry
from .selector import Selection

if TYPE_CHECKING:
    from ..services.machine import MachineState

logger = logging.getLogger(__name__)


def probe_step(step: Step, state: "MachineState") -> Probe:
    """Run a step's probe, treating an undeterminable state as needed."""
    try:
        return step.probe(state)
    except SetupError as e:
        logger.debug("Probe for %s failed: %s", step.id.value, e)
        return Probe(needed=True, reason=f"could not determine state: {e}")


def run_steps(
    registry: Registry,
    selection: Selection,
    state: "MachineState",
    mode: RunMode,
) -> RunSummary:
    """Visit every step in registry order and plan or apply it.

    In dry-run mode no apply action is ever called. In live mode the first
    failing apply aborts the run; steps after it are not visited.

    Args:
        registry: Step catalog
        selection: Resolved selection for this run
        state: Handle to the machine being configured
        mode: Live or dry-run

    Returns:
        RunSummary with one outcome per step that produced a result
    """
    summary = RunSummary(mode=mode)

    for step in registry:
        if step.id not in selection.selected:
            if step.id in selection.excluded:
                summary.record(step.id, OutcomeCategory.SKIPPED, f"{step.label} (skipped by flag)")
            elif step.id in selection.blocked:
                logger.warning("%s not run: a prerequisite was skipped", step.label)
            continue

        forced = step.id in selection.forced
        probe = probe_step(step, state)
        logger.debug(
            "%s: needed=%s forced=%s (%s)", step.id.value, probe.needed, forced, probe.reason
        )

        if mode == RunMode.DRY_RUN:
            if probe.needed:
                detail = f"{step.label}: {probe.reason}" if probe.reason else step.label
                summary.record(step.id, OutcomeCategory.PLANNED, detail)
            elif forced:
                summary.record(step.id, OutcomeCategory.PLANNED, f"{step.label} (forced)")
            continue

        if not probe.needed and not forced:
            logger.info("%s already configured", step.label)
            summary.record(step.id, OutcomeCategory.SKIPPED, f"{step.label} already configured")
            continue

        if probe.needed:
            logger.info("%s: %s", step.label, probe.reason or "needed")
        else:
            logger.info("%s: re-applying (forced)", step.label)

        try:
            result = step.apply(state)
        except SetupError as e:
            logger.error("%s failed: %s", step.label, e)
            summary.record(step.id, OutcomeCategory.FAILED, f"{step.label} failed")
            summary.aborted = True
            summary.failed_step = step.id
            break

        summary.record(step.id, OutcomeCategory(result.category), result.detail or step.label)

    return summary
