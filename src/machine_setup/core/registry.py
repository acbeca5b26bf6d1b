"""Ordered, validated catalog of setup steps."""

from collections.abc import Iterable, Iterator

from ..errors import RegistryError
from ..models import Step, StepId


class Registry:
    """Immutable step catalog.

    Iteration order is the order steps were registered, which is also the
    execution order. Every prerequisite must be registered before the
    step that declares it, so registry order always respects dependencies
    and the prerequisite graph cannot contain a cycle.
    """

    def __init__(self, steps: Iterable[Step]) -> None:
        self._steps: dict[StepId, Step] = {}
        for step in steps:
            if step.id in self._steps:
                raise RegistryError(f"Duplicate step: {step.id.value}")
            for prereq in step.prerequisites:
                if prereq == step.id:
                    raise RegistryError(f"Step {step.id.value} depends on itself")
                if prereq not in self._steps:
                    raise RegistryError(
                        f"Step {step.id.value} requires {prereq.value}, "
                        "which must be registered before it"
                    )
            self._steps[step.id] = step

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps.values())

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._steps

    def get(self, step_id: StepId) -> Step:
        """Return the step registered under step_id.

        Raises:
            RegistryError: If no such step is registered
        """
        try:
            return self._steps[step_id]
        except KeyError:
            raise RegistryError(f"Unknown step: {step_id.value}") from None

    @property
    def ids(self) -> list[StepId]:
        """Step ids in registry order."""
        return list(self._steps)

    def ordered(self, step_ids: Iterable[StepId]) -> list[StepId]:
        """Return the given ids sorted into registry order."""
        wanted = set(step_ids)
        return [step_id for step_id in self._steps if step_id in wanted]
