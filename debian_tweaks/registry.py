"""Ordered, name-unique collection of steps."""

from typing import Iterable, Iterator, List

from debian_tweaks.errors import DuplicateStepError
from debian_tweaks.models import Step


class StepRegistry:
    def __init__(self, steps: Iterable[Step] = ()):
        self._steps: List[Step] = []
        self.extend(steps)

    def register(self, step: Step) -> Step:
        if step.name in self.names:
            raise DuplicateStepError(f"Step '{step.name}' is already registered")
        self._steps.append(step)
        return step

    def extend(self, steps: Iterable[Step]) -> None:
        for step in steps:
            self.register(step)

    def steps(self, skip_stages: Iterable[str] = ()) -> List[Step]:
        """Registered steps in registration order, minus those in skipped stages."""
        skipped = set(skip_stages)
        return [s for s in self._steps if s.stage not in skipped]

    @property
    def names(self) -> List[str]:
        return [s.name for s in self._steps]

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps)
