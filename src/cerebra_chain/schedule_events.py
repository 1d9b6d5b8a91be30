"""Hook bundles that make a unit of work executable."""

from __future__ import annotations

import logging
from typing import Callable, Protocol, TypeAlias

from cerebra_chain.errors import ConfigurationError
from cerebra_chain.models.step_params import StepParams
from cerebra_chain.promise import Promise
from cerebra_chain.unit_of_work import UnitOfWork


logger = logging.getLogger(__name__)

Display: TypeAlias = Callable[[str], object]


class PromptExecutor(Protocol):
    def execute(self, params: StepParams, prompt: str) -> Promise[str]: ...

    def execute_batch(self, params: StepParams, prompts: list[str]) -> Promise[str]: ...


def _client_of(unit: UnitOfWork) -> PromptExecutor:
    client = unit.params.client
    if client is None:
        raise ConfigurationError(f"Unit {unit.params.index} has no client.")
    return client


class ScheduleEvents:
    """
    Configure callback for sequential steps. The prompt sent for a step is
    the stage input followed by the step's own JSONL line.
    """

    def __init__(self, display: Display | None = None) -> None:
        self.display = display

    def __call__(self, unit: UnitOfWork) -> None:
        unit.before_exec = self.before_exec
        unit.execute = self.execute
        unit.after_exec = self.after_exec

    def before_exec(self, unit: UnitOfWork) -> str:
        params = unit.params
        steps = params.chain_steps or []
        if 0 <= params.index < len(steps):
            return params.input + "\n" + steps[params.index].content
        return params.input

    def execute(self, unit: UnitOfWork, prompt: str) -> Promise[str]:
        return _client_of(unit).execute(unit.params, prompt)

    def after_exec(self, unit: UnitOfWork, output: str) -> str:
        if not unit.params.silent_mode and self.display is not None:
            self.display(output)
        return output


class ScheduleParallelEvents(ScheduleEvents):
    """Configure callback for fan-out units; the input holds one prompt per line."""

    def before_exec(self, unit: UnitOfWork) -> str:
        return unit.params.input.strip()

    def execute(self, unit: UnitOfWork, prompt: str) -> Promise[str]:
        prompts = [line.strip() for line in prompt.splitlines() if line.strip()]
        logger.debug("Fanning out %s prompts", len(prompts))
        return _client_of(unit).execute_batch(unit.params, prompts)
