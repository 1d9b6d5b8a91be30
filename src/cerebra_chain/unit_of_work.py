"""One schedulable call: parameters, hooks and the captured output."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, TypeAlias

from cerebra_chain.errors import ConfigurationError
from cerebra_chain.models.step_params import StepParams
from cerebra_chain.promise import Promise


logger = logging.getLogger(__name__)

BeforeExec: TypeAlias = Callable[["UnitOfWork"], str]
ExecuteFn: TypeAlias = Callable[["UnitOfWork", str], Promise[str]]
AfterExec: TypeAlias = Callable[["UnitOfWork", str], str]


@dataclass
class UnitOfWork:
    params: StepParams = field(default_factory=StepParams)
    before_exec: BeforeExec | None = None
    execute: ExecuteFn | None = None
    after_exec: AfterExec | None = None
    output: str = ""

    def build_prompt(self) -> str:
        if self.before_exec is None:
            return self.params.input
        return self.before_exec(self)

    def capture(self, value: str) -> str:
        if self.after_exec is None:
            self.output = value
        else:
            self.output = self.after_exec(self, value)
        return self.output

    def run(self) -> Promise[str]:
        """
        Build the prompt, hand it to the execute hook and capture the result.
        The returned promise resolves with the captured output.
        """
        if self.execute is None:
            raise ConfigurationError(f"Unit {self.params.index} has no execute hook.")
        execute = self.execute

        def start(_: None) -> Promise[str]:
            prompt = self.build_prompt()
            logger.debug("Running unit %s with model %s", self.params.index, self.params.model)
            return execute(self, prompt)

        return Promise.resolved(None).then_compose(start).then_map(self.capture)
