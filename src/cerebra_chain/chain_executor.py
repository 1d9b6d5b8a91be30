"""Multi-stage macro flow on top of the chain processor and scheduler."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, TypeAlias

from pydantic import BaseModel, ConfigDict

from cerebra_chain.artifact_store import ArtifactSink
from cerebra_chain.chain_processor import ChainProcessor
from cerebra_chain.errors import ConfigurationError
from cerebra_chain.models.step_params import StepParams
from cerebra_chain.promise import Promise
from cerebra_chain.scheduler import AsyncScheduler


logger = logging.getLogger(__name__)


class ChainExecutorSettings(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    client: Any = None
    path: str = ""
    default_model: str = "gpt-4o-mini"
    search_model: str = "gpt-4o-mini-search-preview"
    editor_model: str = "gpt-4o"
    prompt: str = ""
    display: Callable[[str], object] | None = None
    silent: bool = False

    def resolve_model(self, name: str) -> str:
        aliases = {
            "default": self.default_model,
            "search": self.search_model,
            "editor": self.editor_model,
        }
        return aliases.get(name, name)


StageAction: TypeAlias = Callable[["ChainExecutor", str], object]


@dataclass
class ChainStage:
    action: StageAction
    source: str = ""


class ChainExecutor:
    """
    Runs stages one after another. A stage action receives the executor and
    its source text; a stage added without a source receives the output the
    previous stage resolved with. The last stage's output is the final text,
    saved together with the accumulated data when a store is configured.
    """

    minimum_stages = 2

    def __init__(
        self,
        settings: ChainExecutorSettings,
        scheduler: AsyncScheduler | None = None,
        store: ArtifactSink | None = None,
    ) -> None:
        self.settings = settings
        self.scheduler: AsyncScheduler = scheduler or AsyncScheduler()
        self.store = store
        self.processor: ChainProcessor = ChainProcessor(self.new_prototype())
        self.stages: list[ChainStage] = []
        self.step_index = 0
        self.prompt: str = settings.prompt
        self.data: str = ""
        self.text: str = ""
        self.artifact_path: str | None = None

    def new_prototype(self) -> StepParams:
        return StepParams(
            client=self.settings.client,
            model=self.settings.default_model,
            silent_mode=self.settings.silent,
        )

    def add_step(self, action: StageAction, source: str = "") -> "ChainExecutor":
        self.stages.append(ChainStage(action=action, source=source))
        return self

    def _check_stages(self) -> None:
        if len(self.stages) < self.minimum_stages:
            raise ConfigurationError(
                f"{type(self).__name__} needs at least {self.minimum_stages} stages, got {len(self.stages)}."
            )

    def execute(self) -> Promise[str]:
        self._check_stages()
        self.processor = ChainProcessor(self.new_prototype())
        self.step_index = 0
        self.data = ""
        self.text = ""
        self.artifact_path = None
        logger.info("Starting chain with %s stages", len(self.stages))
        return self.run_first_step()

    def _perform(self, stage: ChainStage, value: str) -> None:
        logger.debug("Configuring stage %s", self.step_index)
        stage.action(self, stage.source or value)

    def run_first_step(self) -> Promise[str]:
        self._perform(self.stages[0], self.prompt)
        return self.run_next_step()

    def run_next_step(self) -> Promise[str]:
        return self.scheduler.run(self.processor.pipeline).then_compose(self._advance)

    def _advance(self, value: str) -> Promise[str]:
        self.step_index += 1
        if self.step_index >= len(self.stages):
            return Promise.resolved(value)
        if self.step_index == len(self.stages) - 1:
            return self.run_last_step(value)
        self._perform(self.stages[self.step_index], value)
        return self.run_next_step()

    def run_last_step(self, value: str) -> Promise[str]:
        self._perform(self.stages[-1], value)
        self.data = self.processor.json_output + "\n" + self.processor.text_output
        return self.scheduler.run(self.processor.pipeline).then_compose(self._finish)

    def _finish(self, value: str) -> Promise[str]:
        self.text = value
        logger.info("Chain finished")
        if self.store is None:
            return Promise.resolved(self.text)
        return self.store.save_artifacts(self.settings.path, self.prompt, self.data, self.text).then_map(
            self._saved
        )

    def _saved(self, artifact_path: str) -> str:
        self.artifact_path = artifact_path
        return self.text


class SingleChainExecutor(ChainExecutor):
    """One stage only; resolves with the stage's aggregated output."""

    minimum_stages = 1

    def _check_stages(self) -> None:
        super()._check_stages()
        if len(self.stages) > 1:
            raise ConfigurationError(f"SingleChainExecutor runs one stage, got {len(self.stages)}.")

    def run_first_step(self) -> Promise[str]:
        self._perform(self.stages[0], self.prompt)
        return self.scheduler.run(self.processor.pipeline).then_map(self._aggregate)

    def _aggregate(self, _value: str) -> str:
        self.text = self.processor.pipeline.aggregate(reset_base=True)
        return self.text
