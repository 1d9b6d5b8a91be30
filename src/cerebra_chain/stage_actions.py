"""Builds chain executor stages from a chain definition file."""

from __future__ import annotations

import logging

from cerebra_chain.artifact_store import ArtifactSink
from cerebra_chain.chain_executor import ChainExecutor, ChainExecutorSettings, SingleChainExecutor
from cerebra_chain.cot_loader import extract_sub_questions, load_from_text
from cerebra_chain.errors import ConfigurationError
from cerebra_chain.models.chain_spec import StageSpec
from cerebra_chain.models.loaded_chain_file import LoadedChainFile
from cerebra_chain.models.step_params import ProcessingMode
from cerebra_chain.prompting import chain_state, make_compose_input, make_synthesis_input
from cerebra_chain.schedule_events import ScheduleEvents, ScheduleParallelEvents
from cerebra_chain.scheduler import AsyncScheduler


logger = logging.getLogger(__name__)


def stage_input(stage: StageSpec, executor: ChainExecutor) -> str:
    processor = executor.processor
    if stage.input == "synthesis":
        return make_synthesis_input(executor.prompt, processor.text_output, processor.json_output)
    if stage.input == "compose":
        return make_compose_input(executor.prompt, chain_state(processor.text_output, processor.json_output))
    return executor.prompt


def batch_prompts(stage: StageSpec, source: str) -> str:
    if stage.mode is ProcessingMode.WEB_PARALLEL:
        return extract_sub_questions(source)
    return "\n".join(line.strip() for line in source.splitlines() if line.strip())


class SequentialStage:
    """Loads the stage's reasoning steps and adds one unit per step."""

    def __init__(self, stage: StageSpec) -> None:
        self.stage = stage

    def __call__(self, executor: ChainExecutor, source: str) -> None:
        params = executor.processor.begin_stage()
        params.model = executor.settings.resolve_model(self.stage.model)
        params.input = stage_input(self.stage, executor)
        steps = load_from_text(source, validate=True)
        if not steps:
            raise ConfigurationError(f"Stage {self.stage.id!r} has no reasoning steps.")
        executor.processor.expand_sequential(steps, ScheduleEvents(executor.settings.display), self.stage.output)


class ParallelStage:
    """Adds a single unit that fans the stage's prompts out as one batch."""

    def __init__(self, stage: StageSpec) -> None:
        self.stage = stage

    def __call__(self, executor: ChainExecutor, source: str) -> None:
        params = executor.processor.begin_stage()
        params.model = executor.settings.resolve_model(self.stage.model)
        prompts = batch_prompts(self.stage, source)
        executor.processor.expand_parallel(prompts, ScheduleParallelEvents(executor.settings.display), self.stage.mode)


def make_stage_action(stage: StageSpec) -> SequentialStage | ParallelStage:
    if stage.mode is ProcessingMode.SEQUENTIAL:
        return SequentialStage(stage)
    return ParallelStage(stage)


def stage_sources(loaded: LoadedChainFile) -> list[tuple[StageSpec, str]]:
    if not loaded.spec.stages:
        raise ConfigurationError(f"Chain {loaded.spec.name!r} defines no stages.")
    pairs: list[tuple[StageSpec, str]] = []
    for position, stage in enumerate(loaded.spec.stages):
        source = loaded.source_for(stage.section_key)
        if stage.section is not None and not source:
            raise ConfigurationError(f"Chain {loaded.spec.name!r} has no section {stage.section!r}.")
        if position == 0 and not source:
            raise ConfigurationError(f"First stage {stage.id!r} of {loaded.spec.name!r} needs a section.")
        pairs.append((stage, source))
    return pairs


def build_chain_executor(
    loaded: LoadedChainFile,
    settings: ChainExecutorSettings,
    *,
    scheduler: AsyncScheduler | None = None,
    store: ArtifactSink | None = None,
    single: bool = False,
) -> ChainExecutor:
    """With single=True only the first stage runs, through SingleChainExecutor."""
    pairs = stage_sources(loaded)
    if single:
        executor: ChainExecutor = SingleChainExecutor(settings, scheduler=scheduler, store=store)
        pairs = pairs[:1]
    else:
        executor = ChainExecutor(settings, scheduler=scheduler, store=store)
    for stage, source in pairs:
        executor.add_step(make_stage_action(stage), source)
    logger.debug("Built %s with stages %s", type(executor).__name__, [stage.id for stage, _ in pairs])
    return executor
