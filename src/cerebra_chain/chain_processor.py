"""Turns reasoning steps into pipeline units and carries output across stages."""

from __future__ import annotations

import logging
import re
from typing import Callable, TypeAlias

from cerebra_chain.errors import ConfigurationError
from cerebra_chain.models.reasoning_step import ReasoningStep
from cerebra_chain.models.step_params import OutputKind, ProcessingMode, StepParams
from cerebra_chain.pipeline import Pipeline
from cerebra_chain.unit_of_work import UnitOfWork


logger = logging.getLogger(__name__)

Configure: TypeAlias = Callable[[UnitOfWork], object]

LINE_BREAK_RE = re.compile(r"\r\n|\n|\r")
ESCAPE_RE = re.compile(r"\\([\\n])")


def escape_line_breaks(text: str) -> str:
    """
    Replace every line break with the two characters backslash and n.
    Backslashes are doubled first so unescape_line_breaks() can undo it.
    """
    return LINE_BREAK_RE.sub(r"\\n", text.replace("\\", "\\\\"))


def unescape_line_breaks(text: str) -> str:
    return ESCAPE_RE.sub(lambda match: "\n" if match.group(1) == "n" else "\\", text)


class ChainProcessor:
    """
    Owns the pipeline and the prototype parameters of one chain run.

    Each stage starts with begin_stage(), which folds the outputs of the
    stage that just ran into the JSON or text accumulator and empties the
    pipeline. The accumulators only gain a separator once they hold
    something, so the first stage of each kind starts a fresh base.
    """

    def __init__(self, prototype: StepParams | None = None, pipeline: Pipeline | None = None) -> None:
        self.prototype: StepParams = prototype if prototype is not None else StepParams()
        self.pipeline: Pipeline = pipeline if pipeline is not None else Pipeline()
        self.json_output: str = ""
        self.text_output: str = ""
        self.output_kind: OutputKind = OutputKind.NONE

    def update(self, output_kind: OutputKind | None = None) -> None:
        kind = output_kind or self.output_kind
        if not self.pipeline:
            return
        if kind is OutputKind.JSON:
            self.json_output += self.pipeline.aggregate(reset_base=not self.json_output)
        else:
            self.text_output += escape_line_breaks(self.pipeline.aggregate(reset_base=not self.text_output))
        logger.debug("Aggregated %s units into the %s accumulator", self.pipeline.count, kind.value)

    def finish(self, output_kind: OutputKind | None = None) -> None:
        self.update(output_kind)
        self.pipeline.clear()

    def begin_stage(self, output_kind: OutputKind | None = None) -> StepParams:
        self.finish(output_kind)
        return self.prototype

    def expand_sequential(
        self,
        steps: list[ReasoningStep],
        configure: Configure | None,
        output_kind: OutputKind = OutputKind.NONE,
    ) -> Pipeline:
        if configure is None:
            raise ConfigurationError("A per-step configure callback is required.")
        self.output_kind = output_kind
        for position in range(len(steps)):
            params = self.prototype.clone(
                index=position,
                chain_steps=steps,
                output_kind=output_kind,
                processing_mode=ProcessingMode.SEQUENTIAL,
            )
            unit = UnitOfWork(params=params)
            configure(unit)
            self.pipeline.add(unit)
        return self.pipeline

    def expand_parallel(
        self,
        prompts: str,
        configure: Configure | None,
        mode: ProcessingMode = ProcessingMode.PARALLEL,
    ) -> Pipeline:
        """Add one unit that carries the whole batch, one prompt per line."""
        if configure is None:
            raise ConfigurationError("A batch configure callback is required.")
        self.output_kind = OutputKind.NONE
        params = self.prototype.clone(
            index=0,
            input=prompts,
            output_kind=OutputKind.NONE,
            processing_mode=mode,
        )
        unit = UnitOfWork(params=params)
        configure(unit)
        self.pipeline.add(unit)
        return self.pipeline
