"""Per-unit configuration bag."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from cerebra_chain.models.reasoning_step import ReasoningStep


class ProcessingMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    WEB_PARALLEL = "web_parallel"


class OutputKind(str, Enum):
    JSON = "json"
    NONE = "none"

    @property
    def separator(self) -> str:
        # JSON fragments are joined so the caller can wrap them in [...] later.
        if self is OutputKind.JSON:
            return ",\n"
        return "\n\n"

    @property
    def instructions(self) -> str:
        if self is OutputKind.JSON:
            return "Return only JSON, one object per line, without Markdown code fences or commentary."
        return ""


class StepParams(BaseModel):
    """
    Configuration of one unit of work. Extra keys are accepted so hosts can
    stash their own values. Copies are shallow: `client` and `chain_steps` are
    shared handles, never duplicated.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="allow")

    input: str = ""
    model: str = "gpt-4o-mini"
    processing_mode: ProcessingMode = ProcessingMode.SEQUENTIAL
    output_kind: OutputKind = OutputKind.NONE
    silent_mode: bool = False
    index: int = -1
    chain_steps: list[ReasoningStep] | None = None
    client: Any = None
    stream_buffer: str = ""

    def clone(self, **changes: Any) -> "StepParams":
        changes.setdefault("stream_buffer", "")
        return self.model_copy(update=changes)
