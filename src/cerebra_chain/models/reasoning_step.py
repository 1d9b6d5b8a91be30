"""Pydantic model for one chain-of-thought entry."""

from __future__ import annotations

import json
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict


class ReasoningStep(BaseModel):
    """
    One JSONL line of a chain of thought, kept verbatim.
    The usual shape is {"step": N, "title": ..., "instructions": [...]} but the
    engine only relies on the raw text.
    """

    model_config = ConfigDict(frozen=True)

    ordinal: int
    content: str

    def data(self) -> dict[str, Any] | None:
        try:
            parsed = json.loads(self.content)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None

    @property
    def title(self) -> str:
        data = self.data() or {}
        return str(data.get("title", ""))

    @property
    def instructions(self) -> list[str]:
        data = self.data() or {}
        raw = data.get("instructions", [])
        if not isinstance(raw, list):
            return []
        return [str(item) for item in raw]


ReasoningSteps: TypeAlias = list[ReasoningStep]
