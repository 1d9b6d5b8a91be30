"""Pydantic model for the question a chain run starts from."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel

INLINE_SOURCE = "inline_input.txt"


class RunInput(BaseModel):
    source_path: str = INLINE_SOURCE
    kind: Literal["json", "text"] = "text"
    text: str
    data: Optional[dict[str, Any]] = None

    @property
    def is_inline(self) -> bool:
        return self.source_path == INLINE_SOURCE
