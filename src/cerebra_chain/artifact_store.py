"""Saves the final data and text of a chain run."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Awaitable, Callable, Protocol, TypeAlias

from cerebra_chain.ai_executor import PydanticAIExecutor
from cerebra_chain.directory_permissions import DirectoryPermissions
from cerebra_chain.io_utils import write_output
from cerebra_chain.json_utils import extract_first_json_object
from cerebra_chain.models.step_params import OutputKind
from cerebra_chain.promise import Promise


logger = logging.getLogger(__name__)

FileNamer: TypeAlias = Callable[[str], Awaitable[str]]

SLUG_RE = re.compile(r"[^A-Za-z0-9]+")
FILE_NAME_FIELD = "FileName"
FILE_NAME_PROMPT = (
    "Suggest a short file name, without extension, for a report answering the question below. "
    f'Answer as {{"{FILE_NAME_FIELD}": "..."}}.\n\n'
)


class ArtifactSink(Protocol):
    def save_artifacts(self, path: str, prompt_label: str, json_data: str, text: str) -> Promise[str]: ...


def slugify(label: str, max_length: int = 60) -> str:
    slug = SLUG_RE.sub("_", label).strip("_").lower()
    return slug[:max_length].rstrip("_") or "chain_output"


async def slug_namer(label: str) -> str:
    return slugify(label)


class AIFileNamer:
    """Ask a model for a file name; falls back to a slug of the prompt."""

    def __init__(self, executor: PydanticAIExecutor, model_name: str) -> None:
        self.executor = executor
        self.model_name = model_name

    async def __call__(self, label: str) -> str:
        answer = await self.executor.complete(
            self.model_name, FILE_NAME_PROMPT + label, OutputKind.JSON.instructions, OutputKind.JSON
        )
        try:
            record = json.loads(extract_first_json_object(answer))
        except ValueError:
            logger.warning("Model returned no usable file name: %r", answer)
            return slugify(label)
        name = record.get(FILE_NAME_FIELD) if isinstance(record, dict) else None
        if not isinstance(name, str) or not name.strip():
            return slugify(label)
        return slugify(Path(name).stem)


class ArtifactStore:
    """Writes <name>.data (JSON and text state) and <name>.md (final text) under the safe directory."""

    def __init__(self, permissions: DirectoryPermissions, namer: FileNamer | None = None) -> None:
        self.permissions = permissions
        self.namer: FileNamer = namer or slug_namer

    async def save(self, path: str, prompt_label: str, json_data: str, text: str) -> str:
        name = await self.namer(prompt_label)
        folder = Path(path) if path else Path(".")
        write_output(folder / f"{name}.data", json_data, self.permissions)
        text_path = write_output(folder / f"{name}.md", text, self.permissions)
        logger.info("Saved chain artifacts to %s", text_path)
        return str(text_path)

    def save_artifacts(self, path: str, prompt_label: str, json_data: str, text: str) -> Promise[str]:
        return Promise.from_awaitable(self.save(path, prompt_label, json_data, text))
