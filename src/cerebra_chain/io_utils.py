"""Input/output helpers."""

from __future__ import annotations

import json
from pathlib import Path

from cerebra_chain.directory_permissions import DirectoryPermissions
from cerebra_chain.models.run_input import RunInput


def load_input(path: Path, permissions: DirectoryPermissions) -> RunInput:
    """Read a question from a file in the safe directory; JSON is re-rendered as text."""
    safe_path = permissions.resolve(path, for_write=False)
    if not safe_path.exists():
        raise FileNotFoundError(safe_path)

    raw_text = safe_path.read_text(encoding="utf-8")
    if safe_path.suffix.lower() != ".json":
        return RunInput(source_path=str(safe_path), kind="text", text=raw_text.strip())
    data = json.loads(raw_text)
    if isinstance(data, dict) and isinstance(data.get("prompt"), str):
        text = data["prompt"]
    else:
        text = json.dumps(data, indent=2, ensure_ascii=False)
    return RunInput(source_path=str(safe_path), kind="json", text=text, data=data if isinstance(data, dict) else None)


def write_output(path: Path, content: str, permissions: DirectoryPermissions) -> Path:
    safe_path = permissions.resolve(path, for_write=True)
    safe_path.parent.mkdir(parents=True, exist_ok=True)
    safe_path.write_text(content, encoding="utf-8")
    return safe_path
