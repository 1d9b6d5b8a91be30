"""Sources for the question a chain run answers."""

from __future__ import annotations

from pathlib import Path

from cerebra_chain.directory_permissions import DirectoryPermissions
from cerebra_chain.io_utils import load_input
from cerebra_chain.models.run_input import RunInput


class InputAdaptor:
    def load(self) -> RunInput:
        raise NotImplementedError("InputAdaptor.load must be implemented by subclasses.")


class FileInput(InputAdaptor):
    def __init__(self, path: Path, permissions: DirectoryPermissions) -> None:
        self._path = path
        self._permissions = permissions

    def load(self) -> RunInput:
        return load_input(self._path, self._permissions)


class TextInput(InputAdaptor):
    def __init__(self, text: str) -> None:
        self._text = text

    def load(self) -> RunInput:
        return RunInput(kind="text", text=self._text.strip())
