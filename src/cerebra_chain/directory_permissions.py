"""Keeps chain inputs and artifacts inside one safe directory."""

from __future__ import annotations

from pathlib import Path


def _normalize(path: Path) -> Path:
    return path.expanduser().resolve(strict=False)


class DirectoryPermissions:
    def __init__(self, root: Path | None) -> None:
        self._root = _normalize(root) if root is not None else None

    @property
    def root(self) -> Path | None:
        return self._root

    def _require_root(self) -> Path:
        if self._root is None:
            raise PermissionError("No safe directory configured; artifact reads and writes are denied.")
        return self._root

    def scoped(self, directory: str | None) -> "DirectoryPermissions":
        """Narrow the root to a relative subdirectory, e.g. a chain's output_path."""
        if self._root is None or not directory:
            return self
        if Path(directory).is_absolute():
            raise ValueError(f"Scoped directory {directory!r} must be relative.")
        candidate = _normalize(self._root / directory)
        if not candidate.is_relative_to(self._root):
            raise ValueError(f"Scoped directory {directory!r} escapes safe root {self._root}.")
        return DirectoryPermissions(candidate)

    def resolve(self, path: Path, *, for_write: bool) -> Path:
        root = self._require_root()
        target = path if path.is_absolute() else root / path
        resolved = _normalize(target)
        if not resolved.is_relative_to(root):
            raise PermissionError(f"Path {resolved} is outside safe directory {root}.")
        if for_write:
            root.mkdir(parents=True, exist_ok=True)
        return resolved

    def allows(self, path: Path) -> bool:
        try:
            self.resolve(path, for_write=False)
        except PermissionError:
            return False
        return True
