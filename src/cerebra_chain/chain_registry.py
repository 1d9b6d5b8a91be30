"""Chain registry: finds chain definition files by id."""

from __future__ import annotations

import logging
from pathlib import Path

from cerebra_chain.models.loaded_chain_file import LoadedChainFile


logger = logging.getLogger(__name__)


def load_chain_file(path: Path) -> LoadedChainFile:
    return LoadedChainFile(path)


class ChainRegistry:
    """
    Chain ids are file stems. Roots are searched in order, so a user chain
    shadows a built-in chain with the same id.
    """

    def __init__(self, chain_roots: list[Path]):
        self.chain_roots = chain_roots
        self._cache: dict[str, LoadedChainFile] = {}
        self._index: dict[str, Path] | None = None

    def _build_index(self) -> dict[str, Path]:
        index: dict[str, Path] = {}
        for root in self.chain_roots:
            if not root.exists():
                continue
            for path in sorted(root.rglob("*.md")):
                chain_id = path.stem
                if chain_id in index:
                    logger.debug("Chain %s at %s is shadowed by %s", chain_id, path, index[chain_id])
                    continue
                index[chain_id] = path
        return index

    def _get_index(self) -> dict[str, Path]:
        if self._index is None:
            self._index = self._build_index()
        return self._index

    def list_chains(self) -> list[str]:
        return sorted(self._get_index().keys())

    def get(self, chain_id: str) -> LoadedChainFile:
        if chain_id in self._cache:
            return self._cache[chain_id]
        path = self._get_index().get(chain_id)
        if path is None:
            raise FileNotFoundError(f"Chain not found: {chain_id} (searched: {self.chain_roots})")
        loaded = load_chain_file(path)
        self._cache[chain_id] = loaded
        return loaded
