"""Helper for running chains."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from cerebra_chain.ai_executor import PydanticAIExecutor
from cerebra_chain.artifact_store import AIFileNamer, ArtifactStore
from cerebra_chain.cancellation import Cancellation
from cerebra_chain.chain_executor import ChainExecutor, ChainExecutorSettings
from cerebra_chain.chain_registry import ChainRegistry
from cerebra_chain.directory_permissions import DirectoryPermissions
from cerebra_chain.input_adaptors import FileInput, InputAdaptor
from cerebra_chain.models.loaded_chain_file import LoadedChainFile
from cerebra_chain.scheduler import AsyncScheduler
from cerebra_chain.stage_actions import build_chain_executor


class Orchestrator:
    def __init__(
        self,
        chain_roots: list[Path] | None = None,
        safe_dir: Optional[Path] = None,
        *,
        display: Callable[[str], object] | None = None,
        silent: bool = False,
        ai_file_names: bool = True,
    ) -> None:
        self.registry: ChainRegistry = ChainRegistry(chain_roots or [])
        self.directory_permissions: DirectoryPermissions = DirectoryPermissions(safe_dir)
        self.scheduler: AsyncScheduler = AsyncScheduler()
        self.cancellation: Cancellation = Cancellation()
        self.display = display
        self.silent = silent
        self.ai_file_names = ai_file_names

    def cancel(self) -> None:
        self.cancellation.cancel()

    def _build_store(self, loaded: LoadedChainFile, client: PydanticAIExecutor) -> ArtifactStore | None:
        if self.directory_permissions.root is None:
            return None
        permissions = self.directory_permissions.scoped(loaded.spec.output_path)
        namer = AIFileNamer(client, loaded.spec.models.default) if self.ai_file_names else None
        return ArtifactStore(permissions, namer=namer)

    def build(self, chain_id: str, input_data: InputAdaptor | Path, *, single: bool = False) -> ChainExecutor:
        loaded = self.registry.get(chain_id)
        if isinstance(input_data, InputAdaptor):
            input_adaptor = input_data
        else:
            input_adaptor = FileInput(input_data, self.directory_permissions)
        run_input = input_adaptor.load()
        client = PydanticAIExecutor(loaded.spec.model, cancellation=self.cancellation)
        settings = ChainExecutorSettings(
            client=client,
            default_model=loaded.spec.models.default,
            search_model=loaded.spec.models.search,
            editor_model=loaded.spec.models.editor,
            prompt=run_input.text,
            display=self.display,
            silent=self.silent,
        )
        store = self._build_store(loaded, client)
        return build_chain_executor(loaded, settings, scheduler=self.scheduler, store=store, single=single)

    async def run(self, chain_id: str, input_data: InputAdaptor | Path, *, single: bool = False) -> str:
        self.cancellation.reset()
        executor = self.build(chain_id, input_data, single=single)
        return await executor.execute()
