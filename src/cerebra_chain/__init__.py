"""Public package exports."""

from cerebra_chain.chain_executor import ChainExecutor
from cerebra_chain.chain_executor import ChainExecutorSettings
from cerebra_chain.chain_executor import SingleChainExecutor
from cerebra_chain.chain_processor import ChainProcessor
from cerebra_chain.errors import AbortedError
from cerebra_chain.errors import ChainError
from cerebra_chain.errors import ConfigurationError
from cerebra_chain.errors import ExecutionError
from cerebra_chain.errors import ParseError
from cerebra_chain.orchestrator import Orchestrator
from cerebra_chain.pipeline import Pipeline
from cerebra_chain.promise import Promise
from cerebra_chain.scheduler import AsyncScheduler
from cerebra_chain.unit_of_work import UnitOfWork

__all__ = [
    "AbortedError",
    "AsyncScheduler",
    "ChainError",
    "ChainExecutor",
    "ChainExecutorSettings",
    "ChainProcessor",
    "ConfigurationError",
    "ExecutionError",
    "Orchestrator",
    "ParseError",
    "Pipeline",
    "Promise",
    "SingleChainExecutor",
    "UnitOfWork",
]
