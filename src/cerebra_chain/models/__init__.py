"""Model types for chain configuration and runtime."""

from cerebra_chain.models.chain_spec import ChainSpec
from cerebra_chain.models.chain_spec import StageSpec
from cerebra_chain.models.loaded_chain_file import LoadedChainFile
from cerebra_chain.models.model_spec import ModelSpec
from cerebra_chain.models.model_spec import StageModels
from cerebra_chain.models.reasoning_step import ReasoningStep
from cerebra_chain.models.reasoning_step import ReasoningSteps
from cerebra_chain.models.run_input import RunInput
from cerebra_chain.models.step_params import OutputKind
from cerebra_chain.models.step_params import ProcessingMode
from cerebra_chain.models.step_params import StepParams

__all__ = [
    "ChainSpec",
    "LoadedChainFile",
    "ModelSpec",
    "OutputKind",
    "ProcessingMode",
    "ReasoningStep",
    "ReasoningSteps",
    "RunInput",
    "StageModels",
    "StageSpec",
    "StepParams",
]
