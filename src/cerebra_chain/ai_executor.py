"""Prompt executor backed by pydantic-ai chat models."""

from __future__ import annotations

import json
import logging
import os
from typing import Callable

import anyio
from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from cerebra_chain.cancellation import Cancellation
from cerebra_chain.errors import AbortedError, ChainError, ExecutionError
from cerebra_chain.models.model_spec import ModelSpec
from cerebra_chain.models.step_params import OutputKind, ProcessingMode, StepParams
from cerebra_chain.promise import Promise


logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"


def build_model(model_spec: ModelSpec) -> OpenAIChatModel:
    api_key = os.environ.get(model_spec.api_key_env, "noop")
    provider = OpenAIProvider(base_url=model_spec.base_url, api_key=api_key)
    return OpenAIChatModel(model_spec.model_name, provider=provider)


def format_batch(params: StepParams, prompts: list[str], responses: list[str]) -> str:
    """
    Merge fan-out responses into one output. Web research keeps each answer
    next to its sub-question as a JSON record; other batches are joined with
    the separator of the unit's output kind.
    """
    if params.processing_mode is ProcessingMode.WEB_PARALLEL:
        records = [
            json.dumps({"sub_question": prompt, "response": response}, ensure_ascii=False)
            for prompt, response in zip(prompts, responses)
        ]
        return ",\n".join(records)
    return params.output_kind.separator.join(responses)


def _first_error(group: BaseExceptionGroup) -> BaseException:
    error: BaseException = group
    while isinstance(error, BaseExceptionGroup) and error.exceptions:
        error = error.exceptions[0]
    return error


class PydanticAIExecutor:
    def __init__(
        self,
        model_spec: ModelSpec | None = None,
        *,
        cancellation: Cancellation | None = None,
        on_delta: Callable[[str], object] | None = None,
    ) -> None:
        self.model_spec: ModelSpec = model_spec or ModelSpec()
        self.cancellation: Cancellation = cancellation or Cancellation()
        self.on_delta = on_delta
        self._models: dict[str, OpenAIChatModel] = {}

    def model_for(self, model_name: str) -> OpenAIChatModel:
        if model_name not in self._models:
            spec = self.model_spec.model_copy(update={"model_name": model_name})
            self._models[model_name] = build_model(spec)
        return self._models[model_name]

    def _model_settings(self, output_kind: OutputKind, sampling: bool = True) -> ModelSettings:
        settings: ModelSettings = {"max_tokens": self.model_spec.max_tokens}
        if sampling:
            settings["temperature"] = self.model_spec.temperature
        if output_kind is OutputKind.JSON and self.model_spec.provider == "openai-compatible":
            # Ollama's OpenAI-compatible API uses "format": "json" to force JSON output.
            if self.model_spec.base_url != OPENAI_BASE_URL:
                settings["extra_body"] = {"format": "json"}
        return settings

    def _agent(
        self, model_name: str, instructions: str, output_kind: OutputKind, sampling: bool = True
    ) -> Agent[None, str]:
        return Agent(
            self.model_for(model_name),
            instructions=instructions or None,
            output_type=str,
            model_settings=self._model_settings(output_kind, sampling),
        )

    async def complete(
        self,
        model_name: str,
        prompt: str,
        instructions: str = "",
        output_kind: OutputKind = OutputKind.NONE,
        sampling: bool = True,
    ) -> str:
        if self.cancellation.is_cancelled():
            raise AbortedError()
        agent = self._agent(model_name, instructions, output_kind, sampling)
        try:
            result = await agent.run(prompt)
        except ChainError:
            raise
        except Exception as exc:
            raise ExecutionError(f"Model {model_name} failed: {exc}") from exc
        return result.output

    async def stream(self, params: StepParams, prompt: str) -> str:
        """Stream one answer into params.stream_buffer, polling for cancellation."""
        if self.cancellation.is_cancelled():
            raise AbortedError()
        agent = self._agent(params.model, params.output_kind.instructions, params.output_kind)
        params.stream_buffer = ""
        try:
            async with agent.run_stream(prompt) as result:
                async for delta in result.stream_text(delta=True):
                    if self.cancellation.is_cancelled():
                        raise AbortedError()
                    params.stream_buffer += delta
                    if self.on_delta is not None and not params.silent_mode:
                        self.on_delta(delta)
        except ChainError:
            raise
        except Exception as exc:
            raise ExecutionError(f"Model {params.model} failed: {exc}") from exc
        return params.stream_buffer

    async def run_batch(self, params: StepParams, prompts: list[str]) -> str:
        if not prompts:
            raise ExecutionError("Batch has no prompts.")
        responses: list[str] = [""] * len(prompts)
        # Search-backed models reject sampling parameters.
        sampling = params.processing_mode is not ProcessingMode.WEB_PARALLEL

        async def worker(index: int, prompt: str) -> None:
            responses[index] = await self.complete(
                params.model, prompt, params.output_kind.instructions, params.output_kind, sampling
            )

        try:
            async with anyio.create_task_group() as tg:
                for index, prompt in enumerate(prompts):
                    tg.start_soon(worker, index, prompt)
        except BaseExceptionGroup as group:
            raise _first_error(group) from None
        return format_batch(params, prompts, responses)

    def execute(self, params: StepParams, prompt: str) -> Promise[str]:
        return Promise.from_awaitable(self.stream(params, prompt))

    def execute_batch(self, params: StepParams, prompts: list[str]) -> Promise[str]:
        return Promise.from_awaitable(self.run_batch(params, prompts))
