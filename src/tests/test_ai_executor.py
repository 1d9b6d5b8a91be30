import json
from typing import Any, AsyncIterator

import pytest

from cerebra_chain import ai_executor as ai_module
from cerebra_chain.ai_executor import PydanticAIExecutor, build_model, format_batch
from cerebra_chain.cancellation import Cancellation
from cerebra_chain.errors import AbortedError, ExecutionError
from cerebra_chain.models.model_spec import ModelSpec
from cerebra_chain.models.step_params import OutputKind, ProcessingMode, StepParams


class DummyProvider:
    def __init__(self, base_url: str, api_key: str) -> None:
        self.base_url = base_url
        self.api_key = api_key


class DummyModel:
    def __init__(self, model_name: str, provider: DummyProvider) -> None:
        self.model_name = model_name
        self.provider = provider


class FakeAgentResult:
    def __init__(self, output: str) -> None:
        self.output = output


class FakeStream:
    def __init__(self, deltas: list[str], on_delta: Any = None) -> None:
        self.deltas = deltas
        self.on_delta = on_delta

    async def stream_text(self, delta: bool = False) -> AsyncIterator[str]:
        assert delta is True
        for piece in self.deltas:
            if self.on_delta is not None:
                self.on_delta(piece)
            yield piece


class FakeStreamContext:
    def __init__(self, stream: FakeStream) -> None:
        self.stream = stream

    async def __aenter__(self) -> FakeStream:
        return self.stream

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


class FakeAgent:
    deltas: list[str] = []
    outputs: dict[str, str] = {}
    fail_prompts: set[str] = set()
    during_stream: Any = None
    inits: list[dict[str, Any]] = []
    prompts: list[str] = []

    def __init__(
        self,
        model: Any,
        instructions: str | None,
        output_type: Any,
        model_settings: Any | None = None,
    ) -> None:
        FakeAgent.inits.append(
            {
                "model": model,
                "instructions": instructions,
                "output_type": output_type,
                "model_settings": model_settings,
            }
        )

    async def run(self, user_prompt: str) -> FakeAgentResult:
        FakeAgent.prompts.append(user_prompt)
        if user_prompt in FakeAgent.fail_prompts:
            raise ConnectionError(f"network down for {user_prompt}")
        return FakeAgentResult(FakeAgent.outputs.get(user_prompt, f"answer: {user_prompt}"))

    def run_stream(self, user_prompt: str) -> FakeStreamContext:
        FakeAgent.prompts.append(user_prompt)
        return FakeStreamContext(FakeStream(FakeAgent.deltas, FakeAgent.during_stream))


class ModelRecorder:
    def __init__(self) -> None:
        self.specs: list[ModelSpec] = []

    def __call__(self, spec: ModelSpec) -> str:
        self.specs.append(spec)
        return f"model:{spec.model_name}"


@pytest.fixture()
def fake_agent(monkeypatch: pytest.MonkeyPatch) -> type[FakeAgent]:
    FakeAgent.deltas = []
    FakeAgent.outputs = {}
    FakeAgent.fail_prompts = set()
    FakeAgent.during_stream = None
    FakeAgent.inits = []
    FakeAgent.prompts = []
    monkeypatch.setattr(ai_module, "Agent", FakeAgent)
    monkeypatch.setattr(ai_module, "build_model", ModelRecorder())
    return FakeAgent


def test_build_model_reads_api_key_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ai_module, "OpenAIProvider", DummyProvider)
    monkeypatch.setattr(ai_module, "OpenAIChatModel", DummyModel)
    monkeypatch.setenv("CHAIN_TEST_KEY", "secret")
    spec = ModelSpec(base_url="http://localhost:11434/v1", api_key_env="CHAIN_TEST_KEY", model_name="llama")

    model = build_model(spec)

    assert isinstance(model, DummyModel)
    assert model.model_name == "llama"
    assert model.provider.base_url == "http://localhost:11434/v1"
    assert model.provider.api_key == "secret"


def test_model_for_caches_per_model_name(fake_agent: type[FakeAgent]) -> None:
    executor = PydanticAIExecutor(ModelSpec(temperature=0.5))

    assert executor.model_for("a") == "model:a"
    assert executor.model_for("a") == "model:a"
    assert executor.model_for("b") == "model:b"
    recorder = ai_module.build_model
    assert isinstance(recorder, ModelRecorder)
    assert [spec.model_name for spec in recorder.specs] == ["a", "b"]
    assert recorder.specs[0].temperature == 0.5


@pytest.mark.anyio
async def test_execute_streams_into_buffer(fake_agent: type[FakeAgent]) -> None:
    fake_agent.deltas = ["Hel", "lo"]
    seen: list[str] = []
    executor = PydanticAIExecutor(on_delta=seen.append)
    params = StepParams(model="gpt-x", output_kind=OutputKind.JSON)

    result = await executor.execute(params, "prompt text")

    assert result == "Hello"
    assert params.stream_buffer == "Hello"
    assert seen == ["Hel", "lo"]
    assert fake_agent.prompts == ["prompt text"]
    init = fake_agent.inits[0]
    assert init["model"] == "model:gpt-x"
    assert init["instructions"] == OutputKind.JSON.instructions
    assert init["output_type"] is str
    assert init["model_settings"] == {"temperature": 0.2, "max_tokens": 2048}


@pytest.mark.anyio
async def test_plain_output_sends_no_instructions(fake_agent: type[FakeAgent]) -> None:
    fake_agent.deltas = ["x"]
    executor = PydanticAIExecutor()

    await executor.execute(StepParams(output_kind=OutputKind.NONE, silent_mode=True), "p")

    assert fake_agent.inits[0]["instructions"] is None


@pytest.mark.anyio
async def test_cancellation_during_stream_aborts(fake_agent: type[FakeAgent]) -> None:
    cancellation = Cancellation()
    fake_agent.deltas = ["a", "b", "c"]
    fake_agent.during_stream = lambda piece: cancellation.cancel() if piece == "b" else None
    executor = PydanticAIExecutor(cancellation=cancellation)
    params = StepParams()

    with pytest.raises(AbortedError, match="Aborted"):
        await executor.execute(params, "p")
    assert params.stream_buffer == "a"


@pytest.mark.anyio
async def test_cancelled_before_start_never_calls_model(fake_agent: type[FakeAgent]) -> None:
    cancellation = Cancellation()
    cancellation.cancel()
    executor = PydanticAIExecutor(cancellation=cancellation)

    with pytest.raises(AbortedError):
        await executor.execute(StepParams(), "p")
    assert fake_agent.prompts == []

    cancellation.reset()
    assert cancellation.is_cancelled() is False


@pytest.mark.anyio
async def test_batch_formats_web_research_records(fake_agent: type[FakeAgent]) -> None:
    executor = PydanticAIExecutor()
    params = StepParams(model="search", processing_mode=ProcessingMode.WEB_PARALLEL)

    result = await executor.execute_batch(params, ["Q1", "Q2"])

    records = json.loads(f"[{result}]")
    assert records == [
        {"sub_question": "Q1", "response": "answer: Q1"},
        {"sub_question": "Q2", "response": "answer: Q2"},
    ]
    assert sorted(fake_agent.prompts) == ["Q1", "Q2"]
    assert [init["model_settings"] for init in fake_agent.inits] == [{"max_tokens": 2048}, {"max_tokens": 2048}]


@pytest.mark.anyio
async def test_plain_batch_keeps_temperature(fake_agent: type[FakeAgent]) -> None:
    executor = PydanticAIExecutor()

    await executor.execute_batch(StepParams(model="m", processing_mode=ProcessingMode.PARALLEL), ["Q1"])

    assert fake_agent.inits[0]["model_settings"] == {"temperature": 0.2, "max_tokens": 2048}


@pytest.mark.anyio
async def test_batch_failure_rejects_with_execution_error(fake_agent: type[FakeAgent]) -> None:
    fake_agent.fail_prompts = {"bad"}
    executor = PydanticAIExecutor()

    with pytest.raises(ExecutionError, match="network down for bad"):
        await executor.execute_batch(StepParams(processing_mode=ProcessingMode.PARALLEL), ["ok", "bad"])


@pytest.mark.anyio
async def test_empty_batch_is_an_error(fake_agent: type[FakeAgent]) -> None:
    with pytest.raises(ExecutionError, match="no prompts"):
        await PydanticAIExecutor().execute_batch(StepParams(), [])


@pytest.mark.anyio
async def test_complete_returns_output(fake_agent: type[FakeAgent]) -> None:
    fake_agent.outputs = {"name it": '{"FileName": "x"}'}

    assert await PydanticAIExecutor().complete("m", "name it") == '{"FileName": "x"}'


def test_format_batch_plain_modes() -> None:
    plain = StepParams(processing_mode=ProcessingMode.PARALLEL, output_kind=OutputKind.NONE)
    as_json = StepParams(processing_mode=ProcessingMode.PARALLEL, output_kind=OutputKind.JSON)

    assert format_batch(plain, ["a", "b"], ["1", "2"]) == "1\n\n2"
    assert format_batch(as_json, ["a", "b"], ['{"x": 1}', '{"x": 2}']) == '{"x": 1},\n{"x": 2}'


@pytest.mark.anyio
async def test_local_openai_compatible_server_gets_json_format(fake_agent: type[FakeAgent]) -> None:
    fake_agent.deltas = ["{}"]
    executor = PydanticAIExecutor(ModelSpec(base_url="http://localhost:11434/v1"))

    await executor.execute(StepParams(output_kind=OutputKind.JSON), "p")
    await executor.execute(StepParams(output_kind=OutputKind.NONE), "p")

    assert fake_agent.inits[0]["model_settings"]["extra_body"] == {"format": "json"}
    assert "extra_body" not in fake_agent.inits[1]["model_settings"]
