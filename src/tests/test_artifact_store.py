from pathlib import Path

import pytest

from cerebra_chain.artifact_store import AIFileNamer, ArtifactStore, slugify
from cerebra_chain.directory_permissions import DirectoryPermissions
from cerebra_chain.models.step_params import OutputKind


class FakeCompleter:
    def __init__(self, answer: str) -> None:
        self.answer = answer
        self.calls: list[tuple[str, str, str, OutputKind]] = []

    async def complete(
        self,
        model_name: str,
        prompt: str,
        instructions: str = "",
        output_kind: OutputKind = OutputKind.NONE,
    ) -> str:
        self.calls.append((model_name, prompt, instructions, output_kind))
        return self.answer


class FixedNamer:
    def __init__(self, name: str) -> None:
        self.name = name
        self.labels: list[str] = []

    async def __call__(self, label: str) -> str:
        self.labels.append(label)
        return self.name


def test_slugify() -> None:
    assert slugify("What is a Promise?") == "what_is_a_promise"
    assert slugify("???") == "chain_output"
    assert len(slugify("word " * 40)) <= 60


@pytest.mark.anyio
async def test_save_artifacts_writes_data_and_text(tmp_path: Path) -> None:
    namer = FixedNamer("report")
    store = ArtifactStore(DirectoryPermissions(tmp_path), namer=namer)

    saved = await store.save_artifacts("out", "Why?", '{"a": 1}\ntext', "# Report")

    folder = tmp_path.resolve() / "out"
    assert saved == str(folder / "report.md")
    assert (folder / "report.data").read_text(encoding="utf-8") == '{"a": 1}\ntext'
    assert (folder / "report.md").read_text(encoding="utf-8") == "# Report"
    assert namer.labels == ["Why?"]


@pytest.mark.anyio
async def test_default_namer_slugs_the_prompt(tmp_path: Path) -> None:
    store = ArtifactStore(DirectoryPermissions(tmp_path))

    saved = await store.save_artifacts("", "Big Question", "data", "text")

    assert Path(saved).name == "big_question.md"


@pytest.mark.anyio
async def test_save_outside_safe_dir_is_rejected(tmp_path: Path) -> None:
    store = ArtifactStore(DirectoryPermissions(tmp_path / "safe"), namer=FixedNamer("r"))

    with pytest.raises(PermissionError):
        await store.save_artifacts("../escape", "q", "d", "t")


@pytest.mark.anyio
async def test_ai_namer_uses_model_file_name() -> None:
    completer = FakeCompleter('Here you go: {"FileName": "Promise Basics.md"}')
    namer = AIFileNamer(completer, "small")  # type: ignore[arg-type]

    assert await namer("What is a promise?") == "promise_basics"
    model_name, prompt, instructions, output_kind = completer.calls[0]
    assert model_name == "small"
    assert prompt.endswith("What is a promise?")
    assert instructions == OutputKind.JSON.instructions
    assert output_kind is OutputKind.JSON


@pytest.mark.anyio
async def test_ai_namer_falls_back_to_slug() -> None:
    namer = AIFileNamer(FakeCompleter("no json at all"), "small")  # type: ignore[arg-type]
    empty = AIFileNamer(FakeCompleter('{"FileName": ""}'), "small")  # type: ignore[arg-type]

    assert await namer("Fallback Name") == "fallback_name"
    assert await empty("Other") == "other"
