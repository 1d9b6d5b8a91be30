"""Stage input composition helpers."""

from __future__ import annotations

import json
from typing import Any, Mapping

import yaml

from cerebra_chain.chain_processor import unescape_line_breaks


def make_synthesis_input(prompt: str, text_output: str, json_output: str) -> str:
    """
    Build the JSON record the synthesis stage reads: the question, the
    research text and the JSON steps gathered so far. json_output is a
    comma-joined list of objects and goes into the array unchanged.
    """
    return (
        "{"
        f'"main_question": {json.dumps(prompt, ensure_ascii=False)}, '
        f'"data_reference": {json.dumps(unescape_line_breaks(text_output), ensure_ascii=False)}, '
        f'"json_steps": [{json_output}]'
        "}"
    )


def make_compose_input(prompt: str, state: Mapping[str, Any]) -> str:
    # Keep the question first and stable; the variable chain state follows.
    lines = ["## Question", prompt.strip()]
    if state:
        state_yaml = yaml.safe_dump(
            dict(state),
            allow_unicode=True,
            default_flow_style=False,
            sort_keys=True,
        ).rstrip()
        lines.extend(["", "## Chain State (YAML)", state_yaml])
    return "\n".join(lines).rstrip() + "\n"


def chain_state(text_output: str, json_output: str) -> dict[str, str]:
    state: dict[str, str] = {}
    if text_output:
        state["research"] = unescape_line_breaks(text_output)
    if json_output:
        state["synthesis"] = json_output
    return state
