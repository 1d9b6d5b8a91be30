"""Loads chains of thought stored as line-delimited JSON."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from cerebra_chain.errors import ParseError
from cerebra_chain.json_utils import strip_code_fences
from cerebra_chain.models.reasoning_step import ReasoningStep

logger = logging.getLogger(__name__)

SUB_QUESTION_FIELD = "web_search"

_DECODER = json.JSONDecoder()


def _split_objects(line: str) -> list[str] | None:
    """Split a line holding several JSON values back to back, or return None."""
    parts: list[str] = []
    index = 0
    while index < len(line):
        try:
            _value, end = _DECODER.raw_decode(line, index)
        except ValueError:
            return None
        parts.append(line[index:end])
        index = end
        while index < len(line) and line[index].isspace():
            index += 1
    return parts


def normalize_jsonl(text: str) -> str:
    """
    Put objects written back to back (`}{` or `} {`) on separate lines.

    Lines that already parse are left alone, so braces inside string values
    never split a record. Lines that do not decode at all are kept as they
    are for validation to report.
    """
    lines: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            lines.append(raw_line)
            continue
        try:
            json.loads(line)
        except ValueError:
            parts = _split_objects(line)
            if parts is not None and len(parts) > 1:
                lines.extend(parts)
                continue
        lines.append(raw_line)
    return "\n".join(lines)


def _check_line(line: str, line_number: int) -> None:
    try:
        json.loads(line)
    except ValueError as exc:
        raise ParseError(f"Invalid JSON on line {line_number}: {exc}") from exc


def load_from_text(text: str, validate: bool = False, normalize: bool = True) -> list[ReasoningStep]:
    if normalize:
        text = normalize_jsonl(text)
    steps: list[ReasoningStep] = []
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        if validate:
            _check_line(line, line_number)
        steps.append(ReasoningStep(ordinal=len(steps), content=line))
    logger.debug("Loaded %s reasoning steps", len(steps))
    return steps


def load_from_file(path: Path | str, validate: bool = False, normalize: bool = True) -> list[ReasoningStep]:
    text = Path(path).read_text(encoding="utf-8")
    return load_from_text(text, validate=validate, normalize=normalize)


def extract_sub_questions(jsonl: str) -> str:
    """
    Collect the `web_search` value of every line and join them with newlines,
    one sub-question per line, ready for a parallel fan-out.
    """
    questions: list[str] = []
    body = normalize_jsonl(strip_code_fences(jsonl))
    for line_number, raw_line in enumerate(body.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except ValueError as exc:
            raise ParseError(f"Invalid JSON on line {line_number}: {exc}") from exc
        if not isinstance(record, dict):
            raise ParseError(f"Line {line_number} is not a JSON object.")
        question = record.get(SUB_QUESTION_FIELD)
        if not isinstance(question, str):
            raise ParseError(f"Line {line_number} has no string field {SUB_QUESTION_FIELD!r}.")
        questions.append(question)
    return "\n".join(questions)
