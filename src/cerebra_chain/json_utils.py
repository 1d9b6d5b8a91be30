"""JSON parsing helpers."""

from __future__ import annotations

import re

CODE_FENCE_RE = re.compile(r"^\s*```[A-Za-z0-9_-]*\s*$", re.MULTILINE)


def extract_first_json_object(text: str) -> str:
    """
    Extract the first top-level JSON object from text.
    Models often wrap the object they were asked for in prose or fences.
    """
    start = text.find("{")
    if start == -1:
        raise ValueError("No JSON object found in model output.")

    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == "\"":
                in_string = False
        elif ch == "\"":
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    raise ValueError("Unbalanced JSON object in model output.")


def strip_code_fences(text: str) -> str:
    """Drop Markdown fence lines (```json, ```) and keep what they wrapped."""
    return CODE_FENCE_RE.sub("", text).strip()
