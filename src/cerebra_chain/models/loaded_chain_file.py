"""Loaded chain markdown plus parsed metadata."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import frontmatter
from pydantic import ValidationError

from cerebra_chain.errors import ConfigurationError
from cerebra_chain.models.chain_spec import ChainSpec


logger = logging.getLogger(__name__)

SECTION_HEADER_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*$", re.MULTILINE)
STAGE_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass
class LoadedChainFile:
    spec: ChainSpec
    stage_sources: dict[str, str]  # "stage:<id>" -> JSONL reasoning steps

    def __init__(self, chain: Path | str) -> None:
        post, source_label = load_chain_frontmatter(chain)
        try:
            spec = ChainSpec.model_validate(post.metadata)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid chain frontmatter in {source_label}: {exc}") from exc
        sections = parse_chain_sections(post.content)
        if sections.first_section_start is not None and post.content[: sections.first_section_start].strip():
            logger.warning("Ignored text before the first stage section in %s", source_label)
        self.spec = spec
        self.stage_sources = sections.stage_sources
        self.source_label = source_label

    @classmethod
    def from_parts(cls, *, spec: ChainSpec, stage_sources: dict[str, str]) -> "LoadedChainFile":
        obj = cls.__new__(cls)
        obj.spec = spec
        obj.stage_sources = stage_sources
        obj.source_label = "<parts>"
        return obj

    def source_for(self, section_key: str) -> str:
        return self.stage_sources.get(section_key, "")


@dataclass(frozen=True)
class ParsedChainSections:
    stage_sources: dict[str, str]
    first_section_start: int | None


def load_chain_frontmatter(chain: Path | str) -> tuple[frontmatter.Post, str]:
    if isinstance(chain, Path):
        post = frontmatter.load(str(chain))
        return post, str(chain)
    chain_path = Path(chain)
    if "\n" not in chain and chain_path.exists():
        post = frontmatter.load(str(chain_path))
        return post, str(chain_path)
    post = frontmatter.loads(chain)
    return post, "<inline>"


def classify_section_header(header_text: str) -> str | None:
    header = header_text.strip()
    if ":" not in header:
        return None
    prefix, stage_id = header.split(":", 1)
    if prefix.strip().lower() != "stage":
        return None
    stage_id = stage_id.strip()
    if stage_id and STAGE_ID_RE.match(stage_id):
        return f"stage:{stage_id}"
    return None


def parse_chain_sections(markdown_body: str) -> ParsedChainSections:
    recognized: list[tuple[str, int, int]] = []
    for match in SECTION_HEADER_RE.finditer(markdown_body):
        key = classify_section_header(match.group(2))
        if key is not None:
            recognized.append((key, match.start(), match.end()))

    stage_sources: dict[str, str] = {}
    for index, (key, _start, end) in enumerate(recognized):
        next_index = index + 1
        section_end = recognized[next_index][1] if next_index < len(recognized) else len(markdown_body)
        stage_sources[key] = markdown_body[end:section_end].strip()

    first_section_start = recognized[0][1] if recognized else None
    return ParsedChainSections(stage_sources=stage_sources, first_section_start=first_section_start)
