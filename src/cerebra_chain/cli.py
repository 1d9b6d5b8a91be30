"""CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import anyio

from cerebra_chain.errors import ChainError
from cerebra_chain.input_adaptors import InputAdaptor, TextInput
from cerebra_chain.orchestrator import Orchestrator


def print_unit_output(output: str) -> None:
    print(output, end="\n\n", file=sys.stderr)


async def run_chain(
    orch: Orchestrator,
    chain_id: str,
    input_adaptor: InputAdaptor | Path,
    single: bool,
) -> str:
    return await orch.run(chain_id, input_adaptor, single=single)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a chain-of-thought pipeline.")
    parser.add_argument("--chains-dir", type=str, default="chains")
    parser.add_argument("--safe-dir", type=str, default="safe")
    parser.add_argument("--chain", type=str, default="research")
    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("--input", type=str, help="Path to an input file inside the safe directory")
    input_group.add_argument("--input-text", type=str, help="Raw question text")
    parser.add_argument("--single", action="store_true", help="Run only the first stage of the chain")
    parser.add_argument("--silent", action="store_true", help="Do not echo intermediate unit outputs")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    package_root = Path(__file__).resolve().parent
    chain_roots = [Path(args.chains_dir), package_root / "chains"]

    orch = Orchestrator(
        chain_roots,
        Path(args.safe_dir),
        display=None if args.silent else print_unit_output,
        silent=args.silent,
    )
    input_adaptor: InputAdaptor | Path
    if args.input_text is not None:
        input_adaptor = TextInput(args.input_text)
    else:
        input_adaptor = Path(args.input)

    try:
        out = anyio.run(run_chain, orch, args.chain, input_adaptor, args.single)
    except (ChainError, FileNotFoundError, PermissionError) as exc:
        raise SystemExit(f"error: {exc}") from exc
    print(out)
