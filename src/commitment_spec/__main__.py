"""
Commitment tree engine CLI entry point.

Assemble commitment info from storage proofs, or guess the descents of a
trie transition, reading JSON from a file (or stdin) and writing JSON to
stdout.

Usage::

    python -m commitment_spec commitment-info --kind contract_storage request.json
    python -m commitment_spec descents request.json

Input of `commitment-info`::

    {
      "previous_root": "0x..",
      "updated_root": "0x..",
      "previous_proofs": [[{"binary": {...}}, {"edge": {...}}], ...],
      "updated_proofs": [[...], ...]
    }

Input of `descents`::

    {
      "commitment_info": {"previous_root": .., "updated_root": .., ...},
      "modifications": {"0x5": "0x2a"}
    }
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from pydantic import Field, ValidationError

from commitment_spec.config import DEFAULT_CONFIG, CommitmentConfig
from commitment_spec.subspecs.crypto import TrieKind
from commitment_spec.subspecs.patricia import CommitmentInfo, StorageLeaf
from commitment_spec.subspecs.patricia.proofs import Proof
from commitment_spec.types import DescentMap, Felt, StrictBaseModel
from commitment_spec.types.exceptions import CommitmentError

logger = logging.getLogger(__name__)


class CommitmentInfoRequest(StrictBaseModel):
    """Input of the `commitment-info` command."""

    previous_root: Felt
    updated_root: Felt
    previous_proofs: list[Proof] = Field(default_factory=list)
    updated_proofs: list[Proof] = Field(default_factory=list)


class DescentsRequest(StrictBaseModel):
    """Input of the `descents` command."""

    commitment_info: CommitmentInfo
    modifications: dict[Felt, Felt] = Field(default_factory=dict)


def descent_map_to_json(descents: DescentMap) -> list[dict[str, object]]:
    """Descents as JSON objects, ordered by height then path, top first."""
    return [
        {
            "height": int(start.height),
            "path": f"{int(start.path):#x}",
            "length": int(descent.length),
            "descent_path": f"{int(descent.path):#x}",
        }
        for start, descent in sorted(
            descents.items(), key=lambda item: (-item[0].height, item[0].path)
        )
    ]


def run_commitment_info(
    kind: TrieKind, raw: str, config: CommitmentConfig = DEFAULT_CONFIG
) -> str:
    """Parse a `commitment-info` request and return the commitment info as JSON."""
    request = CommitmentInfoRequest.model_validate_json(raw)
    info = CommitmentInfo.from_proofs(
        kind,
        request.previous_root,
        request.updated_root,
        request.previous_proofs,
        request.updated_proofs,
        config=config,
    )
    logger.info(
        "Built %s commitment info with %d facts", kind.value, len(info.commitment_facts)
    )
    return info.model_dump_json(indent=2)


def run_descents(raw: str) -> str:
    """Parse a `descents` request and return the descent map as JSON."""
    request = DescentsRequest.model_validate_json(raw)
    modifications = [
        (int(index), StorageLeaf(value=value)) for index, value in request.modifications.items()
    ]
    descents = request.commitment_info.guess_descents(modifications)
    logger.info("Found %d descents", len(descents))
    return json.dumps(descent_map_to_json(descents), indent=2)


def setup_logging(verbose: bool = False) -> None:
    """Log to stderr so stdout only carries the JSON result."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def _read_input(path: Optional[Path], stdin: TextIO) -> str:
    if path is None or str(path) == "-":
        return stdin.read()
    return path.read_text()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="commitment_spec",
        description="Commitment tree engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    info_parser = subparsers.add_parser(
        "commitment-info", help="Build commitment info from storage proofs"
    )
    info_parser.add_argument(
        "--kind",
        choices=[kind.value for kind in TrieKind],
        default=TrieKind.CONTRACT_STORAGE.value,
        help="Trie the proofs belong to (default: contract_storage)",
    )
    info_parser.add_argument(
        "input", nargs="?", type=Path, default=None, help="Request JSON file (default: stdin)"
    )

    descents_parser = subparsers.add_parser(
        "descents", help="Guess the descents of a trie transition"
    )
    descents_parser.add_argument(
        "input", nargs="?", type=Path, default=None, help="Request JSON file (default: stdin)"
    )
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    """CLI entry point. Returns the process exit code."""
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    try:
        raw = _read_input(args.input, stdin)
        if args.command == "commitment-info":
            output = run_commitment_info(TrieKind(args.kind), raw)
        else:
            output = run_descents(raw)
    except (CommitmentError, ValidationError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1

    stdout.write(output + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
