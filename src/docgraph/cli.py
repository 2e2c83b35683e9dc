"""Documentation generator command line.

Generates:
    {destination}/README.md          - Index of modules
    {destination}/{module-name}.md   - Reference page per module
"""

from __future__ import annotations

import argparse
import logging
import sys

from . import __version__
from .assembler import build_program, generate_documentation
from .config import load_config
from .errors import DocgraphError
from .generators import write_docs
from .validators import compute_coverage, validate_docs

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docgraph",
        description="Extract API reference documentation from typed source modules.",
    )
    parser.add_argument("config", help="docgraph.json or pyproject.toml")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every parsed file")
    parser.add_argument(
        "--strict", action="store_true", help="fail when exports are undocumented"
    )
    parser.add_argument(
        "--no-write", action="store_true", help="extract and validate without writing output"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Generate all documentation."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        program = build_program(config)
        graph = generate_documentation(program, config)
    except DocgraphError as e:
        log.error("%s", e)
        return 1

    print(f"  ✓ {config.module_name}: {len(graph.docs)} exports in {len(graph.files)} files")

    validation = validate_docs(graph, strict=args.strict)
    for warning in validation.warnings:
        log.warning("%s", warning)
    if validation.errors:
        print("\nValidation errors:")
        for err in validation.errors:
            print(f"  ✗ {err}")
        return 1

    print(f"\nCoverage: {compute_coverage(graph):.0%}")

    if args.no_write:
        return 0

    try:
        written = write_docs(graph, config)
    except OSError as e:
        log.error("Failed to write %s: %s", config.destination, e)
        return 1

    print("\nGenerated:")
    for path in written:
        print(f"  {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
