#!/usr/bin/env python3
"""
usedmap CLI

Lists, for every source file of a Cargo project, the symbols its `use`
declarations import, grouped by kind (modules, traits, structs, enums, fns,
consts, macros, others).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Set

from analysis.discovery import DEFAULT_EXCLUDE_DIRS
from analysis.errors import ProjectLoadError
from exporters import to_ascii, to_json, to_yaml
from usage.builder import list_used_items_in_cargo


def parse_args(args=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="usedmap",
        description="List the symbols imported by each file of a Cargo project, grouped by kind.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  usedmap                            # Current project, compact JSON on stdout
  usedmap ../my-crate --indent 2     # Pretty-printed JSON
  usedmap . -f yaml -o used.yaml     # YAML output to file
  usedmap . -f ascii --ascii-style=ascii  # Pure ASCII tree
  usedmap . --no-sysroot             # Do not resolve into the standard library
        """,
    )

    # Positional arguments
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Project directory (default: current directory)",
    )

    # Output options
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output file (default: stdout)",
    )

    parser.add_argument(
        "-f", "--format",
        choices=["json", "yaml", "ascii"],
        default="json",
        help="Output format (default: json)",
    )

    parser.add_argument(
        "--indent",
        type=int,
        default=None,
        help="JSON indentation (default: compact single line)",
    )

    # ASCII-specific options
    parser.add_argument(
        "--ascii-style",
        choices=["tree", "ascii"],
        default="tree",
        help="ASCII output style: 'tree' (Unicode) or 'ascii' (pure ASCII)",
    )

    # Loading options
    parser.add_argument(
        "--exclude-dir",
        nargs="+",
        default=None,
        help="Directory names to exclude",
    )

    parser.add_argument(
        "--no-sysroot",
        action="store_true",
        help="Do not load the standard library sources from the Rust toolchain",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-v for info, -vv for debug)",
    )

    return parser.parse_args(args)


def configure_logging(verbosity: int) -> None:
    """Send log records to stderr so stdout only carries the export."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(args=None):
    """Main entry point."""
    parsed = parse_args(args)
    configure_logging(parsed.verbose)

    root = Path(parsed.root).resolve()
    if not root.is_dir():
        print(f"Error: '{parsed.root}' is not a directory", file=sys.stderr)
        return 1

    exclude_dirs: Optional[Set[str]] = None
    if parsed.exclude_dir:
        exclude_dirs = set(parsed.exclude_dir) | DEFAULT_EXCLUDE_DIRS

    try:
        crate_map = list_used_items_in_cargo(
            root,
            exclude_dirs=exclude_dirs,
            load_sysroot=not parsed.no_sysroot,
        )
    except ProjectLoadError as e:
        print(f"Error loading project: {e}", file=sys.stderr)
        return 1

    # Generate output
    if parsed.format == "yaml":
        output = to_yaml(crate_map)
    elif parsed.format == "ascii":
        output = to_ascii(crate_map, style=parsed.ascii_style)
    else:  # json (default)
        output = to_json(crate_map, indent=parsed.indent)

    # Write output
    if parsed.output:
        try:
            output_path = Path(parsed.output)
            output_path.write_text(output, encoding="utf-8")
            print(f"Output written to: {output_path}", file=sys.stderr)
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1
    else:
        sys.stdout.write(output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
