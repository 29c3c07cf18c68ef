"""
Command line interface.

    inline-rust build module.py [more.py ...] [-o DIR] [--config FILE] [--emit-only]
    inline-rust info
"""

import argparse
import sys
from typing import List, Optional

from .compiler.build import ModuleBuilder
from .utils.config import get_config, load_config, set_config
from .utils.exceptions import CompilationError, InlineRustError
from .utils.info import print_info
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="inline-rust", description="Build Python modules containing inline Rust")
    parser.add_argument("--log-level", help="Logging level (default: from configuration)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Expand and compile modules")
    build.add_argument("files", nargs="+", help="Python source files")
    build.add_argument("-o", "--out-dir", help="Output directory (default: 'build' next to each file)")
    build.add_argument("--config", help="Configuration file (JSON or YAML)")
    build.add_argument("--emit-only", action="store_true", help="Write expanded Python and Rust, do not compile")

    subparsers.add_parser("info", help="Show installation and toolchain information")
    return parser


def _build(args: argparse.Namespace) -> int:
    builder = ModuleBuilder(get_config())
    failures = 0
    for path in args.files:
        try:
            result = builder.build_file(path, args.out_dir, emit_only=args.emit_only)
        except CompilationError as e:
            failures += 1
            print(f"{path}: {e}", file=sys.stderr)
            if e.compiler_output:
                print(e.compiler_output, file=sys.stderr)
            continue
        except (InlineRustError, OSError) as e:
            failures += 1
            print(f"{path}: {e}", file=sys.stderr)
            continue

        target = result.library_path or result.python_path
        suffix = " (cached)" if result.from_cache else ""
        print(f"{path}: {result.snippet_count} snippets -> {target}{suffix}")
    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the inline-rust command."""
    args = build_parser().parse_args(argv)

    if getattr(args, "config", None):
        set_config(load_config(args.config))
    config = get_config()
    log_file = config.logging.log_file if config.logging.enable_file_logging else None
    setup_logging(args.log_level or config.logging.level, log_file)

    if args.command == "info":
        print_info()
        return 0
    return _build(args)


if __name__ == "__main__":
    sys.exit(main())
