"""Argparse-based command-line interface for latex-publish.

Invoked via the console script `latex-publish` or as a module with
`python -m latex_publish`. The only accepted option is ``--help``/``-h``;
anything else is a usage error.
"""

from __future__ import annotations

import argparse
import sys

from .backend import InstallerBackend, LocalBackend
from .core import log
from .workflow import (
    DEFAULT_INSTALL_ROOT,
    PROG,
    TARGETS,
    FailureKind,
    InstallConfig,
    StageResult,
    default_config,
    report_failure,
    run_install,
)

HELP_TEXT = f"""Usage: {PROG}

Install {' and '.join(TARGETS)} to {DEFAULT_INSTALL_ROOT}

Options:
  --help, -h    Show this help message

Note: This script requires root privileges."""


HELP_FLAGS = ("-h", "--help")


class UsageError(Exception):
    """Raised instead of argparse's own exit on bad arguments."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):  # type: ignore[override]
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    """Create and return the CLI argument parser."""
    p = _Parser(prog=PROG, add_help=False, allow_abbrev=False)
    p.add_argument("-h", "--help", action="store_true", dest="help")
    return p


def main(
    argv: list[str] | None = None,
    *,
    config: InstallConfig | None = None,
    backend: InstallerBackend | None = None,
) -> int:
    """CLI entry point; returns 0 on success and 1 on any failure."""
    parser = build_parser()
    try:
        args = sys.argv[1:] if argv is None else list(argv)
        unknown = [a for a in args if a not in HELP_FLAGS]
        if unknown:
            raise UsageError(f"Unknown option: {unknown[0]}")
        ns = parser.parse_args(args)
    except UsageError as e:
        report_failure(
            StageResult.failed(FailureKind.USAGE, str(e), hint="Use --help for usage information.")
        )
        return 1
    if ns.help:
        print(HELP_TEXT, flush=True)
        return 0

    log("LaTeX Manipulation Tools Installer")
    log("==================================")
    log("")
    try:
        cfg = config if config is not None else default_config()
        result = run_install(cfg, backend if backend is not None else LocalBackend())
    except Exception as e:
        log(f"[CRASH] {e!r}", level="ERROR")
        return 1
    return 0 if result.ok else 1


__all__ = ["UsageError", "build_parser", "main"]
