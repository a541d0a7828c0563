"""Filesystem and process access used by the install workflow.

The workflow only talks to an :class:`InstallerBackend`; :class:`LocalBackend`
is the real implementation backed by ``shutil`` and ``subprocess``.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import Iterator, Protocol

from . import core
from .core import log


class LockHeldError(OSError):
    """Raised when another install already holds the lock file."""


class InstallerBackend(Protocol):
    def exists(self, path: Path) -> bool: ...

    def is_writable(self, path: Path) -> bool: ...

    def copy(self, src: Path, dst: Path) -> None: ...

    def set_executable(self, path: Path, mode: int) -> None: ...

    def run_self_test(self, path: Path, flag: str) -> int: ...

    def resolve_on_path(self, name: str) -> str | None: ...

    def lock(self, path: Path) -> AbstractContextManager[None]: ...


class LocalBackend:
    """Backend operating on the real filesystem and process table."""

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def is_writable(self, path: Path) -> bool:
        return path.is_dir() and os.access(path, os.W_OK)

    def copy(self, src: Path, dst: Path) -> None:
        shutil.copy2(src, dst)

    def set_executable(self, path: Path, mode: int) -> None:
        path.chmod(mode)

    def run_self_test(self, path: Path, flag: str) -> int:
        """Run ``path flag`` with output discarded and return its exit code.

        A program that cannot be started returns 126; a timeout (when
        ``SELFTEST_TIMEOUT`` is set) returns 124.
        """
        cmd = [str(path), flag]
        log(f"[RUN  ] {' '.join(cmd)}", level="DEBUG")
        timeout = core.SELFTEST_TIMEOUT or None
        try:
            return subprocess.run(  # noqa: S603
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                timeout=timeout,
            ).returncode
        except subprocess.TimeoutExpired:
            log(f"[WARN ] {path.name} {flag} timed out after {timeout}s", level="WARNING")
            return 124
        except OSError as e:
            log(f"[WARN ] cannot execute {path}: {e!r}", level="WARNING")
            return 126

    def resolve_on_path(self, name: str) -> str | None:
        return shutil.which(name)

    @contextmanager
    def lock(self, path: Path) -> Iterator[None]:
        """Hold an exclusive lock file for the duration of the block."""
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as e:
            raise LockHeldError(f"another install holds {path}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(f"{os.getpid()}\n")
            yield
        finally:
            path.unlink(missing_ok=True)
