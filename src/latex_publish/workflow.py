"""Install-and-verify workflow for latex-split and latex-merge.

The workflow is an ordered tuple of stage functions. Each stage receives the
:class:`InstallConfig` and an :class:`~latex_publish.backend.InstallerBackend`
and returns a :class:`StageResult`; :func:`run_install` stops at the first
failure so later stages never see a half-validated system.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from .backend import InstallerBackend, LockHeldError
from .core import log

DEFAULT_INSTALL_ROOT = Path("/usr/local/bin")
TARGETS = ("latex-split", "latex-merge")
SELF_TEST_FLAG = "--test"
PROG = "latex-publish"


class FailureKind(enum.Enum):
    PRECHECK = "precheck"
    SELF_TEST = "self-test"
    INSTALL = "install"
    VERIFY = "verify"
    USAGE = "usage"


@dataclass(frozen=True)
class StageResult:
    """Outcome of one stage; ``failure`` is None on success."""

    failure: FailureKind | None = None
    message: str = ""
    hint: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls) -> "StageResult":
        return cls()

    @classmethod
    def failed(cls, kind: FailureKind, message: str, hint: str | None = None) -> "StageResult":
        return cls(failure=kind, message=message, hint=hint)


@dataclass(frozen=True)
class InstallConfig:
    """Fixed locations and names for one install run."""

    install_root: Path = DEFAULT_INSTALL_ROOT
    source_dir: Path = field(default_factory=Path.cwd)
    targets: tuple[str, ...] = TARGETS
    self_test_flag: str = SELF_TEST_FLAG
    backup_suffix: str = ".backup"
    mode: int = 0o755
    lock_name: str = ".latex-publish.lock"

    def source(self, name: str) -> Path:
        return self.source_dir / name

    def destination(self, name: str) -> Path:
        return self.install_root / name

    def backup(self, name: str) -> Path:
        dest = self.destination(name)
        return dest.with_name(dest.name + self.backup_suffix)

    @property
    def lock_path(self) -> Path:
        return self.install_root / self.lock_name


def default_config() -> InstallConfig:
    """Return the config for a real run, anchored at the current directory."""
    return InstallConfig(source_dir=Path.cwd())


Stage = Callable[[InstallConfig, InstallerBackend], StageResult]


def check_permissions(cfg: InstallConfig, backend: InstallerBackend) -> StageResult:
    if not backend.is_writable(cfg.install_root):
        return StageResult.failed(
            FailureKind.PRECHECK,
            f"This script needs root privileges to install to {cfg.install_root}",
            hint=f"Usage: sudo {PROG}",
        )
    return StageResult.success()


def check_scripts(cfg: InstallConfig, backend: InstallerBackend) -> StageResult:
    missing = [name for name in cfg.targets if not backend.exists(cfg.source(name))]
    if missing:
        return StageResult.failed(
            FailureKind.PRECHECK,
            f"Missing required scripts: {' '.join(missing)}",
            hint=f"Please ensure both {' and '.join(cfg.targets)} exist in the current directory.",
        )
    return StageResult.success()


def run_self_tests(cfg: InstallConfig, backend: InstallerBackend) -> StageResult:
    for name in cfg.targets:
        log(f"[INFO ] Testing {name}...")
        rc = backend.run_self_test(cfg.source(name), cfg.self_test_flag)
        if rc != 0:
            return StageResult.failed(FailureKind.SELF_TEST, f"{name} test failed (rc={rc})")
        log(f"✓ {name} tests passed")
    return StageResult.success()


def install_scripts(cfg: InstallConfig, backend: InstallerBackend) -> StageResult:
    """Back up, copy and chmod each target in turn.

    Targets are handled one after the other; an error on the second leaves
    the first installed. The failure message names what was already done.
    """
    log(f"[INFO ] Installing scripts to {cfg.install_root}...")
    installed: list[str] = []
    try:
        with backend.lock(cfg.lock_path):
            for name in cfg.targets:
                dest = cfg.destination(name)
                try:
                    if backend.exists(dest):
                        backup = cfg.backup(name)
                        log(f"[WARN ] Backing up existing {name} to {backup}", level="WARNING")
                        backend.copy(dest, backup)
                    backend.copy(cfg.source(name), dest)
                    backend.set_executable(dest, cfg.mode)
                except OSError as e:
                    done = f" (already installed: {' '.join(installed)})" if installed else ""
                    return StageResult.failed(
                        FailureKind.INSTALL, f"failed to install {name} to {dest}: {e}{done}"
                    )
                installed.append(name)
                log(f"✓ Installed {name} to {dest}")
    except LockHeldError:
        return StageResult.failed(
            FailureKind.INSTALL,
            f"another install is in progress (lock file {cfg.lock_path})",
            hint="Remove the lock file if no other install is running.",
        )
    except OSError as e:
        return StageResult.failed(FailureKind.INSTALL, f"cannot lock {cfg.install_root}: {e}")
    return StageResult.success()


def verify_installation(cfg: InstallConfig, backend: InstallerBackend) -> StageResult:
    log("[INFO ] Verifying installation...")
    unresolved: list[str] = []
    for name in cfg.targets:
        found = backend.resolve_on_path(name)
        if not found:
            unresolved.append(name)
            continue
        log(f"✓ {name} is now available in PATH")
        if Path(found).resolve() != cfg.destination(name).resolve():
            log(f"[WARN ] {name} resolves to {found}, not {cfg.destination(name)}", level="WARNING")
    if unresolved:
        return StageResult.failed(
            FailureKind.VERIFY,
            f"not found in PATH after installation: {' '.join(unresolved)}",
            hint=f"Add {cfg.install_root} to PATH.",
        )
    return StageResult.success()


STAGES: tuple[Stage, ...] = (
    check_permissions,
    check_scripts,
    run_self_tests,
    install_scripts,
    verify_installation,
)


def show_usage() -> None:
    log("")
    log("[INFO ] Installation complete! Usage examples:")
    log("")
    log("  latex-split document.tex --output-dir my_paper --verbose")
    log("  latex-merge main.tex --output merged_document.tex --force")
    log("")
    log("Run 'latex-split --help' or 'latex-merge --help' for more options.")


def report_failure(result: StageResult) -> None:
    """Print the single error line for a failed result, then its hint."""
    log(f"[ERROR] {result.message}", level="ERROR")
    if result.hint:
        log(result.hint, level="ERROR")


def run_install(
    cfg: InstallConfig,
    backend: InstallerBackend,
    stages: Sequence[Stage] = STAGES,
) -> StageResult:
    """Run ``stages`` in order, halting on and reporting the first failure."""
    for stage in stages:
        result = stage(cfg, backend)
        if not result.ok:
            report_failure(result)
            return result
    show_usage()
    log("[INFO ] Installation completed successfully!")
    return StageResult.success()
