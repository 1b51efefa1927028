"""Failure kinds and the exit codes a calling orchestrator sees.

Fatal kinds subclass DispatchFailure and unwind to the single handler in
``cli.main``. VendorProcessError and PrecautionWarning are records that get
logged; the run continues past them.
"""
from __future__ import annotations

from typing import Literal, Optional

EXIT_OK = 0
EXIT_USER_CANCELLED = 1602
EXIT_REBOOT_REQUIRED = 3010
EXIT_PROBE_FAILED = 60001
EXIT_PACKAGE_LAUNCH_FAILED = 60002
EXIT_BOOTSTRAP_FAILED = 60008

FailureCode = Literal[
    "bootstrap_failed",
    "catalog_invalid",
    "probe_failed",
    "package_launch_failed",
    "user_cancelled",
]


class DispatchFailure(Exception):
    """Fatal failure that aborts the run with a mapped exit code."""

    exit_code = EXIT_BOOTSTRAP_FAILED

    def __init__(self, code: FailureCode, message: str) -> None:
        super().__init__(message)
        self.code = code


class BootstrapError(DispatchFailure):
    """Host tooling (PowerShell, reg.exe, ...) is not available."""

    exit_code = EXIT_BOOTSTRAP_FAILED

    def __init__(self, message: str) -> None:
        super().__init__("bootstrap_failed", message)


class CatalogError(BootstrapError):
    """The update catalog could not be loaded or failed lint."""

    def __init__(self, message: str, errors: Optional[list] = None) -> None:
        super().__init__(message)
        self.code = "catalog_invalid"
        self.errors = list(errors or [])


class ProbeError(DispatchFailure):
    exit_code = EXIT_PROBE_FAILED

    def __init__(self, message: str) -> None:
        super().__init__("probe_failed", message)


class PackageLaunchError(DispatchFailure):
    """The vendor flash tool could not be started (missing file, access denied)."""

    exit_code = EXIT_PACKAGE_LAUNCH_FAILED

    def __init__(self, message: str) -> None:
        super().__init__("package_launch_failed", message)


class UserCancelled(DispatchFailure):
    """Cancel or prompt timeout. Never retried."""

    exit_code = EXIT_USER_CANCELLED

    def __init__(self, message: str, *, timed_out: bool = False) -> None:
        super().__init__("user_cancelled", message)
        self.timed_out = timed_out


class VendorProcessError(Exception):
    """Non-zero vendor exit code. Logged, not raised by the dispatcher."""

    def __init__(self, package: str, exit_code: int) -> None:
        super().__init__(f"{package} exited with code {exit_code}")
        self.package = package
        self.exit_code = exit_code


class PrecautionWarning(Exception):
    """Encryption suspend/resume failed. Logged, execution proceeds."""
