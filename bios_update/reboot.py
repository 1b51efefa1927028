"""Restart handling once dispatch is done."""
from __future__ import annotations

from typing import Any

from . import log
from .errors import EXIT_OK, EXIT_REBOOT_REQUIRED
from .models import DispatchState

COUNTDOWN_SECONDS = 600
FINAL_LOCK_SECONDS = 60


def finalize(state: DispatchState, host: Any, total_seconds: int = COUNTDOWN_SECONDS,
             final_lock_seconds: int = FINAL_LOCK_SECONDS, suppress: bool = False) -> int:
    """Start the restart countdown if an update ran; return the run's exit code.

    With ``suppress`` the countdown is left to the calling orchestrator, which
    still sees the reboot-required code.
    """
    if not state.update_executed:
        return EXIT_OK

    if suppress:
        log.info("Reboot required; restart left to the caller")
    else:
        log.info(f"Restarting in {total_seconds}s (final {final_lock_seconds}s cannot be postponed)")
        host.show_countdown_and_reboot(total_seconds, final_lock_seconds)
    return EXIT_REBOOT_REQUIRED
