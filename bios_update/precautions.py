"""BitLocker suspension around a firmware flash.

Suspension is always bounded by a reboot count, so the volume re-protects
itself after the flash reboot. If the flash tool cannot even be started the
suspension is lifted right away instead of waiting for that reboot.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from . import log
from .errors import PrecautionWarning

MIN_REBOOT_COUNT = 1
MAX_REBOOT_COUNT = 15  # Suspend-BitLocker treats 0 as "until resumed"


@contextmanager
def encryption_suspended(host: Any, volume: str = "C:", reboot_count: int = 1) -> Iterator[bool]:
    if not MIN_REBOOT_COUNT <= reboot_count <= MAX_REBOOT_COUNT:
        raise ValueError(f"reboot_count must be between {MIN_REBOOT_COUNT} and {MAX_REBOOT_COUNT}, got {reboot_count}")

    try:
        host.suspend_encryption(volume, reboot_count)
        suspended = True
        log.info(f"Suspended encryption on {volume} for {reboot_count} reboot(s)")
    except Exception as e:
        suspended = False
        log.warning(str(PrecautionWarning(f"Could not suspend encryption on {volume} ({e})")))

    try:
        yield suspended
    except BaseException:
        if suspended:
            try:
                host.resume_encryption(volume)
                log.info(f"Resumed encryption on {volume} after failed update")
            except Exception as e:
                log.warning(str(PrecautionWarning(f"Could not resume encryption on {volume} ({e})")))
        raise
