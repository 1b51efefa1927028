"""Windows host connector.

Every side effect the dispatcher has on the machine goes through Connector:
- hardware inventory (CIM via PowerShell)
- the confirmation prompt (WScript.Shell Popup, which supports a timeout)
- launching the vendor flash tool
- BitLocker suspend/resume
- the registry audit marker (reg.exe)
- the restart countdown (shutdown.exe)

Tests replace Connector with a fake exposing the same methods.
"""
from __future__ import annotations

import json
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from . import log
from .errors import BootstrapError, PackageLaunchError, ProbeError
from .models import UserChoice

DEFAULT_REGISTRY_KEY = r"HKLM\SOFTWARE\EndpointEngineering\BiosUpdate"

POWERSHELL_CANDIDATES = ("powershell.exe", "powershell", "pwsh")

PROBE_SCRIPT = (
    "$cs = Get-CimInstance -ClassName Win32_ComputerSystem; "
    "$bios = Get-CimInstance -ClassName Win32_BIOS; "
    "@{model = $cs.Model; version = $bios.SMBIOSBIOSVersion} | ConvertTo-Json -Compress"
)

# Popup type 1 = OK/Cancel, 48 = warning icon. Returns 1 OK, 2 Cancel, -1 timeout.
PROMPT_SCRIPT = (
    "$shell = New-Object -ComObject WScript.Shell; "
    "$shell.Popup($env:BIOS_UPDATE_PROMPT, [int]$env:BIOS_UPDATE_PROMPT_TIMEOUT, "
    "$env:BIOS_UPDATE_PROMPT_TITLE, 49)"
)
POPUP_RESULTS = {1: UserChoice.PROCEED, 2: UserChoice.CANCEL, -1: UserChoice.TIMED_OUT}


def split_args(args: str) -> List[str]:
    """Split vendor arguments the way they are passed to the flash tool.

    Raises ValueError on unbalanced quotes.
    """
    return shlex.split(args, posix=os.name != "nt")


def find_powershell() -> Optional[str]:
    for name in POWERSHELL_CANDIDATES:
        found = shutil.which(name)
        if found:
            return found
    return None


class Connector:
    def __init__(self, powershell: str, registry_key: str = DEFAULT_REGISTRY_KEY, title: str = "BIOS Update"):
        self.powershell = powershell
        self.registry_key = registry_key
        self.title = title

    def _powershell(self, script: str, *, env: Optional[dict] = None,
                    timeout: Optional[int] = None) -> subprocess.CompletedProcess:
        cmd = [self.powershell, "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command", script]
        full_env = dict(os.environ, **(env or {}))
        return subprocess.run(cmd, capture_output=True, text=True, env=full_env, timeout=timeout, check=False)

    def probe_hardware(self) -> Tuple[str, str]:
        try:
            r = self._powershell(PROBE_SCRIPT, timeout=120)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ProbeError(f"Inventory query failed: {e}") from e
        if r.returncode != 0:
            raise ProbeError(f"Inventory query exited {r.returncode}: {r.stderr.strip()}")
        try:
            data = json.loads(r.stdout)
        except ValueError as e:
            raise ProbeError(f"Inventory query returned invalid JSON: {r.stdout!r}") from e
        return str(data.get("model") or ""), str(data.get("version") or "")

    def prompt_user(self, message: str, timeout_seconds: int,
                    options: Sequence[str] = ("OK", "Cancel")) -> UserChoice:
        log.debug(f"Prompting user ({'/'.join(options)}, timeout={timeout_seconds}s)")
        env = {
            "BIOS_UPDATE_PROMPT": message,
            "BIOS_UPDATE_PROMPT_TIMEOUT": str(timeout_seconds),
            "BIOS_UPDATE_PROMPT_TITLE": self.title,
        }
        try:
            r = self._powershell(PROMPT_SCRIPT, env=env, timeout=timeout_seconds + 60)
        except subprocess.TimeoutExpired:
            log.warning(f"Prompt host did not answer within {timeout_seconds + 60}s")
            return UserChoice.TIMED_OUT
        except OSError as e:
            log.warning(f"Prompt host could not be started: {e}")
            return UserChoice.CANCEL
        try:
            code = int(r.stdout.strip())
        except ValueError:
            # no answer from the prompt host is treated like a cancel
            log.warning(f"Prompt returned no usable answer (rc={r.returncode}): {r.stderr.strip()}")
            return UserChoice.CANCEL
        return POPUP_RESULTS.get(code, UserChoice.CANCEL)

    def run_process(self, path: str, args: str, working_dir: Path) -> int:
        try:
            cmd = [path] + split_args(args)
        except ValueError as e:
            raise PackageLaunchError(f"Cannot parse arguments for {path}: {e}") from e
        log.info(f"Launching {path} {args} (cwd={working_dir})")
        try:
            r = subprocess.run(cmd, cwd=str(working_dir), check=False)
        except OSError as e:
            raise PackageLaunchError(f"Cannot launch {path}: {e}") from e
        return r.returncode

    def suspend_encryption(self, volume: str, reboot_count: int) -> None:
        r = self._powershell(f"Suspend-BitLocker -MountPoint '{volume}' -RebootCount {int(reboot_count)}", timeout=120)
        if r.returncode != 0:
            raise RuntimeError(f"Suspend-BitLocker exited {r.returncode}: {r.stderr.strip()}")

    def resume_encryption(self, volume: str) -> None:
        r = self._powershell(f"Resume-BitLocker -MountPoint '{volume}'", timeout=120)
        if r.returncode != 0:
            raise RuntimeError(f"Resume-BitLocker exited {r.returncode}: {r.stderr.strip()}")

    def write_audit_marker(self, key: str, value: str) -> None:
        cmd = ["reg.exe", "add", self.registry_key, "/v", key, "/t", "REG_SZ", "/d", value, "/f"]
        try:
            subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            raise OSError(f"reg.exe add exited {e.returncode}: {(e.stderr or '').strip()}") from e

    def show_countdown_and_reboot(self, total_seconds: int, final_lock_seconds: int) -> None:
        message = (
            f"Firmware was updated. This computer restarts in {total_seconds // 60} minutes. "
            f"Save your work now; the restart cannot be postponed in the final {final_lock_seconds} seconds."
        )
        cmd = ["shutdown.exe", "/r", "/t", str(total_seconds), "/d", "p:0:0", "/c", message]
        try:
            r = subprocess.run(cmd, capture_output=True, text=True, check=False, timeout=60)
        except (OSError, subprocess.TimeoutExpired) as e:
            log.warning(f"Could not schedule restart: {e}")
            return
        if r.returncode != 0:
            log.warning(f"shutdown.exe exited {r.returncode}: {r.stderr.strip()}")


def require_host(registry_key: str = DEFAULT_REGISTRY_KEY) -> Connector:
    powershell = find_powershell()
    if not powershell:
        raise BootstrapError(f"PowerShell not found (looked for {', '.join(POWERSHELL_CANDIDATES)})")
    if not shutil.which("reg.exe") and not shutil.which("reg"):
        raise BootstrapError("reg.exe not found; audit markers cannot be written")
    return Connector(powershell=powershell, registry_key=registry_key)
