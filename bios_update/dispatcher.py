"""Match the machine against the catalog and run at most one firmware update."""
from __future__ import annotations

from contextlib import nullcontext
from pathlib import Path
from typing import Any, Optional, Sequence

from . import log
from .errors import ProbeError, UserCancelled, VendorProcessError
from .models import DispatchState, MachineIdentity, UpdateOutcome, UpdateRule, UserChoice
from .precautions import MAX_REBOOT_COUNT, MIN_REBOOT_COUNT, encryption_suspended
from .versions import is_below

PROMPT_OPTIONS = ("Proceed", "Cancel")
MARKER_VALUE = "Applied"


def read_identity(host: Any) -> MachineIdentity:
    try:
        model_id, firmware_version = host.probe_hardware()
    except ProbeError:
        raise
    except Exception as e:
        raise ProbeError(f"Cannot read hardware inventory: {e}") from e

    model_id = (model_id or "").strip()
    if not model_id or not firmware_version:
        raise ProbeError(f"Incomplete inventory: model={model_id!r} firmware={firmware_version!r}")
    return MachineIdentity(model_id=model_id, firmware_version=firmware_version)


def rule_applies(rule: UpdateRule, identity: MachineIdentity) -> bool:
    if rule.model_id != identity.model_id:
        return False
    return rule.minimum_version is None or is_below(identity.firmware_version, rule.minimum_version)


def select_rule(identity: MachineIdentity, rules: Sequence[UpdateRule]) -> Optional[UpdateRule]:
    for rule in rules:
        if rule_applies(rule, identity):
            return rule
    return None


def confirm(host: Any, rule: UpdateRule) -> None:
    choice = host.prompt_user(rule.prompt_message, rule.confirmation_timeout_seconds, PROMPT_OPTIONS)
    if choice is UserChoice.PROCEED:
        return
    timed_out = choice is UserChoice.TIMED_OUT
    reason = "timed out" if timed_out else "was cancelled"
    raise UserCancelled(f"Confirmation for {rule.label} {reason}", timed_out=timed_out)


def mark_applied(host: Any, rule: UpdateRule) -> None:
    try:
        host.write_audit_marker(rule.label, MARKER_VALUE)
    except OSError as e:
        log.warning(f"Could not write audit marker for {rule.label}: {e}")


def execute(host: Any, rule: UpdateRule, volume: str, reboot_count: int) -> UpdateOutcome:
    package = Path(rule.package_ref)
    guard = encryption_suspended(host, volume, reboot_count) if rule.requires_encryption_suspend else nullcontext()
    with guard as suspended:
        exit_code = host.run_process(str(package), rule.execution_args, package.parent)

    # vendor exit codes are opaque; completion means "ran", not "verified"
    if exit_code != 0:
        log.warning(str(VendorProcessError(package.name, exit_code)))
    else:
        log.info(f"{package.name} exited with code 0")
    return UpdateOutcome(ran_update=True, cancelled_by_user=False, process_exit_code=exit_code,
                         encryption_suspended=suspended)


def dispatch(identity: MachineIdentity, rules: Sequence[UpdateRule], host: Any,
             state: Optional[DispatchState] = None, volume: str = "C:",
             reboot_count: int = 1) -> DispatchState:
    """Run the first catalog rule that applies to ``identity``.

    Rules are visited in order and the loop stops once an update has run, so a
    second matching rule never flashes in the same session. Cancelling or
    letting the prompt time out raises UserCancelled before anything is
    written or launched.
    """
    if not MIN_REBOOT_COUNT <= reboot_count <= MAX_REBOOT_COUNT:
        raise ValueError(f"reboot_count must be between {MIN_REBOOT_COUNT} and {MAX_REBOOT_COUNT}, got {reboot_count}")
    state = state or DispatchState()
    log.info(f"Model {identity.model_id}, firmware {identity.firmware_version!r}")

    for rule in rules:
        if state.update_executed:
            break
        if rule.model_id != identity.model_id:
            continue
        if not rule_applies(rule, identity):
            log.info(f"{rule.label}: firmware already at or above {rule.minimum_version!r}, skipping")
            continue

        log.info(f"{rule.label}: update required")
        confirm(host, rule)
        mark_applied(host, rule)
        outcome = execute(host, rule, volume, reboot_count)

        state.update_executed = True
        state.outcome = outcome
        state.rule = rule

    if not state.update_executed:
        log.info("No firmware update applies to this machine")
    return state
