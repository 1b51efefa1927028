"""bios-update command line.

Usage:
  bios-update run --packages D:\\Deploy\\Files [--catalog catalog.json] [--suppress-reboot]
  bios-update plan --inventory inventory.json --out out/firmware_plan.json
  bios-update lint catalog.json

Exit codes (run):
  0     = no update needed
  3010  = update ran, reboot required
  1602  = user cancelled or the confirmation prompt timed out
  60001 = hardware inventory could not be read
  60002 = vendor package could not be launched
  60008 = host tooling missing or catalog invalid

Exit codes (lint):
  0 = OK
  1 = lint errors
  2 = usage / path errors
"""
from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any, Callable, List, Optional

from . import log
from .audit import ReportClient, build_record, write_run_audit
from .catalog import all_rules, lint_catalog, read_catalog_file
from .dispatcher import dispatch, read_identity
from .errors import CatalogError, DispatchFailure
from .host import DEFAULT_REGISTRY_KEY, require_host
from .models import DispatchState, MachineIdentity
from .plan import build_plan
from .precautions import MAX_REBOOT_COUNT, MIN_REBOOT_COUNT
from .reboot import finalize

HostFactory = Callable[[str], Any]


def reboot_count(value: str) -> int:
    try:
        count = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if not MIN_REBOOT_COUNT <= count <= MAX_REBOOT_COUNT:
        raise argparse.ArgumentTypeError(f"must be between {MIN_REBOOT_COUNT} and {MAX_REBOOT_COUNT}, got {count}")
    return count


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="bios-update", description="Catalog-driven BIOS update dispatch")
    ap.add_argument("--log-level", default=None, help="debug|info|warning|error")
    sub = ap.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Apply the matching firmware update to this machine")
    run.add_argument("--packages", type=Path, default=Path(os.environ.get("BIOS_UPDATE_PACKAGES_DIR", "Files")),
                     help="Directory holding the vendor packages")
    run.add_argument("--catalog", type=Path, default=None, help="JSON catalog (default: built-in table)")
    run.add_argument("--volume", default="C:")
    run.add_argument("--reboot-count", type=reboot_count, default=1,
                     help=f"Boots before BitLocker re-protects ({MIN_REBOOT_COUNT}-{MAX_REBOOT_COUNT})")
    run.add_argument("--registry-key", default=os.environ.get("BIOS_UPDATE_REGISTRY_KEY", DEFAULT_REGISTRY_KEY))
    run.add_argument("--suppress-reboot", action="store_true", help="Return 3010 without starting the countdown")
    run.add_argument("--audit-out", type=Path, default=Path("out/audit_bios_update.json"))
    run.add_argument("--report-url", default=os.environ.get("ENDPOINT_REPORT_URL", ""))

    plan = sub.add_parser("plan", help="List inventory devices the catalog would update")
    plan.add_argument("--inventory", required=True, type=Path)
    plan.add_argument("--out", required=True, type=Path)
    plan.add_argument("--catalog", type=Path, default=None)
    plan.add_argument("--packages", type=Path, default=Path(os.environ.get("BIOS_UPDATE_PACKAGES_DIR", "Files")))

    lint = sub.add_parser("lint", help="Validate a JSON catalog")
    lint.add_argument("catalog", type=Path)
    return ap


def report(args: argparse.Namespace, identity: Optional[MachineIdentity], state: Optional[DispatchState],
           rc: int, error: Optional[str]) -> None:
    record = build_record(identity, state, rc, error)
    try:
        write_run_audit(args.audit_out, record)
    except OSError as e:
        log.warning(f"Could not write audit log {args.audit_out}: {e}")
    if args.report_url:
        ReportClient(args.report_url, os.environ.get("ENDPOINT_API_TOKEN", "")).post_result(record)


def cmd_run(args: argparse.Namespace, host_factory: HostFactory) -> int:
    identity: Optional[MachineIdentity] = None
    state: Optional[DispatchState] = None
    error: Optional[str] = None
    try:
        rules = all_rules(args.catalog, args.packages)
        host = host_factory(args.registry_key)
        identity = read_identity(host)
        state = dispatch(identity, rules, host, volume=args.volume, reboot_count=args.reboot_count)
        rc = finalize(state, host, suppress=args.suppress_reboot)
    except DispatchFailure as e:
        log.error(f"{e.code}: {e}")
        if isinstance(e, CatalogError):
            for item in e.errors:
                log.error(f"{item.path}: {item.message}")
        rc = e.exit_code
        error = str(e)

    report(args, identity, state, rc, error)
    return rc


def cmd_plan(args: argparse.Namespace) -> int:
    if not args.inventory.exists():
        log.error(f"Inventory not found: {args.inventory}")
        return 2
    try:
        rules = all_rules(args.catalog, args.packages)
    except CatalogError as e:
        log.error(str(e))
        return 2
    inventory = json.loads(args.inventory.read_text(encoding="utf-8"))
    plan = build_plan(inventory, rules)
    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_text(json.dumps(plan, indent=2), encoding="utf-8")
    log.info(f"Wrote firmware plan: {args.out} ({plan['count']} devices)")
    return 0


def cmd_lint(args: argparse.Namespace) -> int:
    if not args.catalog.exists() or not args.catalog.is_file():
        log.error(f"Catalog not found: {args.catalog}")
        return 2
    try:
        raw_rules = read_catalog_file(args.catalog)
    except CatalogError as e:
        log.error(str(e))
        return 1

    errors = lint_catalog(raw_rules, str(args.catalog))
    if errors:
        for e in errors:
            log.error(f"{e.path}: {e.message}")
        log.error(f"{len(errors)} issue(s)")
        return 1
    log.success(f"OK: {len(raw_rules)} rule(s) validated")
    return 0


def main(argv: Optional[List[str]] = None, host_factory: HostFactory = require_host) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        log.set_level(args.log_level)

    if args.command == "run":
        return cmd_run(args, host_factory)
    if args.command == "plan":
        return cmd_plan(args)
    return cmd_lint(args)


if __name__ == "__main__":
    raise SystemExit(main())
