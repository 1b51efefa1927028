"""Update catalog: which firmware package applies to which model.

Rules are evaluated in catalog order and the first match wins. Adding a model
is a data change: append a rule to DEFAULT_RULES or ship a JSON catalog.

Catalog JSON (either form):
{"rules": [
  {"model_id": "20L7001UUS", "minimum_version": "N22ET63W (1.40 )",
   "package_ref": "Lenovo/20L7001UUS/WINUPTP64.EXE", "execution_args": "-s",
   "requires_encryption_suspend": true, "prompt_message": "...",
   "confirmation_timeout_seconds": 300}
]}
or a bare list of rule objects.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path, PureWindowsPath
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import CatalogError
from .host import split_args
from .models import UpdateRule

DEFAULT_PROMPT = (
    "A BIOS update is required for this computer. Save your work and close all "
    "applications, then select OK to continue. The computer restarts when the "
    "update finishes."
)
DEFAULT_TIMEOUT_SECONDS = 300

REQUIRED_KEYS = {"model_id", "package_ref", "execution_args"}

DEFAULT_RULES: Tuple[UpdateRule, ...] = (
    UpdateRule(
        model_id="10MR0047US",
        minimum_version=None,  # always apply
        package_ref="Lenovo/10MR0047US/Flash.cmd",
        execution_args="/quiet",
        requires_encryption_suspend=True,
        prompt_message=DEFAULT_PROMPT,
        confirmation_timeout_seconds=DEFAULT_TIMEOUT_SECONDS,
        vendor="Lenovo",
        name="ThinkCentre M720q BIOS M1UKT4AA",
    ),
    UpdateRule(
        model_id="20F9003AUS",
        minimum_version="N1CET63W (1.31 )",
        package_ref="Lenovo/20F9003AUS/WINUPTP64.EXE",
        execution_args="-s",
        requires_encryption_suspend=True,
        prompt_message=DEFAULT_PROMPT,
        confirmation_timeout_seconds=DEFAULT_TIMEOUT_SECONDS,
        vendor="Lenovo",
        name="ThinkPad T460s BIOS 1.31",
    ),
    UpdateRule(
        model_id="20L7001UUS",
        minimum_version="N22ET63W (1.40 )",
        package_ref="Lenovo/20L7001UUS/WINUPTP64.EXE",
        execution_args="-s",
        requires_encryption_suspend=True,
        prompt_message=DEFAULT_PROMPT,
        confirmation_timeout_seconds=DEFAULT_TIMEOUT_SECONDS,
        vendor="Lenovo",
        name="ThinkPad T480s BIOS 1.40",
    ),
    UpdateRule(
        model_id="Latitude 5490",
        minimum_version="1.6.1",
        package_ref="Dell/Latitude 5490/Latitude_5X90_Precision_3520_1.6.1.exe",
        execution_args="/s /f",
        requires_encryption_suspend=True,
        prompt_message=DEFAULT_PROMPT,
        confirmation_timeout_seconds=DEFAULT_TIMEOUT_SECONDS,
        vendor="Dell",
        name="Latitude 5490 BIOS 1.6.1",
    ),
    UpdateRule(
        model_id="HP EliteBook 840 G5",
        minimum_version="Q78 Ver. 01.07.02",
        package_ref="HP/EliteBook 840 G5/HPBIOSUPDREC64.exe",
        execution_args="-s -r -b",  # -b: tool handles BitLocker itself
        requires_encryption_suspend=False,
        prompt_message=DEFAULT_PROMPT,
        confirmation_timeout_seconds=DEFAULT_TIMEOUT_SECONDS,
        vendor="HP",
        name="EliteBook 840 G5 BIOS 01.07.02",
    ),
)


@dataclass
class LintError:
    path: str
    message: str


def _expect(cond: bool, path: str, msg: str, errors: List[LintError]) -> None:
    if not cond:
        errors.append(LintError(path, msg))


def lint_rule(raw: Any, path: str = "rules[0]") -> List[LintError]:
    errors: List[LintError] = []
    if not isinstance(raw, dict):
        errors.append(LintError(path, "rule must be an object"))
        return errors

    missing = REQUIRED_KEYS - set(raw.keys())
    _expect(not missing, path, f"Missing fields: {sorted(missing)}", errors)
    if missing:
        return errors

    for key in ("model_id", "package_ref"):
        value = raw.get(key)
        _expect(isinstance(value, str) and bool(value.strip()), path, f"{key} must be a non-empty string", errors)
    args = raw.get("execution_args")
    _expect(isinstance(args, str), path, "execution_args must be a string", errors)
    if isinstance(args, str):
        try:
            split_args(args)
        except ValueError as e:
            errors.append(LintError(path, f"execution_args cannot be parsed: {e}"))

    minimum = raw.get("minimum_version")
    _expect(minimum is None or (isinstance(minimum, str) and minimum != ""), path,
            "minimum_version must be a non-empty string or null", errors)

    suspend = raw.get("requires_encryption_suspend", True)
    _expect(isinstance(suspend, bool), path, "requires_encryption_suspend must be a boolean", errors)

    prompt = raw.get("prompt_message", DEFAULT_PROMPT)
    _expect(isinstance(prompt, str) and bool(prompt.strip()), path, "prompt_message must be a non-empty string", errors)

    timeout = raw.get("confirmation_timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
    _expect(isinstance(timeout, int) and not isinstance(timeout, bool) and timeout > 0, path,
            "confirmation_timeout_seconds must be a positive integer", errors)
    return errors


def rule_from_dict(raw: Dict[str, Any]) -> UpdateRule:
    return UpdateRule(
        model_id=raw["model_id"].strip(),
        minimum_version=raw.get("minimum_version"),
        package_ref=raw["package_ref"],
        execution_args=raw["execution_args"],
        requires_encryption_suspend=raw.get("requires_encryption_suspend", True),
        prompt_message=raw.get("prompt_message", DEFAULT_PROMPT),
        confirmation_timeout_seconds=raw.get("confirmation_timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
        vendor=raw.get("vendor", ""),
        name=raw.get("name", ""),
    )


def read_catalog_file(path: Path) -> List[Any]:
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}") from e
    if isinstance(obj, dict):
        obj = obj.get("rules")
    if not isinstance(obj, list):
        raise CatalogError(f"Catalog {path} must be a list of rules or an object with 'rules'")
    return obj


def lint_catalog(raw_rules: Sequence[Any], source: str = "catalog") -> List[LintError]:
    errors: List[LintError] = []
    for i, raw in enumerate(raw_rules):
        errors.extend(lint_rule(raw, f"{source}:rules[{i}]"))
    return errors


def load_catalog(path: Path) -> List[UpdateRule]:
    raw_rules = read_catalog_file(path)
    errors = lint_catalog(raw_rules, str(path))
    if errors:
        raise CatalogError(f"Catalog {path} has {len(errors)} lint error(s)", errors)
    return [rule_from_dict(raw) for raw in raw_rules]


def resolve_package(rule: UpdateRule, packages_dir: Path) -> UpdateRule:
    ref = rule.package_ref
    if Path(ref).is_absolute() or PureWindowsPath(ref).is_absolute():
        return rule
    return replace(rule, package_ref=str(packages_dir / ref))


def all_rules(catalog_path: Optional[Path] = None, packages_dir: Path = Path("Files")) -> List[UpdateRule]:
    rules = load_catalog(catalog_path) if catalog_path else list(DEFAULT_RULES)
    return [resolve_package(r, packages_dir) for r in rules]
