"""Firmware update plan for an inventory snapshot.

Runs the same first-match selection the dispatcher uses, without touching any
machine, to show which devices would be flashed.

Input JSON:
[
  {"asset_tag":"AT-0001","vendor":"Dell","model":"Latitude 5490","bios":"1.2.0"},
  ...
]
"""
from __future__ import annotations

from typing import Any, Dict, List, Sequence

from .dispatcher import select_rule
from .models import MachineIdentity, UpdateRule


def build_plan(inventory: Sequence[Dict[str, Any]], rules: Sequence[UpdateRule]) -> Dict[str, Any]:
    plan: List[Dict[str, Any]] = []
    for d in inventory:
        model = (d.get("model") or "").strip()
        bios = d.get("bios") or ""
        if not model or not bios:
            continue
        rule = select_rule(MachineIdentity(model_id=model, firmware_version=bios), rules)
        if rule is None:
            continue
        plan.append({
            "asset_tag": d.get("asset_tag"),
            "vendor": d.get("vendor") or rule.vendor,
            "model": model,
            "current_bios": bios,
            "target_bios": rule.minimum_version,
            "rule": rule.label,
            "package": rule.package_ref,
            "suspend_encryption": rule.requires_encryption_suspend,
        })
    return {"count": len(plan), "plan": plan}
