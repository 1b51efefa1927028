"""Run records: a local JSON audit file and an optional report to the
endpoint-management API.

Report endpoint (optional):
  export ENDPOINT_REPORT_URL="https://mdm.example.com/api/v1/firmware/results"
  export ENDPOINT_API_TOKEN="..."
"""
from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from . import log
from .models import DispatchState, MachineIdentity


def now_utc() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_record(identity: Optional[MachineIdentity], state: Optional[DispatchState],
                 exit_code: int, error: Optional[str] = None) -> Dict[str, Any]:
    rule = state.rule if state else None
    outcome = state.outcome if state else None
    return {
        "timestamp": now_utc(),
        "identity": asdict(identity) if identity else None,
        "rule": rule.label if rule else None,
        "package": rule.package_ref if rule else None,
        "update_executed": bool(state and state.update_executed),
        "outcome": asdict(outcome) if outcome else None,
        "exit_code": exit_code,
        "error": error,
    }


def write_run_audit(out_path: Path, record: Dict[str, Any]) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(record, indent=2), encoding="utf-8")


def headers_json(token: str) -> Dict[str, str]:
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class ReportClient:
    def __init__(self, url: str, token: str = "", timeout: int = 30) -> None:
        self.url = url
        self.token = token
        self.timeout = timeout

    def post_result(self, record: Dict[str, Any]) -> bool:
        try:
            r = requests.post(self.url, headers=headers_json(self.token), data=json.dumps(record), timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            log.warning(f"Could not report result to {self.url}: {e}")
            return False
        log.debug(f"Reported result to {self.url} ({r.status_code})")
        return True
