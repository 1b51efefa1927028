import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from bios_update.audit import ReportClient, build_record, write_run_audit
from bios_update.models import DispatchState, MachineIdentity, UpdateOutcome
from conftest import make_rule


def test_build_record_for_executed_update() -> None:
    state = DispatchState(True, UpdateOutcome(True, False, 0), make_rule())
    record = build_record(MachineIdentity("20L7001UUS", "N22ET50W (1.27 )"), state, 3010)
    assert record["rule"] == "20L7001UUS BIOS"
    assert record["update_executed"] is True
    assert record["outcome"] == {
        "ran_update": True,
        "cancelled_by_user": False,
        "process_exit_code": 0,
        "encryption_suspended": None,
    }
    assert record["timestamp"].endswith("Z")


def test_build_record_without_state() -> None:
    record = build_record(None, None, 60001, "probe_failed")
    assert record["identity"] is None
    assert record["update_executed"] is False
    assert record["error"] == "probe_failed"


def test_write_run_audit_creates_parent(tmp_path: Path) -> None:
    out = tmp_path / "nested" / "audit.json"
    write_run_audit(out, {"exit_code": 0})
    assert json.loads(out.read_text(encoding="utf-8")) == {"exit_code": 0}


def test_report_client_posts_with_bearer_token() -> None:
    response = MagicMock(status_code=201)
    with patch("bios_update.audit.requests.post", return_value=response) as post:
        assert ReportClient("https://mdm.example.com/r", "tok").post_result({"exit_code": 0}) is True
    kwargs = post.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "Bearer tok"
    assert kwargs["timeout"] == 30
    assert json.loads(kwargs["data"]) == {"exit_code": 0}


def test_report_client_failure_is_not_fatal() -> None:
    with patch("bios_update.audit.requests.post", side_effect=requests.ConnectionError("down")):
        assert ReportClient("https://mdm.example.com/r").post_result({}) is False
