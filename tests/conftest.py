import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import bios_update.log as log  # noqa: E402
from bios_update.models import UpdateRule, UserChoice  # noqa: E402


class FakeHost:
    """Records every host call in order."""

    def __init__(
        self,
        model: str = "20L7001UUS",
        version: str = "N22ET50W (1.27 )",
        choice: UserChoice = UserChoice.PROCEED,
        exit_code: int = 0,
        probe_error: Optional[Exception] = None,
        suspend_error: Optional[Exception] = None,
        resume_error: Optional[Exception] = None,
        launch_error: Optional[Exception] = None,
        marker_error: Optional[Exception] = None,
    ) -> None:
        self.model = model
        self.version = version
        self.choice = choice
        self.exit_code = exit_code
        self.probe_error = probe_error
        self.suspend_error = suspend_error
        self.resume_error = resume_error
        self.launch_error = launch_error
        self.marker_error = marker_error
        self.calls: List[Tuple] = []

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]

    def probe_hardware(self) -> Tuple[str, str]:
        self.calls.append(("probe_hardware",))
        if self.probe_error:
            raise self.probe_error
        return self.model, self.version

    def prompt_user(self, message, timeout_seconds, options=("Proceed", "Cancel")):
        self.calls.append(("prompt_user", message, timeout_seconds, tuple(options)))
        return self.choice

    def write_audit_marker(self, key, value):
        self.calls.append(("write_audit_marker", key, value))
        if self.marker_error:
            raise self.marker_error

    def suspend_encryption(self, volume, reboot_count):
        self.calls.append(("suspend_encryption", volume, reboot_count))
        if self.suspend_error:
            raise self.suspend_error

    def resume_encryption(self, volume):
        self.calls.append(("resume_encryption", volume))
        if self.resume_error:
            raise self.resume_error

    def run_process(self, path, args, working_dir):
        self.calls.append(("run_process", path, args, Path(working_dir)))
        if self.launch_error:
            raise self.launch_error
        return self.exit_code

    def show_countdown_and_reboot(self, total_seconds, final_lock_seconds):
        self.calls.append(("show_countdown_and_reboot", total_seconds, final_lock_seconds))


def make_rule(model_id: str = "20L7001UUS", minimum_version: Optional[str] = "N22ET63W (1.40 )",
              **overrides) -> UpdateRule:
    fields = dict(
        model_id=model_id,
        minimum_version=minimum_version,
        package_ref=f"/packages/{model_id}/WINUPTP64.EXE",
        execution_args="-s",
        requires_encryption_suspend=True,
        prompt_message="Update BIOS?",
        confirmation_timeout_seconds=120,
        name=f"{model_id} BIOS",
    )
    fields.update(overrides)
    return UpdateRule(**fields)


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture(autouse=True)
def _quiet_log(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NO_COLOR", "1")
    log.set_level("info")
