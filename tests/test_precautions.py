import pytest

from bios_update.precautions import encryption_suspended
from conftest import FakeHost


def test_suspend_is_bounded_and_left_to_expire(host: FakeHost) -> None:
    with encryption_suspended(host, "C:", 1) as suspended:
        assert suspended is True
    assert host.calls == [("suspend_encryption", "C:", 1)]


def test_failed_suspend_yields_false_and_warns(capsys: pytest.CaptureFixture) -> None:
    host = FakeHost(suspend_error=RuntimeError("access denied"))
    with encryption_suspended(host, "D:", 2) as suspended:
        assert suspended is False
    assert "WARN: Could not suspend encryption on D:" in capsys.readouterr().err


def test_error_in_body_resumes_protection(host: FakeHost) -> None:
    with pytest.raises(OSError):
        with encryption_suspended(host):
            raise OSError("launch failed")
    assert host.names() == ["suspend_encryption", "resume_encryption"]


def test_error_in_body_without_suspension_does_not_resume() -> None:
    host = FakeHost(suspend_error=RuntimeError("no tpm"))
    with pytest.raises(OSError):
        with encryption_suspended(host):
            raise OSError("launch failed")
    assert "resume_encryption" not in host.names()


def test_resume_failure_keeps_original_error(capsys: pytest.CaptureFixture) -> None:
    host = FakeHost(resume_error=RuntimeError("resume refused"))
    with pytest.raises(OSError, match="launch failed"):
        with encryption_suspended(host):
            raise OSError("launch failed")
    assert "resume refused" in capsys.readouterr().err


@pytest.mark.parametrize("count", [0, -1, 16])
def test_unbounded_reboot_count_is_refused(host: FakeHost, count: int) -> None:
    with pytest.raises(ValueError, match="reboot_count"):
        with encryption_suspended(host, "C:", count):
            pass
    assert host.calls == []
