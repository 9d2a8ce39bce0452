import pytest

from quizeval.config import Settings


def test_defaults(monkeypatch):
    for name in ("GRADING_CLAMP_NEGATIVE", "GRADING_MMCQ_PARTIAL_CREDIT", "GRADING_WORKERS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings()
    policy = settings.grading_policy()
    assert policy.clamp_negative is True
    assert policy.mmcq_partial_credit is False
    assert policy.lenient_max_edits == 1
    assert settings.GRADING_WORKERS == 4
    assert settings.LOG_LEVEL == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("GRADING_CLAMP_NEGATIVE", "false")
    monkeypatch.setenv("GRADING_MMCQ_PARTIAL_CREDIT", "yes")
    monkeypatch.setenv("GRADING_LENIENT_MAX_EDITS", "2")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = Settings()
    policy = settings.grading_policy()
    assert policy.clamp_negative is False
    assert policy.mmcq_partial_credit is True
    assert policy.lenient_max_edits == 2
    assert settings.LOG_LEVEL == "DEBUG"


@pytest.mark.parametrize("name, value", [
    ("GRADING_WORKERS", "0"),
    ("GRADING_LENIENT_MAX_EDITS", "-1"),
    ("GRADING_LENIENT_MIN_LENGTH", "-2"),
])
def test_invalid_settings(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError):
        Settings()
