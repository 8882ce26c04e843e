import pytest
from pydantic import ValidationError

from pintodo.core.settings import Settings, get_settings, reload_settings


def test_defaults():
    s = Settings()
    assert s.pin is None
    assert not s.pin_required
    assert s.max_attempts == 5
    assert s.lockout_seconds == 900
    assert s.attempt_reset_seconds == 3600
    assert s.session_mode == "pin"
    assert s.port == 3000


@pytest.mark.parametrize("pin", ["1234", "0000", "9876543210"])
def test_accepts_digit_pins(pin):
    assert Settings(pin=pin).pin_required


@pytest.mark.parametrize("pin", ["123", "12345678901", "12a4", "１２３４", " 1234"])
def test_rejects_bad_pins(pin):
    with pytest.raises(ValidationError):
        Settings(pin=pin)


def test_delay_range_must_be_ordered():
    with pytest.raises(ValidationError):
        Settings(verify_delay_min_ms=100, verify_delay_max_ms=50)


def test_unknown_session_mode_rejected():
    with pytest.raises(ValidationError):
        Settings(session_mode="jwt")


def test_production_forces_secure_cookies():
    assert not Settings().secure_cookies
    assert Settings(environment="Production").secure_cookies
    assert Settings(cookie_secure=True).secure_cookies


def test_env_loading(monkeypatch, tmp_path):
    monkeypatch.setenv("PINTODO_PIN", " 4321 ")
    monkeypatch.setenv("MAX_ATTEMPTS", "3")
    monkeypatch.setenv("SESSION_MODE", "Token")
    monkeypatch.setenv("COOKIE_SECURE", "yes")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    try:
        s = reload_settings()
        assert s.pin == "4321"
        assert s.max_attempts == 3
        assert s.session_mode == "token"
        assert s.secure_cookies
        assert s.data_file == str(tmp_path / "todos.json")
    finally:
        monkeypatch.undo()
        reload_settings()


def test_empty_pin_env_disables_protection(monkeypatch):
    monkeypatch.setenv("PINTODO_PIN", "   ")
    try:
        assert reload_settings().pin is None
    finally:
        monkeypatch.undo()
        reload_settings()


def test_importing_app_module_does_not_read_environment(monkeypatch):
    import importlib

    import pintodo.main

    monkeypatch.setenv("PINTODO_PIN", "not-a-pin")
    get_settings.cache_clear()
    try:
        module = importlib.reload(pintodo.main)
        assert not hasattr(module, "app")
        with pytest.raises(ValidationError):
            module.create_app()
    finally:
        monkeypatch.undo()
        get_settings.cache_clear()
