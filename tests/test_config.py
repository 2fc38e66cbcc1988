import logging

from carecore.config import Settings, configure_logging


def test_defaults(monkeypatch):
    for name in ("CARE_ENABLE_MOCK", "CARE_API_BASE_URL", "CARE_STORE_PATH",
                 "CARE_BUDGET_LATENCY_MS", "CARE_HTTP_TIMEOUT", "CARE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env(dotenv=False)
    assert settings == Settings()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CARE_ENABLE_MOCK", "false")
    monkeypatch.setenv("CARE_API_BASE_URL", "https://care.example/")
    monkeypatch.setenv("CARE_STORE_PATH", "/tmp/profile.json")
    monkeypatch.setenv("CARE_BUDGET_LATENCY_MS", "-5")
    monkeypatch.setenv("CARE_HTTP_TIMEOUT", "soon")
    monkeypatch.setenv("CARE_LOG_LEVEL", "debug")
    settings = Settings.from_env(dotenv=False)
    assert settings.mock is False
    assert settings.api_base_url == "https://care.example"
    assert settings.store_path == "/tmp/profile.json"
    assert settings.budget_latency_ms == 0
    assert settings.http_timeout == 10.0
    assert settings.log_level == "DEBUG"


def test_dotenv_does_not_override_environment(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text("CARE_LOG_LEVEL=WARNING\nCARE_API_BASE_URL=http://from-dotenv\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CARE_LOG_LEVEL", "ERROR")
    monkeypatch.delenv("CARE_API_BASE_URL", raising=False)
    settings = Settings.from_env()
    assert settings.log_level == "ERROR"
    assert settings.api_base_url == "http://from-dotenv"
    monkeypatch.delenv("CARE_API_BASE_URL", raising=False)


def test_configure_logging_sets_package_level():
    configure_logging("DEBUG")
    assert logging.getLogger("carecore").level == logging.DEBUG
    configure_logging("INFO")
