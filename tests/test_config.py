import logging

import pytest

from eduquiz.config import AppConfig, load_app_config


@pytest.fixture(autouse=True)
def no_secrets(monkeypatch):
    for name in ("SUPABASE_URL", "SUPABASE_KEY", "GEMINI_API_KEY"):
        monkeypatch.delenv(name, raising=False)


def test_missing_file_uses_defaults(tmp_path):
    cfg = load_app_config(tmp_path / "config.toml")
    assert cfg.question_seconds == 60
    assert cfg.max_score == 5
    assert cfg.max_time == 300
    assert cfg.on_missing_auth == "skip"
    assert cfg.gemini_model == "gemini-1.5-flash"


def test_toml_sections_are_read(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[app]\nname = "Math Lab"\n'
        "[quiz]\nquestion_seconds = 45\nmax_time = 240\n"
        '[scores]\non_missing_auth = "error"\n'
        '[gemini]\npreferred_model = "gemini-2.0-flash"\n'
        '[logging]\nlevel = "debug"\n',
        encoding="utf-8",
    )
    cfg = load_app_config(path)
    assert cfg.app_name == "Math Lab"
    assert cfg.question_seconds == 45
    assert cfg.max_time == 240
    assert cfg.on_missing_auth == "error"
    assert cfg.gemini_model == "gemini-2.0-flash"
    assert cfg.log_level == "DEBUG"


def test_broken_toml_falls_back(tmp_path, caplog):
    path = tmp_path / "config.toml"
    path.write_text("[quiz\nquestion_seconds = ", encoding="utf-8")
    with caplog.at_level(logging.WARNING):
        cfg = load_app_config(path)
    assert cfg.question_seconds == 60
    assert caplog.records


def test_secrets_come_from_environment(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "anon-key")
    monkeypatch.setenv("GEMINI_API_KEY", "gem-key")
    cfg = AppConfig()
    assert cfg.has_backend
    assert cfg.has_gemini
    assert cfg.supabase_url == "https://example.supabase.co"


def test_explicit_values_win():
    cfg = AppConfig(supabase_url="u", supabase_key="k")
    assert cfg.has_backend


def test_unknown_missing_auth_policy():
    with pytest.raises(ValueError):
        AppConfig(on_missing_auth="ignore")
