from pathlib import Path

from adcreative.config import OracleConfig, RendererConfig, _parse_allowed_origins, get_settings


def test_parse_allowed_origins_with_paths() -> None:
    raw = "https://example.com/app, https://demo.com/sub"
    assert _parse_allowed_origins(raw) == [
        "https://example.com",
        "https://demo.com",
    ]


def test_parse_allowed_origins_with_wildcard() -> None:
    assert _parse_allowed_origins("*") == ["*"]


def test_parse_allowed_origins_deduplicates_and_handles_empty() -> None:
    raw = " https://example.com/ , https://example.com ,"
    assert _parse_allowed_origins(raw) == ["https://example.com"]


def test_parse_allowed_origins_defaults_to_wildcard() -> None:
    assert _parse_allowed_origins("") == ["*"]


def test_oracle_config_defaults_to_openai(monkeypatch) -> None:
    for name in ("ORACLE_PROVIDER", "ORACLE_API_KEY", "ORACLE_MODEL", "ORACLE_TIMEOUT_SECONDS", "ORACLE_MAX_SAMPLES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")

    config = OracleConfig.from_env()

    assert config.provider == "openai"
    assert config.api_key == "sk-openai"
    assert config.model == "gpt-4o-mini"
    assert config.timeout_seconds == 60.0
    assert config.max_samples_per_competitor == 10


def test_oracle_config_gemini_key_fallback(monkeypatch) -> None:
    for name in ("ORACLE_API_KEY", "GEMINI_API_KEY", "ORACLE_MODEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ORACLE_PROVIDER", " Gemini ")
    monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
    monkeypatch.setenv("ORACLE_TIMEOUT_SECONDS", "not-a-number")
    monkeypatch.setenv("ORACLE_MAX_SAMPLES", "3")

    config = OracleConfig.from_env()

    assert config.provider == "gemini"
    assert config.api_key == "g-key"
    assert config.model == "gemini-2.5-pro"
    assert config.timeout_seconds == 60.0
    assert config.max_samples_per_competitor == 3


def test_renderer_config_from_env(monkeypatch) -> None:
    monkeypatch.setenv("RENDER_JPEG_QUALITY", "100")
    monkeypatch.setenv("RENDER_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("CHROME_EXTRA_ARGS", "--lang=en, --force-color-profile=srgb")
    monkeypatch.delenv("RENDER_DEFAULT_DIMENSIONS", raising=False)

    config = RendererConfig.from_env()

    assert config.jpeg_quality == 95
    assert config.timeout_seconds == 12.5
    assert config.default_dimensions == "1200x628"
    assert config.extra_args == ["--lang=en", "--force-color-profile=srgb"]


def test_get_settings_reads_storage(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("CREATIVE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("R2_BUCKET", "creatives")
    monkeypatch.setenv("R2_ENDPOINT", "https://r2.example.com")
    monkeypatch.setenv("R2_ACCESS_KEY_ID", "key")
    monkeypatch.setenv("R2_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("R2_SIGNED_GET_TTL", "10")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.storage.data_dir == Path(tmp_path)
        assert settings.storage.object_storage_configured is True
        assert settings.storage.signed_url_ttl == 60
        assert settings.log_level == "DEBUG"
    finally:
        get_settings.cache_clear()
