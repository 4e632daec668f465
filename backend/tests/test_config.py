import pytest

from ciphercraft.config import DEMO_API_KEY, MAX_UPLOAD_BYTES, OCR_SPACE_URL, Settings, resolve_api_key


@pytest.mark.parametrize(
    "caller, configured, expected",
    [
        ("caller", "configured", "caller"),
        (None, "configured", "configured"),
        ("", "configured", "configured"),
        ("   ", "configured", "configured"),
        (None, None, DEMO_API_KEY),
        ("", "", DEMO_API_KEY),
        (" caller ", None, "caller"),
    ],
)
def test_resolve_api_key(caller, configured, expected):
    assert resolve_api_key(caller, configured) == expected


ENV_VARS = [
    "CIPHERCRAFT_OCR_BACKEND",
    "CIPHERCRAFT_NEWLINE_MODE",
    "OCR_SPACE_API_KEY",
    "CIPHERCRAFT_OCR_URL",
    "CIPHERCRAFT_OCR_LANGUAGE",
    "CIPHERCRAFT_MAX_UPLOAD_BYTES",
    "CIPHERCRAFT_OCR_TIMEOUT",
    "CIPHERCRAFT_MAX_CONCURRENT_OCR",
    "TESSERACT_CMD",
    "ALLOWED_ORIGINS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_settings_defaults(clean_env):
    settings = Settings()
    assert settings.ocr_backend == "local"
    assert settings.newline_mode == "space"
    assert settings.ocr_api_key is None
    assert settings.ocr_url == OCR_SPACE_URL
    assert settings.ocr_language == "eng"
    assert settings.max_upload_bytes == MAX_UPLOAD_BYTES == 1024 * 1024
    assert settings.ocr_timeout == 60.0
    assert settings.max_concurrent_ocr == 2
    assert settings.allowed_origins == ["*"]
    assert not hasattr(settings, "environment")


def test_settings_from_env(clean_env):
    clean_env.setenv("CIPHERCRAFT_OCR_BACKEND", "Remote")
    clean_env.setenv("CIPHERCRAFT_NEWLINE_MODE", "remove")
    clean_env.setenv("OCR_SPACE_API_KEY", "k-123")
    clean_env.setenv("CIPHERCRAFT_MAX_CONCURRENT_OCR", "0")
    clean_env.setenv("ALLOWED_ORIGINS", "http://a.test, http://b.test,")

    settings = Settings()
    assert settings.ocr_backend == "remote"
    assert settings.newline_mode == "remove"
    assert settings.ocr_api_key == "k-123"
    assert settings.max_concurrent_ocr == 1
    assert settings.allowed_origins == ["http://a.test", "http://b.test"]


@pytest.mark.parametrize("name", ["CIPHERCRAFT_OCR_BACKEND", "CIPHERCRAFT_NEWLINE_MODE"])
def test_settings_reject_unknown_choices(clean_env, name):
    clean_env.setenv(name, "bogus")
    with pytest.raises(ValueError):
        Settings()
