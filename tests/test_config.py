import json
import os

import pytest

from common.config import Settings, ensure_directories, setup_libraries


def test_settings_default_values(mocker, tmp_path):
    """
    Test that the Settings class loads default values correctly when only the
    credential is set.
    """
    mocker.patch.dict(os.environ, {"OPENAI_API_KEY": "test_api_key"}, clear=True)
    mocker.patch("common.config.Path.cwd", return_value=tmp_path)

    settings = Settings()

    assert settings.LLM_PROVIDER == "openai"
    assert settings.AI_MODELS == ["gpt-4o"]
    assert settings.POLL_INTERVAL == 5
    assert settings.RATE_LIMIT_COOLDOWN_SECONDS == 60
    assert settings.CLASSIFY_MAX_TOKENS == 3000
    assert settings.RENDER_DPI == 200
    assert settings.PDF_PATH == str(tmp_path / "pdfs")
    assert settings.STORE_PATH == str(tmp_path / "data" / "data.json")
    assert settings.SAMPLE_DATA == {}
    assert settings.LOG_FORMAT == "console"


def test_settings_from_environment_variables(mocker):
    mocker.patch.dict(
        os.environ,
        {
            "OPENAI_API_KEY": "env_api_key",
            "AI_MODELS": "model-a, model-b,model-a",
            "POLL_INTERVAL": "30",
            "RATE_LIMIT_COOLDOWN_SECONDS": "0",
            "STORE_PATH": "/srv/store.json",
            "SAMPLE_DATA": '{"a": ["a1.pdf"], "b": "b1.pdf"}',
            "LOG_LEVEL": "debug",
            "LOG_FORMAT": "JSON",
        },
        clear=True,
    )

    settings = Settings()

    assert settings.OPENAI_API_KEY == "env_api_key"
    assert settings.AI_MODELS == ["model-a", "model-b"]
    assert settings.POLL_INTERVAL == 30
    assert settings.RATE_LIMIT_COOLDOWN_SECONDS == 0
    assert settings.STORE_PATH == "/srv/store.json"
    assert settings.SAMPLE_DATA == {"a": ["a1.pdf"], "b": ["b1.pdf"]}
    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.LOG_FORMAT == "json"


def test_settings_missing_credential(mocker):
    mocker.patch.dict(os.environ, {}, clear=True)

    with pytest.raises(
        ValueError, match="Required environment variable 'OPENAI_API_KEY' is not set."
    ):
        Settings()


def test_settings_sample_data_file_accepts_full_config(mocker, tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(
        json.dumps({"pdf_path": "ignored", "sample_data": {"a": ["a1.pdf", "a2.pdf"]}})
    )
    mocker.patch.dict(
        os.environ,
        {"OPENAI_API_KEY": "key", "SAMPLE_DATA_FILE": str(config_file)},
        clear=True,
    )

    settings = Settings()

    assert settings.SAMPLE_DATA == {"a": ["a1.pdf", "a2.pdf"]}


@pytest.mark.parametrize(
    "env, message",
    [
        ({"SAMPLE_DATA": "not json"}, "SAMPLE_DATA is not valid JSON"),
        ({"SAMPLE_DATA": '["a.pdf"]'}, "must be a JSON object"),
        ({"SAMPLE_DATA": '{"a": [1]}'}, "must be a list of paths"),
        ({"SAMPLE_DATA_FILE": "/nonexistent/config.json"}, "Unable to read"),
        ({"POLL_INTERVAL": "soon"}, "POLL_INTERVAL must be an integer"),
        ({"POLL_INTERVAL": "0"}, "POLL_INTERVAL must be >= 1"),
        ({"LOG_FORMAT": "xml"}, "LOG_FORMAT must be"),
        ({"LLM_PROVIDER": "invalid_provider"}, "LLM_PROVIDER must be 'openai' or 'ollama'"),
    ],
)
def test_settings_invalid_values(mocker, env, message):
    mocker.patch.dict(os.environ, {"OPENAI_API_KEY": "key", **env}, clear=True)

    with pytest.raises(ValueError, match=message):
        Settings()


def test_ollama_configuration(mocker):
    mocker.patch.dict(os.environ, {"LLM_PROVIDER": "ollama"}, clear=True)

    settings = Settings()
    setup_libraries(settings)

    import openai

    assert settings.OPENAI_API_KEY is None
    assert settings.AI_MODELS == ["llava:13b"]
    assert openai.base_url == "http://localhost:11434/v1/"
    assert openai.api_key == "dummy"


def test_ensure_directories_creates_working_dirs(settings, tmp_path):
    ensure_directories(settings)

    for name in ("pdfs", "images", "json", "data"):
        assert (tmp_path / name).is_dir()
