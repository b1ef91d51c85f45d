"""Tests for the YAML config loader."""

import pytest

from restrecord.api.driver import Api
from restrecord.config.loader import create_api, load_api_config, load_config


def _write_config(tmp_path, text):
    path = tmp_path / "restrecord.config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_api_config_reads_api_section(tmp_path):
    path = _write_config(
        tmp_path,
        "api:\n  base_endpoint: https://api.example.com/\n  version: 1.0\n  token: secret\n  timeout_seconds: 5\n",
    )

    config = load_api_config(path)

    assert config.base_endpoint == "https://api.example.com"
    assert config.version == "1.0"
    assert config.token == "secret"
    assert config.timeout_seconds == 5
    assert config.endpoint_url("users/5") == "https://api.example.com/1.0/users/5"


def test_load_api_config_defaults_optional_fields():
    config = load_api_config(config={"api": {"base_endpoint": "https://api.example.com", "version": "v2"}})

    assert config.token is None
    assert config.timeout_seconds == 30


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_load_config_empty_file_is_empty_dict(tmp_path):
    path = _write_config(tmp_path, "")

    assert load_config(path) == {}


@pytest.mark.parametrize(
    "config",
    [
        [],
        {},
        {"api": "https://api.example.com"},
        {"api": {"version": "1.0"}},
        {"api": {"base_endpoint": "https://api.example.com"}},
        {"api": {"base_endpoint": "https://api.example.com", "version": "1.0", "timeout_seconds": 0}},
    ],
)
def test_load_api_config_rejects_invalid_structure(config):
    with pytest.raises(ValueError):
        load_api_config(config=config)


def test_create_api(tmp_path):
    path = _write_config(tmp_path, "api:\n  base_endpoint: https://api.example.com\n  version: '2'\n  token: abc\n")

    api = create_api(path)

    assert isinstance(api, Api)
    assert api.get_endpoint_url("users") == "https://api.example.com/2/users"
    assert api.config.token == "abc"
    api.close()
