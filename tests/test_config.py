import json

import pytest
from pydantic import ValidationError

from aimindmap.config import DEFAULT_ALLOWED_DOMAINS, Config, ProviderType, load_config


def write_config(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_missing_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("ALLOWED_DOMAINS", raising=False)
    config = load_config(str(tmp_path / "absent.json"))

    assert config.storage.key == "aimindmap_data"
    assert config.layout.level_distance == 200
    assert config.newsletter.allowed_domains == DEFAULT_ALLOWED_DOMAINS


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = write_config(tmp_path, {"storage": {"path": ""}})
    monkeypatch.setenv("CONFIG_PATH", path)

    assert load_config().storage.path == ""


def test_dotted_get(tmp_path):
    config = load_config(
        write_config(
            tmp_path,
            {
                "llm": {
                    "default_profile": "main",
                    "profiles": {
                        "main": {
                            "type": "anthropic",
                            "default_model": "claude",
                            "options": {"temperature": 0.2},
                        }
                    },
                }
            },
        )
    )

    assert config.get("llm.default_profile") == "main"
    assert config.get("llm.profiles")["main"].type == ProviderType.ANTHROPIC
    assert config.get("llm.profiles.main.options.temperature") == 0.2
    assert config.get("llm.summary_profile", default="fallback") == "fallback"
    assert config.get("no.such.key") is None
    assert config.get("logging.loglevel") == "INFO"


def test_allowed_domains_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("ALLOWED_DOMAINS", "mhlw.go.jp, example.org ,")

    config = load_config(str(tmp_path / "absent.json"))
    assert config.newsletter.allowed_domains == ["mhlw.go.jp", "example.org"]


def test_unknown_keys_are_rejected():
    with pytest.raises(ValidationError):
        Config.model_validate({"storage": {"file": "x"}})
