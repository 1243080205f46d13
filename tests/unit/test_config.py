"""Tests for configuration loading."""

from flowrunner.config import load_config
from flowrunner.persistence import SQLiteWorkflowRepository, get_repository


def test_load_config_defaults():
    config = load_config()
    assert config.database_url is None
    assert config.engine.max_steps == 1000
    assert config.engine.step_timeout is None
    assert config.http.timeout == 30.0
    assert config.llm.temperature == 0.7
    assert config.llm.system_prompt == "You are a helpful assistant."
    assert config.sms.api_key is None


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
engine:
  step_timeout: 12.5
  max_steps: 50
llm:
  model: test:model
sms:
  api_key: from-file
"""
    )
    monkeypatch.setenv("FLOWRUNNER_CONFIG", str(config_path))
    monkeypatch.setenv("SMS_API_KEY", "from-env")
    monkeypatch.setenv("BOTPRESS_API_TOKEN", "bp-token")

    config = load_config()
    assert config.engine.step_timeout == 12.5
    assert config.engine.max_steps == 50
    assert config.llm.model == "test:model"
    assert config.sms.api_key == "from-env"
    assert config.botpress.api_token == "bp-token"


def test_get_repository_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(f"database_url: sqlite://{tmp_path / 'cfg.db'}\n")
    monkeypatch.setenv("FLOWRUNNER_CONFIG", str(config_path))

    repo = get_repository(config=load_config())
    assert isinstance(repo, SQLiteWorkflowRepository)
    assert repo.db_path == str(tmp_path / "cfg.db")
