from __future__ import annotations

import textwrap

import pytest

from ecagate.config import (
    DEFAULT_API_BASE_URL,
    DEFAULT_TOKEN_URL,
    GateConfig,
    load_gate_config,
    validate_gate_config,
)
from ecagate.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _work_in_tmp(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)


def _write(path, text):
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


def test_defaults_without_any_file() -> None:
    config = load_gate_config()
    assert config.token_url == DEFAULT_TOKEN_URL
    assert config.api_base_url == DEFAULT_API_BASE_URL
    assert config.scope == "eclipsefdn_view_all_profiles"
    assert config.request_timeout_s == 5.0
    assert config.mode == "local"
    assert config.directory.committers == {}


def test_yaml_file_is_merged_over_defaults(tmp_path) -> None:
    path = _write(
        tmp_path / "gate.yaml",
        """
        oauth:
          client_id: gate
          client_secret: s3cret
        api:
          max_workers: 2
        directory:
          committers:
            technology.example: [ada, bob]
          accounts:
            - username: ada
              emails: [ada@example.org, ada@work.example.com]
            - emails: [nobody@example.org]
        """,
    )
    config = load_gate_config(path)
    assert config.client_id == "gate"
    assert config.max_workers == 2
    assert config.token_url == DEFAULT_TOKEN_URL
    assert config.directory.committers == {"technology.example": ("ada", "bob")}
    assert [account.username for account in config.directory.accounts] == ["ada"]
    assert "s3cret" not in repr(config)


def test_default_file_in_working_directory_is_used(tmp_path) -> None:
    _write(tmp_path / "ecagate.yaml", "validation:\n  mode: delegated\n")
    assert load_gate_config().mode == "delegated"


def test_config_env_var_points_at_file(monkeypatch, tmp_path) -> None:
    path = _write(tmp_path / "elsewhere.yaml", "validation:\n  provider: github\n")
    monkeypatch.setenv("ECAGATE_CONFIG", str(path))
    assert load_gate_config().provider == "github"


def test_environment_overrides_file(monkeypatch, tmp_path) -> None:
    path = _write(tmp_path / "gate.yaml", "oauth:\n  client_id: from-file\napi:\n  timeout_s: 9\n")
    monkeypatch.setenv("ECAGATE_CLIENT_ID", "from-env")
    monkeypatch.setenv("ECAGATE_REQUEST_TIMEOUT_S", "2.5")
    monkeypatch.setenv("ECAGATE_STRICT_MODE", "yes")
    config = load_gate_config(path)
    assert config.client_id == "from-env"
    assert config.request_timeout_s == 2.5
    assert config.strict_mode is True


def test_invalid_environment_value_is_ignored(monkeypatch) -> None:
    monkeypatch.setenv("ECAGATE_MAX_WORKERS", "many")
    assert load_gate_config().max_workers == 8


def test_missing_explicit_file_is_an_error(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        load_gate_config(tmp_path / "absent.yaml")


def test_invalid_yaml_is_an_error(tmp_path) -> None:
    path = _write(tmp_path / "broken.yaml", "oauth: [unclosed\n")
    with pytest.raises(ConfigurationError):
        load_gate_config(path)


def test_wrongly_typed_value_is_an_error(tmp_path) -> None:
    path = _write(tmp_path / "gate.yaml", "api:\n  max_workers: lots\n")
    with pytest.raises(ConfigurationError):
        load_gate_config(path)


def test_validation_reports_every_problem() -> None:
    config = GateConfig(token_url="ftp://accounts", max_workers=0, mode="hybrid")
    with pytest.raises(ConfigurationError) as excinfo:
        validate_gate_config(config)
    message = str(excinfo.value)
    for fragment in ("client_id", "client_secret", "oauth.token_url", "max_workers", "validation.mode"):
        assert fragment in message


def test_valid_config_passes_validation() -> None:
    config = GateConfig(client_id="gate", client_secret="s3cret")
    assert validate_gate_config(config) is config
