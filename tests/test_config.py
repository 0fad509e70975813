"""Tests for session configuration loading."""

import logging

import pytest

from athena.config import Credentials, GrantType, SessionConfig, load_config
from athena.errors import ConfigurationError
from athena.log_utils import LogEvent

CONFIG_YAML = """
session:
  grant_type: device_auth
  kairos: true
  auto_refresh: false
  safety_margin: 120
  timeout: 10
  log_level: DEBUG
  party_build_id: "1:3:"
credentials:
  account_id_env: ATHENA_TEST_ACCOUNT_ID
  device_id_env: ATHENA_TEST_DEVICE_ID
  secret_env: ATHENA_TEST_SECRET
"""


class TestSessionConfig:

    def test_defaults(self):
        config = SessionConfig()

        assert config.grant_type is GrantType.PASSWORD
        assert config.auto_refresh is True
        assert config.kill_other_sessions is True
        assert config.rearm_after_rotation is False
        assert config.safety_margin == 300
        assert config.token_url.endswith("/account/api/oauth/token")

    def test_grant_type_from_string(self):
        assert SessionConfig(grant_type="exchange_code").grant_type is GrantType.EXCHANGE_CODE

    def test_unknown_grant_type(self):
        with pytest.raises(ConfigurationError):
            SessionConfig(grant_type="client_credentials")

    def test_negative_safety_margin(self):
        with pytest.raises(ConfigurationError):
            SessionConfig(safety_margin=-1)

    def test_validate_reports_missing_credentials(self):
        config = SessionConfig(grant_type=GrantType.DEVICE_AUTH)

        with pytest.raises(ConfigurationError, match="device_id, secret"):
            config.validate(Credentials(account_id="abc"))

    def test_unknown_options_are_ignored_with_a_warning(self, caplog):
        caplog.set_level(logging.WARNING, logger="athena")

        config = SessionConfig.from_dict({"safety_margin": 60, "party_build_id": "1:3:"})

        assert config.safety_margin == 60
        assert not hasattr(config, "party_build_id")
        records = [r.log_record for r in caplog.records if hasattr(r, "log_record")]
        assert [(r.event, r.data) for r in records] == [
            (LogEvent.CONFIG_UNKNOWN_OPTION.value, {"options": ["party_build_id"]})]

    def test_credentials_repr_hides_values(self):
        credentials = Credentials(email="a@b.test", password="hunter2")

        assert "hunter2" not in repr(credentials)
        assert "password" in repr(credentials)


class TestLoadConfig:

    def test_loads_session_and_credentials(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ATHENA_TEST_ACCOUNT_ID", "acc-1")
        monkeypatch.setenv("ATHENA_TEST_DEVICE_ID", "dev-1")
        monkeypatch.setenv("ATHENA_TEST_SECRET", "s3cret")
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        config, credentials = load_config(path, env_file=tmp_path / ".env")

        assert config.grant_type is GrantType.DEVICE_AUTH
        assert config.kairos is True
        assert config.auto_refresh is False
        assert config.safety_margin == 120
        assert config.log_level == "DEBUG"
        assert not hasattr(config, "party_build_id")
        assert credentials == Credentials(account_id="acc-1", device_id="dev-1", secret="s3cret")

    def test_reads_dotenv_file(self, tmp_path, monkeypatch):
        # Registers the variable with monkeypatch so teardown removes it
        monkeypatch.setenv("ATHENA_DOTENV_EXCHANGE_CODE", "unset")
        monkeypatch.delenv("ATHENA_DOTENV_EXCHANGE_CODE")
        (tmp_path / ".env").write_text("ATHENA_DOTENV_EXCHANGE_CODE=code-from-dotenv\n")
        path = tmp_path / "config.yaml"
        path.write_text(
            "session:\n  grant_type: exchange_code\n"
            "credentials:\n  exchange_code_env: ATHENA_DOTENV_EXCHANGE_CODE\n"
        )

        config, credentials = load_config(path, env_file=tmp_path / ".env")

        assert config.grant_type is GrantType.EXCHANGE_CODE
        assert credentials.exchange_code == "code-from-dotenv"

    def test_missing_file_gives_defaults(self, tmp_path):
        config, credentials = load_config(tmp_path / "absent.yaml", env_file=tmp_path / ".env")

        assert config == SessionConfig()
        assert credentials == Credentials()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("session: [unclosed\n")

        with pytest.raises(ConfigurationError):
            load_config(path, env_file=tmp_path / ".env")

    def test_top_level_must_be_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_config(path, env_file=tmp_path / ".env")
