"""Test settings resolution: defaults, YAML file, workflow inputs, CLI overrides."""

import pytest

from hs_harness.config import HarnessSettings, coerce_settings, load_settings
from hs_harness.errors import ConfigError


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    # load_settings looks for hs-harness.yaml in the working directory
    monkeypatch.chdir(tmp_path)


class TestDefaults:

    def test_defaults_without_any_source(self):
        settings = load_settings(environ={})

        assert settings == HarnessSettings()
        assert settings.installer == "pip"
        assert settings.http_port == 8008
        assert settings.upload_logs is True
        assert settings.readiness_url == "http://localhost:8008/_matrix/client/versions"
        assert settings.service_url == "http://localhost:8008/"
        assert settings.readiness_budget == 60.0

    def test_effective_public_baseurl(self):
        assert HarnessSettings(http_port=8448).effective_public_baseurl == "http://localhost:8448"
        assert HarnessSettings(public_baseurl="https://hs").effective_public_baseurl == "https://hs"


class TestPrecedence:

    def test_yaml_file_overrides_defaults(self, tmp_path):
        (tmp_path / "hs-harness.yaml").write_text("http_port: 8448\ninstaller: poetry\n")

        settings = load_settings(environ={})

        assert settings.http_port == 8448
        assert settings.installer == "poetry"

    def test_inputs_override_file(self, tmp_path):
        config = tmp_path / "custom.yaml"
        config.write_text("http_port: 8448\nupload_logs: true\n")
        environ = {"INPUT_HTTPPORT": "9000", "INPUT_UPLOADLOGS": "false", "INPUT_INSTALLER": ""}

        settings = load_settings(config, environ=environ)

        assert settings.http_port == 9000
        assert settings.upload_logs is False
        assert settings.installer == "pip"  # blank input ignored

    def test_overrides_win(self):
        environ = {"INPUT_HTTPPORT": "9000"}

        settings = load_settings(overrides={"http_port": 9100, "workdir": None}, environ=environ)

        assert settings.http_port == 9100
        assert settings.workdir == "synapse"

    def test_multiline_modules_input(self):
        environ = {"INPUT_CUSTOMMODULES": "synapse-s3-storage-provider\n\n  matrix-synapse-ldap3 \n"}

        settings = load_settings(environ=environ)

        assert settings.custom_modules == ["synapse-s3-storage-provider", "matrix-synapse-ldap3"]

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "missing.yaml", environ={})


class TestCoercion:

    @pytest.mark.parametrize("raw, expected", [
        ("true", True), ("Yes", True), ("1", True), ("on", True),
        ("false", False), ("NO", False), ("0", False), ("off", False),
    ])
    def test_booleans(self, raw, expected):
        assert coerce_settings({"disable_rate_limiting": raw}).disable_rate_limiting is expected

    def test_invalid_boolean(self):
        with pytest.raises(ConfigError, match="Invalid boolean for upload_logs"):
            coerce_settings({"upload_logs": "maybe"})

    def test_numbers(self):
        settings = coerce_settings({"http_port": "8448", "retry_delay": "0.5"})
        assert settings.http_port == 8448
        assert settings.retry_delay == 0.5

    def test_invalid_number(self):
        with pytest.raises(ConfigError, match="Invalid int for http_port"):
            coerce_settings({"http_port": "eighty"})

    def test_unknown_keys(self):
        with pytest.raises(ConfigError, match="Unknown configuration keys: bogus"):
            coerce_settings({"bogus": 1})

    @pytest.mark.parametrize("raw", [
        {"http_port": 0},
        {"http_port": 70000},
        {"max_attempts": 0},
        {"probe_timeout": 0},
        {"retry_delay": -1},
        {"grace_period": -0.5},
        {"artifact_retention_days": 0},
    ])
    def test_out_of_range(self, raw):
        with pytest.raises(ConfigError):
            coerce_settings(raw)

    def test_blank_artifact_dir_means_default(self):
        assert coerce_settings({"artifact_dir": ""}).artifact_dir is None
