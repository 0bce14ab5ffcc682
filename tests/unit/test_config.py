"""
Unit tests for configuration loader (kvassert/config/settings.py)

Tests covering:
- YAML loading (flat and nested under "redis")
- Environment overrides
- Schema validation
- Secrets Manager credentials
- SecretRedactionFilter for logging
"""

import json
import logging
from unittest.mock import patch

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from kvassert.config.settings import (
    CONFIG_SCHEMA,
    ConfigurationError,
    SecretRedactionFilter,
    Settings,
)


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fixture for AWS credentials."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-northeast-2")


@pytest.fixture
def config_file(tmp_path):
    def _write(content: str):
        path = tmp_path / "redis.yaml"
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write


class TestSettingsLoad:
    """Tests for Settings.load()."""

    def test_defaults_with_database_only(self, config_file):
        path = config_file("database: 2\n")

        settings = Settings.load(path, environ={})

        assert settings.host == "127.0.0.1"
        assert settings.port == 6379
        assert settings.database == 2
        assert settings.username is None
        assert settings.password is None
        assert settings.cleanup_before == "never"

    def test_nested_redis_section(self, config_file):
        path = config_file(
            "redis:\n  host: cache.local\n  port: 6380\n  database: 1\n  cleanup_before: test\n"
        )

        settings = Settings.load(path, environ={})

        assert settings.host == "cache.local"
        assert settings.port == 6380
        assert settings.database == 1
        assert settings.cleanup_before == "test"

    def test_environment_overrides_file(self, config_file):
        path = config_file("host: cache.local\ndatabase: 1\n")
        environ = {"REDIS_HOST": "other.local", "REDIS_PORT": "7000", "REDIS_DATABASE": "4"}

        settings = Settings.load(path, environ=environ)

        assert settings.host == "other.local"
        assert settings.port == 7000
        assert settings.database == 4

    def test_environment_only(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        settings = Settings.load(environ={"REDIS_DATABASE": "0", "REDIS_PASSWORD": "pw"})

        assert settings.database == 0
        assert settings.password == "pw"

    def test_config_file_from_environment(self, config_file):
        path = config_file("database: 5\n")

        settings = Settings.load(environ={"KVASSERT_CONFIG_FILE": path})

        assert settings.database == 5

    def test_database_is_required(self, config_file):
        path = config_file("host: cache.local\n")

        with pytest.raises(ConfigurationError, match="'database' is a required property"):
            Settings.load(path, environ={})

    def test_invalid_port(self, config_file):
        path = config_file("database: 0\nport: 0\n")

        with pytest.raises(ConfigurationError, match="validation failed"):
            Settings.load(path, environ={})

    def test_unknown_option(self, config_file):
        path = config_file("database: 0\ncleanupBefore: never\n")

        with pytest.raises(ConfigurationError):
            Settings.load(path, environ={})

    def test_non_integer_environment_value(self, config_file):
        path = config_file("database: 0\n")

        with pytest.raises(ConfigurationError, match="REDIS_PORT must be int"):
            Settings.load(path, environ={"REDIS_PORT": "sixty"})

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            Settings.load(str(tmp_path / "absent.yaml"), environ={})

    def test_invalid_yaml(self, config_file):
        path = config_file("database: [0\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            Settings.load(path, environ={})

    def test_non_mapping_yaml(self, config_file):
        path = config_file("- database\n")

        with pytest.raises(ConfigurationError, match="must be a mapping"):
            Settings.load(path, environ={})

    def test_region_left_to_boto3_by_default(self):
        assert Settings(database=0).region_name is None

    def test_repr_hides_password(self):
        settings = Settings(database=0, password="s3cret-value")
        assert "s3cret-value" not in repr(settings)

    def test_schema_requires_database(self):
        assert CONFIG_SCHEMA["required"] == ["database"]


class TestSecretsManagerCredentials:
    """Tests for credentials_secret_id resolution."""

    @mock_aws
    def test_credentials_from_secret(self, aws_credentials, config_file):
        client = boto3.client("secretsmanager", region_name="ap-northeast-2")
        client.create_secret(
            Name="kvassert/redis",
            SecretString=json.dumps({"username": "app", "password": "from-secret"}),
        )
        path = config_file("database: 0\ncredentials_secret_id: kvassert/redis\n")

        settings = Settings.load(path, environ={})

        assert settings.username == "app"
        assert settings.password == "from-secret"

    @mock_aws
    def test_environment_password_wins_over_secret(self, aws_credentials, config_file):
        client = boto3.client("secretsmanager", region_name="ap-northeast-2")
        client.create_secret(
            Name="kvassert/redis",
            SecretString=json.dumps({"username": "app", "password": "from-secret"}),
        )
        path = config_file("database: 0\ncredentials_secret_id: kvassert/redis\n")

        settings = Settings.load(path, environ={"REDIS_PASSWORD": "from-env"})

        assert settings.username == "app"
        assert settings.password == "from-env"

    @mock_aws
    def test_missing_secret(self, aws_credentials):
        with pytest.raises(ConfigurationError, match="not found"):
            Settings._get_secret_value("kvassert/absent")

    @mock_aws
    def test_invalid_json_secret(self, aws_credentials):
        client = boto3.client("secretsmanager", region_name="ap-northeast-2")
        client.create_secret(Name="kvassert/bad", SecretString="{not json")

        with pytest.raises(ConfigurationError, match="invalid JSON"):
            Settings._get_secret_value("kvassert/bad")

    @patch("kvassert.config.settings.time.sleep")
    @patch("kvassert.config.settings.boto3.client")
    def test_transient_errors_retried(self, mock_client, mock_sleep):
        error = ClientError({"Error": {"Code": "InternalServiceError"}}, "GetSecretValue")
        mock_client.return_value.get_secret_value.side_effect = [
            error,
            {"SecretString": json.dumps({"password": "pw"})},
        ]

        result = Settings._get_secret_value("kvassert/redis", base_wait=1.0)

        assert result == {"password": "pw"}
        mock_sleep.assert_called_once_with(1.0)

    @patch("kvassert.config.settings.time.sleep")
    @patch("kvassert.config.settings.boto3.client")
    def test_transient_errors_exhausted(self, mock_client, mock_sleep):
        error = ClientError({"Error": {"Code": "InternalServiceError"}}, "GetSecretValue")
        mock_client.return_value.get_secret_value.side_effect = error

        with pytest.raises(ConfigurationError, match="after 3 attempts"):
            Settings._get_secret_value("kvassert/redis")
        assert mock_sleep.call_count == 2


class TestSecretRedactionFilter:
    """Tests for SecretRedactionFilter class."""

    def test_filter_initialization(self):
        filter_obj = SecretRedactionFilter()
        assert filter_obj.secrets == {}
        assert filter_obj.redacted_values == set()

    def test_short_and_empty_values_ignored(self):
        filter_obj = SecretRedactionFilter({"password": "abc", "username": None})
        assert filter_obj.redacted_values == set()

    def test_redacts_message_and_args(self):
        filter_obj = SecretRedactionFilter({"password": "hunter22"})
        record = logging.LogRecord(
            "test", logging.INFO, __file__, 1, "auth with hunter22 as %s", ("hunter22",), None
        )

        assert filter_obj.filter(record) is True
        assert record.getMessage() == "auth with ***REDACTED*** as ***REDACTED***"

    def test_settings_installs_filter(self):
        test_logger = logging.getLogger("kvassert.test.redaction")
        settings = Settings(database=0, password="hunter22")

        installed = settings.setup_redaction_filter(test_logger)
        try:
            assert installed in test_logger.filters
            assert "hunter22" in installed.redacted_values
        finally:
            test_logger.removeFilter(installed)

    def test_default_targets_kvassert_loggers(self, clean_redaction_filters):
        settings = Settings(database=0, password="hunter22")

        installed = settings.setup_redaction_filter()

        assert installed in logging.getLogger("kvassert.comparison.engine").filters
        assert installed in logging.getLogger("kvassert.store.redis_client").filters
        assert installed not in logging.getLogger("unrelated.module").filters
