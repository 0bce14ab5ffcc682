"""
Configuration loader for kvassert

Reads store connection settings from YAML with environment overrides,
validates them against a JSON schema, and optionally fetches credentials
from AWS Secrets Manager with exponential backoff.
"""

import json
import logging
import os
import time
from typing import Dict, Any, Optional, Mapping

import boto3
import jsonschema
import yaml
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


DEFAULT_CONFIG_FILE = "config/redis.yaml"
# None lets boto3 resolve the region from AWS_DEFAULT_REGION or the profile
DEFAULT_REGION: Optional[str] = None

CLEANUP_SUITE = "suite"
CLEANUP_TEST = "test"
CLEANUP_NEVER = "never"

# Environment variable -> (setting name, converter)
ENV_OVERRIDES = {
    "REDIS_HOST": ("host", str),
    "REDIS_PORT": ("port", int),
    "REDIS_DATABASE": ("database", int),
    "REDIS_USERNAME": ("username", str),
    "REDIS_PASSWORD": ("password", str),
    "REDIS_CLEANUP_BEFORE": ("cleanup_before", str),
    "REDIS_CREDENTIALS_SECRET_ID": ("credentials_secret_id", str),
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "host": {"type": "string", "minLength": 1},
        "port": {"type": "integer", "minimum": 1, "maximum": 65535},
        "database": {"type": "integer", "minimum": 0},
        "username": {"type": ["string", "null"]},
        "password": {"type": ["string", "null"]},
        "cleanup_before": {"type": "string"},
        "credentials_secret_id": {"type": ["string", "null"]},
        "region_name": {"type": ["string", "null"]},
    },
    "required": ["database"],
    "additionalProperties": False,
}


class SecretRedactionFilter(logging.Filter):
    """
    Logging filter that redacts secret values from log records.
    Replaces secret substrings with ***REDACTED*** to prevent accidental leakage.
    """

    def __init__(self, secrets: Optional[Dict[str, Any]] = None):
        """
        Initialize filter with secrets to redact.

        Args:
            secrets: Dictionary of secrets to redact (values will be masked)
        """
        super().__init__()
        self.secrets = secrets or {}
        self.redacted_values: set[str] = set()
        for value in self.secrets.values():
            # Only redact strings with meaningful length
            if isinstance(value, str) and len(value) > 3:
                self.redacted_values.add(value)

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact log record."""
        record.msg = self._redact_string(str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._redact_string(str(v)) for k, v in record.args.items()}
            elif isinstance(record.args, (list, tuple)):
                record.args = tuple(self._redact_string(str(arg)) for arg in record.args)
        return True

    def _redact_string(self, text: str) -> str:
        """Redact all secret values from string."""
        for secret in self.redacted_values:
            if secret in text:
                text = text.replace(secret, "***REDACTED***")
        return text


class Settings:
    """
    Store connection settings.

    Defaults match a local Redis: 127.0.0.1:6379. The database index has no
    default and must be configured.
    """

    def __init__(
        self,
        database: int,
        host: str = "127.0.0.1",
        port: int = 6379,
        username: Optional[str] = None,
        password: Optional[str] = None,
        cleanup_before: str = CLEANUP_NEVER,
        credentials_secret_id: Optional[str] = None,
        region_name: Optional[str] = DEFAULT_REGION,
    ):
        self.host = host
        self.port = port
        self.database = database
        self.username = username
        self.password = password
        self.cleanup_before = cleanup_before
        self.credentials_secret_id = credentials_secret_id
        self.region_name = region_name

    def __repr__(self) -> str:
        return (
            f"Settings(host={self.host!r}, port={self.port}, database={self.database}, "
            f"username={self.username!r}, cleanup_before={self.cleanup_before!r})"
        )

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Settings":
        """
        Load settings from YAML, environment, and optionally Secrets Manager.

        Priority (lowest to highest):
        1. YAML file (``config_path``, ``KVASSERT_CONFIG_FILE`` or config/redis.yaml)
        2. Secrets Manager credentials when ``credentials_secret_id`` is set
        3. REDIS_* environment variables

        Args:
            config_path: Explicit YAML path; a missing explicit file is an error
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Validated Settings

        Raises:
            ConfigurationError: If the file, environment or schema is invalid
        """
        environ = os.environ if environ is None else environ

        explicit = config_path is not None or "KVASSERT_CONFIG_FILE" in environ
        path = config_path or environ.get("KVASSERT_CONFIG_FILE", DEFAULT_CONFIG_FILE)

        config: Dict[str, Any] = {}
        if os.path.exists(path):
            config = cls._load_yaml(path)
        elif explicit:
            raise ConfigurationError(f"Configuration file not found: {path}")
        else:
            logger.debug(f"No configuration file at {path}, using environment only")

        env_config = cls._read_environment(environ)
        merged = {**config, **env_config}

        try:
            jsonschema.validate(instance=merged, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Store configuration validation failed: {e.message}") from e

        secret_id = merged.get("credentials_secret_id")
        if secret_id:
            credentials = cls._get_secret_value(
                secret_id, region_name=merged.get("region_name", DEFAULT_REGION)
            )
            for name in ("username", "password"):
                if name in credentials and name not in env_config:
                    merged[name] = credentials[name]

        settings = cls(**merged)
        logger.info(f"Loaded store settings: {settings!r}")
        return settings

    @staticmethod
    def _load_yaml(path: str) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if content is None:
            logger.warning(f"Empty configuration file: {path}")
            return {}

        if not isinstance(content, dict):
            raise ConfigurationError(f"Configuration in {path} must be a mapping")

        # Accept both a flat file and one nested under a "redis" section
        section = content.get("redis", content)
        if not isinstance(section, dict):
            raise ConfigurationError(f'Section "redis" in {path} must be a mapping')
        return dict(section)

    @staticmethod
    def _read_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for env_name, (setting, convert) in ENV_OVERRIDES.items():
            raw = environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                values[setting] = convert(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"Environment variable {env_name} must be {convert.__name__}, got {raw!r}"
                ) from e
        return values

    @staticmethod
    def _get_secret_value(
        secret_id: str,
        region_name: Optional[str] = DEFAULT_REGION,
        max_retries: int = 3,
        base_wait: float = 1.0,
    ) -> Dict[str, Any]:
        """
        Fetch store credentials from Secrets Manager with exponential backoff.

        Args:
            secret_id: Secret identifier in Secrets Manager
            region_name: AWS region holding the secret
            max_retries: Maximum number of retry attempts
            base_wait: Base wait time in seconds for exponential backoff

        Returns:
            Parsed secret JSON as dictionary

        Raises:
            ConfigurationError: If secret cannot be retrieved after retries
        """
        client = boto3.client("secretsmanager", region_name=region_name)

        for attempt in range(max_retries):
            try:
                response = client.get_secret_value(SecretId=secret_id)
                secret_string = response.get("SecretString")
                if not secret_string:
                    raise ConfigurationError(f"Secret {secret_id} has empty value")
                return json.loads(secret_string)
            except ClientError as e:
                error_code = e.response["Error"]["Code"]
                if error_code == "ResourceNotFoundException":
                    raise ConfigurationError(
                        f"Secret '{secret_id}' not found in Secrets Manager "
                        f"(region {client.meta.region_name})"
                    ) from e
                elif error_code in ["AccessDeniedException", "UnauthorizedOperation"]:
                    raise ConfigurationError(
                        f"Access denied to secret '{secret_id}'. "
                        f"Verify the role has secretsmanager:GetSecretValue permission"
                    ) from e
                elif attempt < max_retries - 1:
                    wait_time = base_wait * (2**attempt)
                    logger.warning(
                        f"Transient error fetching secret {secret_id}: {error_code}. "
                        f"Retrying in {wait_time}s (attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(wait_time)
                else:
                    raise ConfigurationError(
                        f"Failed to retrieve secret '{secret_id}' after {max_retries} attempts: {error_code}"
                    ) from e
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Secret '{secret_id}' contains invalid JSON: {str(e)}") from e

        raise ConfigurationError(
            f"Failed to retrieve secret '{secret_id}' - exhausted all retry attempts"
        )

    def setup_redaction_filter(
        self, logger_instance: Optional[logging.Logger] = None
    ) -> SecretRedactionFilter:
        """
        Attach a filter that keeps the store password out of log records.

        Logger filters only see records created on that logger, so without an
        explicit logger the filter goes on every logger of the kvassert
        package.

        Args:
            logger_instance: Logger instance to configure (default: all kvassert loggers)

        Returns:
            The installed filter
        """
        redaction_filter = SecretRedactionFilter({"password": self.password})

        if logger_instance is not None:
            targets = [logger_instance]
        else:
            targets = [
                candidate
                for name, candidate in list(logging.Logger.manager.loggerDict.items())
                if (name == "kvassert" or name.startswith("kvassert."))
                and isinstance(candidate, logging.Logger)
            ]

        for target in targets:
            target.addFilter(redaction_filter)
        return redaction_filter
