"""
Configuration management for the SLE infrastructure stack.

Settings are resolved from, lowest precedence first: built-in defaults, a YAML
file, environment variables, and explicit overrides (usually CLI flags).
"""

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import jsonschema
import yaml

from .exceptions import ConfigurationError
from .naming import (
    DEFAULT_SERVICE,
    DEFAULT_TABLE_NAME,
    ENVIRONMENT_PATTERN,
    RESOURCE_NAME_PATTERN,
    ResourceNamer,
    validate_environment,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "infra.yaml"

# Environment variable -> config field
ENVIRONMENT_VARIABLES: Dict[str, str] = {
    "SLE_ENVIRONMENT": "environment",
    "PIPELINE_GITHUB_BRANCH": "github_branch",
    "AWS_REGION": "aws_region",
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "environment": {"type": "string", "pattern": ENVIRONMENT_PATTERN.pattern},
        "service": {"type": "string", "pattern": RESOURCE_NAME_PATTERN.pattern},
        "table_name": {"type": "string", "pattern": RESOURCE_NAME_PATTERN.pattern},
        "aws_region": {"type": "string", "pattern": "^[a-z]{2}(-[a-z]+)+-[0-9]$"},
        "github_owner": {"type": "string", "minLength": 1},
        "github_repo": {"type": "string", "minLength": 1},
        "github_branch": {"type": "string", "minLength": 1},
        "buildspec_path": {"type": "string", "minLength": 1},
        "build_timeout_minutes": {"type": "integer", "minimum": 5, "maximum": 480},
        "build_image": {"type": "string", "minLength": 1},
        "compute_type": {
            "type": "string",
            "enum": [
                "BUILD_GENERAL1_SMALL",
                "BUILD_GENERAL1_MEDIUM",
                "BUILD_GENERAL1_LARGE",
            ],
        },
        "tags": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}


@dataclass(frozen=True)
class InfraConfig:
    """Immutable settings for one deployment of the infrastructure stack."""

    environment: str = "dev"
    service: str = DEFAULT_SERVICE
    table_name: str = DEFAULT_TABLE_NAME
    aws_region: str = "us-east-1"

    # Source repository
    github_owner: str = "goelsnehaa"
    github_repo: str = "aws-cdk-infra"
    github_branch: str = "main"

    # Build project
    buildspec_path: str = "pipeline/infra-buildspec.yaml"
    build_timeout_minutes: int = 10
    build_image: str = "aws/codebuild/standard:7.0"
    compute_type: str = "BUILD_GENERAL1_SMALL"

    tags: Dict[str, str] = field(default_factory=lambda: {"stack": "cdk-infra"})

    def __post_init__(self) -> None:
        validate_environment(self.environment)

    @property
    def namer(self) -> ResourceNamer:
        """Resource namer for this configuration's environment."""
        return ResourceNamer(
            self.environment, service=self.service, table_name=self.table_name
        )

    @property
    def full_repository_id(self) -> str:
        return f"{self.github_owner}/{self.github_repo}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InfraConfig":
        """Create config from dictionary, validating it against the schema."""
        validate_config_data(data)
        return cls(**data)


def validate_config_data(data: Mapping[str, Any]) -> None:
    """
    Validate raw configuration data.

    Raises:
        ConfigurationError: If the data does not match ``CONFIG_SCHEMA``
    """
    try:
        jsonschema.validate(instance=dict(data), schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigurationError(f"Invalid configuration at {location}: {e.message}") from e


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration data from a YAML file.

    Raises:
        ConfigurationError: If the file is missing or is not a YAML mapping
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Could not parse {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")
    return data


def _from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    values = {}
    for variable, key in ENVIRONMENT_VARIABLES.items():
        if environ.get(variable):
            values[key] = environ[variable]
    return values


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> InfraConfig:
    """
    Resolve the configuration for a build.

    Args:
        config_path: YAML file to read. When omitted, ``config/infra.yaml``
            is used if it exists.
        environ: Environment variables (defaults to ``os.environ``)
        **overrides: Explicit values; ``None`` values are ignored

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If any source is invalid
        InvalidEnvironment: If the resolved environment token is malformed
    """
    data: Dict[str, Any] = {}

    if config_path is not None:
        logger.info(f"Loading configuration: {config_path}")
        data.update(load_config_file(config_path))
    elif DEFAULT_CONFIG_PATH.exists():
        logger.info(f"Loading configuration: {DEFAULT_CONFIG_PATH}")
        data.update(load_config_file(DEFAULT_CONFIG_PATH))

    data.update(_from_environment(os.environ if environ is None else environ))
    data.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(InfraConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

    validate_environment(data.get("environment", InfraConfig.environment))
    config = InfraConfig.from_dict(data)
    logger.info(f"Resolved configuration for environment: {config.environment}")
    return config
