"""
Naming convention for SLE infrastructure resources.

Every environment-scoped resource is named ``sle-<environment>-<suffix>``.
The data table is the one exception: a single table is shared by all
environments and keeps a fixed name.
"""

import re
from dataclasses import dataclass
from typing import Dict, List

from .exceptions import InvalidEnvironment, NameCollision, NameTooLong

ENVIRONMENT_PATTERN = re.compile(r"^[a-z][a-z0-9-]*\Z")

# Lower-case, ARN-safe characters only
RESOURCE_NAME_PATTERN = re.compile(r"^[a-z0-9-]+\Z")

DEFAULT_SERVICE = "sle"
DEFAULT_TABLE_NAME = "school-licenses-table"


@dataclass(frozen=True)
class NameRule:
    """How one resource name is formed and how long it may be."""

    suffix: str
    max_length: int
    environment_scoped: bool = True


# Insertion order is the order names are reported in.
NAME_RULES: Dict[str, NameRule] = {
    "table": NameRule("", 255, environment_scoped=False),
    "artifact_bucket": NameRule("infra-artifacts", 63),
    "packaging_bucket": NameRule("packaging-bucket", 63),
    "connection": NameRule("git-infra-conn", 32),
    "codebuild_project": NameRule("infra-codebuild", 255),
    "codebuild_role": NameRule("infra-codebuild-role", 64),
    "pipeline": NameRule("infra-pipeline", 100),
    "pipeline_role": NameRule("infra-pipeline-role", 64),
    "deploy_stack": NameRule("infra-cf", 128),
    "change_set": NameRule("infra-changeset", 128),
    "app_stack": NameRule("", 128),
}


def validate_environment(environment: str) -> str:
    """
    Check that an environment token is usable in names and ARNs.

    Args:
        environment: Environment token (e.g., "dev", "prod")

    Returns:
        The environment, unchanged

    Raises:
        InvalidEnvironment: If the token is empty or has characters outside
            lowercase letters, numbers, and hyphens
    """
    if not isinstance(environment, str) or not ENVIRONMENT_PATTERN.match(environment):
        raise InvalidEnvironment(environment)
    return environment


@dataclass(frozen=True)
class ResourceNamer:
    """
    Derives resource names for one environment.

    Attributes:
        environment: Deployment environment (dev, staging, prod)
        service: Service prefix shared by all environment-scoped names
        table_name: Name of the data table shared across environments
    """

    environment: str
    service: str = DEFAULT_SERVICE
    table_name: str = DEFAULT_TABLE_NAME

    def __post_init__(self) -> None:
        validate_environment(self.environment)
        if not RESOURCE_NAME_PATTERN.match(self.service):
            raise ValueError(
                f"Invalid service prefix: {self.service}. "
                "Must contain only lowercase letters, numbers, and hyphens."
            )

    def namespace(self) -> str:
        """Prefix owned by this environment, e.g. ``sle-dev``."""
        return f"{self.service}-{self.environment}"

    def name(self, key: str) -> str:
        """
        Derive the name of a single resource.

        Args:
            key: Resource key from ``NAME_RULES`` (e.g., "artifact_bucket")

        Returns:
            Resource name (e.g., "sle-dev-infra-artifacts")

        Raises:
            KeyError: If the key is unknown
            NameTooLong: If the name exceeds the platform limit
        """
        rule = NAME_RULES[key]
        if key == "table":
            name = self.table_name
        elif key == "app_stack":
            name = f"{self.service}-infrastructure-{self.environment}"
        else:
            name = f"{self.namespace()}-{rule.suffix}"

        if len(name) > rule.max_length:
            raise NameTooLong(key, name, rule.max_length)
        if not RESOURCE_NAME_PATTERN.match(name):
            raise ValueError(f"Invalid resource name for {key}: {name}")
        return name

    def names(self) -> Dict[str, str]:
        """
        Derive every resource name for the environment.

        Returns:
            Mapping of resource key to name

        Raises:
            NameTooLong: If any name exceeds its platform limit
            NameCollision: If two keys resolve to the same name
        """
        names = {key: self.name(key) for key in NAME_RULES}

        owners: Dict[str, List[str]] = {}
        for key, name in names.items():
            owners.setdefault(name, []).append(key)
        for name, keys in owners.items():
            if len(keys) > 1:
                raise NameCollision(name, keys)

        return names

    def template_file(self) -> str:
        """File name of the synthesized template for this environment."""
        return f"{self.name('app_stack')}.template.json"

    @staticmethod
    def is_environment_scoped(key: str) -> bool:
        """Whether a resource key is namespaced by environment."""
        return NAME_RULES[key].environment_scoped


def get_resource_names(environment: str) -> Dict[str, str]:
    """
    Convenience function to derive all resource names for an environment.

    Args:
        environment: Environment token

    Returns:
        Mapping of resource key to name
    """
    return ResourceNamer(environment).names()
