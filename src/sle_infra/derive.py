"""
Single entry point deriving every name and permission for an environment.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

from .iam.scopes import PermissionScope, derive_scopes
from .naming import DEFAULT_SERVICE, DEFAULT_TABLE_NAME, ResourceNamer


@dataclass(frozen=True)
class Derivation:
    """Names and permission scopes computed for one environment."""

    environment: str
    name_items: Tuple[Tuple[str, str], ...]
    policies: Tuple[PermissionScope, ...]

    @property
    def names(self) -> Mapping[str, str]:
        """Read-only mapping of resource key to name, in rule order."""
        return MappingProxyType(dict(self.name_items))

    def over_grants(self) -> List[PermissionScope]:
        """Scopes that are knowingly broader than the environment namespace."""
        return [scope for scope in self.policies if scope.is_over_grant]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "environment": self.environment,
            "names": dict(self.names),
            "policies": [
                {
                    "role": scope.role,
                    **scope.to_statement(),
                    "exemption": scope.exemption.value if scope.exemption else None,
                }
                for scope in self.policies
            ],
        }


def derive(
    environment: str,
    service: str = DEFAULT_SERVICE,
    table_name: str = DEFAULT_TABLE_NAME,
) -> Derivation:
    """
    Derive resource names and permission scopes for an environment.

    Args:
        environment: Environment token (e.g., "dev")
        service: Service prefix for environment-scoped names
        table_name: Name of the shared data table

    Returns:
        Derivation holding the names and scopes

    Raises:
        InvalidEnvironment: If the environment token is malformed
        NameTooLong: If a derived name exceeds its platform limit
        NameCollision: If two derived names coincide
    """
    namer = ResourceNamer(environment, service=service, table_name=table_name)
    return Derivation(
        environment=environment,
        name_items=tuple(namer.names().items()),
        policies=tuple(derive_scopes(namer)),
    )
