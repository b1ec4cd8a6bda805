"""
SLE Infra - Resource naming, IAM scoping and pipeline stack for the
school licenses service.
"""

__version__ = "1.0.0"

from .config import InfraConfig, load_config
from .derive import Derivation, derive
from .exceptions import (
    ConfigurationError,
    InvalidEnvironment,
    NameCollision,
    NameTooLong,
    SleInfraError,
)
from .naming import ResourceNamer

__all__ = [
    "ConfigurationError",
    "Derivation",
    "InfraConfig",
    "InvalidEnvironment",
    "NameCollision",
    "NameTooLong",
    "ResourceNamer",
    "SleInfraError",
    "derive",
    "load_config",
]
