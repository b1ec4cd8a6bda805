"""
Errors raised while building the SLE infrastructure configuration.

All of them surface at configuration-build time, before any resource
declaration is produced.
"""


class SleInfraError(Exception):
    """Base class for configuration-build failures."""


class InvalidEnvironment(SleInfraError):
    """Environment token is empty or not ARN-safe."""

    def __init__(self, environment):
        self.environment = environment
        super().__init__(
            f"Invalid environment: {environment!r}. "
            "Must start with a lowercase letter and contain only lowercase "
            "letters, numbers, and hyphens."
        )


class NameTooLong(SleInfraError):
    """Derived resource name exceeds the platform limit for its type."""

    def __init__(self, key: str, name: str, limit: int):
        self.key = key
        self.name = name
        self.limit = limit
        super().__init__(
            f"Derived {key} name '{name}' is {len(name)} characters; "
            f"the limit is {limit}"
        )


class NameCollision(SleInfraError):
    """Two derived resource names resolve to the same value."""

    def __init__(self, name: str, keys):
        self.name = name
        self.keys = tuple(keys)
        super().__init__(
            f"Derived name '{name}' is shared by: {', '.join(self.keys)}"
        )


class ConfigurationError(SleInfraError):
    """Configuration file or overrides failed validation."""
