"""
IAM permission scoping for the infrastructure pipeline roles.
"""

from .scopes import (
    CODEBUILD_ROLE,
    PIPELINE_ROLE,
    SCOPE_TABLE,
    Exemption,
    PermissionScope,
    derive_scopes,
    policy_document,
)

__all__ = [
    "CODEBUILD_ROLE",
    "PIPELINE_ROLE",
    "SCOPE_TABLE",
    "Exemption",
    "PermissionScope",
    "derive_scopes",
    "policy_document",
]
