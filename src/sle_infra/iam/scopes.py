"""
Permission scopes granted to the infrastructure pipeline roles.

Each row of ``SCOPE_TABLE`` pairs a role with an action set and the resource
patterns it may act on. Patterns are templates filled in from the
``ResourceNamer`` so every grant stays inside the environment's own
``sle-<env>-*`` namespace. A resource the stack creates under a
platform-assigned ARN is referenced as ``${LogicalId.Attribute}``. Rows that
cannot be narrowed that far carry an ``Exemption`` naming why.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..naming import ResourceNamer

CODEBUILD_ROLE = "codebuild"
PIPELINE_ROLE = "pipeline"

ROLES = (CODEBUILD_ROLE, PIPELINE_ROLE)

# CloudFormation pseudo parameters, resolved by Fn::Sub at deploy time
REGION = "${AWS::Region}"
ACCOUNT = "${AWS::AccountId}"

# Logical id of the GitHub connection resource in the environment's own stack
CONNECTION_LOGICAL_ID = "InfraGitHubConnection"

# Fn::Sub reference to an attribute of a resource in the same stack
STACK_REFERENCE_PATTERN = re.compile(r"^\$\{(\w+)\.(\w+)\}\Z")


class Exemption(Enum):
    """Accepted grants that are broader than the environment namespace."""

    # ListChangeSets/DescribeChangeSet do not support resource-level scoping
    CHANGE_SET_LISTING = "change-set-listing"
    # ValidateTemplate only accepts "*"
    TEMPLATE_VALIDATION = "template-validation"
    # Connection ARNs end in an id the platform assigns on creation
    CONNECTION_MANAGEMENT = "connection-management"
    # Data table shared by every environment under a fixed name
    SHARED_RESOURCE = "shared-resource"


@dataclass(frozen=True)
class ScopeRule:
    """One row of the permission table, before names are filled in."""

    role: str
    sid: str
    actions: Tuple[str, ...]
    resources: Tuple[str, ...]
    exemption: Optional[Exemption] = None


@dataclass(frozen=True)
class PermissionScope:
    """A set of actions granted to a role on concrete resource patterns."""

    role: str
    sid: str
    actions: Tuple[str, ...]
    resources: Tuple[str, ...]
    exemption: Optional[Exemption] = None

    @property
    def is_over_grant(self) -> bool:
        return self.exemption is not None

    def to_statement(self) -> Dict[str, Any]:
        """Render as an IAM policy statement."""
        return {
            "Sid": self.sid,
            "Effect": "Allow",
            "Action": list(self.actions),
            "Resource": list(self.resources),
        }


SCOPE_TABLE: Tuple[ScopeRule, ...] = (
    # CodeBuild service role
    ScopeRule(
        CODEBUILD_ROLE,
        "CodeBuildLogs",
        (
            "logs:CreateLogGroup",
            "logs:CreateLogStream",
            "logs:PutLogEvents",
            "logs:DescribeLogStreams",
        ),
        (
            "arn:aws:logs:{region}:{account}:log-group:/aws/codebuild/{codebuild_project}*",
        ),
    ),
    ScopeRule(
        CODEBUILD_ROLE,
        "BuildArtifacts",
        ("s3:GetObject", "s3:PutObject", "s3:GetObjectVersion", "s3:ListBucket"),
        (
            "arn:aws:s3:::{artifact_bucket}",
            "arn:aws:s3:::{artifact_bucket}/*",
            "arn:aws:s3:::{packaging_bucket}",
            "arn:aws:s3:::{packaging_bucket}/*",
        ),
    ),
    ScopeRule(
        CODEBUILD_ROLE,
        "DescribeStacks",
        ("cloudformation:DescribeStacks",),
        ("arn:aws:cloudformation:{region}:{account}:stack/{namespace}-*",),
    ),
    ScopeRule(
        CODEBUILD_ROLE,
        "TemplateValidation",
        ("cloudformation:ValidateTemplate",),
        ("*",),
        Exemption.TEMPLATE_VALIDATION,
    ),
    ScopeRule(
        CODEBUILD_ROLE,
        "PassRole",
        ("iam:PassRole",),
        ("arn:aws:iam::{account}:role/{namespace}-*",),
    ),
    # CodePipeline / CloudFormation execution role
    ScopeRule(
        PIPELINE_ROLE,
        "PipelineStackPermission",
        (
            "cloudformation:CreateStack",
            "cloudformation:DeleteStack",
            "cloudformation:RollbackStack",
            "cloudformation:DescribeStacks",
            "cloudformation:UpdateStack",
            "cloudformation:SetStackPolicy",
            "cloudformation:GetStackPolicy",
            "cloudformation:GetTemplate",
        ),
        ("arn:aws:cloudformation:{region}:{account}:stack/{namespace}-*",),
    ),
    ScopeRule(
        PIPELINE_ROLE,
        "PipelineChangeSetPermission",
        (
            "cloudformation:CreateChangeSet",
            "cloudformation:ExecuteChangeSet",
            "cloudformation:DeleteChangeSet",
        ),
        ("arn:aws:cloudformation:{region}:{account}:stack/{namespace}-*",),
    ),
    ScopeRule(
        PIPELINE_ROLE,
        "PipelineChangeSetListing",
        ("cloudformation:ListChangeSets", "cloudformation:DescribeChangeSet"),
        ("*",),
        Exemption.CHANGE_SET_LISTING,
    ),
    ScopeRule(
        PIPELINE_ROLE,
        "DynamoDB",
        (
            "dynamodb:CreateTable",
            "dynamodb:UpdateTable",
            "dynamodb:DescribeTable",
            "dynamodb:DeleteTable",
            "dynamodb:TagResource",
            "dynamodb:UntagResource",
            "dynamodb:UpdateContinuousBackups",
            "dynamodb:DescribeContinuousBackups",
        ),
        ("arn:aws:dynamodb:{region}:{account}:table/{table}",),
        Exemption.SHARED_RESOURCE,
    ),
    ScopeRule(
        PIPELINE_ROLE,
        "S3ListPermissions",
        (
            "s3:ListBucket",
            "s3:GetObjectVersion",
            "s3:GetObject",
            "s3:PutObject",
            "s3:DeleteObject",
            "s3:TagResource",
            "s3:UntagResource",
            "s3:ListTagsForResource",
            "s3:PutBucketPublicAccessBlock",
        ),
        ("arn:aws:s3:::{namespace}-*", "arn:aws:s3:::{namespace}-*/*"),
    ),
    ScopeRule(
        PIPELINE_ROLE,
        "SourceConnection",
        ("codestar-connections:UseConnection", "codestar-connections:GetConnection"),
        ("{connection_arn}",),
    ),
    ScopeRule(
        PIPELINE_ROLE,
        "ApplicationPipelinePermissions",
        (
            "codeconnections:CreateConnection",
            "codeconnections:GetConnection",
            "codeconnections:DeleteConnection",
            "codeconnections:TagResource",
            "codeconnections:ListTagsForResource",
            "codestar-connections:PassConnection",
        ),
        ("arn:aws:codestar-connections:{region}:{account}:*",),
        Exemption.CONNECTION_MANAGEMENT,
    ),
    ScopeRule(
        PIPELINE_ROLE,
        "CodeBuildRun",
        ("codebuild:StartBuild", "codebuild:BatchGetBuilds"),
        ("arn:aws:codebuild:{region}:{account}:project/{codebuild_project}",),
    ),
    ScopeRule(
        PIPELINE_ROLE,
        "CodeBuildAccess",
        ("codebuild:CreateProject", "codebuild:DeleteProject"),
        ("arn:aws:codebuild:{region}:{account}:project/{namespace}-*",),
    ),
    ScopeRule(
        PIPELINE_ROLE,
        "CodePipelineAccess",
        (
            "codepipeline:CreatePipeline",
            "codepipeline:DeletePipeline",
            "codepipeline:TagResource",
            "codepipeline:UntagResource",
            "codepipeline:GetPipeline",
        ),
        ("arn:aws:codepipeline:{region}:{account}:{namespace}-*",),
    ),
    ScopeRule(
        PIPELINE_ROLE,
        "PassRole",
        ("iam:PassRole",),
        ("arn:aws:iam::{account}:role/{namespace}-*",),
    ),
)


def _variables(namer: ResourceNamer) -> Dict[str, str]:
    return {
        **namer.names(),
        "namespace": namer.namespace(),
        "environment": namer.environment,
        "region": REGION,
        "account": ACCOUNT,
        "connection_arn": f"${{{CONNECTION_LOGICAL_ID}.ConnectionArn}}",
    }


def derive_scopes(
    namer: ResourceNamer, table: Tuple[ScopeRule, ...] = SCOPE_TABLE
) -> List[PermissionScope]:
    """
    Fill the permission table in for one environment.

    Args:
        namer: Namer for the target environment
        table: Rows to render; defaults to ``SCOPE_TABLE``

    Returns:
        Permission scopes in table order

    Raises:
        KeyError: If a resource template references an unknown placeholder
    """
    variables = _variables(namer)
    return [
        PermissionScope(
            role=rule.role,
            sid=rule.sid,
            actions=rule.actions,
            resources=tuple(pattern.format(**variables) for pattern in rule.resources),
            exemption=rule.exemption,
        )
        for rule in table
    ]


def scopes_for_role(scopes: List[PermissionScope], role: str) -> List[PermissionScope]:
    """Select the scopes attached to one role."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    return [scope for scope in scopes if scope.role == role]


def policy_document(scopes: List[PermissionScope], role: str) -> Dict[str, Any]:
    """
    Build the IAM policy document for a role.

    Args:
        scopes: Scopes from ``derive_scopes``
        role: ``CODEBUILD_ROLE`` or ``PIPELINE_ROLE``

    Returns:
        Policy document with one statement per scope
    """
    return {
        "Version": "2012-10-17",
        "Statement": [scope.to_statement() for scope in scopes_for_role(scopes, role)],
    }


def stack_reference(resource: str) -> Optional[Tuple[str, str]]:
    """Split a ``${LogicalId.Attribute}`` resource into its parts, or None for a pattern."""
    match = STACK_REFERENCE_PATTERN.match(resource)
    return (match.group(1), match.group(2)) if match else None
