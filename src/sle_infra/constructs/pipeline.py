"""
Pipeline constructs: source connection, build project, deployment pipeline
and the IAM roles that bind them.

Role permissions come from the permission table in ``sle_infra.iam.scopes``.
"""

from typing import Any, Dict, List

from troposphere import GetAtt, Output, Ref, Sub, Template, codebuild, codepipeline, iam
from troposphere.codestarconnections import Connection

from ..config import InfraConfig
from ..iam.scopes import (
    CODEBUILD_ROLE,
    CONNECTION_LOGICAL_ID,
    PIPELINE_ROLE,
    PermissionScope,
    derive_scopes,
    scopes_for_role,
    stack_reference,
)
from .storage import StorageConstruct

SOURCE_ARTIFACT = "SourceOutput"
BUILD_ARTIFACT = "BuildOutput"


def _assume_role_policy(*services: str) -> Dict[str, Any]:
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": list(services)},
                "Action": ["sts:AssumeRole"],
            }
        ],
    }


def _resource(pattern: str) -> Any:
    """Resolve same-stack references with Fn::GetAtt and pseudo parameters with Fn::Sub."""
    reference = stack_reference(pattern)
    if reference:
        return GetAtt(*reference)
    return Sub(pattern) if "${" in pattern else pattern


def _policy_document(scopes: List[PermissionScope]) -> Dict[str, Any]:
    statements = []
    for scope in scopes:
        statement = scope.to_statement()
        statement["Resource"] = [_resource(r) for r in scope.resources]
        statements.append(statement)
    return {"Version": "2012-10-17", "Statement": statements}


def _action_type(category: str, provider: str, owner: str = "AWS") -> codepipeline.ActionTypeId:
    return codepipeline.ActionTypeId(
        Category=category, Owner=owner, Provider=provider, Version="1"
    )


class PipelineConstruct:
    """
    L2 Construct for the infrastructure deployment pipeline.

    Source (GitHub) -> Build (package templates) -> CreateChangeSet ->
    Approve (manual) -> ExecuteChangeSet.
    """

    def __init__(self, template: Template, config: InfraConfig, storage: StorageConstruct):
        """
        Initialize pipeline construct.

        Args:
            template: CloudFormation template to add resources to
            config: Infrastructure configuration
            storage: Storage construct providing the pipeline buckets
        """
        self.template = template
        self.config = config
        self.storage = storage
        self.namer = config.namer
        self.names = self.namer.names()
        self.scopes = derive_scopes(self.namer)
        self.resources: Dict[str, Any] = {}

        self._create_connection()
        self._create_codebuild_role()
        self._create_codebuild_project()
        self._create_pipeline_role()
        self._create_pipeline()
        self._create_outputs()

    def _create_connection(self) -> None:
        """Create the GitHub connection the source stage pulls from."""
        self.connection = self.template.add_resource(
            Connection(
                CONNECTION_LOGICAL_ID,
                ConnectionName=self.names["connection"],
                ProviderType="GitHub",
            )
        )
        self.resources["connection"] = self.connection

    def _create_role(self, title: str, role: str, *services: str) -> iam.Role:
        return self.template.add_resource(
            iam.Role(
                title,
                RoleName=self.names[f"{role}_role"],
                AssumeRolePolicyDocument=_assume_role_policy(*services),
                Policies=[
                    iam.Policy(
                        PolicyName=f"{self.names[f'{role}_role']}-policy",
                        PolicyDocument=_policy_document(scopes_for_role(self.scopes, role)),
                    )
                ],
            )
        )

    def _create_codebuild_role(self) -> None:
        self.codebuild_role = self._create_role(
            "InfraCodeBuildServiceRole", CODEBUILD_ROLE, "codebuild.amazonaws.com"
        )
        self.resources["codebuild_role"] = self.codebuild_role

    def _create_pipeline_role(self) -> None:
        # CloudFormation assumes this role too, to apply the change set
        self.pipeline_role = self._create_role(
            "InfraCodePipelineExecutionRole",
            PIPELINE_ROLE,
            "codepipeline.amazonaws.com",
            "cloudformation.amazonaws.com",
        )
        self.resources["pipeline_role"] = self.pipeline_role

    def _create_codebuild_project(self) -> None:
        """Create the build project that packages the stack templates."""
        env_vars = {
            "PACKAGING_BUCKET": self.names["packaging_bucket"],
            "ENVIRONMENT": self.config.environment,
            "PIPELINE_GITHUB_BRANCH": self.config.github_branch,
        }

        self.codebuild_project = self.template.add_resource(
            codebuild.Project(
                "InfraCodeBuildProject",
                Name=self.names["codebuild_project"],
                Description="SLE Infrastructure - CodeBuild",
                ServiceRole=GetAtt(self.codebuild_role, "Arn"),
                TimeoutInMinutes=self.config.build_timeout_minutes,
                Source=codebuild.Source(
                    Type="CODEPIPELINE", BuildSpec=self.config.buildspec_path
                ),
                Artifacts=codebuild.Artifacts(Type="CODEPIPELINE"),
                Environment=codebuild.Environment(
                    Type="LINUX_CONTAINER",
                    Image=self.config.build_image,
                    ComputeType=self.config.compute_type,
                    PrivilegedMode=True,
                    EnvironmentVariables=[
                        codebuild.EnvironmentVariable(Name=k, Value=v, Type="PLAINTEXT")
                        for k, v in env_vars.items()
                    ],
                ),
            )
        )
        self.resources["codebuild_project"] = self.codebuild_project

    def _stages(self) -> List[codepipeline.Stages]:
        deploy_role_arn = GetAtt(self.pipeline_role, "Arn")
        stack_name = self.names["deploy_stack"]
        change_set_name = self.names["change_set"]

        source = codepipeline.Actions(
            Name="GitHubSource",
            ActionTypeId=_action_type("Source", "CodeStarSourceConnection"),
            Configuration={
                "ConnectionArn": GetAtt(self.connection, "ConnectionArn"),
                "FullRepositoryId": self.config.full_repository_id,
                "BranchName": self.config.github_branch,
                "DetectChanges": False,
            },
            OutputArtifacts=[codepipeline.OutputArtifacts(Name=SOURCE_ARTIFACT)],
            RunOrder=1,
        )

        build = codepipeline.Actions(
            Name="PackageTemplates",
            ActionTypeId=_action_type("Build", "CodeBuild"),
            Configuration={"ProjectName": Ref(self.codebuild_project)},
            InputArtifacts=[codepipeline.InputArtifacts(Name=SOURCE_ARTIFACT)],
            OutputArtifacts=[codepipeline.OutputArtifacts(Name=BUILD_ARTIFACT)],
            RunOrder=1,
        )

        create_change_set = codepipeline.Actions(
            Name="CreateInfraChangeSet",
            ActionTypeId=_action_type("Deploy", "CloudFormation"),
            Configuration={
                "ActionMode": "CHANGE_SET_REPLACE",
                "StackName": stack_name,
                "ChangeSetName": change_set_name,
                "TemplatePath": f"{BUILD_ARTIFACT}::{self.namer.template_file()}",
                "RoleArn": deploy_role_arn,
                "Capabilities": "CAPABILITY_NAMED_IAM",
            },
            InputArtifacts=[codepipeline.InputArtifacts(Name=BUILD_ARTIFACT)],
            RunOrder=1,
        )

        approve = codepipeline.Actions(
            Name="ManualApproval",
            ActionTypeId=_action_type("Approval", "Manual"),
            RunOrder=1,
        )

        execute_change_set = codepipeline.Actions(
            Name="ExecuteInfraChangeSet",
            ActionTypeId=_action_type("Deploy", "CloudFormation"),
            Configuration={
                "ActionMode": "CHANGE_SET_EXECUTE",
                "StackName": stack_name,
                "ChangeSetName": change_set_name,
            },
            RunOrder=1,
        )

        return [
            codepipeline.Stages(Name="Source", Actions=[source]),
            codepipeline.Stages(Name="Build", Actions=[build]),
            codepipeline.Stages(Name="CreateChangeSet", Actions=[create_change_set]),
            codepipeline.Stages(Name="Approve", Actions=[approve]),
            codepipeline.Stages(Name="ExecuteChangeSet", Actions=[execute_change_set]),
        ]

    def _create_pipeline(self) -> None:
        """Create the deployment pipeline."""
        self.pipeline = self.template.add_resource(
            codepipeline.Pipeline(
                "InfraPipeline",
                Name=self.names["pipeline"],
                RoleArn=GetAtt(self.pipeline_role, "Arn"),
                ArtifactStore=codepipeline.ArtifactStore(
                    Type="S3", Location=Ref(self.storage.artifact_bucket)
                ),
                Stages=self._stages(),
            )
        )
        self.resources["pipeline"] = self.pipeline

    def _create_outputs(self) -> None:
        """Create CloudFormation outputs."""
        outputs = [
            Output(
                "InfraCodeBuildIAMRole",
                Description="Infra CodeBuild IAM Role",
                Value=GetAtt(self.codebuild_role, "Arn"),
            ),
            Output(
                "InfraCodeBuild",
                Description="Infra CodeBuild Project name",
                Value=Ref(self.codebuild_project),
            ),
            Output(
                "InfraCodePipeline",
                Description="Infra AWS CodePipeline pipeline name",
                Value=Ref(self.pipeline),
            ),
            Output(
                "InfraCodePipelineIAMRole",
                Description="Infra CodePipeline IAM Role",
                Value=GetAtt(self.pipeline_role, "Arn"),
            ),
        ]
        for output in outputs:
            self.template.add_output(output)
