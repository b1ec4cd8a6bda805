"""
Storage constructs for the shared data table and pipeline buckets.
"""

from typing import Any, Dict

from troposphere import Ref, Tags, Template, dynamodb, s3

from ..config import InfraConfig

RETAIN = "Retain"


def _block_public_access() -> s3.PublicAccessBlockConfiguration:
    return s3.PublicAccessBlockConfiguration(
        BlockPublicAcls=True,
        BlockPublicPolicy=True,
        IgnorePublicAcls=True,
        RestrictPublicBuckets=True,
    )


class StorageConstruct:
    """
    L2 Construct for storage infrastructure.
    Creates the data table and the pipeline's artifact and packaging buckets.
    """

    def __init__(self, template: Template, config: InfraConfig):
        """
        Initialize storage construct.

        Args:
            template: CloudFormation template to add resources to
            config: Infrastructure configuration
        """
        self.template = template
        self.config = config
        self.names = config.namer.names()
        self.resources: Dict[str, Any] = {}

        self._create_table()
        self._create_buckets()

    def _tags(self) -> Tags:
        tags = {
            "Environment": self.config.environment,
            "Service": self.config.service,
            **self.config.tags,
        }
        return Tags(**tags)

    def _create_table(self) -> None:
        """Create the data table shared by every environment."""
        table = dynamodb.Table(
            "Table",
            TableName=self.names["table"],
            AttributeDefinitions=[
                dynamodb.AttributeDefinition(AttributeName="PK", AttributeType="S"),
                dynamodb.AttributeDefinition(AttributeName="SK", AttributeType="S"),
            ],
            KeySchema=[
                dynamodb.KeySchema(AttributeName="PK", KeyType="HASH"),
                dynamodb.KeySchema(AttributeName="SK", KeyType="RANGE"),
            ],
            BillingMode="PAY_PER_REQUEST",
            DeletionProtectionEnabled=True,
            PointInTimeRecoverySpecification=dynamodb.PointInTimeRecoverySpecification(
                PointInTimeRecoveryEnabled=True
            ),
            Tags=self._tags(),
            DeletionPolicy=RETAIN,
            UpdateReplacePolicy=RETAIN,
        )
        self.table = self.template.add_resource(table)
        self.resources["table"] = self.table

    def _create_buckets(self) -> None:
        """Create the pipeline artifact and packaging buckets."""
        self.artifact_bucket = self.template.add_resource(
            s3.Bucket(
                "InfraArtifactBucket",
                BucketName=self.names["artifact_bucket"],
                PublicAccessBlockConfiguration=_block_public_access(),
                Tags=self._tags(),
                DeletionPolicy=RETAIN,
                UpdateReplacePolicy=RETAIN,
            )
        )

        # Packaged templates are versioned so earlier builds stay deployable
        self.packaging_bucket = self.template.add_resource(
            s3.Bucket(
                "InfraPackagingBucket",
                BucketName=self.names["packaging_bucket"],
                VersioningConfiguration=s3.VersioningConfiguration(Status="Enabled"),
                PublicAccessBlockConfiguration=_block_public_access(),
                Tags=self._tags(),
                DeletionPolicy=RETAIN,
                UpdateReplacePolicy=RETAIN,
            )
        )

        self.resources["artifact_bucket"] = self.artifact_bucket
        self.resources["packaging_bucket"] = self.packaging_bucket

    def get_bucket_names(self) -> Dict[str, Ref]:
        """Get dictionary of bucket names."""
        return {
            "artifact": Ref(self.artifact_bucket),
            "packaging": Ref(self.packaging_bucket),
        }
