"""
Tests for the infrastructure stack pattern.
"""

import json
from unittest.mock import patch

import pytest
from troposphere import Template

from sle_infra.config import InfraConfig
from sle_infra.exceptions import NameCollision
from sle_infra.patterns.infra_stack import InfraStackPattern, build_template, synthesize


class TestInfraStackPattern:
    """Test InfraStackPattern class."""

    def test_init_creates_all_components(self) -> None:
        template = Template()
        pattern = InfraStackPattern(template, InfraConfig())

        assert set(pattern.resources) == {"storage", "pipeline"}
        assert pattern.names["pipeline"] == "sle-dev-infra-pipeline"
        assert "(dev)" in template.description

    @patch("sle_infra.patterns.infra_stack.PipelineConstruct")
    @patch("sle_infra.patterns.infra_stack.StorageConstruct")
    def test_storage_passed_to_pipeline(self, mock_storage, mock_pipeline) -> None:
        template = Template()
        config = InfraConfig()

        InfraStackPattern(template, config)

        mock_storage.assert_called_once_with(template=template, config=config)
        mock_pipeline.assert_called_once_with(
            template=template, config=config, storage=mock_storage.return_value
        )

    def test_invalid_names_fail_before_resources(self) -> None:
        template = Template()
        config = InfraConfig(table_name="sle-dev-infra-artifacts")

        with pytest.raises(NameCollision):
            InfraStackPattern(template, config)

        assert template.resources == {}


class TestBuildTemplate:
    """Test template assembly."""

    def test_resource_types(self) -> None:
        resources = build_template(InfraConfig()).to_dict()["Resources"]
        types = sorted(r["Type"] for r in resources.values())

        assert types == sorted(
            [
                "AWS::DynamoDB::Table",
                "AWS::S3::Bucket",
                "AWS::S3::Bucket",
                "AWS::CodeStarConnections::Connection",
                "AWS::IAM::Role",
                "AWS::IAM::Role",
                "AWS::CodeBuild::Project",
                "AWS::CodePipeline::Pipeline",
            ]
        )

    def test_deterministic(self) -> None:
        assert build_template(InfraConfig()).to_json() == build_template(InfraConfig()).to_json()

    def test_environments_do_not_share_names(self) -> None:
        def named(config):
            resources = build_template(config).to_dict()["Resources"]
            values = set()
            for resource in resources.values():
                for key in ("Name", "BucketName", "RoleName", "ConnectionName"):
                    if key in resource["Properties"]:
                        values.add(resource["Properties"][key])
            return values

        dev = named(InfraConfig(environment="dev"))
        prod = named(InfraConfig(environment="prod"))

        assert len(dev) == 7
        assert not dev & prod


class TestSynthesize:
    """Test writing the template to disk."""

    def test_writes_template(self, tmp_path) -> None:
        path = synthesize(InfraConfig(environment="prod"), tmp_path / "cdk.out")

        assert path == tmp_path / "cdk.out" / "sle-infrastructure-prod.template.json"
        data = json.loads(path.read_text())
        assert data["Resources"]["InfraPipeline"]["Properties"]["Name"] == "sle-prod-infra-pipeline"

    def test_matches_pipeline_template_path(self, tmp_path) -> None:
        """The change-set stage reads the file synthesize writes."""
        config = InfraConfig(environment="dev")
        path = synthesize(config, tmp_path)
        data = json.loads(path.read_text())

        stages = data["Resources"]["InfraPipeline"]["Properties"]["Stages"]
        create = stages[2]["Actions"][0]
        assert create["Configuration"]["TemplatePath"] == f"BuildOutput::{path.name}"
