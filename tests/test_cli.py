"""
Tests for the sle-infra command line interface.
"""

import json
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError
from click.testing import CliRunner

from sle_infra.cli.__main__ import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for variable in ("SLE_ENVIRONMENT", "PIPELINE_GITHUB_BRANCH", "AWS_REGION"):
        monkeypatch.delenv(variable, raising=False)
    return CliRunner()


class TestNamesCommand:
    def test_names_table(self, runner):
        result = runner.invoke(cli, ["names", "-e", "dev"])

        assert result.exit_code == 0
        assert "sle-dev-infra-pipeline" in result.output
        assert "school-licenses-table" in result.output

    def test_names_json(self, runner):
        result = runner.invoke(cli, ["names", "--environment", "prod", "--json"])

        assert result.exit_code == 0
        names = json.loads(result.output)
        assert names["artifact_bucket"] == "sle-prod-infra-artifacts"

    def test_invalid_environment(self, runner):
        result = runner.invoke(cli, ["names", "-e", "Prod"])

        assert result.exit_code == 1
        assert "Invalid environment" in result.output

    def test_names_follow_config(self, runner, tmp_path):
        config_path = tmp_path / "infra.yaml"
        config_path.write_text("environment: qa\nservice: lic\ntable_name: licenses\n")

        result = runner.invoke(cli, ["names", "--config", str(config_path), "--json"])

        assert result.exit_code == 0
        names = json.loads(result.output)
        assert names["pipeline"] == "lic-qa-infra-pipeline"
        assert names["table"] == "licenses"

    def test_environment_variable_with_trailing_newline(self, runner):
        result = runner.invoke(cli, ["names"], env={"SLE_ENVIRONMENT": "dev\n"})

        assert result.exit_code == 1
        assert "Invalid environment" in result.output


class TestPoliciesCommand:
    def test_policies_text(self, runner):
        result = runner.invoke(cli, ["policies", "-e", "dev"])

        assert result.exit_code == 0
        assert "codebuild:" in result.output
        assert "pipeline:" in result.output
        assert "[over-grant: change-set-listing]" in result.output

    def test_policies_json_single_role(self, runner):
        result = runner.invoke(cli, ["policies", "-e", "dev", "--role", "codebuild", "--json"])

        assert result.exit_code == 0
        documents = json.loads(result.output)
        assert list(documents) == ["codebuild"]
        assert documents["codebuild"]["Version"] == "2012-10-17"

    def test_over_grants_only(self, runner):
        result = runner.invoke(cli, ["policies", "-e", "dev", "--over-grants", "--json"])

        documents = json.loads(result.output)
        sids = [s["Sid"] for d in documents.values() for s in d["Statement"]]
        assert "TemplateValidation" in sids
        assert "PipelineChangeSetListing" in sids
        assert "CodeBuildLogs" not in sids

    def test_policies_follow_config(self, runner, tmp_path):
        config_path = tmp_path / "infra.yaml"
        config_path.write_text("service: lic\ntable_name: licenses\n")

        result = runner.invoke(
            cli, ["policies", "--config", str(config_path), "--role", "pipeline", "--json"]
        )

        assert result.exit_code == 0
        statements = {s["Sid"]: s for s in json.loads(result.output)["pipeline"]["Statement"]}
        assert statements["DynamoDB"]["Resource"] == [
            "arn:aws:dynamodb:${AWS::Region}:${AWS::AccountId}:table/licenses"
        ]
        assert statements["PassRole"]["Resource"] == ["arn:aws:iam::${AWS::AccountId}:role/lic-dev-*"]


class TestSynthCommand:
    def test_synth(self, runner, tmp_path):
        result = runner.invoke(cli, ["synth", "-e", "prod", "-o", str(tmp_path / "out")])

        assert result.exit_code == 0
        path = tmp_path / "out" / "sle-infrastructure-prod.template.json"
        assert path.exists()
        assert str(path) in result.output

    def test_synth_with_config_and_branch(self, runner, tmp_path):
        config_path = tmp_path / "infra.yaml"
        config_path.write_text("environment: staging\ngithub_branch: develop\n")

        result = runner.invoke(
            cli,
            ["synth", "--config", str(config_path), "--branch", "release", "-o", str(tmp_path)],
        )

        assert result.exit_code == 0
        data = json.loads((tmp_path / "sle-infrastructure-staging.template.json").read_text())
        source = data["Resources"]["InfraPipeline"]["Properties"]["Stages"][0]["Actions"][0]
        assert source["Configuration"]["BranchName"] == "release"

    def test_synth_rejects_trailing_newline(self, runner, tmp_path):
        result = runner.invoke(
            cli, ["synth", "-o", str(tmp_path)], env={"SLE_ENVIRONMENT": "prod\n"}
        )

        assert result.exit_code == 1
        assert "Invalid environment" in result.output
        assert not list(tmp_path.glob("*.template.json"))

    def test_synth_bad_config(self, runner, tmp_path):
        config_path = tmp_path / "infra.yaml"
        config_path.write_text("compute_type: HUGE\n")

        result = runner.invoke(cli, ["synth", "--config", str(config_path)])

        assert result.exit_code == 1
        assert "compute_type" in result.output


class TestDeployCommand:
    @patch("sle_infra.cli.__main__.StackManager")
    def test_deploy(self, mock_manager, runner):
        mock_manager.return_value.deploy_stack.return_value = "created"

        result = runner.invoke(cli, ["deploy", "-e", "dev", "-r", "eu-west-1"])

        assert result.exit_code == 0
        assert "Stack sle-infrastructure-dev: created" in result.output
        mock_manager.assert_called_once_with(region="eu-west-1", profile=None)
        args, kwargs = mock_manager.return_value.deploy_stack.call_args
        assert args[0] == "sle-infrastructure-dev"
        assert json.loads(args[1])["Resources"]["Table"]["Type"] == "AWS::DynamoDB::Table"
        assert kwargs["tags"] == {"Environment": "dev", "Service": "sle"}
        assert kwargs["wait"] is True

    @patch("sle_infra.cli.__main__.StackManager")
    def test_deploy_failure(self, mock_manager, runner):
        mock_manager.return_value.deploy_stack.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "CreateStack"
        )

        result = runner.invoke(cli, ["deploy", "-e", "dev"])

        assert result.exit_code == 1
        assert "denied" in result.output


class TestValidateConfigCommand:
    def test_valid(self, runner):
        result = runner.invoke(cli, ["validate-config", "-e", "prod"])

        assert result.exit_code == 0
        assert "prod" in result.output

    def test_name_too_long(self, runner):
        result = runner.invoke(cli, ["validate-config", "-e", "a" * 20])

        assert result.exit_code == 1
        assert "limit is 32" in result.output
