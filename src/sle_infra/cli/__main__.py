#!/usr/bin/env python3
"""Main CLI entry point for the SLE infrastructure toolkit."""

import json
import logging
import sys
from typing import Optional

import click
from botocore.exceptions import ClientError, WaiterError

from ..cloudformation import StackManager
from ..config import InfraConfig, load_config
from ..derive import Derivation, derive
from ..exceptions import SleInfraError
from ..iam.scopes import ROLES, policy_document
from ..patterns import build_template, synthesize


def _load(config_path: Optional[str], environment: Optional[str], **overrides) -> InfraConfig:
    try:
        return load_config(config_path, environment=environment, **overrides)
    except SleInfraError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _derive(config: InfraConfig) -> Derivation:
    return derive(config.environment, service=config.service, table_name=config.table_name)


@click.group()
@click.version_option(package_name="sle-infra")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """SLE infrastructure utilities.

    Derives resource names and IAM scopes per environment, synthesizes the
    CloudFormation template, and bootstraps the deployment pipeline.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--environment", "-e", help="Environment (dev/prod)")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Configuration file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def names(environment: Optional[str], config_path: Optional[str], output_json: bool) -> None:
    """Show the resource names derived for an environment."""
    try:
        derivation = _derive(_load(config_path, environment))
    except SleInfraError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_json:
        click.echo(json.dumps(dict(derivation.names), indent=2))
        return

    width = max(len(key) for key in derivation.names)
    for key, name in derivation.names.items():
        click.echo(f"{key.ljust(width)}  {name}")


@cli.command()
@click.option("--environment", "-e", help="Environment (dev/prod)")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Configuration file")
@click.option("--role", type=click.Choice(ROLES), help="Only show one role")
@click.option("--over-grants", is_flag=True, help="Only show known over-broad grants")
@click.option("--json", "output_json", is_flag=True, help="Output as IAM policy documents")
def policies(
    environment: Optional[str],
    config_path: Optional[str],
    role: Optional[str],
    over_grants: bool,
    output_json: bool,
) -> None:
    """Show the permission scopes granted to each pipeline role."""
    try:
        derivation = _derive(_load(config_path, environment))
    except SleInfraError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    scopes = derivation.over_grants() if over_grants else list(derivation.policies)
    roles = [role] if role else list(ROLES)

    if output_json:
        documents = {r: policy_document(scopes, r) for r in roles}
        click.echo(json.dumps(documents, indent=2))
        return

    for r in roles:
        click.echo(f"{r}:")
        for scope in scopes:
            if scope.role != r:
                continue
            marker = f"  [over-grant: {scope.exemption.value}]" if scope.exemption else ""
            click.echo(f"  {scope.sid}{marker}")
            for action in scope.actions:
                click.echo(f"    action   {action}")
            for resource in scope.resources:
                click.echo(f"    resource {resource}")


@cli.command()
@click.option("--environment", "-e", help="Environment (dev/prod)")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Configuration file")
@click.option("--branch", help="GitHub branch the pipeline tracks")
@click.option(
    "--output-dir", "-o", default="cdk.out", show_default=True, help="Directory to write to"
)
def synth(
    environment: Optional[str], config_path: Optional[str], branch: Optional[str], output_dir: str
) -> None:
    """Write the CloudFormation template for an environment."""
    config = _load(config_path, environment, github_branch=branch)
    try:
        path = synthesize(config, output_dir)
    except SleInfraError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(str(path))


@cli.command()
@click.option("--environment", "-e", help="Environment (dev/prod)")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Configuration file")
@click.option("--branch", help="GitHub branch the pipeline tracks")
@click.option("--region", "-r", help="AWS region")
@click.option("--profile", help="AWS profile to use")
@click.option("--no-wait", is_flag=True, help="Return without waiting for completion")
def deploy(
    environment: Optional[str],
    config_path: Optional[str],
    branch: Optional[str],
    region: Optional[str],
    profile: Optional[str],
    no_wait: bool,
) -> None:
    """Create or update the infrastructure stack directly."""
    config = _load(config_path, environment, github_branch=branch, aws_region=region)

    try:
        template = build_template(config)
        stack_name = config.namer.name("app_stack")
        manager = StackManager(region=config.aws_region, profile=profile)
        result = manager.deploy_stack(
            stack_name,
            template.to_json(),
            tags={"Environment": config.environment, "Service": config.service},
            wait=not no_wait,
        )
    except (SleInfraError, ClientError, WaiterError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Stack {stack_name}: {result}")


@cli.command("validate-config")
@click.option("--environment", "-e", help="Environment (dev/prod)")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Configuration file")
def validate_config(environment: Optional[str], config_path: Optional[str]) -> None:
    """Validate configuration and the names it produces."""
    config = _load(config_path, environment)
    try:
        config.namer.names()
    except SleInfraError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Configuration valid for environment: {config.environment}")


if __name__ == "__main__":
    cli()
