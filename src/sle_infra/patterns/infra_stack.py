"""
SLE infrastructure stack pattern.

This L3 pattern assembles the complete stack for one environment:
- Shared DynamoDB data table
- Pipeline artifact and packaging buckets
- GitHub source connection
- CodeBuild project and CodePipeline pipeline
- IAM roles scoped to the environment namespace
"""

import logging
from pathlib import Path
from typing import Any, Dict, Union

from troposphere import Template

from ..config import InfraConfig
from ..constructs import PipelineConstruct, StorageConstruct

logger = logging.getLogger(__name__)


class InfraStackPattern:
    """
    L3 Pattern for the SLE infrastructure stack.

    All names and permission scopes are derived from the configuration's
    environment before any resource is declared.
    """

    def __init__(self, template: Template, config: InfraConfig):
        """
        Initialize infrastructure stack pattern.

        Args:
            template: CloudFormation template to add resources to
            config: Infrastructure configuration

        Raises:
            NameTooLong: If a derived name exceeds its platform limit
            NameCollision: If two derived names coincide
        """
        self.template = template
        self.config = config
        self.resources: Dict[str, Any] = {}

        # Fail before touching the template
        self.names = config.namer.names()

        self.template.set_description(
            f"SLE infrastructure ({config.environment}): data table and deployment pipeline"
        )

        self.storage = StorageConstruct(template=self.template, config=self.config)
        self.resources["storage"] = self.storage

        self.pipeline = PipelineConstruct(
            template=self.template, config=self.config, storage=self.storage
        )
        self.resources["pipeline"] = self.pipeline


def build_template(config: InfraConfig) -> Template:
    """Build the CloudFormation template for a configuration."""
    template = Template()
    InfraStackPattern(template, config)
    logger.info(
        f"Built template for {config.environment} with {len(template.resources)} resources"
    )
    return template


def synthesize(config: InfraConfig, output_dir: Union[str, Path]) -> Path:
    """
    Write the template to ``output_dir`` under the name the pipeline's
    change-set stage expects.

    Returns:
        Path of the written template
    """
    template = build_template(config)
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    template_path = output_path / config.namer.template_file()
    with open(template_path, "w") as f:
        f.write(template.to_json())
        f.write("\n")

    logger.info(f"Wrote template: {template_path}")
    return template_path
