"""
CloudFormation stack operations used to bootstrap the infrastructure stack.

Once the pipeline exists it deploys itself through change sets; this module
only covers the first deployment and status lookups.
"""

import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

NO_UPDATES_MESSAGE = "No updates are to be performed"

WAITER_CONFIG = {"Delay": 30, "MaxAttempts": 120}


class StackManager:
    """Manage CloudFormation stack operations."""

    def __init__(self, region: Optional[str] = None, profile: Optional[str] = None):
        """
        Initialize stack manager.

        Args:
            region: AWS region
            profile: AWS profile to use
        """
        self.region = region or "us-east-1"
        self.profile = profile

        session_args = {"region_name": self.region}
        if profile:
            session_args["profile_name"] = profile

        session = boto3.Session(**session_args)
        self.cloudformation = session.client("cloudformation")

    def get_stack_status(self, stack_name: str) -> Optional[str]:
        """Get current stack status, or None if the stack does not exist."""
        try:
            response = self.cloudformation.describe_stacks(StackName=stack_name)
            if response["Stacks"]:
                return str(response["Stacks"][0]["StackStatus"])
        except ClientError as e:
            if "does not exist" in str(e):
                return None
            raise
        return None

    def validate_stack_template(self, template_body: str) -> Dict[str, Any]:
        """Validate a CloudFormation template.

        Args:
            template_body: Template content as string

        Returns:
            Validation result
        """
        try:
            response = self.cloudformation.validate_template(TemplateBody=template_body)
            return {
                "valid": True,
                "capabilities": response.get("Capabilities", []),
                "description": response.get("Description", ""),
            }
        except ClientError as e:
            return {
                "valid": False,
                "error": str(e),
                "error_code": e.response["Error"]["Code"],
            }

    def deploy_stack(
        self,
        stack_name: str,
        template_body: str,
        capabilities: Optional[List[str]] = None,
        tags: Optional[Dict[str, str]] = None,
        wait: bool = True,
    ) -> str:
        """
        Create the stack, or update it if it already exists.

        Args:
            stack_name: CloudFormation stack name
            template_body: Template content as string
            capabilities: IAM capabilities to acknowledge
            tags: Stack-level tags
            wait: Block until the operation completes

        Returns:
            "created", "updated" or "unchanged"

        Raises:
            ClientError: If CloudFormation rejects the request
            WaiterError: If the stack does not reach a complete state
        """
        params: Dict[str, Any] = {
            "StackName": stack_name,
            "TemplateBody": template_body,
            "Capabilities": capabilities or ["CAPABILITY_NAMED_IAM"],
        }
        if tags:
            params["Tags"] = [{"Key": k, "Value": v} for k, v in tags.items()]

        status = self.get_stack_status(stack_name)

        if status is None:
            logger.info(f"Creating stack: {stack_name}")
            self.cloudformation.create_stack(**params)
            action, waiter_name = "created", "stack_create_complete"
        else:
            logger.info(f"Updating stack: {stack_name} (currently {status})")
            try:
                self.cloudformation.update_stack(**params)
            except ClientError as e:
                if NO_UPDATES_MESSAGE in str(e):
                    logger.info(f"Stack {stack_name} is already up to date")
                    return "unchanged"
                raise
            action, waiter_name = "updated", "stack_update_complete"

        if wait:
            waiter = self.cloudformation.get_waiter(waiter_name)
            waiter.wait(StackName=stack_name, WaiterConfig=WAITER_CONFIG)
            logger.info(f"Stack {stack_name} {action}")

        return action

    def get_stack_outputs(self, stack_name: str) -> Dict[str, str]:
        """Get outputs from a CloudFormation stack."""
        response = self.cloudformation.describe_stacks(StackName=stack_name)
        outputs = {}
        for stack in response["Stacks"][:1]:
            for output in stack.get("Outputs", []):
                outputs[output["OutputKey"]] = output["OutputValue"]
        return outputs
