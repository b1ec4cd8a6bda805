#!/usr/bin/env python3
"""
Example usage of the SLE naming convention and permission scoping.

Prints the names and over-broad grants for a few environments.
"""

from sle_infra import derive
from sle_infra.iam.scopes import CODEBUILD_ROLE, PIPELINE_ROLE


def main():
    """Demonstrate naming convention usage."""

    print("SLE Naming Convention Examples")
    print("=" * 50)
    print()

    for environment in ["dev", "staging", "prod"]:
        derivation = derive(environment)

        print(f"{environment}:")
        print("-" * 30)
        for key, name in derivation.names.items():
            print(f"  {key:<18} {name}")
        print()

        for role in (CODEBUILD_ROLE, PIPELINE_ROLE):
            count = sum(1 for scope in derivation.policies if scope.role == role)
            print(f"  {role} role: {count} statements")

        print("  Known over-grants:")
        for scope in derivation.over_grants():
            print(f"    {scope.role}/{scope.sid}: {scope.exemption.value}")
        print()


if __name__ == "__main__":
    main()
