"""
Infrastructure patterns (L3) composing multiple constructs.
"""

from .infra_stack import InfraStackPattern, build_template, synthesize

__all__ = ["InfraStackPattern", "build_template", "synthesize"]
