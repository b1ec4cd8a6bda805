"""
Infrastructure constructs (L2) for building cloud resources.
"""

from .pipeline import PipelineConstruct
from .storage import StorageConstruct

__all__ = [
    "StorageConstruct",
    "PipelineConstruct",
]
