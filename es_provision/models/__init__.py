"""
Data Models Layer.

This package contains the value types and Pydantic models that define the core
data structures used throughout the application.
"""

from .artifact import ArtifactDescriptor, Platform, Version
from .config import ClusterConfig, InstanceConfig, ProvisionSettings

__all__ = [
    "ArtifactDescriptor",
    "ClusterConfig",
    "InstanceConfig",
    "Platform",
    "ProvisionSettings",
    "Version",
]
