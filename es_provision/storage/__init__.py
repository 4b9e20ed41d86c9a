"""
Storage Layer.

This package handles all data persistence: the configuration file and the
local artifact repository that caches downloaded distributions.
"""

from .config_manager import ConfigManager
from .repository import ArtifactRepository, LocalArtifactRepository

__all__ = ["ArtifactRepository", "ConfigManager", "LocalArtifactRepository"]
