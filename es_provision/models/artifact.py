"""
Value types describing an Elasticsearch distribution: the parsed version, the
host platform and the repository coordinates of the artifact.
"""

import re
import sys
from dataclasses import dataclass
from enum import Enum

from es_provision.exceptions import ConfigurationError

GROUP_ID = "org.elasticsearch.distribution"

_VERSION_REGEX = re.compile(
    r"^\s*(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)(?:[-.+][\w.+-]*)?\s*$"
)


@dataclass(frozen=True, order=True)
class Version:
    """A ``major.minor.patch`` version. Qualifiers are ignored for ordering."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, value: str) -> "Version":
        """
        Parses a version string such as ``7.1.0`` or ``7.1.0-SNAPSHOT``.

        Raises:
            ConfigurationError: If the string is not a ``major.minor.patch`` version.
        """
        match = _VERSION_REGEX.match(value or "")
        if not match:
            raise ConfigurationError(
                f"Invalid version '{value}'; expected major.minor.patch."
            )
        return cls(
            int(match.group("major")),
            int(match.group("minor")),
            int(match.group("patch")),
        )

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class Platform(str, Enum):
    """The host operating system, as far as distribution classifiers care."""

    WINDOWS = "windows"
    MAC = "mac"
    LINUX = "linux"
    UNKNOWN = "unknown"

    @classmethod
    def detect(cls) -> "Platform":
        """Detects the platform of the running interpreter."""
        if sys.platform.startswith(("win32", "cygwin")):
            return cls.WINDOWS
        if sys.platform == "darwin":
            return cls.MAC
        if sys.platform.startswith("linux"):
            return cls.LINUX
        return cls.UNKNOWN


@dataclass(frozen=True)
class ArtifactDescriptor:
    """Identifies one distribution archive in the artifact repository."""

    artifact_id: str
    version: str
    classifier: str | None
    type: str
    group_id: str = GROUP_ID

    @property
    def coordinates(self) -> str:
        """Maven-style ``group:artifact:type[:classifier]:version`` coordinates."""
        parts = [self.group_id, self.artifact_id, self.type]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.version)
        return ":".join(parts)

    @property
    def filename(self) -> str:
        """The file name the vendor publishes the archive under."""
        stem = "-".join(
            part for part in (self.artifact_id, self.version, self.classifier) if part
        )
        return f"{stem}.{self.type}"

    def __str__(self) -> str:
        return self.coordinates
