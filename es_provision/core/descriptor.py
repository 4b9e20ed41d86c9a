"""
Maps a logical product request (version, flavour, platform) to the artifact
that holds the matching Elasticsearch distribution.

All functions here are pure and never touch the network or the filesystem.
"""

from collections.abc import Callable
from dataclasses import dataclass

from es_provision.exceptions import ConfigurationError
from es_provision.models.artifact import ArtifactDescriptor, Platform, Version

ARTIFACT_BASE_ID = "elasticsearch"


@dataclass(frozen=True)
class VersionRange:
    """A half-open ``[lower, upper)`` range; ``None`` leaves a side unbounded."""

    lower: Version | None
    upper: Version | None

    def __contains__(self, version: Version) -> bool:
        if self.lower is not None and version < self.lower:
            return False
        if self.upper is not None and version >= self.upper:
            return False
        return True


def _flavourless_id(flavour: str) -> str:
    # Flavours did not exist before 6.3.0
    return ARTIFACT_BASE_ID


def _flavoured_id(flavour: str) -> str:
    if not flavour:
        return f"{ARTIFACT_BASE_ID}-oss"
    if flavour == "default":
        return ARTIFACT_BASE_ID
    return f"{ARTIFACT_BASE_ID}-{flavour}"


def _platform_packaging(platform: Platform) -> tuple[str | None, str]:
    packaging = PLATFORM_PACKAGING.get(platform)
    if packaging is None:
        raise ConfigurationError(
            f"Unknown platform '{platform.value}', cannot determine the "
            "Elasticsearch classifier."
        )
    return packaging


def _single_zip(platform: Platform) -> tuple[str | None, str]:
    return None, "zip"


PLATFORM_PACKAGING: dict[Platform, tuple[str, str]] = {
    Platform.WINDOWS: ("windows-x86_64", "zip"),
    Platform.MAC: ("darwin-x86_64", "tar.gz"),
    Platform.LINUX: ("linux-x86_64", "tar.gz"),
}

# Evaluated top to bottom; the first range containing the version wins.
ARTIFACT_ID_RULES: list[tuple[VersionRange, Callable[[str], str]]] = [
    (VersionRange(Version(5, 0, 0), Version(6, 3, 0)), _flavourless_id),
    (VersionRange(None, None), _flavoured_id),
]

PACKAGING_RULES: list[
    tuple[VersionRange, Callable[[Platform], tuple[str | None, str]]]
] = [
    (VersionRange(Version(7, 0, 0), None), _platform_packaging),
    (VersionRange(None, Version(7, 0, 0)), _single_zip),
]


def _first_match(rules, version: Version):
    for version_range, rule in rules:
        if version in version_range:
            return rule
    raise ConfigurationError(f"No artifact rule covers version {version}.")


def artifact_id_for(version: Version, flavour: str | None) -> str:
    """Returns the artifact id, e.g. ``elasticsearch-oss``, for a version/flavour."""
    return _first_match(ARTIFACT_ID_RULES, version)(flavour or "")


def packaging_for(version: Version, platform: Platform) -> tuple[str | None, str]:
    """Returns ``(classifier, archive type)`` for a version on a platform."""
    return _first_match(PACKAGING_RULES, version)(platform)


def resolve_descriptor(
    version: str, flavour: str | None, platform: Platform
) -> ArtifactDescriptor:
    """
    Builds the artifact descriptor for a requested distribution.

    Args:
        version: The Elasticsearch version, as ``major.minor.patch``.
        flavour: The product flavour (``""``, ``default``, ``platinum``, ...).
        platform: The platform the distribution will run on.

    Returns:
        The descriptor identifying the distribution archive.

    Raises:
        ConfigurationError: If the version cannot be parsed or the platform is
        unknown for a version that needs a platform-specific archive.
    """
    parsed = Version.parse(version)
    classifier, archive_type = packaging_for(parsed, platform)
    return ArtifactDescriptor(
        artifact_id=artifact_id_for(parsed, flavour),
        version=version.strip(),
        classifier=classifier,
        type=archive_type,
    )
