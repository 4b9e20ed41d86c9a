"""
A file-based artifact repository that stores downloaded distributions using a
Maven-style directory layout, so each archive is only downloaded once.
"""

import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Protocol

from es_provision.exceptions import CacheMissError, InstallError

log = logging.getLogger(__name__)


class ArtifactRepository(Protocol):
    """The resolve/install contract the acquirer relies on."""

    def resolve(self, coordinates: str) -> Path:
        """Returns the local file for the coordinates or raises CacheMissError."""
        ...

    def install(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        classifier: str | None,
        type: str,
        file: Path,
    ) -> None:
        """Stores ``file`` under the given coordinates or raises InstallError."""
        ...


def parse_coordinates(coordinates: str) -> tuple[str, str, str, str | None, str]:
    """
    Splits ``group:artifact:type[:classifier]:version`` coordinates.

    Returns:
        A ``(group_id, artifact_id, type, classifier, version)`` tuple.
    """
    parts = coordinates.split(":")
    if len(parts) == 4:
        group_id, artifact_id, type_, version = parts
        return group_id, artifact_id, type_, None, version
    if len(parts) == 5:
        group_id, artifact_id, type_, classifier, version = parts
        return group_id, artifact_id, type_, classifier, version
    raise ValueError(f"Malformed artifact coordinates: '{coordinates}'")


class LocalArtifactRepository:
    """
    Stores artifacts under ``<root>/<group path>/<artifact>/<version>/``.

    Installs are atomic replaces, so concurrent installs of the same
    coordinates are harmless duplicates.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _artifact_path(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        classifier: str | None,
        type: str,
    ) -> Path:
        stem = "-".join(part for part in (artifact_id, version, classifier) if part)
        return (
            self.root.joinpath(*group_id.split("."))
            / artifact_id
            / version
            / f"{stem}.{type}"
        )

    def resolve(self, coordinates: str) -> Path:
        try:
            group_id, artifact_id, type_, classifier, version = parse_coordinates(
                coordinates
            )
        except ValueError as e:
            raise CacheMissError(str(e)) from e

        path = self._artifact_path(group_id, artifact_id, version, classifier, type_)
        if not path.is_file():
            raise CacheMissError(f"Artifact {coordinates} not found in {self.root}")
        log.debug(f"Resolved {coordinates} to {path}")
        return path

    def install(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        classifier: str | None,
        type: str,
        file: Path,
    ) -> None:
        target = self._artifact_path(group_id, artifact_id, version, classifier, type)
        partial = target.with_name(f".{target.name}.{uuid.uuid4().hex}.part")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(file, partial)
            os.replace(partial, target)
        except OSError as e:
            raise InstallError(
                f"Failed to install {file} into the repository at {target}: {e}"
            ) from e
        finally:
            partial.unlink(missing_ok=True)
        log.debug(f"Installed {file.name} as {target}")

    def clear(self) -> bool:
        """Removes every installed artifact."""
        log.info("Clearing the artifact repository...")
        try:
            if self.root.exists():
                shutil.rmtree(self.root)
            return True
        except OSError as e:
            log.error(f"Failed to clear the artifact repository: {e}")
            return False

    def list_artifacts(self) -> list[Path]:
        """Lists installed artifact files, skipping partial installs."""
        if not self.root.is_dir():
            return []
        return sorted(
            p for p in self.root.rglob("*") if p.is_file() and not p.name.startswith(".")
        )
