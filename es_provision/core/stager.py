"""
Extracts a distribution archive into a throwaway staging directory and copies
its payload root into an instance's base directory.
"""

import logging
import tempfile
import uuid
from pathlib import Path

from es_provision.exceptions import StructuralError
from es_provision.utils.archive import extract_archive
from es_provision.utils.fs import copy_tree

log = logging.getLogger(__name__)


class ArchiveStager:
    """Stages archives through uniquely named directories under ``temp_root``."""

    def __init__(self, temp_root: Path | None = None):
        self.temp_root = Path(temp_root or tempfile.gettempdir())

    def create_staging_directory(self) -> Path:
        """Creates a fresh, uniquely named staging directory."""
        staging_dir = self.temp_root / f"es-staging-{uuid.uuid4()}"
        staging_dir.mkdir(parents=True)
        log.debug(f"Created staging directory {staging_dir}")
        return staging_dir

    def stage(self, artifact: Path, base_dir: Path, staging_dir: Path) -> Path:
        """
        Extracts ``artifact`` into ``staging_dir`` and copies the payload root's
        content into ``base_dir``, overwriting existing entries.

        Returns:
            The staging directory, which the caller is responsible for removing.

        Raises:
            ExtractionError: If the archive cannot be extracted.
            StructuralError: If the archive does not hold exactly one root
            directory. Nothing is copied into ``base_dir`` in that case.
        """
        extract_archive(artifact, staging_dir)
        payload_root = find_payload_root(staging_dir)
        log.debug(f"Copying {payload_root.name} into {base_dir}")
        copy_tree(payload_root, base_dir)
        return staging_dir


def find_payload_root(staging_dir: Path) -> Path:
    """Returns the single top-level directory of an extracted archive."""
    roots = sorted(p for p in staging_dir.iterdir() if p.is_dir())
    if len(roots) != 1:
        found = ", ".join(p.name for p in roots) or "none"
        raise StructuralError(
            f"Expected exactly one top-level directory in the archive, "
            f"found {len(roots)} ({found})"
        )
    return roots[0]
