"""
Format detection and extraction for distribution archives (zip, tar, tar.gz).
"""

import logging
import os
import stat
import tarfile
import zipfile
from pathlib import Path

from es_provision.exceptions import ExtractionError

log = logging.getLogger(__name__)

_ZIP_MAGICS = (b"PK\x03\x04", b"PK\x05\x06")
_GZIP_MAGIC = b"\x1f\x8b"


def _read_head(path: Path, size: int = 4) -> bytes:
    with open(path, "rb") as f:
        return f.read(size)


def detect_format(archive_path: Path) -> str:
    """
    Detects the archive format from its signature, falling back to the extension.

    Returns:
        ``"zip"`` or ``"tar"`` (compressed or not).

    Raises:
        ExtractionError: If the file is unreadable or not a supported archive.
    """
    try:
        head = _read_head(archive_path)
    except OSError as e:
        raise ExtractionError(f"Cannot read archive {archive_path}: {e}") from e

    if head.startswith(_ZIP_MAGICS):
        return "zip"
    if head.startswith(_GZIP_MAGIC) or tarfile.is_tarfile(archive_path):
        return "tar"

    name = archive_path.name.lower()
    if name.endswith(".zip"):
        return "zip"
    if name.endswith((".tar.gz", ".tgz", ".tar")):
        return "tar"
    raise ExtractionError(f"Unsupported archive format: {archive_path.name}")


def _extract_zip(archive_path: Path, dest_dir: Path) -> int:
    dest_resolved = dest_dir.resolve()
    with zipfile.ZipFile(archive_path) as zf:
        members = zf.infolist()
        for info in members:
            target = (dest_dir / info.filename).resolve()
            if not target.is_relative_to(dest_resolved):
                raise ExtractionError(
                    f"Archive member escapes the destination: {info.filename}"
                )
            zf.extract(info, dest_dir)
            # zipfile drops unix permissions; restore them from the entry header
            mode = (info.external_attr >> 16) & 0o7777
            if mode and not info.is_dir():
                os.chmod(target, mode & ~(stat.S_ISUID | stat.S_ISGID))
    return len(members)


def _extract_tar(archive_path: Path, dest_dir: Path) -> int:
    with tarfile.open(archive_path, mode="r:*") as tf:
        members = tf.getmembers()
        tf.extractall(path=dest_dir, members=members, filter="data")
    return len(members)


def extract_archive(archive_path: Path, dest_dir: Path) -> None:
    """
    Auto-detects the format of ``archive_path`` and extracts it into ``dest_dir``.

    Raises:
        ExtractionError: If the archive is corrupt, unsupported or unsafe.
    """
    archive_format = detect_format(archive_path)
    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        if archive_format == "zip":
            count = _extract_zip(archive_path, dest_dir)
        else:
            count = _extract_tar(archive_path, dest_dir)
    except ExtractionError:
        raise
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, OSError) as e:
        raise ExtractionError(
            f"Failed to extract {archive_path.name}: {type(e).__name__}: {e}"
        ) from e
    log.debug(f"Extracted {count} {archive_format} members into {dest_dir}")
