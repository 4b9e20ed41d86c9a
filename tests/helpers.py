"""Archive builders and fakes shared by the test modules."""

from __future__ import annotations

import io
import tarfile
import zipfile
from pathlib import Path


def build_zip(
    path: Path, entries: dict[str, bytes | None], modes: dict[str, int] | None = None
) -> Path:
    """Writes a zip; ``None`` values become directory entries."""
    modes = modes or {}
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in entries.items():
            if data is None:
                info = zipfile.ZipInfo(name.rstrip("/") + "/")
                info.external_attr = (0o40755 << 16) | 0x10
                zf.writestr(info, b"")
                continue
            info = zipfile.ZipInfo(name)
            info.external_attr = (0o100000 | modes.get(name, 0o644)) << 16
            zf.writestr(info, data)
    return path


def build_tar_gz(
    path: Path,
    entries: dict[str, bytes | None],
    modes: dict[str, int] | None = None,
    links: dict[str, str] | None = None,
) -> Path:
    """
    Writes a gzip-compressed tar; ``None`` values become directories and
    ``links`` maps member names to symlink targets.
    """
    modes = modes or {}
    with tarfile.open(path, "w:gz") as tf:
        for name, data in entries.items():
            info = tarfile.TarInfo(name.rstrip("/"))
            if data is None:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tf.addfile(info)
                continue
            info.size = len(data)
            info.mode = modes.get(name, 0o644)
            tf.addfile(info, io.BytesIO(data))
        for name, link_target in (links or {}).items():
            info = tarfile.TarInfo(name)
            info.type = tarfile.SYMTYPE
            info.linkname = link_target
            tf.addfile(info)
    return path


class FakeDownloader:
    """Serves fixed bytes for any URL and records what was requested."""

    def __init__(self, payload: bytes = b"", error: Exception | None = None):
        self.payload = payload
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def download_file(self, url: str, destination_path: str) -> int:
        self.calls.append((url, destination_path))
        if self.error is not None:
            raise self.error
        Path(destination_path).write_bytes(self.payload)
        return len(self.payload)
