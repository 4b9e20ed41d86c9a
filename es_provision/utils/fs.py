"""
Filesystem helpers for copying trees over existing directories.
"""

import logging
import shutil
from pathlib import Path

log = logging.getLogger(__name__)


def _remove_entry(path: Path) -> None:
    if path.is_symlink() or (path.exists() and not path.is_dir()):
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def copy_tree(src: Path, dst: Path) -> int:
    """
    Recursively copies the content of ``src`` into ``dst``.

    Existing files and links in ``dst`` are overwritten, files only present in
    ``dst`` are left alone. Permission bits are preserved and symlinks are
    copied as links.

    Returns:
        The number of files copied.
    """
    if not src.is_dir():
        raise FileNotFoundError(f"Not a directory: {src}")

    copied = 0

    def _copy(s: str, d: str) -> str:
        nonlocal copied
        target = Path(d)
        if target.is_symlink() or (target.exists() and not target.is_dir()):
            target.unlink()
        copied += 1
        return shutil.copy2(s, d)

    def _clear_conflicts(directory: str, names: list[str]) -> set[str]:
        # copytree recreates links with a bare os.symlink, which never overwrites
        target_dir = dst / Path(directory).relative_to(src)
        for name in names:
            source = Path(directory, name)
            target = target_dir / name
            if not (target.exists() or target.is_symlink()):
                continue
            if source.is_symlink() or (
                source.is_dir() and (target.is_symlink() or not target.is_dir())
            ):
                _remove_entry(target)
        return set()

    dst.mkdir(parents=True, exist_ok=True)
    shutil.copytree(
        src,
        dst,
        symlinks=True,
        ignore=_clear_conflicts,
        copy_function=_copy,
        dirs_exist_ok=True,
    )
    log.debug(f"Copied {copied} files from {src} to {dst}")
    return copied
