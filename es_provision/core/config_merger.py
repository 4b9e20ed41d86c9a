"""
Overlays a user-supplied configuration directory onto an instance's defaults.
"""

import logging
from pathlib import Path

from es_provision.exceptions import ConfigMergeError
from es_provision.utils.fs import copy_tree

log = logging.getLogger(__name__)

CONFIG_DIR_NAME = "config"


def merge_config(path_conf: Path | str | None, base_dir: Path) -> Path | None:
    """
    Copies the content of ``path_conf`` into ``<base_dir>/config``.

    User files win on name collisions; default files the user did not supply
    (``jvm.options`` for instance) are kept. Does nothing when ``path_conf``
    is unset.

    Returns:
        The merged config directory, or None when nothing was merged.
    """
    if path_conf is None or not str(path_conf).strip():
        return None

    source = Path(path_conf)
    target = base_dir / CONFIG_DIR_NAME
    if not source.is_dir():
        raise ConfigMergeError(f"Configuration directory not found: {source}")

    try:
        copied = copy_tree(source, target)
    except OSError as e:
        raise ConfigMergeError(
            f"Failed to merge configuration from {source} into {target}: {e}"
        ) from e
    log.debug(f"Merged {copied} configuration files from {source}")
    return target
