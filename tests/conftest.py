from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_path() -> None:
    """Guarantee the repository root is discoverable for absolute imports."""

    root = Path(__file__).resolve().parent.parent
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    tests_dir = root / "tests"
    tests_str = str(tests_dir)
    if tests_str not in sys.path:
        sys.path.insert(1, tests_str)


_ensure_project_root_on_path()

from helpers import build_zip  # noqa: E402


@pytest.fixture
def distribution_zip(tmp_path_factory: pytest.TempPathFactory) -> bytes:
    """A minimal, well-formed distribution archive with one root directory."""
    archive = build_zip(
        tmp_path_factory.mktemp("fixtures") / "dist.zip",
        {
            "elasticsearch-6.8.0/": None,
            "elasticsearch-6.8.0/bin/elasticsearch": b"#!/bin/sh\necho es\n",
            "elasticsearch-6.8.0/config/elasticsearch.yml": b"cluster.name: default\n",
            "elasticsearch-6.8.0/config/jvm.options": b"-Xms1g\n",
        },
        modes={"elasticsearch-6.8.0/bin/elasticsearch": 0o755},
    )
    return archive.read_bytes()
