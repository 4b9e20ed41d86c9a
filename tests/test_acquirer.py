import asyncio
from pathlib import Path

import pytest

from es_provision.core.acquirer import (
    DEFAULT_DOWNLOAD_URL,
    Acquisition,
    AcquisitionState,
    ArtifactAcquirer,
    build_download_url,
)
from es_provision.core.descriptor import resolve_descriptor
from es_provision.exceptions import (
    ArtifactConsistencyError,
    CacheMissError,
    DownloadError,
    InstallError,
)
from es_provision.models.artifact import Platform
from es_provision.models.config import ClusterConfig
from es_provision.storage.repository import LocalArtifactRepository
from helpers import FakeDownloader

PAYLOAD = b"distribution bytes"


class ForgetfulRepository(LocalArtifactRepository):
    """Accepts installs but never remembers them."""

    def install(self, group_id, artifact_id, version, classifier, type, file):
        return None


class ReadOnlyRepository(LocalArtifactRepository):
    def install(self, group_id, artifact_id, version, classifier, type, file):
        raise InstallError("repository is read-only")


@pytest.fixture
def descriptor():
    return resolve_descriptor("7.1.0", "", Platform.LINUX)


@pytest.fixture
def cluster():
    return ClusterConfig(version="7.1.0")


@pytest.fixture
def download_dir(tmp_path: Path) -> Path:
    return tmp_path / "downloads"


def _acquire(acquirer, descriptor, cluster):
    return asyncio.run(acquirer.acquire(descriptor, cluster))


def test_cache_hit_does_not_download(tmp_path, descriptor, cluster, download_dir):
    repository = LocalArtifactRepository(tmp_path / "repo")
    source = tmp_path / "seed.tar.gz"
    source.write_bytes(PAYLOAD)
    repository.install(
        descriptor.group_id,
        descriptor.artifact_id,
        descriptor.version,
        descriptor.classifier,
        descriptor.type,
        source,
    )
    downloader = FakeDownloader(PAYLOAD)

    path = _acquire(ArtifactAcquirer(repository, downloader, download_dir), descriptor, cluster)

    assert path.read_bytes() == PAYLOAD
    assert downloader.calls == []


def test_cache_miss_downloads_installs_and_resolves(
    tmp_path, descriptor, cluster, download_dir
):
    repository = LocalArtifactRepository(tmp_path / "repo")
    downloader = FakeDownloader(PAYLOAD)

    path = _acquire(ArtifactAcquirer(repository, downloader, download_dir), descriptor, cluster)

    assert path.read_bytes() == PAYLOAD
    assert path == repository.resolve(descriptor.coordinates)
    [(url, destination)] = downloader.calls
    assert url == DEFAULT_DOWNLOAD_URL % descriptor.filename
    assert destination.endswith(descriptor.filename)
    assert list(download_dir.iterdir()) == []


def test_second_acquisition_reuses_the_cache(tmp_path, descriptor, cluster, download_dir):
    repository = LocalArtifactRepository(tmp_path / "repo")
    downloader = FakeDownloader(PAYLOAD)
    acquirer = ArtifactAcquirer(repository, downloader, download_dir)

    first = _acquire(acquirer, descriptor, cluster).read_bytes()
    second = _acquire(acquirer, descriptor, cluster).read_bytes()

    assert first == second == PAYLOAD
    assert len(downloader.calls) == 1


def test_download_failure_installs_nothing(tmp_path, descriptor, cluster, download_dir):
    repository = LocalArtifactRepository(tmp_path / "repo")
    downloader = FakeDownloader(error=DownloadError("connection refused"))

    with pytest.raises(DownloadError):
        _acquire(ArtifactAcquirer(repository, downloader, download_dir), descriptor, cluster)

    with pytest.raises(CacheMissError):
        repository.resolve(descriptor.coordinates)
    assert list(download_dir.iterdir()) == []


def test_install_failure_propagates_and_removes_temp_file(
    tmp_path, descriptor, cluster, download_dir
):
    repository = ReadOnlyRepository(tmp_path / "repo")

    with pytest.raises(InstallError):
        _acquire(
            ArtifactAcquirer(repository, FakeDownloader(PAYLOAD), download_dir),
            descriptor,
            cluster,
        )
    assert list(download_dir.iterdir()) == []


def test_second_stage_miss_is_fatal_and_not_retried(
    tmp_path, descriptor, cluster, download_dir
):
    downloader = FakeDownloader(PAYLOAD)
    acquirer = ArtifactAcquirer(
        ForgetfulRepository(tmp_path / "repo"), downloader, download_dir
    )

    with pytest.raises(ArtifactConsistencyError):
        _acquire(acquirer, descriptor, cluster)
    assert len(downloader.calls) == 1


def test_configured_template_url_receives_the_filename(
    tmp_path, descriptor, download_dir
):
    downloader = FakeDownloader(PAYLOAD)
    cluster = ClusterConfig(version="7.1.0", download_url="https://mirror.local/es/%s")

    _acquire(
        ArtifactAcquirer(LocalArtifactRepository(tmp_path / "repo"), downloader, download_dir),
        descriptor,
        cluster,
    )

    assert downloader.calls[0][0] == f"https://mirror.local/es/{descriptor.filename}"


@pytest.mark.parametrize(
    ("configured", "expected"),
    [
        (None, "https://artifacts.elastic.co/downloads/elasticsearch/es.zip"),
        ("   ", "https://artifacts.elastic.co/downloads/elasticsearch/es.zip"),
        ("https://mirror.local/%s", "https://mirror.local/es.zip"),
        ("https://mirror.local/pinned.zip", "https://mirror.local/pinned.zip"),
        ("https://mirror.local/my%20dir/%s", "https://mirror.local/my%20dir/es.zip"),
        ("https://mirror.local/my%20dir/es.zip", "https://mirror.local/my%20dir/es.zip"),
    ],
)
def test_build_download_url(configured, expected):
    assert build_download_url("es.zip", configured) == expected


def test_acquisition_walks_the_full_miss_path(descriptor):
    acquisition = Acquisition(descriptor)
    for state in (
        AcquisitionState.DOWNLOADING,
        AcquisitionState.INSTALLING,
        AcquisitionState.RESOLVING,
        AcquisitionState.RESOLVED,
    ):
        acquisition.transition(state)
    assert acquisition.resolve_stage == 2
    assert acquisition.state is AcquisitionState.RESOLVED


def test_acquisition_never_downloads_twice(descriptor):
    acquisition = Acquisition(descriptor)
    acquisition.transition(AcquisitionState.DOWNLOADING)
    acquisition.transition(AcquisitionState.INSTALLING)
    acquisition.transition(AcquisitionState.RESOLVING)

    with pytest.raises(ArtifactConsistencyError):
        acquisition.transition(AcquisitionState.DOWNLOADING)


def test_acquisition_rejects_skipping_states(descriptor):
    acquisition = Acquisition(descriptor)
    with pytest.raises(ArtifactConsistencyError):
        acquisition.transition(AcquisitionState.INSTALLING)
