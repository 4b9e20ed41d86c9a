"""
Resolves a distribution archive against the local repository, downloading and
installing it first when it is missing.

The resolve/download/install/resolve sequence is a small state machine in
which every transition happens at most once per acquisition: a second miss
after an install is a fatal consistency error rather than another round trip.
"""

import asyncio
import logging
import tempfile
import uuid
from enum import Enum
from pathlib import Path
from typing import Protocol

from pathvalidate import sanitize_filename

from es_provision.exceptions import (
    ArtifactConsistencyError,
    CacheMissError,
    DownloadError,
    EsProvisionError,
)
from es_provision.models.artifact import ArtifactDescriptor
from es_provision.models.config import ClusterConfig
from es_provision.storage.repository import ArtifactRepository

log = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_URL = "https://artifacts.elastic.co/downloads/elasticsearch/%s"
FILENAME_PLACEHOLDER = "/%s"


class FileDownloader(Protocol):
    async def download_file(self, url: str, destination_path: str) -> int: ...


class AcquisitionState(str, Enum):
    RESOLVING = "resolving"
    DOWNLOADING = "downloading"
    INSTALLING = "installing"
    RESOLVED = "resolved"
    FAILED = "failed"


_TRANSITIONS: dict[AcquisitionState, set[AcquisitionState]] = {
    AcquisitionState.RESOLVING: {
        AcquisitionState.RESOLVED,
        AcquisitionState.DOWNLOADING,
        AcquisitionState.FAILED,
    },
    AcquisitionState.DOWNLOADING: {
        AcquisitionState.INSTALLING,
        AcquisitionState.FAILED,
    },
    AcquisitionState.INSTALLING: {
        AcquisitionState.RESOLVING,
        AcquisitionState.FAILED,
    },
    AcquisitionState.RESOLVED: set(),
    AcquisitionState.FAILED: set(),
}


def build_download_url(filename: str, download_url: str | None = None) -> str:
    """
    Computes the URL to fetch ``filename`` from.

    A configured URL ending with ``/%s`` is a template receiving the file name,
    any other configured URL is used as is, and no URL means the vendor's
    default download location.
    """
    if not download_url or not download_url.strip():
        download_url = DEFAULT_DOWNLOAD_URL
    elif not download_url.endswith(FILENAME_PLACEHOLDER):
        return download_url
    # only the trailing placeholder is substituted; other % escapes are kept
    return download_url[: -len(FILENAME_PLACEHOLDER)] + "/" + filename


class Acquisition:
    """Tracks one acquisition through its states."""

    def __init__(self, descriptor: ArtifactDescriptor):
        self.descriptor = descriptor
        self.state = AcquisitionState.RESOLVING
        self.resolve_stage = 1
        self.history: list[AcquisitionState] = [self.state]

    def transition(self, new_state: AcquisitionState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise ArtifactConsistencyError(
                f"Illegal acquisition transition {self.state.value} -> "
                f"{new_state.value} for {self.descriptor}"
            )
        if new_state is AcquisitionState.DOWNLOADING and self.resolve_stage > 1:
            raise ArtifactConsistencyError(
                f"Refusing to download {self.descriptor} a second time"
            )
        if new_state is AcquisitionState.RESOLVING:
            self.resolve_stage += 1
        self.state = new_state
        self.history.append(new_state)

    def fail(self) -> None:
        if self.state is not AcquisitionState.FAILED:
            self.state = AcquisitionState.FAILED
            self.history.append(AcquisitionState.FAILED)


class ArtifactAcquirer:
    """Turns an artifact descriptor into a local file path."""

    def __init__(
        self,
        repository: ArtifactRepository,
        downloader: FileDownloader,
        temp_dir: Path | None = None,
    ):
        self.repository = repository
        self.downloader = downloader
        self.temp_dir = Path(temp_dir or tempfile.gettempdir())

    async def acquire(
        self, descriptor: ArtifactDescriptor, cluster: ClusterConfig
    ) -> Path:
        """
        Returns the local path of the artifact, downloading it on a cache miss.

        Raises:
            DownloadError: If the artifact could not be fetched.
            InstallError: If the repository refused the downloaded file.
            ArtifactConsistencyError: If the artifact is still missing after install.
        """
        acquisition = Acquisition(descriptor)
        log.debug(f"Artifact ref: {descriptor}")
        try:
            log.debug("Resolving artifact against the local repository (stage 1)")
            try:
                path = await self._resolve(descriptor)
            except CacheMissError:
                log.debug("Artifact not found; downloading and installing it")
            else:
                acquisition.transition(AcquisitionState.RESOLVED)
                return path

            acquisition.transition(AcquisitionState.DOWNLOADING)
            await self._download_and_install(descriptor, cluster, acquisition)

            acquisition.transition(AcquisitionState.RESOLVING)
            log.debug("Resolving artifact against the local repository (stage 2)")
            try:
                path = await self._resolve(descriptor)
            except CacheMissError as e:
                raise ArtifactConsistencyError(
                    f"Artifact {descriptor} is missing right after it was installed"
                ) from e
            acquisition.transition(AcquisitionState.RESOLVED)
            return path
        except EsProvisionError:
            acquisition.fail()
            trail = " -> ".join(state.value for state in acquisition.history)
            log.debug(f"Acquisition of {descriptor} failed: {trail}")
            raise

    async def _resolve(self, descriptor: ArtifactDescriptor) -> Path:
        return await asyncio.to_thread(
            self.repository.resolve, descriptor.coordinates
        )

    def _temp_file_for(self, descriptor: ArtifactDescriptor) -> Path:
        name = sanitize_filename(descriptor.filename)
        return self.temp_dir / f"{uuid.uuid4().hex}-{name}"

    async def _download_and_install(
        self,
        descriptor: ArtifactDescriptor,
        cluster: ClusterConfig,
        acquisition: Acquisition,
    ) -> None:
        url = build_download_url(descriptor.filename, cluster.download_url)
        temp_file = self._temp_file_for(descriptor)
        try:
            temp_file.unlink(missing_ok=True)
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DownloadError(f"Cannot prepare {temp_file}: {e}") from e

        try:
            log.info(f"Downloading [cyan]{url}[/cyan]")
            await self.downloader.download_file(url, str(temp_file))

            acquisition.transition(AcquisitionState.INSTALLING)
            log.debug(f"Installing {temp_file} in the local repository")
            await asyncio.to_thread(
                self.repository.install,
                descriptor.group_id,
                descriptor.artifact_id,
                descriptor.version,
                descriptor.classifier,
                descriptor.type,
                temp_file,
            )
        finally:
            try:
                temp_file.unlink(missing_ok=True)
            except OSError as e:
                log.warning(f"Could not remove temporary download {temp_file}: {e}")
