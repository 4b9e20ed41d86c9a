"""
Handles the low-level downloading of distribution archives over HTTP.
"""

import asyncio
import logging
import os

import aiofiles
import aiohttp
from rich.progress import Progress, TaskID

from es_provision.exceptions import DownloadError
from es_provision.models.config import DEFAULT_DOWNLOAD_TIMEOUT
from es_provision.utils.formatting import format_size

log = logging.getLogger(__name__)


class Downloader:
    """
    A single-shot file downloader. A failed transfer is never retried; the
    caller decides what a failure means.
    """

    CHUNK_SIZE = 262144  # 256 KB

    def __init__(
        self,
        timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
        progress: Progress | None = None,
    ):
        """
        Args:
            timeout: Upper bound in seconds for the whole transfer.
            progress: Optional Rich Progress that receives one task per download.
        """
        self.timeout = timeout
        self.progress = progress

    async def download_file(self, url: str, destination_path: str) -> int:
        """
        Streams ``url`` into ``destination_path``.

        Returns:
            The number of bytes written.

        Raises:
            DownloadError: On any HTTP, network, timeout or local write failure.
        """
        name = os.path.basename(destination_path)
        task_id: TaskID | None = None
        timeout = aiohttp.ClientTimeout(total=self.timeout, sock_connect=30)
        log.debug(f"Downloading {url} to {destination_path}")
        try:
            async with (
                aiohttp.ClientSession(timeout=timeout) as session,
                session.get(url, allow_redirects=True) as response,
            ):
                response.raise_for_status()
                total = response.content_length
                if self.progress is not None:
                    task_id = self.progress.add_task(name, total=total)

                bytes_downloaded = 0
                async with aiofiles.open(destination_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        bytes_downloaded += len(chunk)
                        if task_id is not None:
                            self.progress.update(task_id, completed=bytes_downloaded)
        except aiohttp.ClientResponseError as e:
            raise DownloadError(
                f"Server answered {e.status} ({e.message}) for {url}"
            ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DownloadError(
                f"Failed to download {url}: {type(e).__name__}: {e}"
            ) from e
        except OSError as e:
            raise DownloadError(f"Failed to write {destination_path}: {e}") from e
        finally:
            if task_id is not None:
                self.progress.remove_task(task_id)

        log.info(f"Downloaded [cyan]{name}[/cyan] ({format_size(bytes_downloaded)})")
        return bytes_downloaded
