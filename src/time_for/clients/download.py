"""Streaming file download."""

from __future__ import annotations

from pathlib import Path

import requests

from time_for.errors import DownloadError
from time_for.logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 8192


class Downloader:
    """Fetches URLs to local files without holding them in memory.

    A failed download may leave a partial file behind.
    """

    def __init__(self, session: requests.Session | None = None, timeout: float | None = None):
        self.session = session or requests.Session()
        self.timeout = timeout

    def download(self, url: str, destination: Path) -> Path:
        """Stream ``url`` into ``destination``, replacing any existing file.

        Args:
            url: Remote file
            destination: Local path; parent directories are created

        Returns:
            The destination path

        Raises:
            DownloadError: On network, HTTP status or file system errors
        """
        destination = Path(destination)
        total = 0
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            total += len(chunk)
        except requests.RequestException as e:
            raise DownloadError(
                f"Could not download clip: {e}",
                context={"url": url},
            ) from e
        except OSError as e:
            raise DownloadError(
                f"Could not write clip to disk: {e}",
                context={"path": str(destination)},
            ) from e

        logger.info(
            f"Downloaded {destination.name}",
            extra={"bytes": total, "url": url},
        )
        return destination
