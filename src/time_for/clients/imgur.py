"""Imgur upload.

Video containers go up as a multipart form under the ``video`` field;
still images are sent as the raw request body.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import requests

from time_for.errors import UploadError
from time_for.logging import get_logger
from time_for.models.results import HostedLink

logger = get_logger(__name__)

IMGUR_UPLOAD_URL = "https://api.imgur.com/3/upload"

VIDEO_SUFFIXES = frozenset({".webm", ".mp4", ".mov", ".mkv", ".avi"})
IMAGE_SUFFIXES = frozenset({".gif", ".png", ".jpg", ".jpeg", ".apng", ".tiff"})


class Uploader:
    """Uploads the final clip and returns its share link."""

    def __init__(
        self,
        client_id: str | None,
        session: requests.Session | None = None,
        url: str = IMGUR_UPLOAD_URL,
        timeout: float | None = None,
    ):
        self.client_id = client_id
        self.session = session or requests.Session()
        self.url = url
        self.timeout = timeout

    def upload(self, path: Path) -> HostedLink:
        """Upload a file.

        Args:
            path: Final clip (video container or still image)

        Returns:
            HostedLink with the share URL

        Raises:
            UploadError: On missing credentials, network errors or a
                response without a link
        """
        path = Path(path)
        if not self.client_id:
            raise UploadError("No Imgur client id configured", context={"path": str(path)})

        suffix = path.suffix.lower()
        if suffix not in VIDEO_SUFFIXES and suffix not in IMAGE_SUFFIXES:
            raise UploadError(f"Unsupported file type for upload: {suffix or '(none)'}")
        is_video = suffix in VIDEO_SUFFIXES

        headers = {"Authorization": f"Client-ID {self.client_id}"}
        try:
            with open(path, "rb") as f:
                if is_video:
                    response = self.session.post(
                        self.url,
                        headers=headers,
                        files={"video": (path.name, f)},
                        timeout=self.timeout,
                    )
                else:
                    response = self.session.post(
                        self.url,
                        headers=headers,
                        data=f,
                        timeout=self.timeout,
                    )
        except requests.RequestException as e:
            raise UploadError(f"Upload failed: {e}", context={"path": str(path)}) from e
        except OSError as e:
            raise UploadError(f"Could not read file for upload: {e}", context={"path": str(path)}) from e

        link = self._parse_link(response)
        hosted = HostedLink.from_response_link(link, strip_trailing_dots=is_video)
        logger.info("Uploaded clip", extra={"link": hosted.url})
        return hosted

    @staticmethod
    def _parse_link(response: requests.Response) -> str:
        try:
            body: Any = response.json()
        except ValueError as e:
            raise UploadError(
                "Imgur returned a response that is not JSON",
                context={"status": response.status_code},
            ) from e

        data = body.get("data") if isinstance(body, dict) else None
        link = data.get("link") if isinstance(data, dict) else None
        if not isinstance(link, str) or not link.strip():
            raise UploadError(
                "Imgur response did not contain a link",
                context={"status": response.status_code},
            )
        return link
