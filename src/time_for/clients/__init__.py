"""HTTP clients: Tenor search, clip download and Imgur upload."""

from time_for.clients.download import Downloader
from time_for.clients.imgur import Uploader
from time_for.clients.tenor import GifSearchClient

__all__ = [
    "Downloader",
    "GifSearchClient",
    "Uploader",
]
