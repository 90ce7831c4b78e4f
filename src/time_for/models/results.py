"""Results handed between pipeline components."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SearchResult:
    """A clip picked from a search.

    Attributes:
        url: Download URL of the picked clip
        query: Search term that produced it
        pool_size: Number of leading results that were eligible
        index: Position of the picked result within the pool
    """

    url: str
    query: str
    pool_size: int
    index: int


@dataclass(frozen=True)
class HostedLink:
    """Share URL returned by the hosting service."""

    url: str

    @classmethod
    def from_response_link(cls, link: str, strip_trailing_dots: bool) -> "HostedLink":
        """Build from the raw ``data.link`` value.

        Imgur appends a "." to links of video uploads; it breaks embeds.
        """
        link = link.strip()
        if strip_trailing_dots:
            link = link.rstrip(".")
        return cls(url=link)

    def __str__(self) -> str:
        return self.url
