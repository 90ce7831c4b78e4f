"""Tenor GIF search.

Picks one clip at random from the leading results of a search, so the
same query gives some variety without drifting into irrelevant results.
"""

from __future__ import annotations

import random
from typing import Any

import requests

from time_for.errors import ApiError, NoResultsError, TransportError, map_request_error
from time_for.logging import get_logger
from time_for.models.results import SearchResult

logger = get_logger(__name__)

TENOR_SEARCH_URL = "https://tenor.googleapis.com/v2/search"
DEFAULT_CANDIDATES = 10


class GifSearchClient:
    """Client for the Tenor v2 search endpoint."""

    def __init__(
        self,
        api_key: str,
        session: requests.Session | None = None,
        base_url: str = TENOR_SEARCH_URL,
        media_format: str = "webm",
        timeout: float | None = None,
        rng: random.Random | None = None,
        default_candidates: int = DEFAULT_CANDIDATES,
    ):
        """Initialize the client.

        Args:
            api_key: Tenor API key
            session: HTTP session to reuse; a new one is created if omitted
            base_url: Search endpoint
            media_format: Key under ``media_formats`` whose URL is returned
            timeout: Request timeout in seconds, None to wait indefinitely
            rng: Random source used to pick a result
            default_candidates: Pool size when a search does not give one
        """
        self.api_key = api_key
        self.session = session or requests.Session()
        self.base_url = base_url
        self.media_format = media_format
        self.timeout = timeout
        self._rng = rng or random.Random()
        self.default_candidates = default_candidates

    def search(self, query: str, candidate_count: int | None = None) -> SearchResult:
        """Pick a random clip among the first ``candidate_count`` results.

        Args:
            query: Search term
            candidate_count: Size of the considered pool (client default if None)

        Returns:
            SearchResult with the download URL of the picked clip

        Raises:
            NoResultsError: If no result is eligible
            ApiError: If Tenor answered with an error payload
            TransportError: On network, timeout or decoding problems
        """
        if candidate_count is None:
            candidate_count = self.default_candidates
        if candidate_count < 1:
            raise ValueError(f"candidate_count must be at least 1: {candidate_count}")

        body = self._request(query, candidate_count)
        results = self._parse_results(body, query)

        pool_size = min(candidate_count, len(results))
        if pool_size == 0:
            raise NoResultsError(query)

        index = self._rng.randrange(pool_size)
        url = self._media_url(results[index], query)

        logger.info(
            f"Picked result {index + 1}/{pool_size} for '{query}'",
            extra={"url": url},
        )
        return SearchResult(url=url, query=query, pool_size=pool_size, index=index)

    def _request(self, query: str, limit: int) -> Any:
        params = {"q": query, "key": self.api_key, "limit": limit}
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            # The body tells success from failure, not the status code
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise map_request_error(e, "Tenor", f"search '{query}'") from e

    @staticmethod
    def _parse_results(body: Any, query: str) -> list:
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                raise ApiError(
                    error.get("code", "unknown"),
                    str(error.get("message", "")),
                    context={"query": query},
                )
            results = body.get("results")
            if isinstance(results, list):
                return results

        raise TransportError(
            "Tenor search returned an unexpected response",
            context={"query": query},
        )

    def _media_url(self, result: Any, query: str) -> str:
        try:
            return result["media_formats"][self.media_format]["url"]
        except (KeyError, TypeError) as e:
            raise TransportError(
                f"Tenor result has no '{self.media_format}' URL",
                context={"query": query},
            ) from e
