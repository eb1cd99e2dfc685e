"""
Apple Music catalog client.

Implements the ``CatalogClient`` protocol from core over the Apple Music
REST API. Lives in catalog/ because it performs network I/O (core/ must
remain pure).

Every request goes through the shared catalog ``CircuitBreaker`` and a
short jittered retry for transient failures (transport errors, 429, 5xx).
Client errors such as 400/404 are not retried.

Environment variables
---------------------
``APPLE_MUSIC_DEVELOPER_TOKEN``
    Pre-minted developer token (JWT), sent as a bearer token. Required.
``APPLE_MUSIC_STOREFRONT``
    Catalog storefront (default ``us``).
``APPLE_MUSIC_API_BASE``
    API root (default ``https://api.music.apple.com/v1``).
``APPLE_MUSIC_TIMEOUT_SECONDS``
    Per-request timeout (default ``10``).
"""

import logging
import os
from typing import Any

import httpx
from dotenv import load_dotenv

from core.songs import SongRecord, parse_release_date
from infrastructure.circuit_breaker import CircuitBreaker
from infrastructure.retry import with_retry

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.music.apple.com/v1"
ARTWORK_SIZE = 300

# Per-request page caps enforced by the API
_SEARCH_PAGE_MAX = 25
_CHART_PAGE_MAX = 50
_SONGS_BATCH_MAX = 300


class CatalogError(RuntimeError):
    """A catalog request failed.

    Args:
        operation: Client method that failed (``search``, ``top_charts``...).
        status_code: HTTP status, or ``None`` for transport failures.
        message: Description, usually the API's error detail.
    """

    def __init__(self, operation: str, status_code: int | None, message: str) -> None:
        self.operation = operation
        self.status_code = status_code
        status = status_code if status_code is not None else "n/a"
        super().__init__(f"{operation} failed (status={status}): {message}")


def is_transient_error(exc: Exception) -> bool:
    """True for failures worth retrying: transport errors, 429 and 5xx.

    Also the failure predicate of the catalog circuit breaker, so client
    errors such as a 404 for an odd search term never open it.
    """
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, CatalogError):
        return exc.status_code is None or exc.status_code == 429 or exc.status_code >= 500
    return False


_catalog_retry = with_retry(
    max_attempts=3,
    base_seconds=0.5,
    exceptions=(httpx.TransportError, CatalogError),
    should_retry=is_transient_error,
)


def song_from_resource(resource: dict[str, Any]) -> SongRecord:
    """
    Build a ``SongRecord`` from an Apple Music song resource.

    Missing optional attributes fall back to empty values; the artwork URL
    template has its ``{w}``/``{h}`` placeholders filled in.

    Raises:
        ValueError: If the resource has no ``id``.
    """
    attrs = resource.get("attributes") or {}

    artwork_url = None
    artwork = attrs.get("artwork") or {}
    if artwork.get("url"):
        artwork_url = (
            artwork["url"].replace("{w}", str(ARTWORK_SIZE)).replace("{h}", str(ARTWORK_SIZE))
        )

    previews = attrs.get("previews") or []
    preview_url = previews[0].get("url") if previews else None

    return SongRecord(
        id=str(resource.get("id") or ""),
        name=attrs.get("name", ""),
        artist_name=attrs.get("artistName", ""),
        genre_names=tuple(attrs.get("genreNames") or ()),
        release_date=parse_release_date(attrs.get("releaseDate")),
        duration_millis=int(attrs.get("durationInMillis") or 0),
        album_name=attrs.get("albumName", ""),
        artwork_url=artwork_url,
        preview_url=preview_url,
    )


def _parse_songs(resources: list[dict[str, Any]]) -> list[SongRecord]:
    songs: list[SongRecord] = []
    for resource in resources:
        try:
            songs.append(song_from_resource(resource))
        except ValueError as exc:
            logger.warning("Skipping malformed song resource: %s", exc)
    return songs


class AppleMusicClient:
    """
    Catalog client backed by the Apple Music API.

    Satisfies the ``CatalogClient`` protocol.

    Args:
        developer_token: Bearer token; read from the environment when omitted.
        storefront: Catalog storefront code.
        api_base: API root URL.
        timeout_seconds: Per-request timeout.
        breaker: Circuit breaker shared by all calls of this client.
        http_client: Injected ``httpx.Client`` (tests use ``MockTransport``).

    Raises:
        ValueError: If no developer token is configured.
    """

    def __init__(
        self,
        *,
        developer_token: str | None = None,
        storefront: str | None = None,
        api_base: str | None = None,
        timeout_seconds: float | None = None,
        breaker: CircuitBreaker | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        load_dotenv()
        token = developer_token or os.environ.get("APPLE_MUSIC_DEVELOPER_TOKEN", "")
        if not token:
            raise ValueError(
                "APPLE_MUSIC_DEVELOPER_TOKEN must be set in the environment or passed explicitly"
            )
        self._storefront = storefront or os.getenv("APPLE_MUSIC_STOREFRONT", "us")
        base = api_base or os.getenv("APPLE_MUSIC_API_BASE", DEFAULT_API_BASE)
        timeout = timeout_seconds or float(os.getenv("APPLE_MUSIC_TIMEOUT_SECONDS", "10"))

        self._breaker = breaker or CircuitBreaker(
            name="apple_music", should_count=is_transient_error
        )
        self._http = http_client or httpx.Client(base_url=base, timeout=timeout)
        self._http.headers["Authorization"] = f"Bearer {token}"

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def close(self) -> None:
        self._http.close()

    # -- transport ---------------------------------------------------------

    @_catalog_retry
    def _get_once(self, operation: str, path: str, params: dict[str, Any]) -> dict[str, Any]:
        response = self._http.get(path, params=params)
        if response.status_code >= 400:
            detail = response.text[:200]
            logger.error(
                "Catalog %s returned HTTP %d: %s", operation, response.status_code, detail
            )
            raise CatalogError(operation, response.status_code, detail)
        return response.json()

    def _get_with_retry(
        self, operation: str, path: str, params: dict[str, Any]
    ) -> dict[str, Any]:
        try:
            return self._get_once(operation, path, params)
        except httpx.TransportError as exc:
            raise CatalogError(operation, None, str(exc)) from exc

    def _get(self, operation: str, path: str, params: dict[str, Any]) -> dict[str, Any]:
        return self._breaker.call(self._get_with_retry, operation, path, params)

    # -- CatalogClient -----------------------------------------------------

    def search(self, term: str, limit: int = 25) -> list[SongRecord]:
        """
        Search catalog songs for *term*.

        Pages through results until *limit* songs were collected or the
        catalog runs out.

        Raises:
            ValueError: If *term* is empty or *limit* is not positive.
            CatalogError: On HTTP failure after retries.
            CircuitOpenError: If the catalog breaker is open.
        """
        if not term or not term.strip():
            raise ValueError("term must be a non-empty string")
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")

        songs: list[SongRecord] = []
        offset = 0
        while len(songs) < limit:
            page = min(_SEARCH_PAGE_MAX, limit - len(songs))
            payload = self._get(
                "search",
                f"/catalog/{self._storefront}/search",
                {"term": term, "types": "songs", "limit": page, "offset": offset},
            )
            data = ((payload.get("results") or {}).get("songs") or {}).get("data") or []
            songs.extend(_parse_songs(data))
            if len(data) < page:
                break
            offset += page

        logger.debug("search %r returned %d songs", term, len(songs))
        return songs[:limit]

    def top_charts(self, limit: int = 100, genre: str | None = None) -> list[SongRecord]:
        """
        Fetch the current top song chart, optionally for one genre id.

        Raises:
            ValueError: If *limit* is not positive.
            CatalogError: On HTTP failure after retries.
            CircuitOpenError: If the catalog breaker is open.
        """
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")

        songs: list[SongRecord] = []
        offset = 0
        while len(songs) < limit:
            page = min(_CHART_PAGE_MAX, limit - len(songs))
            params: dict[str, Any] = {"types": "songs", "limit": page, "offset": offset}
            if genre:
                params["genre"] = genre
            payload = self._get("top_charts", f"/catalog/{self._storefront}/charts", params)
            charts = (payload.get("results") or {}).get("songs") or []
            data = (charts[0].get("data") or []) if charts else []
            songs.extend(_parse_songs(data))
            if len(data) < page:
                break
            offset += page

        return songs[:limit]

    def get_songs(self, ids: list[str]) -> list[SongRecord]:
        """
        Resolve catalog ids to songs, in the order the catalog returns them.

        Unknown ids are silently absent from the result.

        Raises:
            CatalogError: On HTTP failure after retries.
            CircuitOpenError: If the catalog breaker is open.
        """
        songs: list[SongRecord] = []
        for start in range(0, len(ids), _SONGS_BATCH_MAX):
            batch = ids[start : start + _SONGS_BATCH_MAX]
            payload = self._get(
                "get_songs",
                f"/catalog/{self._storefront}/songs",
                {"ids": ",".join(batch)},
            )
            songs.extend(_parse_songs(payload.get("data") or []))
        return songs
