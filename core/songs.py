"""
Song records as consumed by the question engine.

``SongRecord`` is the normalized, immutable view of a catalog track. Only a
handful of fields take part in scoring (artist, title, primary genre, release
year, duration); the album / artwork / preview fields ride along so the API
layer can render answers without a second catalog round-trip.

Identity is the ``id`` alone: two records with the same id are the same song,
and when merging, the first record seen wins.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class SongRecord:
    """
    One catalog track.

    Attributes:
        id: Opaque catalog identifier, used for de-duplication and exclusion.
        name: Track title.
        artist_name: Primary artist as stored by the catalog (case preserved).
        genre_names: Ordered genre labels; the first one is the primary genre.
        release_date: Release date, only its calendar year is used in scoring.
        duration_millis: Track duration in milliseconds.
        album_name: Display only.
        artwork_url: Display only, already sized.
        preview_url: Display only, may be missing.
    """

    id: str
    name: str
    artist_name: str
    genre_names: tuple[str, ...] = ()
    release_date: date | None = None
    duration_millis: int = 0
    album_name: str = ""
    artwork_url: str | None = None
    preview_url: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("SongRecord.id must be a non-empty string")
        # Callers routinely pass lists straight from JSON
        if not isinstance(self.genre_names, tuple):
            object.__setattr__(self, "genre_names", tuple(self.genre_names))


def parse_release_date(value: object) -> date | None:
    """
    Parse a catalog release date.

    Accepts a ``date``, or an ISO string in ``YYYY-MM-DD``, ``YYYY-MM`` or
    ``YYYY`` form (catalogs truncate dates for old recordings). Returns
    ``None`` for anything empty or unparseable.
    """
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    parts = text[:10].split("-")
    try:
        year = int(parts[0])
        month = int(parts[1]) if len(parts) > 1 else 1
        day = int(parts[2]) if len(parts) > 2 else 1
        return date(year, month, day)
    except ValueError:
        return None


def release_year(song: SongRecord) -> int | None:
    """Calendar year of the song's release, or ``None`` when unknown."""
    return song.release_date.year if song.release_date else None


def primary_genre(song: SongRecord) -> str | None:
    """First genre label, or ``None`` when the song has none."""
    if song.genre_names and song.genre_names[0]:
        return song.genre_names[0]
    return None


def dedupe_songs(songs: Iterable[SongRecord]) -> list[SongRecord]:
    """Drop repeated ids, keeping the first record seen and the input order."""
    seen: set[str] = set()
    unique: list[SongRecord] = []
    for song in songs:
        if song.id in seen:
            continue
        seen.add(song.id)
        unique.append(song)
    return unique
