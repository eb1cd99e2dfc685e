"""
Catalog search terms for candidate expansion and search strategies.

Design:
    - ``derive_search_term()`` turns a correct song into a genre + decade
      query used to find plausible detractors around it.
    - ``SearchStrategy`` describes a themed pull from the catalog (decade,
      mood, regional, special, cross-genre). The registry is data only:
      add a strategy here, no function changes required.
    - ``time_span_terms()`` and ``POPULARITY_TERMS`` feed the multi-term
      strategies.

Pure module — building terms never touches the network.
"""

import re
from dataclasses import dataclass

from core.songs import SongRecord, primary_genre, release_year
from core.types import InvalidArgumentError

FALLBACK_TERM = "music"
"""Used when a song has neither a genre nor a usable decade."""

_GENRE_STRIP = re.compile(r"[/\-]")
_WHITESPACE = re.compile(r"\s+")


def derive_search_term(song: SongRecord) -> str:
    """
    Build the expansion query for one correct song.

    Primary genre with ``/`` and ``-`` stripped, plus ``"{decade}s"`` when the
    decade is after 1900.

    Example:
        >>> derive_search_term(SongRecord(id="1", name="x", artist_name="y",
        ...     genre_names=("Hip-Hop/Rap",), release_date=date(1994, 5, 1)))
        'Hip Hop Rap 1990s'
    """
    parts: list[str] = []

    genre = primary_genre(song)
    if genre:
        cleaned = _WHITESPACE.sub(" ", _GENRE_STRIP.sub(" ", genre)).strip()
        if cleaned:
            parts.append(cleaned)

    year = release_year(song)
    if year is not None:
        decade = year // 10 * 10
        if decade > 1900:
            parts.append(f"{decade}s")

    return " ".join(parts) or FALLBACK_TERM


# ---------------------------------------------------------------------------
# Strategy registry
# ---------------------------------------------------------------------------

STRATEGY_KINDS: tuple[str, ...] = ("decade", "mood", "regional", "special", "cross_genre")


@dataclass(frozen=True)
class SearchStrategy:
    """A themed catalog pull.

    Attributes:
        name: Stable identifier (e.g. ``"80s-new-wave"``).
        kind: One of ``STRATEGY_KINDS``.
        category: Display title.
        description: One-line description.
        terms: Search terms issued for this strategy.
        limit: Result cap per term.
    """

    name: str
    kind: str
    category: str
    description: str
    terms: tuple[str, ...]
    limit: int = 25


def _s(name: str, kind: str, category: str, description: str, term: str) -> SearchStrategy:
    return SearchStrategy(name, kind, category, description, (term,))


STRATEGY_REGISTRY: tuple[SearchStrategy, ...] = (
    # decade
    _s("60s-classics", "decade", "60s Classics", "Classic hits from the 1960s",
       "60s hits classic 1960s"),
    _s("70s-disco-funk", "decade", "70s Disco & Funk", "Disco and funk hits from the 1970s",
       "disco funk 1970s bee gees earth wind fire"),
    _s("80s-new-wave", "decade", "80s New Wave", "New wave and synth-pop from the 1980s",
       "new wave 80s synth pop depeche mode duran duran"),
    _s("90s-grunge-alternative", "decade", "90s Grunge & Alternative",
       "Grunge and alternative rock from the 1990s",
       "grunge alternative rock 90s nirvana pearl jam"),
    _s("2000s-pop-punk", "decade", "2000s Pop Punk", "Pop punk and emo from the 2000s",
       "pop punk emo 2000s blink 182 fall out boy"),
    _s("2010s-edm", "decade", "2010s EDM", "Electronic dance music from the 2010s",
       "EDM electronic dance 2010s avicii calvin harris"),
    # mood
    _s("workout-pump", "mood", "Workout Pump", "High-energy songs for working out",
       "workout motivation pump gym energy"),
    _s("road-trip", "mood", "Road Trip Classics", "Perfect songs for long drives",
       "road trip driving highway songs"),
    _s("summer-vibes", "mood", "Summer Vibes", "Feel-good summer hits",
       "summer beach vacation tropical vibes"),
    _s("rainy-day", "mood", "Rainy Day Mood", "Mellow songs for rainy days",
       "rainy day mellow chill acoustic indie"),
    _s("party-anthems", "mood", "Party Anthems", "Songs that get the party started",
       "party anthems dance club hits"),
    # regional
    _s("k-pop-hits", "regional", "K-Pop Hits", "Popular K-Pop songs",
       "k-pop korean pop BTS blackpink"),
    _s("latin-reggaeton", "regional", "Latin & Reggaeton", "Latin and reggaeton hits",
       "reggaeton latin bad bunny daddy yankee"),
    _s("bollywood-hits", "regional", "Bollywood Hits", "Popular Bollywood songs",
       "bollywood hindi film songs"),
    _s("afrobeats", "regional", "Afrobeats", "African beats and rhythms",
       "afrobeats african wizkid burna boy"),
    # special
    _s("one-hit-wonders", "special", "One Hit Wonders", "Artists known for one big hit",
       "one hit wonder"),
    _s("movie-soundtracks", "special", "Movie Soundtracks", "Iconic songs from movies",
       "movie soundtrack theme oscar winner"),
    _s("tv-themes", "special", "TV Theme Songs", "Memorable television theme songs",
       "tv theme song television show"),
    _s("acoustic-versions", "special", "Acoustic Versions",
       "Stripped-down acoustic performances", "acoustic version unplugged stripped"),
    _s("remixes", "special", "Remixes", "Popular remixes and alternate versions",
       "remix club mix dance version"),
    _s("duets-collabs", "special", "Duets & Collaborations", "Songs featuring multiple artists",
       "duet featuring collaboration feat"),
    _s("cover-versions", "special", "Cover Versions", "Popular cover songs",
       "cover version tribute"),
    _s("grammy-winners", "special", "Grammy Winners", "Grammy award-winning songs",
       "grammy winner award song of the year"),
    # cross_genre
    _s("country-pop-crossover", "cross_genre", "Country Pop Crossover",
       "Country songs with pop appeal", "country pop crossover taylor swift shania"),
    _s("jazz-fusion", "cross_genre", "Jazz Fusion", "Jazz mixed with other genres",
       "jazz fusion funk soul contemporary"),
    _s("folk-rock", "cross_genre", "Folk Rock", "Folk music with rock elements",
       "folk rock bob dylan simon garfunkel"),
    _s("rap-rock", "cross_genre", "Rap Rock", "Hip-hop and rock fusion",
       "rap rock nu metal linkin park"),
)


def get_strategy(name: str) -> SearchStrategy:
    """Look up a registry strategy by name.

    Raises:
        InvalidArgumentError: If no strategy has that name.
    """
    for strategy in STRATEGY_REGISTRY:
        if strategy.name == name:
            return strategy
    raise InvalidArgumentError("strategy_name", f"unknown strategy {name!r}")


def strategies_by_kind(kind: str) -> list[SearchStrategy]:
    """All registry strategies of one kind.

    Raises:
        InvalidArgumentError: If *kind* is not in ``STRATEGY_KINDS``.
    """
    if kind not in STRATEGY_KINDS:
        raise InvalidArgumentError(
            "kind", f"unknown strategy kind {kind!r}, expected one of {list(STRATEGY_KINDS)}"
        )
    return [s for s in STRATEGY_REGISTRY if s.kind == kind]


# ---------------------------------------------------------------------------
# Multi-term strategies
# ---------------------------------------------------------------------------

POPULARITY_TERMS: dict[str, tuple[str, ...]] = {
    "viral": ("viral hits", "tiktok songs", "trending now"),
    "underground": ("indie gems", "underground hits", "undiscovered"),
    "mainstream": ("top 40", "billboard hot 100", "chart toppers"),
}


def popularity_terms(tier: str) -> tuple[str, ...]:
    """Search terms for a popularity tier.

    Raises:
        InvalidArgumentError: If *tier* is unknown.
    """
    try:
        return POPULARITY_TERMS[tier]
    except KeyError:
        raise InvalidArgumentError(
            "popularity", f"unknown tier {tier!r}, expected one of {sorted(POPULARITY_TERMS)}"
        ) from None


def time_span_terms(start_year: int, end_year: int) -> list[str]:
    """
    Search terms covering an inclusive year range.

    Two terms per year (``"hits 1994"``, ``"best of 1994"``) followed by one
    ``"{decade}s music"`` term per decade the span touches.

    Raises:
        InvalidArgumentError: If the range is reversed.
    """
    if start_year > end_year:
        raise InvalidArgumentError(
            "time_span", f"start_year ({start_year}) must not exceed end_year ({end_year})"
        )

    terms: list[str] = []
    for year in range(start_year, end_year + 1):
        terms.append(f"hits {year}")
        terms.append(f"best of {year}")

    for decade in range(start_year // 10 * 10, end_year // 10 * 10 + 1, 10):
        terms.append(f"{decade}s music")

    return terms
