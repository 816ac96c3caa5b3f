movie_genres = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}


series_genres = {
    10759: "Action & Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    10762: "Kids",
    9648: "Mystery",
    10763: "News",
    10764: "Reality",
    10765: "Sci-Fi & Fantasy",
    10766: "Soap",
    10767: "Talk",
    10768: "War & Politics",
    37: "Western",
}


ALL_GENRE_IDS: frozenset[int] = frozenset(movie_genres) | frozenset(series_genres)


def genre_name(genre_id: int, content_type: str = "movie") -> str | None:
    """Readable genre name, preferring the table for the given content type."""
    primary, fallback = (movie_genres, series_genres) if content_type == "movie" else (series_genres, movie_genres)
    return primary.get(genre_id) or fallback.get(genre_id)


def genre_names(genre_ids, content_type: str = "movie") -> list[str]:
    names = (genre_name(gid, content_type) for gid in sorted(genre_ids))
    return [n for n in names if n]
