"""Movie listing, recent-movies cache and like/dislike handling."""

import logging
from collections.abc import Callable

from app.config import settings
from app.services.cache import TTLCache
from app.services.database import DatabaseService, MovieFilters
from app.services.pagination import Page, paginate, parse_order

logger = logging.getLogger(__name__)


def annotate_like_status(
    rows: list[dict],
    user_id: int | None,
    fetch_likes: Callable[[list[int], int], list[dict]],
) -> list[dict]:
    """Attach ``like_status`` (True / False / None) for ``user_id`` to each row.

    Anonymous callers get the rows back untouched, with no ``like_status``
    key at all.
    """
    if user_id is None:
        return rows
    if not rows:
        return []

    records = fetch_likes([row["id"] for row in rows], user_id)
    liked = {rec["movie_id"]: rec["is_like"] for rec in records}
    return [{**row, "like_status": liked.get(row["id"])} for row in rows]


class MovieService:
    def __init__(
        self,
        db: DatabaseService,
        cache: TTLCache,
        recent_cache_key: str = settings.recent_cache_key,
        recent_ttl_ms: int = settings.recent_cache_ttl_ms,
        recent_limit: int = settings.recent_limit,
    ):
        self._db = db
        self._cache = cache
        self._recent_key = recent_cache_key
        self._recent_ttl_ms = recent_ttl_ms
        self._recent_limit = recent_limit

    def find_all(
        self,
        filters: MovieFilters,
        order: list[str],
        take: int,
        cursor: str | None = None,
        user_id: int | None = None,
    ) -> Page:
        page = paginate(self._db, filters, parse_order(order), take, cursor)
        page.data = annotate_like_status(page.data, user_id, self._db.get_like_records)
        return page

    def find_recent(self) -> list[dict]:
        cached = self._cache.get(self._recent_key)
        if cached is not None:
            logger.debug("Cache hit for %s", self._recent_key)
            return cached

        movies = self._db.find_recent(self._recent_limit)
        self._cache.set(self._recent_key, movies, self._recent_ttl_ms)
        logger.debug("Cached %d recent movies for %d ms", len(movies), self._recent_ttl_ms)
        return movies

    def find_one(self, movie_id: int) -> dict | None:
        return self._db.get_movie_detail(movie_id)

    def user_exists(self, user_id: int) -> bool:
        return self._db.user_exists(user_id)

    def toggle_like(self, movie_id: int, user_id: int, is_like: bool) -> dict | None:
        """Vote on a movie. Repeating the same vote withdraws it.

        Returns None when the movie does not exist. Callers check the user
        beforehand.
        """
        if not self._db.movie_exists(movie_id):
            return None
        state = self._db.toggle_like(movie_id, user_id, is_like)
        logger.info("User %d %s movie %d -> %s", user_id, "liked" if is_like else "disliked", movie_id, state)
        return {"is_like": state}
