"""MovieService against a temporary SQLite database."""

from unittest.mock import Mock

import pytest

from app.services.cache import TTLCache
from app.services.database import MovieFilters
from app.services.movies import MovieService, annotate_like_status
from app.services.pagination import (
    CursorOrderMismatch,
    InvalidOrderSpec,
    decode_cursor,
    encode_cursor,
    parse_order,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def service(db, clock):
    return MovieService(db, TTLCache(clock=clock))


def _ids(rows):
    return [r["id"] for r in rows]


class TestFindAll:
    def test_first_two_pages_by_id_desc(self, numbered_movies, service):
        first = service.find_all(MovieFilters(), ["id_DESC"], 5)
        assert _ids(first.data) == [15, 14, 13, 12, 11]
        assert first.count == 15
        cursor = decode_cursor(first.next_cursor)
        assert cursor.values == {"id": 11}
        assert [str(t) for t in cursor.order] == ["id_DESC"]

        second = service.find_all(MovieFilters(), ["id_DESC"], 5, first.next_cursor)
        assert _ids(second.data) == [10, 9, 8, 7, 6]
        assert second.count == 15

    def test_empty_catalog(self, service):
        page = service.find_all(MovieFilters(), ["title_ASC"], 5)
        assert page.data == []
        assert page.count == 0
        assert page.next_cursor is None

    def test_empty_order(self, service):
        with pytest.raises(InvalidOrderSpec):
            service.find_all(MovieFilters(), [], 5)

    def test_unknown_column(self, numbered_movies, service):
        with pytest.raises(InvalidOrderSpec):
            service.find_all(MovieFilters(), ["password_ASC"], 5)

    def test_cursor_from_other_order(self, numbered_movies, service):
        token = encode_cursor({"title": "Movie 03"}, parse_order(["title_ASC"]))
        with pytest.raises(CursorOrderMismatch):
            service.find_all(MovieFilters(), ["id_DESC"], 5, token)

    def test_title_filter_counts_whole_filtered_set(self, numbered_movies, service):
        page = service.find_all(MovieFilters(title="Movie 1"), ["id_ASC"], 2)
        assert [r["title"] for r in page.data] == ["Movie 10", "Movie 11"]
        assert page.count == 6

        nxt = service.find_all(MovieFilters(title="Movie 1"), ["id_ASC"], 2, page.next_cursor)
        assert [r["title"] for r in nxt.data] == ["Movie 12", "Movie 13"]
        assert nxt.count == 6

    def test_composite_order_walks_every_row_once(self, db, service):
        # Three movies share each created_at, so id breaks the ties.
        for i in range(1, 10):
            db.create_movie(f"Tied {i}", created_at=f"2024-02-0{(i - 1) // 3 + 1}T00:00:00.000Z")

        order = ["created_at_DESC", "id_ASC"]
        seen, cursor = [], None
        while True:
            page = service.find_all(MovieFilters(), order, 2, cursor)
            if page.next_cursor is None:
                break
            seen.extend(_ids(page.data))
            cursor = page.next_cursor

        assert seen == [7, 8, 9, 4, 5, 6, 1, 2, 3]

    def test_rows_carry_director_and_genres(self, numbered_movies, service):
        row = service.find_all(MovieFilters(), ["id_ASC"], 1).data[0]
        assert row["director"] == {"id": 1, "name": "Ridley Scott"}
        assert row["genres"] == [{"id": 1, "name": "Drama"}]

    def test_anonymous_rows_have_no_like_status(self, numbered_movies, service):
        page = service.find_all(MovieFilters(), ["id_ASC"], 3)
        assert all("like_status" not in r for r in page.data)

    def test_like_status_for_user(self, numbered_movies, service):
        user_id = numbered_movies.create_user("fan@example.com")
        numbered_movies.toggle_like(1, user_id, True)
        numbered_movies.toggle_like(2, user_id, False)

        page = service.find_all(MovieFilters(), ["id_ASC"], 3, user_id=user_id)
        assert [r["like_status"] for r in page.data] == [True, False, None]


class TestAnnotateLikeStatus:
    def test_merges_tri_state_in_row_order(self):
        rows = [{"id": 1}, {"id": 2}, {"id": 3}]
        fetch = Mock(return_value=[
            {"movie_id": 1, "is_like": True},
            {"movie_id": 2, "is_like": False},
        ])

        result = annotate_like_status(rows, 7, fetch)

        assert [r["like_status"] for r in result] == [True, False, None]
        fetch.assert_called_once_with([1, 2, 3], 7)

    def test_anonymous_returns_rows_unchanged(self):
        rows = [{"id": 1}]
        fetch = Mock()
        assert annotate_like_status(rows, None, fetch) is rows
        fetch.assert_not_called()

    def test_empty_page_skips_lookup(self):
        fetch = Mock()
        assert annotate_like_status([], 7, fetch) == []
        fetch.assert_not_called()

    def test_does_not_mutate_rows(self):
        rows = [{"id": 1}]
        annotate_like_status(rows, 7, Mock(return_value=[]))
        assert rows == [{"id": 1}]

    def test_like_store_returns_only_existing_records(self, numbered_movies):
        user_id = numbered_movies.create_user("fan@example.com")
        numbered_movies.toggle_like(1, user_id, True)
        numbered_movies.toggle_like(2, user_id, False)

        records = numbered_movies.get_like_records([1, 2, 3], user_id)
        assert sorted((r["movie_id"], r["is_like"]) for r in records) == [(1, True), (2, False)]


class TestFindRecent:
    def test_ten_newest_first(self, numbered_movies, service):
        recent = service.find_recent()
        assert _ids(recent) == list(range(15, 5, -1))

    def test_served_from_cache_until_expiry(self, numbered_movies, service, clock):
        first = service.find_recent()
        numbered_movies.create_movie("Brand New", created_at="2025-01-01T00:00:00.000Z")

        clock.now += 2.9
        assert service.find_recent() is first

        clock.now += 0.2
        refreshed = service.find_recent()
        assert refreshed[0]["title"] == "Brand New"


class TestToggleLike:
    def test_like_then_repeat_withdraws(self, numbered_movies, service):
        user_id = numbered_movies.create_user("fan@example.com")
        assert service.toggle_like(1, user_id, True) == {"is_like": True}
        assert numbered_movies.get_movie_detail(1)["like_count"] == 1

        assert service.toggle_like(1, user_id, True) == {"is_like": None}
        assert numbered_movies.get_movie_detail(1)["like_count"] == 0

    def test_opposite_vote_flips(self, numbered_movies, service):
        user_id = numbered_movies.create_user("fan@example.com")
        service.toggle_like(1, user_id, True)
        assert service.toggle_like(1, user_id, False) == {"is_like": False}

        movie = numbered_movies.get_movie_detail(1)
        assert (movie["like_count"], movie["dislike_count"]) == (0, 1)

    def test_missing_movie(self, db, service):
        user_id = db.create_user("fan@example.com")
        assert service.toggle_like(404, user_id, True) is None

    def test_user_exists(self, db, service):
        user_id = db.create_user("fan@example.com")
        assert service.user_exists(user_id)
        assert not service.user_exists(user_id + 1)
