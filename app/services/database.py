"""SQLite database service which manages connections, the schema and query helpers."""

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from app.services.pagination import InvalidOrderSpec, OrderSpec, RangePredicate, SortDirection

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS directors (
    id   INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS genres (
    id   INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS users (
    id    INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    role  TEXT NOT NULL DEFAULT 'user'
);

CREATE TABLE IF NOT EXISTS movies (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    title         TEXT NOT NULL UNIQUE,
    detail        TEXT,
    director_id   INTEGER REFERENCES directors(id),
    like_count    INTEGER NOT NULL DEFAULT 0,
    dislike_count INTEGER NOT NULL DEFAULT 0,
    created_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);

CREATE TABLE IF NOT EXISTS movie_genres (
    movie_id INTEGER NOT NULL REFERENCES movies(id) ON DELETE CASCADE,
    genre_id INTEGER NOT NULL REFERENCES genres(id),
    PRIMARY KEY (movie_id, genre_id)
);

CREATE TABLE IF NOT EXISTS movie_user_likes (
    movie_id INTEGER NOT NULL REFERENCES movies(id) ON DELETE CASCADE,
    user_id  INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    is_like  INTEGER NOT NULL,
    PRIMARY KEY (movie_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_movies_title        ON movies(title);
CREATE INDEX IF NOT EXISTS idx_movies_created_at   ON movies(created_at);
CREATE INDEX IF NOT EXISTS idx_movie_genres_movie  ON movie_genres(movie_id);
CREATE INDEX IF NOT EXISTS idx_movie_user_likes_user ON movie_user_likes(user_id);
"""

_MOVIE_SELECT = """
    SELECT m.id, m.title, m.created_at, m.updated_at,
           m.like_count, m.dislike_count,
           d.id AS director_id, d.name AS director_name
    FROM movies m
    LEFT JOIN directors d ON d.id = m.director_id
"""


@dataclass
class MovieFilters:
    title: str | None = None


class DatabaseService:
    SORTABLE_COLUMNS = {
        "id": "m.id",
        "title": "m.title",
        "created_at": "m.created_at",
        "updated_at": "m.updated_at",
        "like_count": "m.like_count",
        "dislike_count": "m.dislike_count",
    }
    _OPERATORS = {"=", ">", "<"}

    def __init__(self, db_path: Path):
        self._db_path = db_path
        logger.info("DatabaseService initialized with %s", db_path)

    @contextmanager
    def _connect(self):
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def health_check(self) -> bool:
        try:
            with self._connect() as conn:
                conn.execute("SELECT 1 FROM movies LIMIT 1")
            return True
        except Exception:
            logger.exception("Database health check failed")
            return False

    # ── Query compilation ──────────────────────────────────────────────

    def _column(self, name: str) -> str:
        try:
            return self.SORTABLE_COLUMNS[name]
        except KeyError:
            raise InvalidOrderSpec(f"cannot order by {name!r}") from None

    def _filter_clauses(self, filters: MovieFilters) -> tuple[list[str], list]:
        clauses: list[str] = []
        params: list = []
        if filters.title:
            clauses.append("m.title LIKE ?")
            params.append(f"%{filters.title}%")
        return clauses, params

    def _range_clause(self, after: RangePredicate) -> tuple[str, list]:
        ors: list[str] = []
        params: list = []
        for clause in after.clauses:
            ands: list[str] = []
            for cmp in clause:
                if cmp.op not in self._OPERATORS:
                    raise ValueError(f"unsupported comparison {cmp.op!r}")
                ands.append(f"{self._column(cmp.column)} {cmp.op} ?")
                params.append(cmp.value)
            ors.append("(" + " AND ".join(ands) + ")")
        return "(" + " OR ".join(ors) + ")", params

    def _order_clause(self, order: OrderSpec) -> str:
        return ", ".join(
            f"{self._column(term.column)} {'ASC' if term.direction is SortDirection.ASC else 'DESC'}"
            for term in order
        )

    # ── Movies ─────────────────────────────────────────────────────────

    def fetch_page(
        self,
        filters: MovieFilters,
        order: OrderSpec,
        after: RangePredicate | None,
        limit: int,
    ) -> tuple[list[dict], int]:
        """Return one page of movies plus the size of the filtered set."""
        clauses, params = self._filter_clauses(filters)
        order_by = self._order_clause(order)

        count_where = " AND ".join(clauses) if clauses else "1=1"
        count_params = list(params)

        if after is not None:
            range_sql, range_params = self._range_clause(after)
            clauses.append(range_sql)
            params.extend(range_params)
        where = " AND ".join(clauses) if clauses else "1=1"

        sql = f"{_MOVIE_SELECT} WHERE {where} ORDER BY {order_by} LIMIT ?"
        params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
            count = conn.execute(
                f"SELECT COUNT(*) FROM movies m WHERE {count_where}", count_params
            ).fetchone()[0]
            movies = self._enrich_movies(conn, rows)

        return movies, count

    def find_recent(self, limit: int) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute(
                f"{_MOVIE_SELECT} ORDER BY m.created_at DESC, m.id DESC LIMIT ?", (limit,)
            ).fetchall()
            return self._enrich_movies(conn, rows)

    def get_movie_detail(self, movie_id: int) -> dict | None:
        with self._connect() as conn:
            row = conn.execute(f"{_MOVIE_SELECT} WHERE m.id = ?", (movie_id,)).fetchone()
            if not row:
                return None
            movie = self._enrich_movies(conn, [row])[0]
            movie["detail"] = conn.execute(
                "SELECT detail FROM movies WHERE id = ?", (movie_id,)
            ).fetchone()["detail"]
        return movie

    def movie_exists(self, movie_id: int) -> bool:
        with self._connect() as conn:
            return conn.execute("SELECT 1 FROM movies WHERE id = ?", (movie_id,)).fetchone() is not None

    def _enrich_movies(self, conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[dict]:
        movies: list[dict] = []
        for r in rows:
            movie = {
                "id": r["id"],
                "title": r["title"],
                "created_at": r["created_at"],
                "updated_at": r["updated_at"],
                "like_count": r["like_count"],
                "dislike_count": r["dislike_count"],
                "director": (
                    {"id": r["director_id"], "name": r["director_name"]}
                    if r["director_id"] is not None
                    else None
                ),
                "genres": [],
            }
            movies.append(movie)

        if not movies:
            return movies

        by_id = {m["id"]: m for m in movies}
        placeholders = ",".join("?" for _ in by_id)
        for g in conn.execute(
            "SELECT mg.movie_id, g.id, g.name FROM movie_genres mg "
            "JOIN genres g ON g.id = mg.genre_id "
            f"WHERE mg.movie_id IN ({placeholders}) ORDER BY g.id",
            list(by_id),
        ).fetchall():
            by_id[g["movie_id"]]["genres"].append({"id": g["id"], "name": g["name"]})
        return movies

    # ── Likes ──────────────────────────────────────────────────────────

    def get_like_records(self, movie_ids: list[int], user_id: int) -> list[dict]:
        placeholders = ",".join("?" for _ in movie_ids)
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT movie_id, user_id, is_like FROM movie_user_likes "
                f"WHERE user_id = ? AND movie_id IN ({placeholders})",
                [user_id, *movie_ids],
            ).fetchall()
        return [
            {"movie_id": r["movie_id"], "user_id": r["user_id"], "is_like": bool(r["is_like"])}
            for r in rows
        ]

    def toggle_like(self, movie_id: int, user_id: int, is_like: bool) -> bool | None:
        """Apply a like/dislike vote and return the resulting state."""
        with self._connect() as conn:
            existing = conn.execute(
                "SELECT is_like FROM movie_user_likes WHERE movie_id = ? AND user_id = ?",
                (movie_id, user_id),
            ).fetchone()

            if existing is None:
                conn.execute(
                    "INSERT INTO movie_user_likes (movie_id, user_id, is_like) VALUES (?, ?, ?)",
                    (movie_id, user_id, int(is_like)),
                )
                state = is_like
            elif bool(existing["is_like"]) == is_like:
                conn.execute(
                    "DELETE FROM movie_user_likes WHERE movie_id = ? AND user_id = ?",
                    (movie_id, user_id),
                )
                state = None
            else:
                conn.execute(
                    "UPDATE movie_user_likes SET is_like = ? WHERE movie_id = ? AND user_id = ?",
                    (int(is_like), movie_id, user_id),
                )
                state = is_like

            conn.execute(
                """UPDATE movies SET
                       like_count = (SELECT COUNT(*) FROM movie_user_likes
                                     WHERE movie_id = ? AND is_like = 1),
                       dislike_count = (SELECT COUNT(*) FROM movie_user_likes
                                        WHERE movie_id = ? AND is_like = 0)
                   WHERE id = ?""",
                (movie_id, movie_id, movie_id),
            )
            conn.commit()
        return state

    # ── Users, genres, directors ──────────────────────────────────────

    def user_exists(self, user_id: int) -> bool:
        with self._connect() as conn:
            return conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone() is not None

    def list_genres(self) -> list[dict]:
        with self._connect() as conn:
            return [dict(r) for r in conn.execute("SELECT id, name FROM genres ORDER BY id").fetchall()]

    def list_directors(self) -> list[dict]:
        with self._connect() as conn:
            return [dict(r) for r in conn.execute("SELECT id, name FROM directors ORDER BY id").fetchall()]

    def create_user(self, email: str, role: str = "user") -> int:
        with self._connect() as conn:
            cur = conn.execute("INSERT INTO users (email, role) VALUES (?, ?)", (email, role))
            conn.commit()
            return cur.lastrowid

    def create_director(self, name: str) -> int:
        with self._connect() as conn:
            cur = conn.execute("INSERT INTO directors (name) VALUES (?)", (name,))
            conn.commit()
            return cur.lastrowid

    def get_or_create_genre(self, name: str) -> int:
        with self._connect() as conn:
            conn.execute("INSERT OR IGNORE INTO genres (name) VALUES (?)", (name,))
            conn.commit()
            return conn.execute("SELECT id FROM genres WHERE name = ?", (name,)).fetchone()["id"]

    def create_movie(
        self,
        title: str,
        director_id: int | None = None,
        genre_ids: list[int] | None = None,
        created_at: str | None = None,
        detail: str | None = None,
    ) -> int:
        with self._connect() as conn:
            if created_at is None:
                cur = conn.execute(
                    "INSERT INTO movies (title, detail, director_id) VALUES (?, ?, ?)",
                    (title, detail, director_id),
                )
            else:
                cur = conn.execute(
                    "INSERT INTO movies (title, detail, director_id, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (title, detail, director_id, created_at, created_at),
                )
            movie_id = cur.lastrowid
            conn.executemany(
                "INSERT INTO movie_genres (movie_id, genre_id) VALUES (?, ?)",
                [(movie_id, gid) for gid in genre_ids or []],
            )
            conn.commit()
        return movie_id
