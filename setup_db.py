"""
setup_db.py: build the movie catalog SQLite database and load movies into it.

Usage:
  python setup_db.py                 # built-in demo catalog
  python setup_db.py movies.csv      # title,director,genres,created_at

``genres`` is a ``|``-separated list; ``created_at`` is optional ISO-8601.

Output: the database at MOVIE_CATALOG_DB_PATH (default movies.db)
"""

import csv
import os
import sys
import time
from pathlib import Path

from app.config import settings
from app.services.database import DatabaseService

DEMO_MOVIES = [
    ("Alien", "Ridley Scott", "Horror|Science Fiction", "2024-01-05T10:00:00.000Z"),
    ("Blade Runner", "Ridley Scott", "Science Fiction|Thriller", "2024-01-06T10:00:00.000Z"),
    ("Heat", "Michael Mann", "Crime|Thriller", "2024-01-07T10:00:00.000Z"),
    ("Collateral", "Michael Mann", "Crime|Thriller", "2024-01-08T10:00:00.000Z"),
    ("Arrival", "Denis Villeneuve", "Drama|Science Fiction", "2024-01-09T10:00:00.000Z"),
    ("Sicario", "Denis Villeneuve", "Crime|Thriller", "2024-01-10T10:00:00.000Z"),
    ("Dune", "Denis Villeneuve", "Adventure|Science Fiction", "2024-01-11T10:00:00.000Z"),
    ("Jaws", "Steven Spielberg", "Thriller", "2024-01-12T10:00:00.000Z"),
    ("Jurassic Park", "Steven Spielberg", "Adventure|Science Fiction", "2024-01-13T10:00:00.000Z"),
    ("Memento", "Christopher Nolan", "Mystery|Thriller", "2024-01-14T10:00:00.000Z"),
    ("Inception", "Christopher Nolan", "Action|Science Fiction", "2024-01-15T10:00:00.000Z"),
    ("Interstellar", "Christopher Nolan", "Adventure|Drama|Science Fiction", "2024-01-16T10:00:00.000Z"),
]

DEMO_USERS = ["admin@example.com", "user@example.com"]


def read_movies_csv(path: Path) -> list[tuple[str, str, str, str | None]]:
    rows = []
    with open(path, encoding="utf-8", newline="") as f:
        for row in csv.DictReader(f):
            rows.append((
                row["title"].strip(),
                (row.get("director") or "").strip(),
                (row.get("genres") or "").strip(),
                (row.get("created_at") or "").strip() or None,
            ))
    return rows


def load_movies(db: DatabaseService, movies: list[tuple[str, str, str, str | None]]) -> int:
    """Insert movies, creating directors and genres on first sight. Returns count."""
    directors: dict[str, int] = {}
    genres: dict[str, int] = {}

    for title, director, genre_names, created_at in movies:
        director_id = None
        if director:
            if director not in directors:
                directors[director] = db.create_director(director)
            director_id = directors[director]

        genre_ids = []
        for name in filter(None, (g.strip() for g in genre_names.split("|"))):
            if name not in genres:
                genres[name] = db.get_or_create_genre(name)
            genre_ids.append(genres[name])

        db.create_movie(title, director_id=director_id, genre_ids=genre_ids, created_at=created_at)

    return len(movies)


def main() -> None:
    source = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    if source is not None and not source.exists():
        print(f"ERROR: Missing data file: {source}", file=sys.stderr)
        sys.exit(1)

    db_path = settings.db_path
    if db_path.exists():
        os.remove(db_path)
        print(f"Removed existing {db_path.name}")

    t0 = time.perf_counter()
    db = DatabaseService(db_path)

    print("Creating schema...")
    db.init_schema()

    movies = read_movies_csv(source) if source else DEMO_MOVIES
    print(f"Loading movies from {source or 'demo catalog'}...")
    n_movies = load_movies(db, movies)
    print(f"  Loaded {n_movies} movies")

    for email in DEMO_USERS:
        db.create_user(email, role="admin" if email.startswith("admin") else "user")
    print(f"  Created {len(DEMO_USERS)} users")

    elapsed = time.perf_counter() - t0
    print(f"\nDone. Database written to {db_path}  ({elapsed:.1f}s)")


if __name__ == "__main__":
    main()
