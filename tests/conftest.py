import pytest

from app.services.database import DatabaseService


@pytest.fixture()
def db(tmp_path):
    service = DatabaseService(tmp_path / "movies.db")
    service.init_schema()
    return service


@pytest.fixture()
def numbered_movies(db):
    """Fifteen movies with ids 1..15, created one minute apart."""
    director_id = db.create_director("Ridley Scott")
    genre_id = db.get_or_create_genre("Drama")
    for i in range(1, 16):
        db.create_movie(
            f"Movie {i:02d}",
            director_id=director_id,
            genre_ids=[genre_id],
            created_at=f"2024-01-01T10:{i:02d}:00.000Z",
        )
    return db
