"""Read-only genre and director listings."""

from fastapi import APIRouter

from app.models import DirectorOut, GenreOut
from app.services.database import DatabaseService

router = APIRouter(tags=["catalog"])

_db: DatabaseService | None = None


def init_router(db: DatabaseService) -> None:
    global _db
    _db = db


def _get_db() -> DatabaseService:
    assert _db is not None, "catalog router not initialized"
    return _db


@router.get("/genre", response_model=list[GenreOut])
def list_genres():
    return _get_db().list_genres()


@router.get("/director", response_model=list[DirectorOut])
def list_directors():
    return _get_db().list_directors()
