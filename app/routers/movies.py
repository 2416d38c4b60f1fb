"""Movie endpoints: cursor-paginated listing, recent movies, detail and votes."""

import logging

from fastapi import APIRouter, Header, HTTPException, Query

from app.config import settings
from app.models import LikeResponse, MovieDetail, MovieListResponse, MovieSummary
from app.services.database import MovieFilters
from app.services.movies import MovieService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/movie", tags=["movie"])

_service: MovieService | None = None


def init_router(service: MovieService) -> None:
    global _service
    _service = service


def _get_service() -> MovieService:
    assert _service is not None, "movie router not initialized"
    return _service


def _split_order(order: list[str]) -> list[str]:
    return [part.strip() for entry in order for part in entry.split(",") if part.strip()]


@router.get("", response_model=MovieListResponse, response_model_exclude_unset=True)
def list_movies(
    title: str | None = Query(None, description="Search by title (partial match)"),
    order: list[str] = Query(
        settings.default_order,
        description="Sort terms such as id_DESC or created_at_DESC,id_DESC",
    ),
    take: int = Query(settings.default_take, ge=1, le=settings.max_take, description="Page size"),
    cursor: str | None = Query(None, description="nextCursor from the previous page"),
    x_user_id: int | None = Header(None, description="Identified caller, if any"),
):
    """List movies one page at a time, resuming from an opaque cursor."""
    service = _get_service()
    page = service.find_all(
        MovieFilters(title=title),
        order=_split_order(order),
        take=take,
        cursor=cursor,
        user_id=x_user_id,
    )
    return {"data": page.data, "count": page.count, "next_cursor": page.next_cursor}


@router.get("/recent", response_model=list[MovieSummary], response_model_exclude_unset=True)
def recent_movies():
    """The most recently created movies, served from a short-lived cache."""
    return _get_service().find_recent()


@router.get("/{movie_id}", response_model=MovieDetail, response_model_exclude_unset=True)
def get_movie(movie_id: int):
    movie = _get_service().find_one(movie_id)
    if movie is None:
        raise HTTPException(status_code=404, detail=f"Movie {movie_id} not found")
    return movie


def _vote(movie_id: int, user_id: int | None, is_like: bool) -> dict:
    service = _get_service()
    if user_id is None or not service.user_exists(user_id):
        raise HTTPException(status_code=401, detail="Unknown user")
    result = service.toggle_like(movie_id, user_id, is_like)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Movie {movie_id} not found")
    return result


@router.post("/{movie_id}/like", response_model=LikeResponse)
def like_movie(movie_id: int, x_user_id: int | None = Header(None)):
    return _vote(movie_id, x_user_id, True)


@router.post("/{movie_id}/dislike", response_model=LikeResponse)
def dislike_movie(movie_id: int, x_user_id: int | None = Header(None)):
    return _vote(movie_id, x_user_id, False)
