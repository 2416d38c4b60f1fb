"""Pydantic request/response schemas for the movie catalog API."""

from pydantic import BaseModel, ConfigDict, Field


class GenreOut(BaseModel):
    id: int
    name: str


class DirectorOut(BaseModel):
    id: int
    name: str


class MovieSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    director: DirectorOut | None = None
    genres: list[GenreOut] = Field(default_factory=list)
    like_count: int = Field(0, alias="likeCount")
    dislike_count: int = Field(0, alias="dislikeCount")
    created_at: str = Field(alias="createdAt")
    # Only present for identified callers; see annotate_like_status.
    like_status: bool | None = Field(None, alias="likeStatus")


class MovieDetail(MovieSummary):
    detail: str | None = None
    updated_at: str = Field(alias="updatedAt")


class MovieListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: list[MovieSummary]
    count: int
    next_cursor: str | None = Field(alias="nextCursor")


class LikeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_like: bool | None = Field(alias="isLike")


class HealthResponse(BaseModel):
    status: str
    database: bool
