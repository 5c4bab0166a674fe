from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class Mpa(BaseModel):
    id: int
    name: Optional[str] = None


class Genre(BaseModel):
    id: int
    name: Optional[str] = None


class Film(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    release_date: Optional[date] = Field(default=None, alias="releaseDate")
    duration: Optional[int] = None
    mpa: Optional[Mpa] = None
    genres: list[Genre] = Field(default_factory=list)
    likes: int = 0  # derived from the like store on read

    @field_validator("genres", mode="before")
    @classmethod
    def _genres_default(cls, value):
        return [] if value is None else value

    @field_validator("genres")
    @classmethod
    def _dedupe_genres(cls, genres: list[Genre]) -> list[Genre]:
        seen: dict[int, Genre] = {}
        for genre in genres:
            seen.setdefault(genre.id, genre)
        return list(seen.values())

    @property
    def genre_ids(self) -> list[int]:
        return [g.id for g in self.genres]


class User(BaseModel):
    id: Optional[int] = None
    email: Optional[str] = None
    login: Optional[str] = None
    name: Optional[str] = None
    birthday: Optional[date] = None

    @property
    def display_name(self) -> Optional[str]:
        """The name shown to clients: falls back to login when name is blank."""
        if self.name and self.name.strip():
            return self.name
        return self.login

    @field_serializer("name")
    def _serialize_name(self, name: Optional[str]) -> Optional[str]:
        return self.display_name


class ErrorResponse(BaseModel):
    error: str
